"""
Progress summary service.
Aggregates habits, todos and health logs into chart data and badges.
"""
from datetime import datetime
from typing import List, Optional

from girassol.constants import (
    HEALTH_TREND_LIMIT,
    BADGE_WORKOUT_WINDOW, BADGE_WORKOUT_MIN,
    BADGE_COMPLETED_TODOS_MIN, BADGE_STREAK_MIN, BADGE_HABIT_SCORE_MIN
)
from girassol.schemas import Badge
from girassol.services.habit_service import HabitService
from girassol.services.health_service import HealthService
from girassol.services.todo_service import TodoService


class ProgressService:
    """Service for the progress overview"""

    def __init__(self, store, now: Optional[datetime] = None):
        self.habit_service = HabitService(store, now)
        self.todo_service = TodoService(store)
        self.health_service = HealthService(store)

    def get_progress(self) -> dict:
        habit_stats = self.habit_service.get_habit_stats()
        habits = sorted(
            [
                {"id": s.id, "name": s.title, "count": s.count, "score": s.score,
                 "bucket": s.bucket, "streak": s.streak}
                for s in habit_stats
            ],
            key=lambda item: item["score"],
            reverse=True,
        )

        todos = self.todo_service.list_todos()
        completed = sum(1 for t in todos if t.completed)
        tasks = {"completed": completed, "pending": len(todos) - completed}

        logs = self.health_service.list_logs()
        health = [
            {"date": log.date, "weight": log.weight, "workout": 1 if log.workout else 0}
            for log in logs
            if log.weight is not None or log.workout
        ][-HEALTH_TREND_LIMIT:]

        workouts = sum(1 for log in logs[-BADGE_WORKOUT_WINDOW:] if log.workout)
        max_streak = max((s.streak for s in habit_stats), default=0)

        return {
            "habits": habits,
            "tasks": tasks,
            "health": health,
            "badges": self._badges(workouts, completed, max_streak, habits),
        }

    def _badges(self, workouts: int, completed_todos: int, max_streak: int, habits: List[dict]) -> List[Badge]:
        badges = []
        if workouts >= BADGE_WORKOUT_MIN:
            badges.append(Badge(key="energy", title="Energia Pura", description="3+ treinos/semana"))
        if completed_todos >= BADGE_COMPLETED_TODOS_MIN:
            badges.append(Badge(key="focused", title="Focado", description="10+ tarefas feitas"))
        if max_streak >= BADGE_STREAK_MIN:
            badges.append(Badge(key="unstoppable", title="Imparável", description="7 dias seguidos!"))
        if habits and all(h["score"] > BADGE_HABIT_SCORE_MIN for h in habits):
            badges.append(Badge(key="gardener", title="Jardineiro", description="Cultivando hábitos"))
        return badges
