"""
Habit tracking service.
Handles streak and consistency calculations and habit collection mutations.
"""
import logging
from datetime import datetime, date, timedelta
from typing import Iterable, List, Optional
from uuid import uuid4

from pydantic import ValidationError

from girassol.constants import (
    KEY_HABITS,
    STREAK_LOOKBACK_DAYS,
    CONSISTENCY_WINDOW_DAYS,
    CONSISTENCY_STRONG_THRESHOLD,
    CONSISTENCY_OK_THRESHOLD,
    CONSISTENCY_STRONG, CONSISTENCY_OK, CONSISTENCY_WEAK
)
from girassol.exceptions import HabitNotFoundException, ValidationException
from girassol.schemas import Habit, HabitStats
from girassol.services.date_service import DateService

logger = logging.getLogger("girassol.habits")


class HabitStreakCalculator:
    """Streak and consistency math over a set of completed ISO dates"""

    @staticmethod
    def calculate_streak(completed_dates: Iterable[str], today: date) -> int:
        """
        Count contiguous completed days walking backward from today.

        Today counts when completed, but a missing today does not break
        the streak: the walk continues from yesterday. From yesterday on,
        the first missing day ends the walk. At most 365 days are checked.

        Args:
            completed_dates: ISO dates the habit was done
            today: Reference date

        Returns:
            Streak length in days
        """
        done = set(completed_dates)
        streak = 0
        for offset in range(STREAK_LOOKBACK_DAYS):
            day = (today - timedelta(days=offset)).isoformat()
            if day in done:
                streak += 1
            elif offset == 0:
                continue
            else:
                break
        return streak

    @staticmethod
    def completed_in_window(
        completed_dates: Iterable[str],
        today: date,
        window: int = CONSISTENCY_WINDOW_DAYS
    ) -> int:
        """Count completed days among the trailing window ending today"""
        done = set(completed_dates)
        return sum(1 for day in DateService.last_n_days(window, today) if day in done)

    @staticmethod
    def consistency_score(
        completed_dates: Iterable[str],
        today: date,
        window: int = CONSISTENCY_WINDOW_DAYS
    ) -> float:
        """Percentage of the trailing window on which the habit was done"""
        count = HabitStreakCalculator.completed_in_window(completed_dates, today, window)
        return count / window * 100

    @staticmethod
    def consistency_bucket(score: float) -> str:
        if score >= CONSISTENCY_STRONG_THRESHOLD:
            return CONSISTENCY_STRONG
        if score >= CONSISTENCY_OK_THRESHOLD:
            return CONSISTENCY_OK
        return CONSISTENCY_WEAK


class HabitService:
    """Service for habit management"""

    def __init__(self, store, now: Optional[datetime] = None):
        self.store = store
        self.now = now
        self.calculator = HabitStreakCalculator()

    @property
    def today(self) -> date:
        return DateService.today(self.now)

    def list_habits(self) -> List[Habit]:
        """Get all habits with streaks recomputed for today"""
        habits = self._load()
        for habit in habits:
            habit.streak = self.calculator.calculate_streak(habit.completed_dates, self.today)
        return habits

    def get_habit(self, habit_id: str) -> Habit:
        for habit in self.list_habits():
            if habit.id == habit_id:
                return habit
        raise HabitNotFoundException(habit_id)

    def add_habit(self, title: str) -> Habit:
        """Create a new habit with no completions"""
        if not title or not title.strip():
            raise ValidationException("title", "must not be blank")
        habits = self._load()
        habit = Habit(id=uuid4().hex, title=title.strip(), streak=0, completed_dates=[])
        habits.append(habit)
        self._save(habits)
        return habit

    def toggle_date(self, habit_id: str, day: str) -> Habit:
        """
        Flip completion of a habit on a day and refresh its streak.

        Args:
            habit_id: Habit ID
            day: ISO date to toggle

        Returns:
            Updated habit

        Raises:
            HabitNotFoundException: If no habit has this ID
        """
        try:
            day = date.fromisoformat(day).isoformat()
        except (TypeError, ValueError):
            raise ValidationException("date", f"{day!r} is not YYYY-MM-DD")

        habits = self._load()
        habit = self._find(habits, habit_id)

        if day in habit.completed_dates:
            habit.completed_dates = [d for d in habit.completed_dates if d != day]
        else:
            habit.completed_dates = habit.completed_dates + [day]

        self._save(habits)
        return habit

    def delete_habit(self, habit_id: str) -> None:
        habits = self._load()
        habit = self._find(habits, habit_id)
        self._save([h for h in habits if h.id != habit.id])

    def get_habit_stats(self) -> List[HabitStats]:
        """Get streak, consistency and the last-7-day grid of every habit"""
        today = self.today
        window = DateService.last_n_days(CONSISTENCY_WINDOW_DAYS, today)
        stats = []
        for habit in self.list_habits():
            done = set(habit.completed_dates)
            count = self.calculator.completed_in_window(done, today)
            score = self.calculator.consistency_score(done, today)
            stats.append(HabitStats(
                id=habit.id,
                title=habit.title,
                streak=habit.streak,
                count=count,
                score=score,
                bucket=self.calculator.consistency_bucket(score),
                last_days=[{"date": day, "completed": day in done} for day in window],
            ))
        return stats

    def _find(self, habits: List[Habit], habit_id: str) -> Habit:
        for habit in habits:
            if habit.id == habit_id:
                return habit
        raise HabitNotFoundException(habit_id)

    def _load(self) -> List[Habit]:
        habits = []
        for raw in self.store.get_list(KEY_HABITS):
            try:
                habits.append(Habit.model_validate(raw))
            except ValidationError as e:
                logger.warning(f"Skipping invalid habit record: {e}")
        return habits

    def _save(self, habits: List[Habit]) -> None:
        # streak is a cache of completed_dates; refresh before every write
        for habit in habits:
            habit.streak = self.calculator.calculate_streak(habit.completed_dates, self.today)
        self.store.set(KEY_HABITS, [h.to_storage() for h in habits])
