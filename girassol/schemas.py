from pydantic import BaseModel, ConfigDict, Field, field_validator
from datetime import date
from typing import List, Literal, Optional

from girassol.constants import (
    TIME_PATTERN, DEFAULT_NOTIFICATION_TIME, TODO_PRIORITY_MEDIUM
)


def _check_iso_date(value: str) -> str:
    # fromisoformat also takes "20251225" and week dates; store the YYYY-MM-DD form
    return date.fromisoformat(value).isoformat()


class Record(BaseModel):
    """Base for persisted records: camelCase on disk, snake_case in Python"""
    model_config = ConfigDict(populate_by_name=True)

    def to_storage(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


# ===== HABITS =====

class Habit(Record):
    id: str
    title: str
    streak: int = Field(default=0, ge=0)
    completed_dates: List[str] = Field(default_factory=list, alias="completedDates")

    @field_validator("completed_dates")
    @classmethod
    def dedupe_dates(cls, value: List[str]) -> List[str]:
        seen = set()
        unique = []
        for item in value:
            item = _check_iso_date(item)
            if item not in seen:
                seen.add(item)
                unique.append(item)
        return unique


class HabitCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)


class HabitToggle(BaseModel):
    date: date


class HabitStats(BaseModel):
    id: str
    title: str
    streak: int
    count: int  # completed days in the consistency window
    score: float
    bucket: str
    last_days: List[dict]  # [{"date": "YYYY-MM-DD", "completed": bool}], oldest first


# ===== TODOS =====

class SubTask(Record):
    id: str
    text: str
    completed: bool = False


class Todo(Record):
    id: str
    text: str
    completed: bool = False
    priority: Literal["low", "medium", "high"] = TODO_PRIORITY_MEDIUM
    subtasks: List[SubTask] = Field(default_factory=list)


class TodoCreate(BaseModel):
    text: str = Field(..., min_length=1, max_length=500)
    priority: Literal["low", "medium", "high"] = TODO_PRIORITY_MEDIUM


class SubTaskCreate(BaseModel):
    text: str = Field(..., min_length=1, max_length=500)


# ===== JOURNAL =====

class JournalEntry(Record):
    id: str
    date: str  # ISO timestamp at creation
    content: str
    mood: Optional[Literal["happy", "neutral", "sad", "motivated"]] = None
    ai_analysis: Optional[str] = Field(default=None, alias="aiAnalysis")


class JournalEntryCreate(BaseModel):
    content: str = Field(..., min_length=1)
    mood: Optional[Literal["happy", "neutral", "sad", "motivated"]] = None


class JournalEntryUpdate(BaseModel):
    content: Optional[str] = Field(None, min_length=1)
    mood: Optional[Literal["happy", "neutral", "sad", "motivated"]] = None


# ===== HEALTH =====

class Meals(Record):
    breakfast: bool = False
    morning_snack: bool = Field(default=False, alias="morningSnack")
    lunch: bool = False
    afternoon_snack: bool = Field(default=False, alias="afternoonSnack")
    dinner: bool = False
    supper: bool = False


class DailyLog(Record):
    date: str
    weight: Optional[float] = None
    workout: bool = False
    meals: Meals = Field(default_factory=Meals)

    @field_validator("date")
    @classmethod
    def validate_date(cls, value: str) -> str:
        return _check_iso_date(value)


# ===== NEWS =====

class AiNewsItem(Record):
    title: str
    summary: str = ""
    source: str = ""
    date: str = ""
    url: Optional[str] = None


class NewsCache(Record):
    items: List[AiNewsItem] = Field(default_factory=list)
    date: str


# ===== PREFERENCES =====

class Preferences(Record):
    sounds: bool = True
    notifications: bool = False
    notification_time: str = Field(
        default=DEFAULT_NOTIFICATION_TIME, alias="notificationTime", pattern=TIME_PATTERN
    )


class PreferencesUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    sounds: Optional[bool] = None
    notifications: Optional[bool] = None
    notification_time: Optional[str] = Field(
        None, alias="notificationTime", pattern=TIME_PATTERN
    )


# ===== CALENDAR / PROGRESS / DATA =====

class MonthGridResponse(BaseModel):
    year: int
    month: int
    leading_blanks: int
    days: List[int]


class Badge(BaseModel):
    key: str
    title: str
    description: str


class ProgressResponse(BaseModel):
    habits: List[dict]
    tasks: dict
    health: List[dict]
    badges: List[Badge]


class ImportResponse(BaseModel):
    success: bool
    written: List[str]
    skipped: List[str]
    failed: List[str] = []


class BackupFileResponse(BaseModel):
    filename: str
    size_bytes: int
    backup_type: str
    created_at: str
