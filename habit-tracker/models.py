import json
from datetime import date, datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import field_validator
from sqlmodel import Field, SQLModel


class Frequency(str, Enum):
    daily = "daily"
    weekly = "weekly"


def date_key(value) -> str:
    """Normalize a date, datetime or ISO string to YYYY-MM-DD."""
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, str):
        text = value.strip()
        if "T" in text or " " in text:
            return datetime.fromisoformat(text).date().isoformat()
        return date.fromisoformat(text).isoformat()
    raise ValueError(f"Not a date: {value!r}")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Habit(SQLModel):
    id: str
    name: str
    frequency: Frequency = Frequency.daily
    description: Optional[str] = None
    completed_dates: list[str] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utc_now)

    @field_validator("completed_dates", mode="before")
    @classmethod
    def _unique_date_keys(cls, value):
        keys: list[str] = []
        for item in value or []:
            key = date_key(item)
            if key not in keys:
                keys.append(key)
        return keys

    @field_validator("created_at")
    @classmethod
    def _aware_created_at(cls, value: datetime) -> datetime:
        # SQLite hands timestamps back without an offset
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value


class HabitCollectionState(SQLModel):
    habits: list[Habit] = Field(default_factory=list)
    is_loading: bool = False
    error: Optional[str] = None


class HabitRow(SQLModel, table=True):
    __tablename__ = "habit"

    id: str = Field(primary_key=True)
    position: int = Field(index=True)
    name: str
    frequency: Frequency = Frequency.daily
    description: Optional[str] = None
    completed_dates: str = "[]"  # JSON list: ["2024-01-01", ...]
    created_at: datetime = Field(default_factory=utc_now)

    @classmethod
    def from_habit(cls, habit: Habit, position: int) -> "HabitRow":
        return cls(
            id=habit.id,
            position=position,
            name=habit.name,
            frequency=habit.frequency,
            description=habit.description,
            completed_dates=json.dumps(habit.completed_dates),
            created_at=habit.created_at,
        )

    def to_habit(self) -> Habit:
        return Habit(
            id=self.id,
            name=self.name,
            frequency=Frequency(self.frequency),
            description=self.description,
            completed_dates=json.loads(self.completed_dates),
            created_at=self.created_at,
        )
