"""Pytest fixtures for habit tracker tests."""

import os
from datetime import date

import pytest
from sqlalchemy.pool import StaticPool
from sqlmodel import create_engine

# main.py opens its database at import time
os.environ.setdefault("HABITS_DATABASE_URL", "sqlite://")
os.environ.setdefault("HABITS_FETCH_DELAY", "0")

from models import Frequency, Habit, HabitCollectionState  # noqa: E402
from store import HabitStore  # noqa: E402


class RecordingPersistence:
    """Adapter that remembers every saved snapshot."""

    def __init__(self, loaded=None):
        self.loaded = loaded
        self.saved: list[HabitCollectionState] = []

    def save(self, state: HabitCollectionState) -> None:
        self.saved.append(state.model_copy(deep=True))

    def load(self):
        return self.loaded


class FailingPersistence:
    def save(self, state: HabitCollectionState) -> None:
        raise OSError("disk full")

    def load(self):
        raise OSError("disk unreadable")


@pytest.fixture
def today() -> date:
    # a Wednesday
    return date(2024, 1, 10)


@pytest.fixture
def persistence() -> RecordingPersistence:
    return RecordingPersistence()


@pytest.fixture
def store(persistence: RecordingPersistence) -> HabitStore:
    return HabitStore(persistence, fetch_delay=0)


@pytest.fixture
def engine():
    return create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )


def make_habit(habit_id: str, dates=(), frequency: Frequency = Frequency.daily) -> Habit:
    return Habit(id=habit_id, name=f"Habit {habit_id}", frequency=frequency, completed_dates=list(dates))
