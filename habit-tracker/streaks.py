"""Streak and completion statistics over a habit's completed dates.

Every function here takes ``today`` from the caller; nothing reads the clock.
Dates are compared as canonical ``YYYY-MM-DD`` strings.
"""

import math
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Iterable

from models import Frequency, Habit, date_key

WEEKLY_ANCHOR_WEEKDAY = 6  # Sunday, date.weekday() numbering
WEEK_DAYS = 7


@dataclass
class HabitProgress:
    habit_id: str
    current_streak: int
    best_streak: int
    completed_today: bool
    total_completions: int
    history: list[tuple[str, bool]] = field(default_factory=list)


@dataclass
class HabitStats:
    total_habits: int
    daily_habits: int
    weekly_habits: int
    completed_today: int
    longest_streak: int
    average_streak: int
    weekly_completion_rate: int


def _as_date(value) -> date:
    return date.fromisoformat(date_key(value))


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def current_streak(completed_dates: Iterable[str], today) -> int:
    """Count consecutive completed days ending at ``today``.

    A missing ``today`` gives 0 even when yesterday ends a long run.
    """
    done = {date_key(d) for d in completed_dates}
    day = _as_date(today)
    streak = 0
    while day.isoformat() in done:
        streak += 1
        day -= timedelta(days=1)
    return streak


def best_streak(completed_dates: Iterable[str]) -> int:
    """Longest run of consecutive days anywhere in the history."""
    ordered = sorted({date_key(d) for d in completed_dates})
    best = 0
    run = 0
    previous = None
    for key in ordered:
        day = date.fromisoformat(key)
        if previous is not None and previous + timedelta(days=1) == day:
            run += 1
        else:
            run = 1
        best = max(best, run)
        previous = day
    return best


def weekly_completion_rate(habits: Iterable[Habit], today) -> int:
    """Percentage of expected slots completed over the 7 days ending today.

    Daily habits expect every day; weekly habits only expect the anchor day.
    """
    habits = list(habits)
    end = _as_date(today)
    possible = 0
    completed = 0
    for offset in range(WEEK_DAYS):
        day = end - timedelta(days=offset)
        key = day.isoformat()
        for habit in habits:
            if habit.frequency == Frequency.daily or (
                habit.frequency == Frequency.weekly
                and day.weekday() == WEEKLY_ANCHOR_WEEKDAY
            ):
                possible += 1
                if key in habit.completed_dates:
                    completed += 1
    if possible == 0:
        return 0
    return _round_half_up(100 * completed / possible)


def completion_history(
    completed_dates: Iterable[str], today, days: int = WEEK_DAYS
) -> list[tuple[str, bool]]:
    """Trailing ``days`` dates, oldest first, each with a completed flag."""
    done = {date_key(d) for d in completed_dates}
    end = _as_date(today)
    keys = [(end - timedelta(days=offset)).isoformat() for offset in range(days)]
    return [(key, key in done) for key in reversed(keys)]


def completed_today(habits: Iterable[Habit], today) -> int:
    key = date_key(today)
    return sum(1 for h in habits if key in h.completed_dates)


def longest_current_streak(habits: Iterable[Habit], today) -> int:
    return max((current_streak(h.completed_dates, today) for h in habits), default=0)


def average_streak(habits: Iterable[Habit], today) -> int:
    streaks = [current_streak(h.completed_dates, today) for h in habits]
    if not streaks:
        return 0
    return _round_half_up(sum(streaks) / len(streaks))


def habit_progress(habit: Habit, today) -> HabitProgress:
    return HabitProgress(
        habit_id=habit.id,
        current_streak=current_streak(habit.completed_dates, today),
        best_streak=best_streak(habit.completed_dates),
        completed_today=date_key(today) in habit.completed_dates,
        total_completions=len(habit.completed_dates),
        history=completion_history(habit.completed_dates, today),
    )


def summarize(habits: Iterable[Habit], today) -> HabitStats:
    habits = list(habits)
    return HabitStats(
        total_habits=len(habits),
        daily_habits=sum(1 for h in habits if h.frequency == Frequency.daily),
        weekly_habits=sum(1 for h in habits if h.frequency == Frequency.weekly),
        completed_today=completed_today(habits, today),
        longest_streak=longest_current_streak(habits, today),
        average_streak=average_streak(habits, today),
        weekly_completion_rate=weekly_completion_rate(habits, today),
    )
