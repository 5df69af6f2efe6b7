import logging
import os
from dataclasses import asdict
from datetime import date
from typing import Optional

from mcp.server.fastmcp import FastMCP
from mcp.server.transport_security import TransportSecuritySettings
from sqlmodel import create_engine

from models import Frequency, Habit, date_key
from persistence import SqlPersistence
from store import FETCH_DELAY_SECONDS, HabitStore
from streaks import habit_progress, summarize

log = logging.getLogger(__name__)

# --- Configuration ---

DATABASE_URL = os.environ.get("HABITS_DATABASE_URL", "sqlite:////data/habits.db")
FETCH_DELAY = float(os.environ.get("HABITS_FETCH_DELAY", FETCH_DELAY_SECONDS))

# --- State ---

engine = create_engine(DATABASE_URL, echo=False)
store = HabitStore(SqlPersistence(engine), fetch_delay=FETCH_DELAY)
store.restore()
log.info("Serving %d habits from %s", len(store.habits), DATABASE_URL)


def today() -> date:
    return date.today()


def habit_to_dict(habit: Habit) -> dict:
    progress = habit_progress(habit, today())
    return {
        "id": habit.id,
        "name": habit.name,
        "frequency": habit.frequency.value,
        "description": habit.description,
        "completed_dates": sorted(habit.completed_dates),
        "created_at": habit.created_at.isoformat(),
        "current_streak": progress.current_streak,
        "best_streak": progress.best_streak,
        "completed_today": progress.completed_today,
    }


# --- MCP server ---

# DNS rebinding protection is disabled: this service runs behind Traefik (trusted network)
_security = TransportSecuritySettings(allowed_hosts=["localhost"])
mcp = FastMCP("habit-tracker", stateless_http=True, transport_security=_security)


# --- Tools ---


@mcp.tool()
def list_habits() -> list[dict]:
    """List all habits in creation order with today's streaks."""
    return [habit_to_dict(h) for h in store.habits]


@mcp.tool()
def add_habit(
    name: str,
    frequency: str = "daily",
    description: Optional[str] = None,
) -> dict:
    """Create a new habit. frequency is "daily" or "weekly"."""
    name = name.strip()
    if not name:
        return {"error": "Habit name must not be blank"}
    try:
        frequency = Frequency(frequency)
    except ValueError:
        return {"error": f"Unknown frequency {frequency!r}"}
    habit = store.add_habit(name, frequency, description or None)
    return {"id": habit.id, "name": habit.name, "status": "created"}


@mcp.tool()
def toggle_habit(habit_id: str, date: Optional[str] = None) -> dict:
    """Mark or unmark a habit as done on a date (YYYY-MM-DD, defaults to today)."""
    try:
        key = date_key(date) if date else today().isoformat()
    except ValueError:
        return {"error": f"Invalid date {date!r}, expected YYYY-MM-DD"}
    habit = store.toggle_habit(habit_id, key)
    if habit is None:
        return {"error": f"Habit {habit_id} not found"}
    return {
        "id": habit.id,
        "name": habit.name,
        "date": key,
        "completed": key in habit.completed_dates,
        "status": "toggled",
    }


@mcp.tool()
def remove_habit(habit_id: str) -> dict:
    """Delete a habit and its completion history."""
    habit = store.get_habit(habit_id)
    if habit is None or not store.remove_habit(habit_id):
        return {"error": f"Habit {habit_id} not found"}
    return {"id": habit.id, "name": habit.name, "status": "deleted"}


@mcp.tool()
async def fetch_habits() -> dict:
    """Reload habits from the remote source. Replaces all local habits."""
    habits = await store.fetch_habits()
    if habits is None:
        return {"error": store.state.error}
    return {"habits": [habit_to_dict(h) for h in habits], "status": "fetched"}


@mcp.tool()
def get_stats() -> dict:
    """Totals, today's completions, streaks and the weekly completion rate."""
    stats = asdict(summarize(store.habits, today()))
    stats["is_loading"] = store.state.is_loading
    stats["error"] = store.state.error
    return stats


@mcp.tool()
def get_habit_progress(habit_id: str) -> dict:
    """Streaks, total completions and the last 7 days for one habit."""
    habit = store.get_habit(habit_id)
    if habit is None:
        return {"error": f"Habit {habit_id} not found"}
    progress = habit_progress(habit, today())
    return {
        "habit_id": habit.id,
        "habit_name": habit.name,
        "frequency": habit.frequency.value,
        "current_streak": progress.current_streak,
        "best_streak": progress.best_streak,
        "completed_today": progress.completed_today,
        "total_completions": progress.total_completions,
        "history": [
            {"date": day, "completed": completed} for day, completed in progress.history
        ],
    }


# --- App setup ---

app = mcp.streamable_http_app()
