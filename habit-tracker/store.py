import asyncio
import logging
import uuid
from typing import Awaitable, Callable, Optional

from models import Frequency, Habit, HabitCollectionState, date_key, utc_now
from persistence import NullPersistence, PersistenceAdapter

log = logging.getLogger(__name__)

FETCH_DELAY_SECONDS = 1.0
FETCH_ERROR_MESSAGE = "Failed to fetch habits"

Listener = Callable[[HabitCollectionState], None]
Fetcher = Callable[[], Awaitable[list[Habit]]]


async def seed_habits() -> list[Habit]:
    return [
        Habit(id="1", name="Read", frequency=Frequency.daily),
        Habit(id="2", name="Exercise", frequency=Frequency.daily),
    ]


class HabitStore:
    """Owns the habit collection and is its only point of mutation.

    Every change is pushed to the persistence adapter and to subscribers.
    ``fetch_habits`` replaces the whole collection when it resolves, so
    edits made while a fetch is pending are lost; with overlapping fetches
    the last one to resolve wins.
    """

    def __init__(
        self,
        persistence: Optional[PersistenceAdapter] = None,
        fetch_delay: float = FETCH_DELAY_SECONDS,
        fetcher: Optional[Fetcher] = None,
    ):
        self.persistence = persistence or NullPersistence()
        self.fetch_delay = fetch_delay
        self.fetcher = fetcher or seed_habits
        self.state = HabitCollectionState()
        self._listeners: list[Listener] = []

    @property
    def habits(self) -> list[Habit]:
        return self.state.habits

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def restore(self) -> None:
        """Seed the collection from the persistence adapter."""
        try:
            loaded = self.persistence.load()
        except Exception as e:
            log.warning("Could not restore habits: %s", e)
            return
        if loaded is None:
            log.debug("No saved habits to restore")
            return
        self.state.habits = list(loaded.habits)
        log.debug("Restored %d habits", len(self.state.habits))
        self._notify()

    def get_habit(self, habit_id: str) -> Optional[Habit]:
        for habit in self.state.habits:
            if habit.id == habit_id:
                return habit
        return None

    def add_habit(
        self,
        name: str,
        frequency: str = "daily",
        description: Optional[str] = None,
    ) -> Habit:
        """Append a new habit. ``frequency`` must be a ``Frequency`` value;
        anything else raises ``ValueError`` before the collection changes.
        """
        habit = Habit(
            id=uuid.uuid4().hex,
            name=name,
            frequency=Frequency(frequency),
            description=description,
            completed_dates=[],
            created_at=utc_now(),
        )
        self.state.habits.append(habit)
        log.debug("Added habit %s (%s)", habit.id, habit.name)
        self._changed()
        return habit

    def toggle_habit(self, habit_id: str, date) -> Optional[Habit]:
        habit = self.get_habit(habit_id)
        if habit is None:
            return None
        key = date_key(date)
        if key in habit.completed_dates:
            habit.completed_dates.remove(key)
        else:
            habit.completed_dates.append(key)
        self._changed()
        return habit

    def remove_habit(self, habit_id: str) -> bool:
        remaining = [h for h in self.state.habits if h.id != habit_id]
        if len(remaining) == len(self.state.habits):
            return False
        self.state.habits = remaining
        log.debug("Removed habit %s", habit_id)
        self._changed()
        return True

    async def fetch_habits(self) -> Optional[list[Habit]]:
        fetcher = self.fetcher
        self.state.is_loading = True
        self._notify()
        try:
            await asyncio.sleep(self.fetch_delay)
            habits = await fetcher()
        except asyncio.CancelledError:
            self.state.is_loading = False
            log.debug("Habit fetch cancelled")
            self._notify()
            raise
        except Exception as e:
            self.state.is_loading = False
            self.state.error = str(e) or FETCH_ERROR_MESSAGE
            log.warning("Habit fetch failed: %s", self.state.error)
            self._notify()
            return None
        self.state.is_loading = False
        self.state.habits = list(habits)
        self.state.error = None
        log.debug("Fetched %d habits", len(self.state.habits))
        self._changed()
        return self.state.habits

    def _changed(self) -> None:
        try:
            self.persistence.save(self.state)
        except Exception as e:
            log.warning("Could not save habits: %s", e)
        self._notify()

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self.state)
