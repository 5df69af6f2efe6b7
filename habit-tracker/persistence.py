import logging
from typing import Optional, Protocol

from sqlmodel import Session, SQLModel, select

from models import HabitCollectionState, HabitRow

log = logging.getLogger(__name__)


class PersistenceAdapter(Protocol):
    def save(self, state: HabitCollectionState) -> None: ...

    def load(self) -> Optional[HabitCollectionState]: ...


class NullPersistence:
    """Adapter that stores nothing and always restores empty."""

    def save(self, state: HabitCollectionState) -> None:
        pass

    def load(self) -> Optional[HabitCollectionState]:
        return None


class SqlPersistence:
    """Keeps the habit list in a single ``habit`` table.

    Only the habits are written; loading/error status is transient.
    """

    def __init__(self, engine):
        self.engine = engine
        SQLModel.metadata.create_all(engine)

    def save(self, state: HabitCollectionState) -> None:
        with Session(self.engine) as session:
            for row in session.exec(select(HabitRow)).all():
                session.delete(row)
            session.flush()
            for position, habit in enumerate(state.habits):
                session.add(HabitRow.from_habit(habit, position))
            session.commit()
        log.debug("Saved %d habits", len(state.habits))

    def load(self) -> Optional[HabitCollectionState]:
        with Session(self.engine) as session:
            rows = session.exec(select(HabitRow).order_by(HabitRow.position)).all()
            if not rows:
                return None
            habits = [row.to_habit() for row in rows]
        log.debug("Loaded %d habits", len(habits))
        return HabitCollectionState(habits=habits)
