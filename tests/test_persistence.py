"""Tests for the persistence adapters."""

import json
from datetime import datetime, timezone

from sqlmodel import Session, select

from conftest import make_habit
from models import Frequency, Habit, HabitCollectionState, HabitRow
from persistence import NullPersistence, SqlPersistence
from store import HabitStore


def test_null_persistence_restores_empty() -> None:
    adapter = NullPersistence()
    adapter.save(HabitCollectionState(habits=[make_habit("1")]))
    assert adapter.load() is None


class TestSqlPersistence:
    def test_load_empty_table(self, engine) -> None:
        assert SqlPersistence(engine).load() is None

    def test_round_trip_keeps_order_and_fields(self, engine) -> None:
        adapter = SqlPersistence(engine)
        created = datetime(2024, 1, 1, 9, 30, tzinfo=timezone.utc)
        habits = [
            make_habit("z", ["2024-01-02", "2024-01-01"]),
            make_habit("a", [], Frequency.weekly),
        ]
        habits[0].description = "Twenty pages"
        habits[0].created_at = created

        adapter.save(HabitCollectionState(habits=habits))
        loaded = adapter.load()

        assert [h.id for h in loaded.habits] == ["z", "a"]
        assert loaded.habits[0].completed_dates == ["2024-01-02", "2024-01-01"]
        assert loaded.habits[0].description == "Twenty pages"
        assert loaded.habits[0].created_at == created
        assert loaded.habits[1].frequency == Frequency.weekly
        assert loaded.habits[1].description is None

    def test_transient_status_not_persisted(self, engine) -> None:
        adapter = SqlPersistence(engine)
        adapter.save(HabitCollectionState(habits=[make_habit("1")], is_loading=True, error="offline"))

        loaded = adapter.load()

        assert loaded.is_loading is False
        assert loaded.error is None

    def test_save_replaces_previous_rows(self, engine) -> None:
        adapter = SqlPersistence(engine)
        adapter.save(HabitCollectionState(habits=[make_habit("1"), make_habit("2")]))
        adapter.save(HabitCollectionState(habits=[make_habit("2", ["2024-01-01"])]))

        with Session(engine) as session:
            rows = session.exec(select(HabitRow)).all()
            assert [r.id for r in rows] == ["2"]
            assert json.loads(rows[0].completed_dates) == ["2024-01-01"]

    def test_store_survives_restart(self, engine) -> None:
        first = HabitStore(SqlPersistence(engine), fetch_delay=0)
        read = first.add_habit("Read")
        first.add_habit("Run", "weekly")
        first.toggle_habit(read.id, "2024-01-10")

        second = HabitStore(SqlPersistence(engine), fetch_delay=0)
        second.restore()

        assert [h.name for h in second.habits] == ["Read", "Run"]
        assert second.get_habit(read.id).completed_dates == ["2024-01-10"]

    def test_restore_drops_duplicate_dates(self, engine) -> None:
        SqlPersistence(engine)
        with Session(engine) as session:
            session.add(
                HabitRow(
                    id="1",
                    position=0,
                    name="Read",
                    completed_dates=json.dumps(["2024-01-01", "2024-01-01T05:00:00", "2024-01-02", "2024-01-02"]),
                )
            )
            session.commit()

        loaded = SqlPersistence(engine).load()

        assert loaded.habits[0].completed_dates == ["2024-01-01", "2024-01-02"]
        assert loaded.habits[0].created_at.tzinfo is not None

    def test_saved_timestamps_are_aware(self, engine) -> None:
        store = HabitStore(SqlPersistence(engine), fetch_delay=0)
        habit = store.add_habit("Read")

        restored = HabitStore(SqlPersistence(engine), fetch_delay=0)
        restored.restore()

        assert habit.created_at.tzinfo is not None
        assert restored.habits[0].created_at == habit.created_at


class TestHabitModel:
    def test_normalizes_and_dedupes_dates(self) -> None:
        habit = Habit(id="1", name="Read", completed_dates=["2024-01-01", "2024-01-01T05:00:00", "2024-01-02"])
        assert habit.completed_dates == ["2024-01-01", "2024-01-02"]

    def test_naive_created_at_is_treated_as_utc(self) -> None:
        habit = Habit(id="1", name="Read", created_at=datetime(2024, 1, 1, 9, 30))
        assert habit.created_at == datetime(2024, 1, 1, 9, 30, tzinfo=timezone.utc)

    def test_default_created_at_is_aware(self) -> None:
        assert Habit(id="1", name="Read").created_at.tzinfo is not None
