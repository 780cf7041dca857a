"""Tests for the SnapshotStore: append, same-day rejection, latest-day standings."""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from wow_stats.config import DatabaseConfig
from wow_stats.errors import StoreConflictError, StoreError, StoreUnavailableError
from wow_stats.ingestion.snapshot_store import SnapshotStore
from wow_stats.models.character import CharacterRef
from wow_stats.models.stats import CounterRecord

DAY1 = datetime(2019, 10, 17, 9, 0, tzinfo=timezone.utc)
DAY2 = DAY1 + timedelta(days=1)


def _record(captured_at: datetime, level: int = 120, item_level: int = 400, **kw) -> CounterRecord:
    return CounterRecord(level=level, item_level=item_level, captured_at=captured_at, **kw)


@pytest.fixture
def store(file_db) -> SnapshotStore:
    return SnapshotStore(file_db)


@pytest.fixture
def roster(file_db, add_characters) -> list[CharacterRef]:
    return add_characters(
        file_db,
        CharacterRef(name="Alpha", realm="Area 52"),
        CharacterRef(name="Bravo", realm="Area 52"),
        CharacterRef(name="Charlie", realm="Proudmoore"),
    )


def test_from_config(file_db):
    store = SnapshotStore.from_config(DatabaseConfig(db_path=file_db, busy_timeout_ms=100))
    assert store.db_path == file_db
    assert store.busy_timeout_ms == 100


def test_from_config_path_override(file_db, tmp_path):
    other = str(tmp_path / "other.db")
    store = SnapshotStore.from_config(DatabaseConfig(db_path=file_db), db_path=other)
    assert store.db_path == other


def test_append_returns_row_id(store, roster):
    stat_id = store.append(roster[0], _record(DAY1))
    assert stat_id > 0
    history = store.history(roster[0].character_id)
    assert [r.stat_id for r in history] == [stat_id]
    assert history[0].character_id == roster[0].character_id


def test_same_day_second_append_rejected(store, roster):
    store.append(roster[0], _record(DAY1, achievement_points=100))

    with pytest.raises(StoreConflictError):
        store.append(roster[0], _record(DAY1 + timedelta(hours=5), achievement_points=999))

    history = store.history(roster[0].character_id)
    assert len(history) == 1
    assert history[0].achievement_points == 100


def test_same_day_different_characters_allowed(store, roster):
    store.append(roster[0], _record(DAY1))
    store.append(roster[1], _record(DAY1))
    assert len(store.latest_per_character()) == 2


def test_history_oldest_first(store, roster):
    store.append(roster[0], _record(DAY2, level=121))
    store.append(roster[0], _record(DAY1, level=120))
    assert [r.level for r in store.history(roster[0].character_id)] == [120, 121]


def test_latest_only_includes_global_max_day(store, roster):
    store.append(roster[0], _record(DAY1))
    store.append(roster[1], _record(DAY1))
    store.append(roster[1], _record(DAY2))

    latest = store.latest_per_character()
    assert [c.name for c, _ in latest] == ["Bravo"]
    assert latest[0][1].capture_day == DAY2.date()


def test_latest_ordering(store, roster):
    store.append(roster[0], _record(DAY1, level=110, item_level=450))
    store.append(roster[1], _record(DAY1, level=120, item_level=400))
    store.append(roster[2], _record(DAY1, level=120, item_level=410))

    assert [c.name for c, _ in store.latest_per_character()] == ["Charlie", "Bravo", "Alpha"]


def test_latest_ties_break_on_name(store, roster):
    for c in reversed(roster):
        store.append(c, _record(DAY1, level=120, item_level=400))
    assert [c.name for c, _ in store.latest_per_character()] == ["Alpha", "Bravo", "Charlie"]


def test_latest_empty(store):
    assert store.latest_per_character() == []


def test_unstored_character_rejected(store):
    with pytest.raises(ValueError):
        store.append(CharacterRef(name="Ghost", realm="Nowhere"), _record(DAY1))


def test_unknown_character_id_is_store_error(store):
    ghost = CharacterRef(character_id=999, name="Ghost", realm="Nowhere")
    with pytest.raises(StoreError) as exc_info:
        store.append(ghost, _record(DAY1))
    assert not isinstance(exc_info.value, StoreConflictError)


def test_missing_schema_is_unavailable(tmp_path, sample_character, sample_record):
    store = SnapshotStore(str(tmp_path / "empty.db"))
    with pytest.raises(StoreUnavailableError):
        store.append(sample_character.model_copy(update={"character_id": 1}), sample_record)
    with pytest.raises(StoreUnavailableError):
        store.latest_per_character()


def test_counter_beyond_sqlite_integer_is_store_error(store, roster):
    with pytest.raises(StoreError) as exc_info:
        store.append(roster[0], _record(DAY1, level=10**20))
    assert not isinstance(exc_info.value, StoreConflictError)
    assert store.history(roster[0].character_id) == []


def _append_concurrently(store, pairs):
    async def append_all():
        return await asyncio.gather(
            *(asyncio.to_thread(store.append, c, r) for c, r in pairs),
            return_exceptions=True,
        )

    return asyncio.run(append_all())


def test_concurrent_same_day_appends_keep_one_row(store, roster):
    pairs = [(roster[0], _record(DAY1, achievement_points=i)) for i in range(8)]

    results = _append_concurrently(store, pairs)

    stored = [r for r in results if isinstance(r, int)]
    conflicts = [r for r in results if isinstance(r, StoreConflictError)]
    assert len(stored) == 1
    assert len(conflicts) == 7
    history = store.history(roster[0].character_id)
    assert [r.stat_id for r in history] == stored


def test_concurrent_appends_for_different_characters_all_land(store, roster):
    pairs = [(c, _record(day)) for c in roster for day in (DAY1, DAY2)]

    results = _append_concurrently(store, pairs)

    assert all(isinstance(r, int) for r in results), results
    assert len(set(results)) == len(pairs)
    for c in roster:
        assert len(store.history(c.character_id)) == 2
    assert len(store.latest_per_character()) == len(roster)
