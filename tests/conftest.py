"""
Shared pytest fixtures for the WoW Stats test suite.

Provides:
  - ``in_memory_db``: A fresh in-memory SQLite connection with the full
    schema and migrations applied.
  - ``file_db``: A file-backed database path (needed wherever worker threads
    open their own connections).
  - Sample domain objects and a full raw character document.
"""

from __future__ import annotations

import copy
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Generator

import pytest

from wow_stats.db.connection import get_connection
from wow_stats.db.repositories.character_repo import CharacterRepository
from wow_stats.db.schema import initialize_database
from wow_stats.ingestion.blizzard_client import BlizzardClient
from wow_stats.models.character import CharacterRef
from wow_stats.models.stats import CounterRecord


# ── Database fixtures ─────────────────────────────────────────────────────────

@pytest.fixture
def in_memory_db() -> Generator[sqlite3.Connection, None, None]:
    """Yield a fresh in-memory SQLite connection with the full schema applied.

    Foreign key enforcement is ON. Connection is closed after the test.
    """
    conn = sqlite3.connect(":memory:")
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON;")
    initialize_database(conn)
    yield conn
    conn.close()


@pytest.fixture
def file_db(tmp_path: Path) -> str:
    """Path to an initialized, empty file-backed database."""
    db_path = str(tmp_path / "db" / "wow_stats.db")
    with get_connection(db_path) as conn:
        initialize_database(conn)
    return db_path


def _add_characters(db_path: str, *characters: CharacterRef) -> list[CharacterRef]:
    """Insert roster entries and return them with ``character_id`` set."""
    stored = []
    with get_connection(db_path) as conn:
        repo = CharacterRepository(conn)
        for c in characters:
            stored.append(c.model_copy(update={"character_id": repo.insert(c)}))
    return stored


@pytest.fixture
def add_characters():
    """Return a helper ``add(db_path, *characters) -> stored characters``."""
    return _add_characters


# ── Sample domain objects ─────────────────────────────────────────────────────

CAPTURED_AT = datetime(2019, 10, 17, 11, 38, 42, tzinfo=timezone.utc)


@pytest.fixture
def sample_character() -> CharacterRef:
    """A valid, not-yet-stored ``CharacterRef``."""
    return CharacterRef(name="Thrall", realm="Area 52", region="us", race_id=2, class_id=7, gender=0)


@pytest.fixture
def sample_record() -> CounterRecord:
    """A valid ``CounterRecord`` captured on 2019-10-17."""
    return CounterRecord(
        level=120,
        achievement_points=21835,
        exalted_reps=95,
        mounts_collected=260,
        quests_completed=21216,
        fish_caught=22306,
        pets_collected=1227,
        pet_battles_won=1318,
        pet_battles_pvp_won=34,
        item_level=415,
        honorable_kills=11425,
        last_modified=1571309922000,
        captured_at=CAPTURED_AT,
    )


@pytest.fixture
def raw_document() -> dict[str, Any]:
    """A full character document as returned by the character endpoint."""
    return copy.deepcopy(BlizzardClient.FIXTURE_CHARACTER)
