"""
Snapshot store — the time-series sink for extracted counter records.

Every call opens its own connection via ``get_connection()``. Concurrent
ingestion tasks therefore never share a ``sqlite3.Connection``; they queue on
SQLite's write lock (WAL + busy timeout) and the UNIQUE
``(character_id, capture_day)`` index decides same-day races.

sqlite3 errors are translated into the ``StoreError`` family:

  IntegrityError on the unique index → StoreConflictError
  other IntegrityError (unknown character) → StoreError
  OverflowError (counter beyond INTEGER)   → StoreError
  any other sqlite3.Error / OSError   → StoreUnavailableError

Nothing here retries.
"""

from __future__ import annotations

import logging
import sqlite3
from contextlib import contextmanager
from typing import Generator, Optional

from wow_stats.config import DatabaseConfig
from wow_stats.db.connection import get_connection
from wow_stats.db.repositories.stats_repo import CharacterStatsRepository
from wow_stats.errors import StoreConflictError, StoreError, StoreUnavailableError
from wow_stats.models.character import CharacterRef
from wow_stats.models.stats import CounterRecord

logger = logging.getLogger(__name__)


def _is_unique_violation(exc: sqlite3.IntegrityError) -> bool:
    return "UNIQUE" in str(exc).upper()


class SnapshotStore:
    """Append-only access to ``character_stats`` with domain errors."""

    def __init__(self, db_path: str, wal_mode: bool = True, busy_timeout_ms: int = 5000) -> None:
        self.db_path = db_path
        self.wal_mode = wal_mode
        self.busy_timeout_ms = busy_timeout_ms

    @classmethod
    def from_config(
        cls, config: DatabaseConfig, db_path: Optional[str] = None
    ) -> "SnapshotStore":
        """Build a store from the ``[database]`` section; ``db_path`` overrides it."""
        return cls(db_path or config.db_path, config.wal_mode, config.busy_timeout_ms)

    @contextmanager
    def _connect(self) -> Generator[sqlite3.Connection, None, None]:
        with get_connection(self.db_path, self.wal_mode, self.busy_timeout_ms) as conn:
            yield conn

    def append(self, character: CharacterRef, record: CounterRecord) -> int:
        """Persist one counter record for a roster character.

        Args:
            character: A stored roster entry (``character_id`` set).
            record: The extracted counters.

        Returns:
            The new row's ``stat_id``.

        Raises:
            ValueError: If ``character`` has no ``character_id``.
            StoreConflictError: The character already has a row for
                ``record.capture_day``; the existing row is unchanged.
            StoreUnavailableError: The database cannot be opened, stays
                locked, or lacks the schema.
        """
        if character.character_id is None:
            raise ValueError(f"Character {character.label} has not been added to the roster.")

        try:
            with self._connect() as conn:
                stat_id = CharacterStatsRepository(conn).insert(character.character_id, record)
        except sqlite3.IntegrityError as exc:
            if _is_unique_violation(exc):
                raise StoreConflictError(
                    f"{character.label} already has a snapshot for {record.capture_day.isoformat()}."
                ) from exc
            raise StoreError(f"Cannot store snapshot for {character.label}: {exc}") from exc
        except OverflowError as exc:
            raise StoreError(f"Cannot store snapshot for {character.label}: {exc}") from exc
        except (sqlite3.Error, OSError) as exc:
            raise StoreUnavailableError(f"Snapshot store unavailable: {exc}") from exc

        logger.debug(
            "Stored %s for %s as stat_id=%d",
            record.capture_day.isoformat(), character.label, stat_id,
        )
        return stat_id

    def latest_per_character(self) -> list[tuple[CharacterRef, CounterRecord]]:
        """Return the rows on the global latest capture day.

        Ordered level desc, item level desc, name asc. Empty when the store
        has no rows.

        Raises:
            StoreUnavailableError: The database cannot be read.
        """
        try:
            with self._connect() as conn:
                return CharacterStatsRepository(conn).get_latest_day_standings()
        except (sqlite3.Error, OSError) as exc:
            raise StoreUnavailableError(f"Snapshot store unavailable: {exc}") from exc

    def history(self, character_id: int) -> list[CounterRecord]:
        """Return one character's records, oldest capture day first.

        Raises:
            StoreUnavailableError: The database cannot be read.
        """
        try:
            with self._connect() as conn:
                return CharacterStatsRepository(conn).get_history(character_id)
        except (sqlite3.Error, OSError) as exc:
            raise StoreUnavailableError(f"Snapshot store unavailable: {exc}") from exc
