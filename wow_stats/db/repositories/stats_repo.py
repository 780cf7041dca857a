"""
Repository for the ``character_stats`` time series.

Rows are append-only: there is no update or delete. Uniqueness of
``(character_id, capture_day)`` is enforced by the database index, so
``insert()`` lets ``sqlite3.IntegrityError`` propagate for the caller to
classify.

"Latest" means the latest capture day across the whole table, not each
character's own latest row: ``get_latest_day_standings()`` is a snapshot of
the most recent run's roster standings.
"""

from __future__ import annotations

import logging
import sqlite3
from datetime import datetime

from wow_stats.db.repositories.base import BaseRepository
from wow_stats.db.repositories.character_repo import row_to_character
from wow_stats.models.character import CharacterRef
from wow_stats.models.stats import COUNTER_FIELDS, CounterRecord

logger = logging.getLogger(__name__)

_INSERT_COLUMNS = ("character_id", "capture_day", "captured_at", "last_modified") + COUNTER_FIELDS

# Columns of character_stats selected alongside characters.* in joined queries.
_STAT_SELECT = ", ".join(
    f"s.{col} AS s_{col}"
    for col in ("stat_id", "character_id", "captured_at", "last_modified") + COUNTER_FIELDS
)


class CharacterStatsRepository(BaseRepository):
    """Read/append access to the ``character_stats`` table."""

    def insert(self, character_id: int, record: CounterRecord) -> int:
        """Append one counter record for ``character_id``.

        Args:
            character_id: FK to ``characters.character_id``.
            record: The extracted counters; its ``capture_day`` is the
                uniqueness key.

        Returns:
            The newly assigned ``stat_id``.

        Raises:
            sqlite3.IntegrityError: If the character already has a row for
                ``record.capture_day``, or the character does not exist.
        """
        placeholders = ", ".join("?" for _ in _INSERT_COLUMNS)
        self.execute(
            f"INSERT INTO character_stats ({', '.join(_INSERT_COLUMNS)}) VALUES ({placeholders});",
            (
                character_id,
                record.capture_day.isoformat(),
                record.captured_at.isoformat(),
                record.last_modified,
                *(getattr(record, name) for name in COUNTER_FIELDS),
            ),
        )
        return self.last_insert_rowid()

    def get_latest_day_standings(self) -> list[tuple[CharacterRef, CounterRecord]]:
        """Return every row on the global latest capture day with its character.

        Ordered by level descending, item level descending, then name ascending.
        Characters with no row on that day are absent.
        """
        rows = self.fetchall(
            f"""
            SELECT c.*, {_STAT_SELECT}
            FROM character_stats s
            JOIN characters c ON c.character_id = s.character_id
            WHERE s.capture_day = (SELECT MAX(capture_day) FROM character_stats)
            ORDER BY s.level DESC, s.item_level DESC, c.name ASC, c.realm ASC;
            """
        )
        return [(row_to_character(r), _row_to_record(r)) for r in rows]

    def get_history(self, character_id: int) -> list[CounterRecord]:
        """Return all rows for one character, oldest capture day first."""
        rows = self.fetchall(
            f"""
            SELECT {_STAT_SELECT}
            FROM character_stats s
            WHERE s.character_id = ?
            ORDER BY s.capture_day ASC;
            """,
            (character_id,),
        )
        return [_row_to_record(r) for r in rows]


def _row_to_record(row: sqlite3.Row) -> CounterRecord:
    """Build a ``CounterRecord`` from ``s_``-prefixed columns."""
    return CounterRecord(
        stat_id=row["s_stat_id"],
        character_id=row["s_character_id"],
        captured_at=datetime.fromisoformat(row["s_captured_at"]),
        last_modified=row["s_last_modified"],
        **{name: row[f"s_{name}"] for name in COUNTER_FIELDS},
    )
