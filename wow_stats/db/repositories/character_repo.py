"""
Repository for the tracked-character roster.
"""

from __future__ import annotations

import logging
import sqlite3
from typing import Optional

from wow_stats.db.repositories.base import BaseRepository
from wow_stats.models.character import CharacterRef

logger = logging.getLogger(__name__)


class CharacterRepository(BaseRepository):
    """Read/write access to the ``characters`` table."""

    def insert(self, character: CharacterRef) -> int:
        """Add a character to the roster.

        Args:
            character: The ``CharacterRef`` to persist (``character_id`` ignored).

        Returns:
            The newly assigned ``character_id``.

        Raises:
            sqlite3.IntegrityError: If the same name/realm/region is already tracked.
        """
        self.execute(
            """
            INSERT INTO characters (name, realm, region, race_id, class_id, gender)
            VALUES (?, ?, ?, ?, ?, ?);
            """,
            (
                character.name,
                character.realm,
                character.region,
                character.race_id,
                character.class_id,
                character.gender,
            ),
        )
        character_id = self.last_insert_rowid()
        logger.info("Added character %s (%s) as id=%d", character.label, character.region, character_id)
        return character_id

    def get_by_name_realm(
        self, name: str, realm: str, region: str = "us"
    ) -> Optional[CharacterRef]:
        """Fetch a character by its natural key (case-insensitive name and realm)."""
        row = self.fetchone(
            """
            SELECT * FROM characters
            WHERE name = ? COLLATE NOCASE
              AND realm = ? COLLATE NOCASE
              AND region = ?;
            """,
            (name, realm, region.lower()),
        )
        return row_to_character(row) if row else None

    def get_all(self) -> list[CharacterRef]:
        """Return the full roster ordered by name, then realm."""
        rows = self.fetchall("SELECT * FROM characters ORDER BY name, realm;")
        return [row_to_character(r) for r in rows]


def row_to_character(row: sqlite3.Row) -> CharacterRef:
    return CharacterRef(
        character_id=row["character_id"],
        name=row["name"],
        realm=row["realm"],
        region=row["region"],
        race_id=row["race_id"],
        class_id=row["class_id"],
        gender=row["gender"],
    )
