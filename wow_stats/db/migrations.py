"""
Sequential schema migrations.

Not a migration framework (no Alembic, no down migrations):

  1. A ``schema_versions`` table tracks applied migration IDs.
  2. Each migration is a function taking a ``sqlite3.Connection``.
  3. ``run_migrations()`` applies, in order, those not yet recorded.

The base tables come from ``apply_schema()``; migrations hold the changes
that cannot be expressed as ``CREATE ... IF NOT EXISTS``.

Adding a migration: define ``migration_NNNN_description(conn)`` and register
it in ``MIGRATIONS`` under ``"NNNN_description"``.
"""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Callable

logger = logging.getLogger(__name__)

MigrationFn = Callable[[sqlite3.Connection], None]


def _ensure_version_table(conn: sqlite3.Connection) -> None:
    """Create the ``schema_versions`` tracking table if it does not exist."""
    conn.execute("""
        CREATE TABLE IF NOT EXISTS schema_versions (
            version_id  TEXT    NOT NULL PRIMARY KEY,
            applied_at  TEXT    NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ', 'now')),
            description TEXT
        );
    """)
    conn.commit()


def _get_applied_versions(conn: sqlite3.Connection) -> set[str]:
    rows = conn.execute("SELECT version_id FROM schema_versions;").fetchall()
    return {row[0] for row in rows}


def _mark_applied(conn: sqlite3.Connection, version_id: str, description: str) -> None:
    conn.execute(
        "INSERT INTO schema_versions(version_id, description) VALUES (?, ?);",
        (version_id, description),
    )
    conn.commit()


# ── Migration functions ────────────────────────────────────────────────────────


def migration_0001_baseline(conn: sqlite3.Connection) -> None:
    """Anchor the version history; the base tables come from ``apply_schema()``."""


def migration_0002_unique_capture_day(conn: sqlite3.Connection) -> None:
    """Enforce one ``character_stats`` row per character per capture day.

    Databases filled before this constraint may hold several rows for the same
    character and day. The earliest row (lowest ``stat_id``) is kept, matching
    the reject-later-inserts policy the index enforces from now on.
    """
    cur = conn.execute(
        """
        DELETE FROM character_stats
        WHERE stat_id NOT IN (
            SELECT MIN(stat_id) FROM character_stats
            GROUP BY character_id, capture_day
        );
        """
    )
    if cur.rowcount:
        logger.warning(
            "Removed %d duplicate same-day character_stats row(s) before "
            "adding the unique index.",
            cur.rowcount,
        )
    conn.execute(
        """
        CREATE UNIQUE INDEX IF NOT EXISTS idx_character_stats_day
            ON character_stats(character_id, capture_day);
        """
    )


MIGRATIONS: dict[str, tuple[MigrationFn, str]] = {
    "0001_baseline": (
        migration_0001_baseline,
        "Baseline schema version.",
    ),
    "0002_unique_capture_day": (
        migration_0002_unique_capture_day,
        "Deduplicate and enforce one stats row per character per day.",
    ),
}


def run_migrations(conn: sqlite3.Connection) -> int:
    """Apply all pending migrations.

    Args:
        conn: An open ``sqlite3.Connection`` on which ``apply_schema()`` has run.

    Returns:
        Number of migrations applied in this call.
    """
    _ensure_version_table(conn)
    applied = _get_applied_versions(conn)

    count = 0
    for version_id, (fn, description) in MIGRATIONS.items():
        if version_id in applied:
            continue

        logger.info("Applying migration %s: %s", version_id, description)
        try:
            fn(conn)
            _mark_applied(conn, version_id, description)
            count += 1
        except Exception as exc:
            conn.rollback()
            logger.error("Migration %s FAILED: %s", version_id, exc)
            raise

    if count:
        logger.info("Applied %d migration(s).", count)
    else:
        logger.debug("No pending migrations.")

    return count
