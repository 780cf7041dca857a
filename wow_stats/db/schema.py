"""
SQLite schema DDL — all CREATE TABLE and CREATE INDEX statements.

All statements use ``IF NOT EXISTS`` so ``apply_schema()`` is idempotent:
safe to call before every ingestion run and in every test.

Table creation order respects foreign key dependencies:
  1. characters        (no FKs)      — the roster
  2. character_stats   (→ characters) — one immutable row per character per day
  3. run_metadata      (no FKs)      — ingestion run audit log

The one-row-per-character-per-day UNIQUE index on ``character_stats`` is
created by migration ``0002`` (see ``migrations.py``), which first removes
duplicate rows left by databases that predate the constraint. Use
``initialize_database()`` to get both the tables and the constraint.
"""

from __future__ import annotations

import logging
import sqlite3

logger = logging.getLogger(__name__)

# ── DDL statements ─────────────────────────────────────────────────────────────

_DDL_CHARACTERS = """
CREATE TABLE IF NOT EXISTS characters (
    character_id  INTEGER PRIMARY KEY AUTOINCREMENT,
    name          TEXT    NOT NULL,
    realm         TEXT    NOT NULL,
    region        TEXT    NOT NULL DEFAULT 'us',
    race_id       INTEGER,
    class_id      INTEGER,
    gender        INTEGER,
    created_at    TEXT    NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ', 'now')),
    UNIQUE (name, realm, region)
);
"""

_DDL_CHARACTER_STATS = """
CREATE TABLE IF NOT EXISTS character_stats (
    stat_id              INTEGER PRIMARY KEY AUTOINCREMENT,
    character_id         INTEGER NOT NULL REFERENCES characters(character_id) ON DELETE RESTRICT,
    capture_day          TEXT    NOT NULL,
    captured_at          TEXT    NOT NULL,
    last_modified        INTEGER NOT NULL DEFAULT 0,
    level                INTEGER NOT NULL DEFAULT 0,
    achievement_points   INTEGER NOT NULL DEFAULT 0,
    exalted_reps         INTEGER NOT NULL DEFAULT 0,
    mounts_collected     INTEGER NOT NULL DEFAULT 0,
    quests_completed     INTEGER NOT NULL DEFAULT 0,
    fish_caught          INTEGER NOT NULL DEFAULT 0,
    pets_collected       INTEGER NOT NULL DEFAULT 0,
    pet_battles_won      INTEGER NOT NULL DEFAULT 0,
    pet_battles_pvp_won  INTEGER NOT NULL DEFAULT 0,
    item_level           INTEGER NOT NULL DEFAULT 0,
    honorable_kills      INTEGER NOT NULL DEFAULT 0
);
"""

_DDL_CHARACTER_STATS_INDEXES = """
CREATE INDEX IF NOT EXISTS idx_character_stats_capture_day
    ON character_stats(capture_day);
"""

_DDL_RUN_METADATA = """
CREATE TABLE IF NOT EXISTS run_metadata (
    run_id             INTEGER PRIMARY KEY AUTOINCREMENT,
    run_slug           TEXT    NOT NULL UNIQUE,
    pipeline_stage     TEXT    NOT NULL,
    status             TEXT    NOT NULL DEFAULT 'started',
    config_snapshot    TEXT    NOT NULL,
    rows_processed     INTEGER NOT NULL DEFAULT 0,
    characters_total   INTEGER NOT NULL DEFAULT 0,
    characters_failed  INTEGER NOT NULL DEFAULT 0,
    error_message      TEXT,
    started_at         TEXT    NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ', 'now')),
    finished_at        TEXT
);
"""

# ── Ordered list of all DDL to apply ──────────────────────────────────────────

_ALL_DDL: list[str] = [
    _DDL_CHARACTERS,
    _DDL_CHARACTER_STATS,
    _DDL_CHARACTER_STATS_INDEXES,
    _DDL_RUN_METADATA,
]

# Table names for introspection / tests
ALL_TABLE_NAMES = [
    "characters",
    "character_stats",
    "run_metadata",
]


def apply_schema(conn: sqlite3.Connection) -> None:
    """Apply all DDL statements to ``conn``.

    Idempotent — safe to call on an already-initialized database.

    Args:
        conn: An open ``sqlite3.Connection`` (FK enforcement should be ON).
    """
    logger.debug("Applying schema to database...")

    for ddl in _ALL_DDL:
        for statement in _split_ddl(ddl):
            conn.execute(statement)

    conn.commit()
    logger.debug("Schema applied: %d tables, indexes created/verified.", len(ALL_TABLE_NAMES))


def initialize_database(conn: sqlite3.Connection) -> int:
    """Apply the schema and run pending migrations.

    Args:
        conn: An open ``sqlite3.Connection``.

    Returns:
        Number of migrations applied by this call.
    """
    from wow_stats.db.migrations import run_migrations

    apply_schema(conn)
    return run_migrations(conn)


def _split_ddl(ddl: str) -> list[str]:
    """Split a multi-statement DDL block on semicolons."""
    return [s.strip() for s in ddl.split(";") if s.strip()]


def get_existing_tables(conn: sqlite3.Connection) -> list[str]:
    """Return the table names present in the database, sorted."""
    rows = conn.execute(
        "SELECT name FROM sqlite_master WHERE type='table' ORDER BY name;"
    ).fetchall()
    return [row["name"] for row in rows]


def get_existing_indexes(conn: sqlite3.Connection) -> list[str]:
    """Return the index names present in the database, sorted."""
    rows = conn.execute(
        "SELECT name FROM sqlite_master WHERE type='index' ORDER BY name;"
    ).fetchall()
    return [row["name"] for row in rows]
