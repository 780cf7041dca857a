"""
Repository for ingestion run audit records.
"""

from __future__ import annotations

import json
import sqlite3
from datetime import datetime
from typing import Optional

from wow_stats.db.repositories.base import BaseRepository
from wow_stats.models.meta import RunMetadata


class RunMetadataRepository(BaseRepository):
    """Read/write access to the ``run_metadata`` table."""

    def insert_run(self, run: RunMetadata) -> int:
        """Insert a run record and return its ``run_id``."""
        self.execute(
            """
            INSERT INTO run_metadata (
                run_slug, pipeline_stage, status, config_snapshot, rows_processed,
                characters_total, characters_failed, error_message,
                started_at, finished_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?);
            """,
            (
                run.run_slug,
                run.pipeline_stage,
                run.status,
                json.dumps(run.config_snapshot, default=str),
                run.rows_processed,
                run.characters_total,
                run.characters_failed,
                run.error_message,
                run.started_at.isoformat(),
                run.finished_at.isoformat() if run.finished_at else None,
            ),
        )
        return self.last_insert_rowid()

    def update_run(self, run: RunMetadata) -> None:
        """Persist the mutable fields of an already-inserted run."""
        self.execute(
            """
            UPDATE run_metadata
            SET status = ?, rows_processed = ?, characters_total = ?,
                characters_failed = ?, error_message = ?, finished_at = ?
            WHERE run_id = ?;
            """,
            (
                run.status,
                run.rows_processed,
                run.characters_total,
                run.characters_failed,
                run.error_message,
                run.finished_at.isoformat() if run.finished_at else None,
                run.run_id,
            ),
        )

    def get_by_slug(self, run_slug: str) -> Optional[RunMetadata]:
        row = self.fetchone("SELECT * FROM run_metadata WHERE run_slug = ?;", (run_slug,))
        return _row_to_run(row) if row else None

    def get_recent(self, limit: int = 10) -> list[RunMetadata]:
        """Return the most recent runs, newest first."""
        rows = self.fetchall(
            "SELECT * FROM run_metadata ORDER BY started_at DESC, run_id DESC LIMIT ?;",
            (limit,),
        )
        return [_row_to_run(r) for r in rows]


def _row_to_run(row: sqlite3.Row) -> RunMetadata:
    return RunMetadata(
        run_id=row["run_id"],
        run_slug=row["run_slug"],
        pipeline_stage=row["pipeline_stage"],
        status=row["status"],
        config_snapshot=json.loads(row["config_snapshot"]),
        rows_processed=row["rows_processed"],
        characters_total=row["characters_total"],
        characters_failed=row["characters_failed"],
        error_message=row["error_message"],
        started_at=datetime.fromisoformat(row["started_at"]),
        finished_at=datetime.fromisoformat(row["finished_at"]) if row["finished_at"] else None,
    )
