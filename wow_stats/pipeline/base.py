"""
Abstract base class for pipeline stages.

Every stage follows the same contract:
  1. Receive ``AppConfig`` at construction.
  2. ``run(**kwargs)`` is the sole public API.
  3. ``run()`` creates a ``RunMetadata`` record, calls ``_execute()``,
     and persists the run record with final status.
  4. ``_execute()`` is the stage-specific implementation.

A stage may set ``run.status`` itself (e.g. ``"partial"``); otherwise a clean
return means ``"success"`` and an exception means ``"failed"`` (re-raised).

Usage::

    class MyStage(PipelineStage):
        stage_name = "ingest"

        def _execute(self, run: RunMetadata, **kwargs) -> int:
            return 42

    run = MyStage(config=app_config).run()
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from uuid import uuid4

from wow_stats.config import AppConfig
from wow_stats.models.meta import RunMetadata
from wow_stats.utils.time_utils import utcnow

logger = logging.getLogger(__name__)


class PipelineStage(ABC):
    """Abstract base for pipeline stages.

    Attributes:
        stage_name: String identifier matching a valid ``RunMetadata.pipeline_stage``.
        config: The application configuration for this run.
        db_path: Path to the SQLite database (defaults to ``config.database.db_path``).
    """

    stage_name: str

    def __init__(
        self,
        config: AppConfig,
        db_path: str | None = None,
    ) -> None:
        self.config = config
        self.db_path = db_path or config.database.db_path

    def run(self, **kwargs) -> RunMetadata:
        """Execute this pipeline stage.

        Returns:
            ``RunMetadata`` with final ``status``, ``rows_processed`` and
            ``finished_at`` set.

        Raises:
            Exception: Re-raises any exception from ``_execute()`` after
                recording ``status='failed'`` in the run record.
        """
        run = RunMetadata(
            run_slug=str(uuid4()),
            pipeline_stage=self.stage_name,
            config_snapshot=self.config.model_dump(),
            started_at=utcnow(),
        )
        extra = {"run_slug": run.run_slug}
        logger.info("Stage [%s] starting", self.stage_name, extra=extra)

        try:
            rows = self._execute(run=run, **kwargs)
        except Exception as exc:
            run.status = "failed"
            run.error_message = str(exc)
            run.finished_at = utcnow()
            logger.error("Stage [%s] FAILED: %s", self.stage_name, exc, extra=extra)
            self._persist_run(run)
            raise

        if run.status == "started":
            run.status = "success"
        run.rows_processed = rows
        run.finished_at = utcnow()
        logger.info(
            "Stage [%s] %s | rows=%d", self.stage_name, run.status, rows, extra=extra
        )
        self._persist_run(run)
        return run

    @abstractmethod
    def _execute(self, run: RunMetadata, **kwargs) -> int:
        """Stage-specific implementation; returns the number of rows processed."""
        ...

    def _persist_run(self, run: RunMetadata) -> None:
        """Write or update the ``RunMetadata`` row.

        Errors are logged rather than raised so a persistence failure never
        masks the stage's own error.
        """
        from wow_stats.db.connection import get_connection
        from wow_stats.db.repositories.run_repo import RunMetadataRepository

        try:
            with get_connection(
                self.db_path,
                self.config.database.wal_mode,
                self.config.database.busy_timeout_ms,
            ) as conn:
                repo = RunMetadataRepository(conn)
                if run.run_id is None:
                    run.run_id = repo.insert_run(run)
                else:
                    repo.update_run(run)
        except Exception as exc:
            logger.error(
                "Failed to persist RunMetadata: %s", exc, extra={"run_slug": run.run_slug}
            )
