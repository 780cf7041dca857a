"""
IngestStage — snapshot every tracked character into ``character_stats``.

Loads the roster from the ``characters`` table, hands it to the
``IngestionCoordinator`` and records the run in ``run_metadata``:

  every character stored   → status ``success``
  some characters failed   → status ``partial``
  every character failed   → status ``failed``

Per-character outcomes are kept on ``self.outcomes`` for the CLI report.

Fixture mode (no credentials set):
  ``BlizzardClient`` returns a canned document for every character, so the
  full fetch → extract → store → archive path runs offline.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional, Sequence

from wow_stats.config import AppConfig, blizzard_credentials
from wow_stats.ingestion.coordinator import CharacterProvider
from wow_stats.ingestion.outcome import IngestionOutcome
from wow_stats.models.character import CharacterRef
from wow_stats.models.meta import RunMetadata
from wow_stats.pipeline.base import PipelineStage

logger = logging.getLogger(__name__)


class IngestStage(PipelineStage):
    """Fetch, extract, store and archive counters for the whole roster.

    Returns the number of counter records stored.
    """

    stage_name = "ingest"

    def __init__(
        self,
        config: AppConfig,
        db_path: str | None = None,
        provider: Optional[CharacterProvider] = None,
    ) -> None:
        super().__init__(config, db_path)
        self.provider = provider
        self.outcomes: list[IngestionOutcome] = []

    def _execute(
        self,
        run: RunMetadata,
        names: Sequence[str] | None = None,
        **kwargs,
    ) -> int:
        """Ingest the roster.

        Args:
            run: In-progress :class:`RunMetadata` (mutable).
            names: Optional character names to restrict the run to
                (case-insensitive). Defaults to the whole roster.

        Returns:
            Number of counter records stored.
        """
        roster = self._load_roster(names)
        run.characters_total = len(roster)

        self.outcomes = asyncio.run(self._ingest(roster, run.run_slug))

        failed = [o for o in self.outcomes if o.failed]
        stored = len(self.outcomes) - len(failed)
        run.characters_failed = len(failed)

        if failed:
            run.status = "failed" if stored == 0 else "partial"
            run.error_message = "; ".join(
                f"{o.character.label}: {o.failure.value if o.failure else 'failed'}"
                for o in failed
            )
        return stored

    def _load_roster(self, names: Sequence[str] | None) -> list[CharacterRef]:
        from wow_stats.db.connection import get_connection
        from wow_stats.db.repositories.character_repo import CharacterRepository

        with get_connection(
            self.db_path,
            self.config.database.wal_mode,
            self.config.database.busy_timeout_ms,
        ) as conn:
            roster = CharacterRepository(conn).get_all()

        if names:
            wanted = {n.lower() for n in names}
            roster = [c for c in roster if c.name.lower() in wanted]
        logger.info("Roster: %d characters", len(roster))
        return roster

    async def _ingest(
        self, roster: list[CharacterRef], run_slug: str
    ) -> list[IngestionOutcome]:
        from wow_stats.ingestion.archive import RawArchiver
        from wow_stats.ingestion.blizzard_client import BlizzardClient
        from wow_stats.ingestion.coordinator import IngestionCoordinator
        from wow_stats.ingestion.snapshot_store import SnapshotStore

        store = SnapshotStore.from_config(self.config.database, db_path=self.db_path)
        archiver = (
            RawArchiver(self.config.archive.archive_dir)
            if self.config.archive.enabled
            else None
        )

        if self.provider is not None:
            coordinator = IngestionCoordinator(
                self.provider, store, archiver, self.config.ingestion, run_slug=run_slug
            )
            return await coordinator.run(roster)

        client_id, client_secret = blizzard_credentials()
        async with BlizzardClient(
            client_id=client_id,
            client_secret=client_secret,
            region=self.config.blizzard.region,
            locale=self.config.blizzard.locale,
            timeout_seconds=self.config.blizzard.timeout_seconds,
        ) as client:
            if client.is_fixture_mode:
                logger.warning(
                    "BLIZZARD_CLIENT_ID/SECRET not set — ingesting fixture documents."
                )
            coordinator = IngestionCoordinator(
                client, store, archiver, self.config.ingestion, run_slug=run_slug
            )
            return await coordinator.run(roster)
