"""
Ingestion coordinator — one task per roster character, bounded fan-out.

Each task runs::

    fetch (provider) → extract → append (store) → archive (best-effort)

Tasks share nothing but the store, so a failure in one character's task never
touches another's. ``run()`` is a join barrier: it returns only after every
task has produced its ``IngestionOutcome``, exactly one per roster entry.

Store and archive calls are blocking (sqlite3, file I/O) and run in worker
threads via ``asyncio.to_thread``. Fetches run on the event loop.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from datetime import datetime
from typing import Any, Callable, Optional, Protocol, Sequence

from wow_stats.config import IngestionConfig
from wow_stats.errors import (
    ArchiveError,
    CharacterNotFoundError,
    FetchError,
    StoreConflictError,
    StoreError,
)
from wow_stats.ingestion.archive import RawArchiver
from wow_stats.ingestion.extractor import extract
from wow_stats.ingestion.outcome import FailureCause, IngestionOutcome, TaskState
from wow_stats.ingestion.snapshot_store import SnapshotStore
from wow_stats.models.character import CharacterRef
from wow_stats.models.stats import CounterRecord
from wow_stats.utils.time_utils import localnow

logger = logging.getLogger(__name__)


class CharacterProvider(Protocol):
    """Anything that can fetch a raw character document."""

    async def fetch_character(self, character: CharacterRef) -> dict[str, Any]: ...


class IngestionCoordinator:
    """Runs the per-character pipeline across a roster.

    Args:
        provider: Source of raw character documents (normally ``BlizzardClient``).
        store: Destination for counter records.
        archiver: Raw document archiver, or ``None`` to skip archival.
        config: Fan-out settings; ``max_concurrency = 0`` means unbounded.
        clock: Returns the capture time for each extraction (local time by
            default; its wall-clock date is the capture day).
        run_slug: Pipeline run identifier attached to per-character log
            records as ``run_slug``.
    """

    def __init__(
        self,
        provider: CharacterProvider,
        store: SnapshotStore,
        archiver: Optional[RawArchiver] = None,
        config: Optional[IngestionConfig] = None,
        clock: Callable[[], datetime] = localnow,
        run_slug: Optional[str] = None,
    ) -> None:
        self.provider = provider
        self.store = store
        self.archiver = archiver
        self.config = config or IngestionConfig()
        self.clock = clock
        self.run_slug = run_slug

    async def run(self, roster: Sequence[CharacterRef]) -> list[IngestionOutcome]:
        """Ingest every character in ``roster`` and return their outcomes.

        Outcome order follows completion, not roster order.
        """
        total = len(roster)
        if total == 0:
            logger.info("Ingestion: roster is empty, nothing to do")
            return []

        limit = self.config.max_concurrency
        semaphore = asyncio.Semaphore(limit) if limit > 0 else None
        logger.info(
            "Ingestion: %d characters (max_concurrency=%s)",
            total, limit if limit > 0 else "unbounded",
        )

        outcomes: list[IngestionOutcome] = []
        tasks = [self._run_one(character, semaphore) for character in roster]
        for coro in asyncio.as_completed(tasks):
            outcome = await coro
            outcomes.append(outcome)
            done = len(outcomes)
            if done % 10 == 0 or done == total:
                logger.info(
                    "Ingestion: %d/%d complete (%.0f%%)",
                    done, total, 100.0 * done / total,
                )

        failed = sum(1 for o in outcomes if o.failed)
        logger.info("Ingestion finished: %d succeeded, %d failed", total - failed, failed)
        return outcomes

    def run_sync(self, roster: Sequence[CharacterRef]) -> list[IngestionOutcome]:
        """Blocking wrapper around :meth:`run` for non-async callers."""
        return asyncio.run(self.run(roster))

    # ── Per-character task ─────────────────────────────────────────────────────

    def _log_context(self, character: CharacterRef) -> dict[str, Any]:
        context: dict[str, Any] = {"character": character.label}
        if self.run_slug is not None:
            context["run_slug"] = self.run_slug
        return context

    async def _run_one(
        self, character: CharacterRef, semaphore: Optional[asyncio.Semaphore]
    ) -> IngestionOutcome:
        outcome = IngestionOutcome(character=character)
        async with semaphore if semaphore is not None else contextlib.nullcontext():
            stored = await self._ingest(outcome)
            if stored is not None and self.archiver is not None:
                record, raw = stored
                await self._archive(self.archiver, outcome, record, raw)
        return outcome

    async def _ingest(self, outcome: IngestionOutcome) -> Optional[tuple[CounterRecord, Any]]:
        """Fetch, extract and store; returns the stored record and raw document."""
        character = outcome.character
        extra = self._log_context(character)
        try:
            outcome.state = TaskState.FETCHING
            raw = await self.provider.fetch_character(character)

            outcome.state = TaskState.EXTRACTING
            record = extract(raw, now=self.clock())

            outcome.state = TaskState.PERSISTING
            stat_id = await asyncio.to_thread(self.store.append, character, record)

        except CharacterNotFoundError as exc:
            logger.warning("%s: not found — %s", character.label, exc, extra=extra)
            outcome.fail(FailureCause.FETCH_NOT_FOUND, str(exc))
            return None
        except FetchError as exc:
            logger.warning("%s: fetch failed — %s", character.label, exc, extra=extra)
            outcome.fail(FailureCause.FETCH_TRANSIENT, str(exc))
            return None
        except StoreConflictError as exc:
            logger.warning("%s: %s", character.label, exc, extra=extra)
            outcome.fail(FailureCause.STORE_CONFLICT, str(exc))
            return None
        except StoreError as exc:
            logger.error("%s: store failed — %s", character.label, exc, extra=extra)
            outcome.fail(FailureCause.STORE_UNAVAILABLE, str(exc))
            return None
        except Exception as exc:
            logger.exception("%s: unexpected ingestion error", character.label, extra=extra)
            outcome.fail(FailureCause.UNEXPECTED, f"{type(exc).__name__}: {exc}")
            return None

        stored = record.model_copy(
            update={"stat_id": stat_id, "character_id": character.character_id}
        )
        outcome.record = stored
        outcome.state = TaskState.SUCCEEDED
        logger.debug("%s: stored stat_id=%d", character.label, stat_id, extra=extra)
        return stored, raw

    async def _archive(
        self,
        archiver: RawArchiver,
        outcome: IngestionOutcome,
        record: CounterRecord,
        raw: Any,
    ) -> None:
        """Archive the raw document; failures are recorded, never raised."""
        character = outcome.character
        extra = self._log_context(character)
        try:
            outcome.archive_path = await asyncio.to_thread(
                archiver.archive, character, raw, record.capture_day
            )
        except ArchiveError as exc:
            logger.warning("%s: archive failed — %s", character.label, exc, extra=extra)
            outcome.archive_error = str(exc)
        except Exception as exc:
            logger.exception("%s: unexpected archive error", character.label, extra=extra)
            outcome.archive_error = f"{type(exc).__name__}: {exc}"
