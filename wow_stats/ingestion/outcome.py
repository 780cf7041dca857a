"""
Per-character ingestion outcome.

A task moves ``pending → fetching → extracting → persisting`` and ends in
``succeeded`` or ``failed``. Archival is tracked separately on the outcome
(``archive_path`` / ``archive_error``) and never changes the terminal state.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional

from wow_stats.models.character import CharacterRef
from wow_stats.models.stats import CounterRecord


class TaskState(str, Enum):
    PENDING = "pending"
    FETCHING = "fetching"
    EXTRACTING = "extracting"
    PERSISTING = "persisting"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class FailureCause(str, Enum):
    FETCH_NOT_FOUND = "fetch_not_found"
    FETCH_TRANSIENT = "fetch_transient"
    STORE_CONFLICT = "store_conflict"
    STORE_UNAVAILABLE = "store_unavailable"
    UNEXPECTED = "unexpected"


@dataclass
class IngestionOutcome:
    """Result of ingesting one roster entry."""

    character: CharacterRef
    state: TaskState = TaskState.PENDING
    record: Optional[CounterRecord] = None
    failure: Optional[FailureCause] = None
    error_message: Optional[str] = None
    archive_path: Optional[Path] = None
    archive_error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.state is TaskState.SUCCEEDED

    @property
    def failed(self) -> bool:
        return self.state is TaskState.FAILED

    def fail(self, cause: FailureCause, message: str) -> None:
        self.state = TaskState.FAILED
        self.failure = cause
        self.error_message = message
