"""
WoW Stats exception hierarchy.

Each stage of the ingestion pipeline raises its own error family so the
coordinator can classify a character's failure without string matching:

  FetchError    — the provider could not supply a character document.
  StoreError    — the counter record could not be persisted.
  ArchiveError  — the raw document could not be archived (never fatal).

Extraction has no error type: it is total and never raises.
"""

from __future__ import annotations


class WowStatsError(Exception):
    """Base exception for all WoW Stats failures."""


# ── Provider ──────────────────────────────────────────────────────────────────


class FetchError(WowStatsError):
    """Raised when a character document cannot be fetched."""


class CharacterNotFoundError(FetchError):
    """Raised when the provider reports the character does not exist (HTTP 404)."""


class ProviderUnavailableError(FetchError):
    """Raised for timeouts, transport errors, auth failures and non-2xx responses."""


# ── Store ─────────────────────────────────────────────────────────────────────


class StoreError(WowStatsError):
    """Raised when a counter record cannot be written or read."""


class StoreConflictError(StoreError):
    """Raised when a character already has a row for the capture day."""


class StoreUnavailableError(StoreError):
    """Raised when the database cannot be opened, is locked, or lacks the schema."""


# ── Archive ───────────────────────────────────────────────────────────────────


class ArchiveError(WowStatsError):
    """Raised when a raw document cannot be archived to disk."""


class ArchiveDirectoryError(ArchiveError):
    """Raised when the per-character archive directory cannot be created."""


class ArchiveCompressionError(ArchiveError):
    """Raised when the document cannot be serialized or gzip-compressed."""


class ArchiveWriteError(ArchiveError):
    """Raised when the compressed archive cannot be written to its final path."""
