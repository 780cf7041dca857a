"""
Raw document archival — keep the provider's payload for later inspection.

File layout::

    data/archive/json/
      us/
        Thrall-Area 52/
          Thrall-Area 52-2019-10-17.json.gz
          Thrall-Area 52-2019-10-18.json.gz
        Jaina-Proudmoore/
          Jaina-Proudmoore-2019-10-17.json.gz
      eu/
        Thrall-Ragnaros/
          Thrall-Ragnaros-2019-10-17.json.gz

The region directory keeps same-named characters on different regions apart,
matching the roster key ``(name, realm, region)``.

Each file is the character document pretty-printed with a 2-space indent and
gzip-compressed. One file per character per capture day; re-archiving the
same day overwrites it.

Archival is best-effort: every failure is raised as an ``ArchiveError``
subclass and the coordinator records it on the outcome without failing the
character. Writes go to a sibling temp file first and are moved into place
with an atomic rename, so a failed write never leaves a truncated archive.
"""

from __future__ import annotations

import gzip
import json
import logging
import os
import tempfile
from datetime import date
from pathlib import Path
from typing import Any

from wow_stats.errors import ArchiveCompressionError, ArchiveDirectoryError, ArchiveWriteError
from wow_stats.models.character import CharacterRef

logger = logging.getLogger(__name__)

ARCHIVE_SUFFIX = ".json.gz"


def build_archive_path(archive_dir: str | Path, character: CharacterRef, capture_day: date) -> Path:
    """Build the deterministic archive path for one character and day.

    Example::

        build_archive_path("data/archive/json", thrall, date(2019, 10, 17))
        # → Path("data/archive/json/us/Thrall-Area 52/Thrall-Area 52-2019-10-17.json.gz")
    """
    label = character.label
    file_name = f"{label}-{capture_day.isoformat()}{ARCHIVE_SUFFIX}"
    return Path(archive_dir) / character.region / label / file_name


def compress_document(raw: Any) -> bytes:
    """Serialize ``raw`` as 2-space-indented JSON and gzip it.

    Raises:
        ArchiveCompressionError: If the document is not JSON-serializable.
    """
    try:
        pretty = json.dumps(raw, indent=2, ensure_ascii=False)
    except (TypeError, ValueError) as exc:
        raise ArchiveCompressionError(f"Document is not JSON-serializable: {exc}") from exc
    return gzip.compress(pretty.encode("utf-8"))


class RawArchiver:
    """Writes raw character documents under ``archive_dir``.

    Usage::

        archiver = RawArchiver(config.archive.archive_dir)
        path = archiver.archive(character, raw, record.capture_day)
    """

    def __init__(self, archive_dir: str | Path) -> None:
        self.archive_dir = Path(archive_dir)

    def archive(self, character: CharacterRef, raw: Any, capture_day: date) -> Path:
        """Archive one raw document.

        Args:
            character: The character the document belongs to.
            raw: The decoded provider document.
            capture_day: Capture day; part of the file name.

        Returns:
            Path of the written ``.json.gz`` file.

        Raises:
            ArchiveDirectoryError: The character directory cannot be created.
            ArchiveCompressionError: The document cannot be serialized.
            ArchiveWriteError: The compressed bytes cannot be written.
        """
        path = build_archive_path(self.archive_dir, character, capture_day)

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise ArchiveDirectoryError(
                f"Cannot create archive directory {path.parent}: {exc}"
            ) from exc

        payload = compress_document(raw)

        tmp_name = None
        try:
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{path.name}.", suffix=".tmp", dir=path.parent
            )
            with os.fdopen(fd, "wb") as f:
                f.write(payload)
            os.replace(tmp_name, path)
        except OSError as exc:
            if tmp_name is not None:
                Path(tmp_name).unlink(missing_ok=True)
            raise ArchiveWriteError(f"Cannot write archive {path}: {exc}") from exc

        logger.debug("Archived %s (%d bytes) → %s", character.label, len(payload), path)
        return path


def load_archive(path: Path) -> Any:
    """Read an archived document back.

    Raises:
        FileNotFoundError: If ``path`` does not exist.
        json.JSONDecodeError: If the decompressed content is not valid JSON.
    """
    with gzip.open(path, "rt", encoding="utf-8") as f:
        return json.load(f)
