"""Tests for raw document archival."""

from __future__ import annotations

import gzip
from datetime import date
from pathlib import Path
from unittest.mock import patch

import pytest

from wow_stats.errors import (
    ArchiveCompressionError,
    ArchiveDirectoryError,
    ArchiveError,
    ArchiveWriteError,
)
from wow_stats.ingestion.archive import RawArchiver, build_archive_path, load_archive
from wow_stats.models.character import CharacterRef

DAY = date(2019, 10, 17)


def test_build_archive_path(sample_character):
    path = build_archive_path("data/archive/json", sample_character, DAY)
    assert path == Path("data/archive/json/us/Thrall-Area 52/Thrall-Area 52-2019-10-17.json.gz")


def test_archive_writes_pretty_gzip(tmp_path, sample_character, raw_document):
    path = RawArchiver(tmp_path).archive(sample_character, raw_document, DAY)

    assert path.exists()
    assert path.parent == tmp_path / "us" / "Thrall-Area 52"
    with gzip.open(path, "rt", encoding="utf-8") as f:
        text = f.read()
    assert text.startswith("{\n  \"")
    assert load_archive(path) == raw_document


def test_same_day_overwrites(tmp_path, sample_character):
    archiver = RawArchiver(tmp_path)
    archiver.archive(sample_character, {"v": 1}, DAY)
    path = archiver.archive(sample_character, {"v": 2}, DAY)

    assert load_archive(path) == {"v": 2}
    assert [p.name for p in path.parent.iterdir()] == [path.name]


def test_different_days_kept(tmp_path, sample_character):
    archiver = RawArchiver(tmp_path)
    archiver.archive(sample_character, {"v": 1}, DAY)
    archiver.archive(sample_character, {"v": 2}, date(2019, 10, 18))
    assert len(list((tmp_path / "us" / "Thrall-Area 52").iterdir())) == 2


def test_directory_failure(tmp_path, sample_character):
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory")

    with pytest.raises(ArchiveDirectoryError):
        RawArchiver(blocker).archive(sample_character, {"v": 1}, DAY)


def test_unserializable_document(tmp_path, sample_character):
    with pytest.raises(ArchiveCompressionError):
        RawArchiver(tmp_path).archive(sample_character, {"v": object()}, DAY)


def test_write_failure_leaves_no_partial_file(tmp_path, sample_character):
    archiver = RawArchiver(tmp_path)
    with patch("wow_stats.ingestion.archive.os.replace", side_effect=OSError("disk full")):
        with pytest.raises(ArchiveWriteError):
            archiver.archive(sample_character, {"v": 1}, DAY)

    assert list((tmp_path / "us" / "Thrall-Area 52").iterdir()) == []


def test_all_archive_errors_share_a_base():
    for cls in (ArchiveDirectoryError, ArchiveCompressionError, ArchiveWriteError):
        assert issubclass(cls, ArchiveError)


def test_same_name_and_realm_on_two_regions_do_not_collide(tmp_path):
    us = CharacterRef(name="Thrall", realm="Ragnaros", region="us")
    eu = CharacterRef(name="Thrall", realm="Ragnaros", region="eu")
    archiver = RawArchiver(tmp_path)

    us_path = archiver.archive(us, {"region": "us"}, DAY)
    eu_path = archiver.archive(eu, {"region": "eu"}, DAY)

    assert us_path != eu_path
    assert us_path == tmp_path / "us" / "Thrall-Ragnaros" / "Thrall-Ragnaros-2019-10-17.json.gz"
    assert load_archive(us_path) == {"region": "us"}
    assert load_archive(eu_path) == {"region": "eu"}
