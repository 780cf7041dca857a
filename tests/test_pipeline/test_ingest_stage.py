"""Tests for IngestStage run bookkeeping."""

from __future__ import annotations

import pytest

from wow_stats.config import AppConfig, ArchiveConfig, DatabaseConfig
from wow_stats.db.connection import get_connection
from wow_stats.db.repositories.run_repo import RunMetadataRepository
from wow_stats.errors import CharacterNotFoundError, ProviderUnavailableError
from wow_stats.ingestion.snapshot_store import SnapshotStore
from wow_stats.models.character import CharacterRef
from wow_stats.pipeline.ingest import IngestStage


class StubProvider:
    def __init__(self, document, failures=None):
        self.document = document
        self.failures = failures or {}

    async def fetch_character(self, character):
        if character.name in self.failures:
            raise self.failures[character.name]
        return self.document


@pytest.fixture(autouse=True)
def no_credentials(monkeypatch):
    monkeypatch.delenv("BLIZZARD_CLIENT_ID", raising=False)
    monkeypatch.delenv("BLIZZARD_CLIENT_SECRET", raising=False)


@pytest.fixture
def config(file_db, tmp_path) -> AppConfig:
    return AppConfig(
        database=DatabaseConfig(db_path=file_db),
        archive=ArchiveConfig(enabled=True, archive_dir=str(tmp_path / "archive")),
    )


@pytest.fixture
def roster(file_db, add_characters):
    return add_characters(
        file_db,
        CharacterRef(name="Alpha", realm="Area 52"),
        CharacterRef(name="Bravo", realm="Area 52"),
    )


def _stored_run(db_path, run_slug):
    with get_connection(db_path) as conn:
        return RunMetadataRepository(conn).get_by_slug(run_slug)


def test_fixture_mode_end_to_end(config, roster, tmp_path):
    stage = IngestStage(config)
    run = stage.run()

    assert run.status == "success"
    assert run.rows_processed == 2
    assert run.characters_total == 2
    assert len(stage.outcomes) == 2
    assert all(o.archive_path is not None for o in stage.outcomes)
    assert len(list((tmp_path / "archive").rglob("*.json.gz"))) == 2

    stored = _stored_run(config.database.db_path, run.run_slug)
    assert stored is not None
    assert stored.status == "success"
    assert stored.config_snapshot["ingestion"]["max_concurrency"] == 8


def test_partial_run(config, roster, raw_document):
    provider = StubProvider(raw_document, {"Alpha": ProviderUnavailableError("timeout")})
    run = IngestStage(config, provider=provider).run()

    assert run.status == "partial"
    assert run.rows_processed == 1
    assert run.characters_failed == 1
    assert "Alpha-Area 52: fetch_transient" in run.error_message
    assert [c.name for c, _ in SnapshotStore(config.database.db_path).latest_per_character()] == ["Bravo"]


def test_all_failed_run(config, roster, raw_document):
    failures = {
        "Alpha": CharacterNotFoundError("gone"),
        "Bravo": CharacterNotFoundError("gone"),
    }
    run = IngestStage(config, provider=StubProvider(raw_document, failures)).run()
    assert run.status == "failed"
    assert run.rows_processed == 0


def test_name_filter(config, roster, raw_document):
    stage = IngestStage(config, provider=StubProvider(raw_document))
    run = stage.run(names=["bravo"])
    assert run.characters_total == 1
    assert [o.character.name for o in stage.outcomes] == ["Bravo"]


def test_archive_disabled(file_db, roster, raw_document, tmp_path):
    config = AppConfig(
        database=DatabaseConfig(db_path=file_db),
        archive=ArchiveConfig(enabled=False, archive_dir=str(tmp_path / "archive")),
    )
    stage = IngestStage(config, provider=StubProvider(raw_document))
    stage.run()
    assert all(o.archive_path is None and o.archive_error is None for o in stage.outcomes)
    assert not (tmp_path / "archive").exists()


def test_empty_roster(config):
    run = IngestStage(config).run()
    assert run.status == "success"
    assert run.rows_processed == 0


def test_missing_schema_fails_and_raises(tmp_path):
    config = AppConfig(database=DatabaseConfig(db_path=str(tmp_path / "none.db")))
    with pytest.raises(Exception):
        IngestStage(config).run()
