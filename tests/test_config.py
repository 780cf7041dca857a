"""Tests for layered config loading."""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from wow_stats.config import (
    AppConfig,
    BlizzardConfig,
    IngestionConfig,
    blizzard_credentials,
    load_config,
)

_ENV_VARS = [
    "WOW_STATS_DB_PATH",
    "WOW_STATS_ARCHIVE_DIR",
    "WOW_STATS_REGION",
    "WOW_STATS_MAX_CONCURRENCY",
    "WOW_STATS_LOG_LEVEL",
    "WOW_STATS_DEBUG",
    "BLIZZARD_CLIENT_ID",
    "BLIZZARD_CLIENT_SECRET",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for var in _ENV_VARS:
        monkeypatch.delenv(var, raising=False)


def _write(tmp_path: Path, text: str) -> Path:
    path = tmp_path / "config.toml"
    path.write_text(text, encoding="utf-8")
    return path


def test_default_toml_loads():
    config = load_config()
    assert isinstance(config, AppConfig)
    assert config.ingestion.max_concurrency == 8
    assert config.archive.enabled is True


def test_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / "nope.toml")


def test_toml_values(tmp_path):
    path = _write(
        tmp_path,
        """
[project]
debug = true

[database]
db_path = "x.db"

[blizzard]
region = "EU"

[ingestion]
max_concurrency = 0
""",
    )
    config = load_config(path)
    assert config.debug is True
    assert config.database.db_path == "x.db"
    assert config.blizzard.region == "eu"
    assert config.ingestion.max_concurrency == 0


def test_local_toml_overrides(tmp_path):
    path = _write(tmp_path, '[database]\ndb_path = "base.db"\nbusy_timeout_ms = 10\n')
    (tmp_path / "local.toml").write_text('[database]\ndb_path = "local.db"\n', encoding="utf-8")

    config = load_config(path)
    assert config.database.db_path == "local.db"
    assert config.database.busy_timeout_ms == 10


def test_env_overrides(tmp_path, monkeypatch):
    path = _write(tmp_path, '[database]\ndb_path = "base.db"\n')
    monkeypatch.setenv("WOW_STATS_DB_PATH", "env.db")
    monkeypatch.setenv("WOW_STATS_ARCHIVE_DIR", "arch")
    monkeypatch.setenv("WOW_STATS_MAX_CONCURRENCY", "3")
    monkeypatch.setenv("WOW_STATS_LOG_LEVEL", "debug")
    monkeypatch.setenv("WOW_STATS_DEBUG", "yes")

    config = load_config(path)
    assert config.database.db_path == "env.db"
    assert config.archive.archive_dir == "arch"
    assert config.ingestion.max_concurrency == 3
    assert config.logging.level == "DEBUG"
    assert config.debug is True


def test_invalid_values_rejected():
    with pytest.raises(ValidationError):
        BlizzardConfig(region="mars")
    with pytest.raises(ValidationError):
        BlizzardConfig(timeout_seconds=0)
    with pytest.raises(ValidationError):
        IngestionConfig(max_concurrency=-1)


def test_credentials_from_env(monkeypatch):
    assert blizzard_credentials() == (None, None)
    monkeypatch.setenv("BLIZZARD_CLIENT_ID", "id")
    monkeypatch.setenv("BLIZZARD_CLIENT_SECRET", "secret")
    assert blizzard_credentials() == ("id", "secret")
