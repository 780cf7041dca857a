"""
Application configuration management.

Load order (each layer overrides the previous):
  1. ``config/default.toml``      — committed static defaults
  2. ``config/local.toml``        — optional local overrides (gitignored)
  3. ``.env``                     — local secrets and env overrides (gitignored)
  4. Environment variables        — ``WOW_STATS_*`` prefix

Entry point: ``load_config(config_path=None) -> AppConfig``

The CLI loads one ``AppConfig`` and hands it (or the relevant section) to
every component it constructs. There is no module-level config singleton.

Blizzard credentials are never read from TOML — only from the environment
(``BLIZZARD_CLIENT_ID`` / ``BLIZZARD_CLIENT_SECRET``), see
:func:`blizzard_credentials`.
"""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, field_validator

VALID_REGIONS = frozenset({"us", "eu", "kr", "tw"})

# ── Sub-config models ─────────────────────────────────────────────────────────


class DatabaseConfig(BaseModel):
    """SQLite database connection settings."""

    model_config = ConfigDict(frozen=True)

    db_path: str = "data/db/wow_stats.db"
    wal_mode: bool = True
    busy_timeout_ms: int = 5000


class ArchiveConfig(BaseModel):
    """Raw character document archival."""

    model_config = ConfigDict(frozen=True)

    enabled: bool = True
    archive_dir: str = "data/archive/json"


class BlizzardConfig(BaseModel):
    """Blizzard API connection settings (credentials live in the environment)."""

    model_config = ConfigDict(frozen=True)

    region: str = "us"
    locale: str = "en_US"
    timeout_seconds: float = 30.0

    @field_validator("region")
    @classmethod
    def validate_region(cls, v: str) -> str:
        v = v.lower()
        if v not in VALID_REGIONS:
            raise ValueError(f"region must be one of {sorted(VALID_REGIONS)}, got '{v}'.")
        return v

    @field_validator("timeout_seconds")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError(f"timeout_seconds must be positive, got {v}.")
        return v


class IngestionConfig(BaseModel):
    """Fan-out settings for the ingestion coordinator.

    ``max_concurrency = 0`` disables the bound and runs every character at
    once.
    """

    model_config = ConfigDict(frozen=True)

    max_concurrency: int = 8

    @field_validator("max_concurrency")
    @classmethod
    def validate_max_concurrency(cls, v: int) -> int:
        if v < 0:
            raise ValueError(f"max_concurrency must be >= 0, got {v}.")
        return v


class LoggingConfig(BaseModel):
    """Logging output settings."""

    model_config = ConfigDict(frozen=True)

    level: str = "INFO"
    log_file: str = "data/logs/wow_stats.log"
    json_format: bool = False

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        valid = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in valid:
            raise ValueError(f"Log level must be one of {sorted(valid)}, got '{v}'.")
        return v.upper()


class AppConfig(BaseModel):
    """Complete application configuration — the single source of truth.

    Constructed by ``load_config()`` which merges TOML + .env + environment.
    """

    model_config = ConfigDict(frozen=True)

    database: DatabaseConfig = DatabaseConfig()
    archive: ArchiveConfig = ArchiveConfig()
    blizzard: BlizzardConfig = BlizzardConfig()
    ingestion: IngestionConfig = IngestionConfig()
    logging: LoggingConfig = LoggingConfig()
    debug: bool = False


# ── Loader ────────────────────────────────────────────────────────────────────

_PROJECT_ROOT = Path(__file__).parent.parent


def _find_project_root() -> Path:
    """Walk up from this file to find the project root (contains pyproject.toml)."""
    candidate = Path(__file__).parent
    for _ in range(5):
        if (candidate / "pyproject.toml").exists():
            return candidate
        candidate = candidate.parent
    return _PROJECT_ROOT


def load_config(config_path: Optional[Path] = None) -> AppConfig:
    """Load and merge application configuration.

    Args:
        config_path: Explicit path to a TOML config file. Defaults to
            ``<project_root>/config/default.toml``.

    Returns:
        Fully validated ``AppConfig`` instance.

    Raises:
        FileNotFoundError: If the specified ``config_path`` does not exist.
        pydantic.ValidationError: If merged config values fail validation.
    """
    root = _find_project_root()

    # 1. Load .env file (silently skip if missing)
    load_dotenv(dotenv_path=root / ".env", override=False)

    # 2. Load TOML config
    if config_path is None:
        config_path = root / "config" / "default.toml"

    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(
            f"Config file not found: {config_path}\n"
            "Create config/default.toml or pass --config."
        )

    with open(config_path, "rb") as f:
        raw: dict[str, Any] = tomllib.load(f)

    local_config_path = config_path.parent / "local.toml"
    if local_config_path.exists():
        with open(local_config_path, "rb") as f:
            local_raw: dict[str, Any] = tomllib.load(f)
        raw = _deep_merge(raw, local_raw)

    # 3. Apply WOW_STATS_* environment variable overrides
    raw = _apply_env_overrides(raw)

    return _build_app_config(raw)


def blizzard_credentials() -> tuple[Optional[str], Optional[str]]:
    """Return ``(client_id, client_secret)`` from the environment.

    Either value is ``None`` when unset; the Blizzard client then runs in
    fixture mode.
    """
    return (
        os.environ.get("BLIZZARD_CLIENT_ID") or None,
        os.environ.get("BLIZZARD_CLIENT_SECRET") or None,
    )


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge ``override`` into ``base``."""
    result = dict(base)
    for key, val in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(val, dict):
            result[key] = _deep_merge(result[key], val)
        else:
            result[key] = val
    return result


def _apply_env_overrides(raw: dict[str, Any]) -> dict[str, Any]:
    """Apply WOW_STATS_* env vars to the raw config dict.

    Supported overrides:
      WOW_STATS_DB_PATH          → raw["database"]["db_path"]
      WOW_STATS_ARCHIVE_DIR      → raw["archive"]["archive_dir"]
      WOW_STATS_REGION           → raw["blizzard"]["region"]
      WOW_STATS_MAX_CONCURRENCY  → raw["ingestion"]["max_concurrency"]
      WOW_STATS_LOG_LEVEL        → raw["logging"]["level"]
      WOW_STATS_DEBUG            → raw["debug"]
    """
    if db_path := os.environ.get("WOW_STATS_DB_PATH"):
        raw.setdefault("database", {})["db_path"] = db_path

    if archive_dir := os.environ.get("WOW_STATS_ARCHIVE_DIR"):
        raw.setdefault("archive", {})["archive_dir"] = archive_dir

    if region := os.environ.get("WOW_STATS_REGION"):
        raw.setdefault("blizzard", {})["region"] = region

    if max_concurrency := os.environ.get("WOW_STATS_MAX_CONCURRENCY"):
        raw.setdefault("ingestion", {})["max_concurrency"] = int(max_concurrency)

    if log_level := os.environ.get("WOW_STATS_LOG_LEVEL"):
        raw.setdefault("logging", {})["level"] = log_level

    if debug := os.environ.get("WOW_STATS_DEBUG"):
        raw["debug"] = debug.lower() in ("1", "true", "yes")

    return raw


def _build_app_config(raw: dict[str, Any]) -> AppConfig:
    """Map raw TOML dict to ``AppConfig`` model structure."""
    project = raw.pop("project", {})

    return AppConfig(
        database=DatabaseConfig(**raw.get("database", {})),
        archive=ArchiveConfig(**raw.get("archive", {})),
        blizzard=BlizzardConfig(**raw.get("blizzard", {})),
        ingestion=IngestionConfig(**raw.get("ingestion", {})),
        logging=LoggingConfig(**raw.get("logging", {})),
        debug=raw.get("debug", project.get("debug", False)),
    )
