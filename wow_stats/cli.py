"""
WoW Stats — CLI entry point.

All commands follow this pattern:
  1. Load ``AppConfig`` via ``load_config()``.
  2. Configure logging.
  3. Validate inputs.
  4. Execute action (DB init, roster change, ingestion run, summary).
  5. Report result to stdout.

Install and run::

    pip install -e .
    wow-stats --help
    wow-stats init-db
    wow-stats add-character --name Thrall --realm "Area 52" --verify
    wow-stats run-ingest            # the scheduled job (cron / systemd timer)
    wow-stats summary
"""

from __future__ import annotations

import asyncio
import json
import sqlite3
from pathlib import Path
from typing import List, Optional

import typer

app = typer.Typer(
    name="wow-stats",
    help="WoW character stats — daily snapshot ingestion CLI.",
    add_completion=False,
)


# ── Helpers ───────────────────────────────────────────────────────────────────

def _load_config_or_exit(config_path: Optional[str] = None):
    """Load AppConfig, printing a friendly error and exiting on failure."""
    from wow_stats.config import load_config

    try:
        cfg_path = Path(config_path) if config_path else None
        return load_config(cfg_path)
    except FileNotFoundError as exc:
        typer.echo(f"[ERROR] {exc}", err=True)
        raise typer.Exit(code=1)
    except Exception as exc:
        typer.echo(f"[ERROR] Config validation failed: {exc}", err=True)
        raise typer.Exit(code=1)


def _configure_logging(config):
    """Set up logging from config."""
    from wow_stats.utils.logging import configure_logging
    configure_logging(config.logging)


def _ensure_schema(config, db_path: str) -> int:
    """Create tables and apply migrations (idempotent); returns migrations applied."""
    from wow_stats.db.connection import get_connection
    from wow_stats.db.schema import initialize_database

    with get_connection(
        db_path,
        wal_mode=config.database.wal_mode,
        busy_timeout_ms=config.database.busy_timeout_ms,
    ) as conn:
        return initialize_database(conn)


# ── Commands ──────────────────────────────────────────────────────────────────

@app.command("init-db")
def init_db(
    db_path: Optional[str] = typer.Option(
        None,
        "--db-path",
        help="Override DB path from config (e.g. data/db/test.db).",
    ),
    config_path: Optional[str] = typer.Option(
        None,
        "--config",
        help="Path to TOML config file.",
    ),
) -> None:
    """Initialize the SQLite database and apply the full schema.

    Safe to run multiple times — all DDL uses IF NOT EXISTS.
    Also runs pending schema migrations.
    """
    from wow_stats.db.schema import ALL_TABLE_NAMES

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    target_path = db_path or config.database.db_path
    typer.echo(f"Initializing database at: {target_path}")

    migrations_applied = _ensure_schema(config, target_path)

    typer.echo(f"  Tables: {len(ALL_TABLE_NAMES)} created/verified.")
    typer.echo(f"  Migrations applied: {migrations_applied}")
    typer.echo("[OK] Database ready.")


@app.command("validate-config")
def validate_config(
    config_path: Optional[str] = typer.Option(
        None,
        "--config",
        help="Path to TOML config file (default: config/default.toml).",
    ),
    show_full: bool = typer.Option(
        False,
        "--full",
        help="Print full config including all fields.",
    ),
) -> None:
    """Validate the configuration file and print parsed values.

    Exits with code 1 if the config fails validation.
    """
    from wow_stats.config import blizzard_credentials

    config = _load_config_or_exit(config_path)
    client_id, client_secret = blizzard_credentials()

    typer.echo("Configuration validated successfully.")
    typer.echo("")
    typer.echo(f"  Database path:    {config.database.db_path}")
    typer.echo(f"  Region:           {config.blizzard.region}")
    typer.echo(f"  Archive:          {config.archive.archive_dir if config.archive.enabled else 'disabled'}")
    typer.echo(f"  Max concurrency:  {config.ingestion.max_concurrency or 'unbounded'}")
    typer.echo(f"  Credentials:      {'set' if client_id and client_secret else 'not set (fixture mode)'}")
    typer.echo(f"  Log level:        {config.logging.level}")
    typer.echo(f"  Debug mode:       {config.debug}")

    if show_full:
        typer.echo("")
        typer.echo("Full config (JSON):")
        typer.echo(json.dumps(config.model_dump(), indent=2, default=str))

    typer.echo("")


@app.command("add-character")
def add_character(
    name: str = typer.Option(..., "--name", help="Character name (e.g. Thrall)."),
    realm: str = typer.Option(..., "--realm", help="Realm name (e.g. 'Area 52')."),
    region: Optional[str] = typer.Option(
        None,
        "--region",
        help="Region (us, eu, kr, tw). Defaults to config [blizzard] region.",
    ),
    verify: bool = typer.Option(
        False,
        "--verify",
        help="Look the character up on the Blizzard API first and record race/class/gender.",
    ),
    db_path: Optional[str] = typer.Option(None, "--db-path", help="Override DB path from config."),
    config_path: Optional[str] = typer.Option(None, "--config", help="Path to TOML config file."),
) -> None:
    """Add a character to the tracked roster."""
    from pydantic import ValidationError

    from wow_stats.config import blizzard_credentials
    from wow_stats.db.connection import get_connection
    from wow_stats.db.repositories.character_repo import CharacterRepository
    from wow_stats.errors import CharacterNotFoundError, FetchError
    from wow_stats.ingestion.blizzard_client import BlizzardClient
    from wow_stats.models.character import CharacterRef, normalize_display_name

    config = _load_config_or_exit(config_path)
    _configure_logging(config)
    target_db = db_path or config.database.db_path

    try:
        character = CharacterRef(
            name=normalize_display_name(name),
            realm=normalize_display_name(realm),
            region=region or config.blizzard.region,
        )
    except ValidationError as exc:
        typer.echo(f"[ERROR] Invalid character: {exc}", err=True)
        raise typer.Exit(code=1)

    _ensure_schema(config, target_db)
    with get_connection(
        target_db,
        wal_mode=config.database.wal_mode,
        busy_timeout_ms=config.database.busy_timeout_ms,
    ) as conn:
        existing = CharacterRepository(conn).get_by_name_realm(
            character.name, character.realm, character.region
        )
    if existing is not None:
        typer.echo(
            f"[ERROR] {existing.label} ({existing.region}) is already tracked"
            f" as id={existing.character_id}.",
            err=True,
        )
        raise typer.Exit(code=1)

    if verify:
        client_id, client_secret = blizzard_credentials()

        async def _lookup() -> dict:
            async with BlizzardClient(
                client_id=client_id,
                client_secret=client_secret,
                region=character.region,
                locale=config.blizzard.locale,
                timeout_seconds=config.blizzard.timeout_seconds,
            ) as client:
                return await client.fetch_profile(character.name, character.realm, character.region)

        try:
            profile = asyncio.run(_lookup())
        except CharacterNotFoundError as exc:
            typer.echo(f"[ERROR] {exc}", err=True)
            raise typer.Exit(code=1)
        except FetchError as exc:
            typer.echo(f"[ERROR] Blizzard lookup failed: {exc}", err=True)
            raise typer.Exit(code=1)

        character = character.model_copy(
            update={
                "race_id": profile.get("race"),
                "class_id": profile.get("class"),
                "gender": profile.get("gender"),
            }
        )

    try:
        with get_connection(
            target_db,
            wal_mode=config.database.wal_mode,
            busy_timeout_ms=config.database.busy_timeout_ms,
        ) as conn:
            character_id = CharacterRepository(conn).insert(character)
    except sqlite3.IntegrityError:
        typer.echo(
            f"[ERROR] {character.label} ({character.region}) is already tracked.", err=True
        )
        raise typer.Exit(code=1)

    typer.echo(f"[OK] Added {character.label} ({character.region}) as id={character_id}.")


@app.command("list-characters")
def list_characters(
    db_path: Optional[str] = typer.Option(None, "--db-path", help="Override DB path from config."),
    config_path: Optional[str] = typer.Option(None, "--config", help="Path to TOML config file."),
) -> None:
    """List the tracked roster."""
    from wow_stats.db.connection import get_connection
    from wow_stats.db.repositories.character_repo import CharacterRepository
    from wow_stats.reporting.formatters import format_roster

    config = _load_config_or_exit(config_path)
    _configure_logging(config)
    target_db = db_path or config.database.db_path

    _ensure_schema(config, target_db)
    with get_connection(
        target_db,
        wal_mode=config.database.wal_mode,
        busy_timeout_ms=config.database.busy_timeout_ms,
    ) as conn:
        characters = CharacterRepository(conn).get_all()

    typer.echo(format_roster(characters))


@app.command("run-ingest")
def run_ingest(
    names: Optional[List[str]] = typer.Option(
        None,
        "--name",
        help="Only ingest this character (repeatable). Defaults to the whole roster.",
    ),
    db_path: Optional[str] = typer.Option(None, "--db-path", help="Override DB path from config."),
    dry_run: bool = typer.Option(
        False,
        "--dry-run",
        help="Print what would run without executing.",
    ),
    config_path: Optional[str] = typer.Option(None, "--config", help="Path to TOML config file."),
) -> None:
    """Snapshot every tracked character: fetch, extract, store, archive.

    \b
    Credential setup (.env, gitignored):
      BLIZZARD_CLIENT_ID=...         → enables real Blizzard data
      BLIZZARD_CLIENT_SECRET=...

    Without credentials the run uses fixture documents.
    Exits with code 1 if any character failed.
    """
    from wow_stats.config import blizzard_credentials
    from wow_stats.pipeline.ingest import IngestStage
    from wow_stats.reporting.formatters import format_outcomes

    config = _load_config_or_exit(config_path)
    _configure_logging(config)
    target_db = db_path or config.database.db_path

    typer.echo(f"run-ingest | db={target_db}")

    if dry_run:
        client_id, client_secret = blizzard_credentials()
        typer.echo("[DRY RUN] Would run:")
        typer.echo(f"  IngestStage → characters={list(names) if names else 'all'}")
        typer.echo(f"  provider    → {'blizzard' if client_id and client_secret else 'fixture'}")
        typer.echo(
            f"  archive     → {config.archive.archive_dir if config.archive.enabled else 'disabled'}"
        )
        return

    _ensure_schema(config, target_db)

    stage = IngestStage(config=config, db_path=target_db)
    try:
        run = stage.run(names=names)
    except Exception as exc:
        typer.echo(f"[ERROR] Ingestion failed: {exc}", err=True)
        raise typer.Exit(code=1)

    typer.echo(format_outcomes(stage.outcomes))
    typer.echo("")
    if run.characters_failed:
        typer.echo(
            f"[FAILED] {run.characters_failed}/{run.characters_total} characters failed "
            f"(status={run.status}).",
            err=True,
        )
        raise typer.Exit(code=1)
    typer.echo(f"[OK] Ingestion complete: {run.rows_processed} snapshots stored.")


@app.command("summary")
def summary(
    db_path: Optional[str] = typer.Option(None, "--db-path", help="Override DB path from config."),
    config_path: Optional[str] = typer.Option(None, "--config", help="Path to TOML config file."),
) -> None:
    """Show the latest capture day's standings (level, item level, counters)."""
    from wow_stats.errors import StoreError
    from wow_stats.ingestion.snapshot_store import SnapshotStore
    from wow_stats.reporting.formatters import format_summary_table

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    store = SnapshotStore.from_config(config.database, db_path=db_path)
    try:
        standings = store.latest_per_character()
    except StoreError as exc:
        typer.echo(f"[ERROR] {exc}", err=True)
        raise typer.Exit(code=1)

    capture_day = standings[0][1].capture_day if standings else None
    typer.echo(format_summary_table(standings, capture_day))


# ── Entry point ───────────────────────────────────────────────────────────────

if __name__ == "__main__":
    app()
