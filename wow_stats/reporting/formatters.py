"""
ASCII terminal formatters for CLI commands.

All formatters accept models / outcome lists and return plain multi-line
strings suitable for ``typer.echo()``.

No third-party dependencies (no ``rich``, no ``colorama``).
"""

from __future__ import annotations

from datetime import date
from typing import Optional, Sequence

from wow_stats.ingestion.outcome import IngestionOutcome
from wow_stats.models.character import CharacterRef
from wow_stats.models.stats import CounterRecord


# ── Ingestion run ─────────────────────────────────────────────────────────────


def format_outcomes(outcomes: Sequence[IngestionOutcome]) -> str:
    """Format per-character ingestion results, failures last.

    Example::

        === Ingestion Results ===
          Characters: 3  Stored: 2  Failed: 1

          [OK]     Thrall-Area 52      lvl 120  ilvl 415  archived
          [OK]     Jaina-Proudmoore    lvl 120  ilvl 402  archive failed: ...
          [FAILED] Garrosh-Hellscream  fetch_not_found: ...
    """
    failed = [o for o in outcomes if o.failed]
    ok = sorted(
        (o for o in outcomes if not o.failed),
        key=lambda o: o.character.label.lower(),
    )

    lines: list[str] = ["", "=== Ingestion Results ==="]
    lines.append(
        f"  Characters: {len(outcomes)}  Stored: {len(ok)}  Failed: {len(failed)}"
    )
    if not outcomes:
        lines.append("")
        lines.append("  (roster is empty — add characters with 'add-character')")
        return "\n".join(lines)

    width = max(len(o.character.label) for o in outcomes)
    lines.append("")
    for o in ok:
        rec = o.record
        stats = f"lvl {rec.level:>3}  ilvl {rec.item_level:>3}" if rec else ""
        if o.archive_error:
            archive = f"archive failed: {o.archive_error}"
        elif o.archive_path is not None:
            archive = "archived"
        else:
            archive = ""
        lines.append(f"  [OK]     {o.character.label:<{width}}  {stats}  {archive}".rstrip())

    for o in sorted(failed, key=lambda o: o.character.label.lower()):
        cause = o.failure.value if o.failure else "failed"
        lines.append(
            f"  [FAILED] {o.character.label:<{width}}  {cause}: {o.error_message or ''}".rstrip()
        )
    return "\n".join(lines)


# ── Latest-day summary ────────────────────────────────────────────────────────


def format_summary_table(
    standings: Sequence[tuple[CharacterRef, CounterRecord]],
    capture_day: Optional[date] = None,
) -> str:
    """Format the latest capture day's standings.

    Rows are printed in the order given (the store already sorts by level
    desc, item level desc, name asc).
    """
    lines: list[str] = ["", "=== Character Summary ==="]
    if capture_day is not None:
        lines.append(f"  Capture day: {capture_day.isoformat()}")

    if not standings:
        lines.append("")
        lines.append("  (no snapshots yet — run 'run-ingest' first)")
        return "\n".join(lines)

    header = (
        f"  {'Name':<14}  {'Realm':<16}  {'Lvl':>3}  {'iLvl':>4}  {'Achieve':>7}  "
        f"{'Mounts':>6}  {'Pets':>5}  {'Quests':>6}  {'Exalted':>7}  "
        f"{'HKs':>6}  {'Last Modified':<19}"
    )
    lines.append("")
    lines.append(header)
    lines.append("  " + "-" * (len(header) - 2))
    for character, rec in standings:
        lines.append(
            f"  {character.name[:14]:<14}  {character.realm[:16]:<16}  {rec.level:>3}  "
            f"{rec.item_level:>4}  {rec.achievement_points:>7}  {rec.mounts_collected:>6}  "
            f"{rec.pets_collected:>5}  {rec.quests_completed:>6}  {rec.exalted_reps:>7}  "
            f"{rec.honorable_kills:>6}  {rec.last_modified_display:<19}".rstrip()
        )
    return "\n".join(lines)


# ── Roster ────────────────────────────────────────────────────────────────────


def format_roster(characters: Sequence[CharacterRef]) -> str:
    """Format the tracked-character roster."""
    lines: list[str] = ["", f"=== Tracked Characters ({len(characters)}) ==="]
    if not characters:
        lines.append("  (none — add one with 'add-character')")
        return "\n".join(lines)
    lines.append(f"  {'ID':>4}  {'Name':<14}  {'Realm':<20}  Region")
    for c in characters:
        lines.append(f"  {c.character_id or '':>4}  {c.name:<14}  {c.realm:<20}  {c.region}")
    return "\n".join(lines)
