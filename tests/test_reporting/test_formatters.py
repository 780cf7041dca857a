"""Tests for ASCII terminal formatters."""

from __future__ import annotations

from datetime import date
from pathlib import Path

from wow_stats.ingestion.outcome import FailureCause, IngestionOutcome, TaskState
from wow_stats.models.character import CharacterRef
from wow_stats.reporting.formatters import format_outcomes, format_roster, format_summary_table


def _outcomes(sample_record):
    ok = IngestionOutcome(
        character=CharacterRef(name="Thrall", realm="Area 52"),
        state=TaskState.SUCCEEDED,
        record=sample_record,
        archive_path=Path("a.json.gz"),
    )
    archive_failed = IngestionOutcome(
        character=CharacterRef(name="Jaina", realm="Proudmoore"),
        state=TaskState.SUCCEEDED,
        record=sample_record,
        archive_error="disk full",
    )
    failed = IngestionOutcome(character=CharacterRef(name="Garrosh", realm="Hellscream"))
    failed.fail(FailureCause.FETCH_NOT_FOUND, "Garrosh-Hellscream not found")
    return [failed, ok, archive_failed]


def test_format_outcomes_counts_and_order(sample_record):
    text = format_outcomes(_outcomes(sample_record))
    assert "Characters: 3  Stored: 2  Failed: 1" in text
    lines = [l for l in text.splitlines() if l.startswith("  [")]
    assert lines[0].startswith("  [OK]     Jaina-Proudmoore")
    assert "archive failed: disk full" in lines[0]
    assert "archived" in lines[1]
    assert lines[2].startswith("  [FAILED] Garrosh-Hellscream")
    assert "fetch_not_found" in lines[2]


def test_format_outcomes_empty():
    assert "roster is empty" in format_outcomes([])


def test_summary_table(sample_character, sample_record):
    text = format_summary_table([(sample_character, sample_record)], date(2019, 10, 17))
    assert "Capture day: 2019-10-17" in text
    assert "Thrall" in text
    assert "21835" in text
    assert "2019-10-17 10:58:42" in text


def test_summary_table_empty():
    assert "no snapshots yet" in format_summary_table([])


def test_roster(sample_character):
    stored = sample_character.model_copy(update={"character_id": 4})
    text = format_roster([stored])
    assert "Tracked Characters (1)" in text
    assert "Area 52" in text
    assert format_roster([]).count("none") == 1
