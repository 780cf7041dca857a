"""Tests for CharacterRef validation and name normalization."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from wow_stats.models.character import CharacterRef, normalize_display_name


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("thrall", "Thrall"),
        ("THRALL", "Thrall"),
        ("area 52", "Area 52"),
        ("  area   52 ", "Area 52"),
        ("zul-jin", "Zul-Jin"),
    ],
)
def test_normalize_display_name(raw, expected):
    assert normalize_display_name(raw) == expected


def test_region_lowercased():
    assert CharacterRef(name="Thrall", realm="Area 52", region="EU").region == "eu"


def test_unknown_region_rejected():
    with pytest.raises(ValidationError):
        CharacterRef(name="Thrall", realm="Area 52", region="xx")


@pytest.mark.parametrize("field", ["name", "realm"])
def test_blank_names_rejected(field):
    kwargs = {"name": "Thrall", "realm": "Area 52", field: "   "}
    with pytest.raises(ValidationError):
        CharacterRef(**kwargs)


def test_frozen(sample_character):
    with pytest.raises(ValidationError):
        sample_character.name = "Jaina"


def test_label(sample_character):
    assert sample_character.label == "Thrall-Area 52"
