"""
Tracked character — the roster entry the ingestion pipeline iterates over.

``CharacterRef`` is frozen: the pipeline references characters, it never
mutates them. Names and realms are stored in display case (``"Thrall"``,
``"Area 52"``); the Blizzard client derives URL slugs itself.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator

from wow_stats.config import VALID_REGIONS


def normalize_display_name(value: str) -> str:
    """Title-case each whitespace- or hyphen-separated word.

    ``"area-52"`` → ``"Area-52"``, ``"THRALL"`` → ``"Thrall"``.
    """
    words = value.strip().split()
    return " ".join(
        "-".join(part[:1].upper() + part[1:].lower() for part in word.split("-"))
        for word in words
    )


class CharacterRef(BaseModel):
    """A tracked character.

    Attributes:
        character_id: Auto-assigned DB PK; ``None`` before insertion.
        name: Character name in display case.
        realm: Realm name in display case.
        region: Battle.net region (``"us"``, ``"eu"``, ``"kr"``, ``"tw"``).
        race_id: Blizzard playable race ID, if known.
        class_id: Blizzard playable class ID, if known.
        gender: Blizzard gender code, if known.
    """

    model_config = ConfigDict(frozen=True)

    character_id: Optional[int] = None
    name: str
    realm: str
    region: str = "us"
    race_id: Optional[int] = None
    class_id: Optional[int] = None
    gender: Optional[int] = None

    @field_validator("name", "realm")
    @classmethod
    def validate_non_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("name and realm must be non-empty.")
        return v.strip()

    @field_validator("region")
    @classmethod
    def validate_region(cls, v: str) -> str:
        v = v.strip().lower()
        if v not in VALID_REGIONS:
            raise ValueError(f"Unknown region '{v}'. Must be one of {sorted(VALID_REGIONS)}.")
        return v

    @property
    def label(self) -> str:
        """``Name-Realm`` — used in logs, archive paths and reports."""
        return f"{self.name}-{self.realm}"
