"""
Counter record — the fixed-schema result of extracting one character document.

All counters are non-negative integers that default to ``0``: a counter missing
from the provider document means "not yet earned", not "unknown". The record
is frozen once built; the store persists it as an immutable row.

``captured_at`` is the full-precision extraction time, keeping the offset of
the clock that produced it; ``capture_day`` is its wall-clock date at that
offset and is the uniqueness key in the store.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator

from wow_stats.utils.time_utils import capture_day_of, format_last_modified, to_aware

# Column order used by the store and the reporting layer.
COUNTER_FIELDS: tuple[str, ...] = (
    "level",
    "achievement_points",
    "exalted_reps",
    "mounts_collected",
    "quests_completed",
    "fish_caught",
    "pets_collected",
    "pet_battles_won",
    "pet_battles_pvp_won",
    "item_level",
    "honorable_kills",
)


class CounterRecord(BaseModel):
    """Extracted game-progress counters for one character at one instant.

    Attributes:
        stat_id: Auto-assigned DB PK; ``None`` before insertion.
        character_id: FK to ``characters.character_id``; ``None`` until the
            record is bound to a roster entry by the store.
        level: Character level.
        achievement_points: Total achievement points.
        exalted_reps: Number of reputations at Exalted.
        mounts_collected: Mounts collected.
        quests_completed: Quests completed.
        fish_caught: Fish caught.
        pets_collected: Battle pets collected.
        pet_battles_won: Pet battles won.
        pet_battles_pvp_won: PvP pet battles won.
        item_level: Average equipped item level (truncated).
        honorable_kills: Lifetime honorable kills.
        last_modified: Provider-reported last-modified time, epoch ms.
        captured_at: Aware time the document was extracted (naive values are
            read as local time).
    """

    model_config = ConfigDict(frozen=True)

    stat_id: Optional[int] = None
    character_id: Optional[int] = None
    level: int = 0
    achievement_points: int = 0
    exalted_reps: int = 0
    mounts_collected: int = 0
    quests_completed: int = 0
    fish_caught: int = 0
    pets_collected: int = 0
    pet_battles_won: int = 0
    pet_battles_pvp_won: int = 0
    item_level: int = 0
    honorable_kills: int = 0
    last_modified: int = 0
    captured_at: datetime

    @field_validator(*COUNTER_FIELDS, "last_modified")
    @classmethod
    def validate_non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("Counters must be non-negative.")
        return v

    @field_validator("captured_at")
    @classmethod
    def validate_captured_at(cls, v: datetime) -> datetime:
        return to_aware(v)

    @property
    def capture_day(self) -> date:
        """Wall-clock date of ``captured_at`` at its own offset."""
        return capture_day_of(self.captured_at)

    @property
    def last_modified_display(self) -> str:
        """``last_modified`` as ``YYYY-MM-DD HH:MM:SS`` UTC (empty if unknown)."""
        return format_last_modified(self.last_modified)

    def counters(self) -> dict[str, int]:
        """Return the counter fields as an ordered name → value dict."""
        return {name: getattr(self, name) for name in COUNTER_FIELDS}
