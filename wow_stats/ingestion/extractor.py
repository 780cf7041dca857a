"""
Counter extraction — raw character document → ``CounterRecord``.

The Blizzard character document nests most tracked counters inside
category / sub-category arrays identified by numeric ids, e.g. "Exalted
reputations" lives at::

    statistics → subCategories (id 130) → subCategories (id 147)
               → statistics (id 377) → quantity

so extraction is address-based lookup, not attribute access. Every tracked
counter is declared as a path expression in ``COUNTER_PATHS`` and evaluated by
one generic traversal, ``resolve_path()``. Tracking a new counter is a new
table entry (plus a ``CounterRecord`` field), never new traversal code.

Path syntax — dot-separated steps, each either:

  ``key``                  descend into mapping key ``key``
  ``key[field=value]``     descend into array ``key`` and select the first
                           element whose ``field`` equals ``value``

Extraction is total: any step that cannot be resolved (missing key, wrong
type, no matching element) yields ``0`` for that counter. ``extract()`` never
raises.
"""

from __future__ import annotations

import json
import logging
import math
import re
from datetime import datetime
from typing import Any, NamedTuple, Optional

from wow_stats.models.stats import CounterRecord
from wow_stats.utils.time_utils import localnow

logger = logging.getLogger(__name__)

# ── Tracked counters ──────────────────────────────────────────────────────────
# counter name (CounterRecord field) → path into the character document

COUNTER_PATHS: dict[str, str] = {
    "level":               "level",
    "achievement_points":  "achievementPoints",
    "exalted_reps":        "statistics.subCategories[id=130].subCategories[id=147].statistics[id=377].quantity",
    "mounts_collected":    "mounts.numCollected",
    "quests_completed":    "statistics.subCategories[id=133].statistics[id=98].quantity",
    "fish_caught":         "statistics.subCategories[id=132].subCategories[id=178].statistics[id=1518].quantity",
    "pets_collected":      "pets.numCollected",
    "pet_battles_won":     "statistics.subCategories[id=15219].statistics[id=8278].quantity",
    "pet_battles_pvp_won": "statistics.subCategories[id=15219].statistics[id=8286].quantity",
    "item_level":          "items.averageItemLevel",
    "honorable_kills":     "totalHonorableKills",
    "last_modified":       "lastModified",
}

# Largest value a SQLite INTEGER column holds
MAX_COUNTER = 2**63 - 1


# ── Path parsing ──────────────────────────────────────────────────────────────


class PathStep(NamedTuple):
    """One step of a compiled path.

    ``match_field`` is ``None`` for plain key steps.
    """

    key: str
    match_field: Optional[str] = None
    match_value: Any = None


_STEP_RE = re.compile(
    r"^(?P<key>[A-Za-z_][A-Za-z0-9_]*)"
    r"(?:\[(?P<field>[A-Za-z_][A-Za-z0-9_]*)=(?P<value>[^\]]+)\])?$"
)

_MISSING = object()


def parse_path(expression: str) -> tuple[PathStep, ...]:
    """Compile a path expression into steps.

    Args:
        expression: e.g. ``"statistics.subCategories[id=130].quantity"``.

    Returns:
        Tuple of :class:`PathStep`.

    Raises:
        ValueError: If any step is malformed.
    """
    steps: list[PathStep] = []
    for raw_step in expression.split("."):
        m = _STEP_RE.match(raw_step.strip())
        if m is None:
            raise ValueError(f"Malformed path step '{raw_step}' in '{expression}'.")
        if m.group("field") is None:
            steps.append(PathStep(key=m.group("key")))
        else:
            steps.append(
                PathStep(
                    key=m.group("key"),
                    match_field=m.group("field"),
                    match_value=_parse_literal(m.group("value")),
                )
            )
    return tuple(steps)


def _parse_literal(text: str) -> Any:
    """Numeric literals become ints; anything else stays a stripped string."""
    text = text.strip()
    try:
        return int(text)
    except ValueError:
        return text.strip("\"'")


# ── Traversal ─────────────────────────────────────────────────────────────────


def _values_equal(candidate: Any, expected: Any) -> bool:
    if isinstance(candidate, bool):
        return False
    if isinstance(expected, int) and isinstance(candidate, (int, float)):
        return candidate == expected
    return str(candidate) == str(expected)


def find_element(items: Any, field: str, value: Any) -> Any:
    """Return the first mapping in ``items`` whose ``field`` equals ``value``.

    Returns the module's missing sentinel when ``items`` is not a list or no
    element matches. Non-mapping elements are skipped.
    """
    if not isinstance(items, list):
        return _MISSING
    for element in items:
        if isinstance(element, dict) and field in element and _values_equal(element[field], value):
            return element
    return _MISSING


def resolve_path(document: Any, steps: tuple[PathStep, ...]) -> Any:
    """Walk ``steps`` from ``document`` and return the value found.

    Returns ``None`` when any step cannot be resolved.
    """
    node = document
    for step in steps:
        if not isinstance(node, dict) or step.key not in node:
            return None
        node = node[step.key]
        if step.match_field is not None:
            node = find_element(node, step.match_field, step.match_value)
            if node is _MISSING:
                return None
    return node


def to_counter(value: Any) -> int:
    """Coerce a resolved leaf into a non-negative integer counter.

    ints are kept, floats truncated, booleans become 0/1, numeric strings
    are parsed; everything else (including ``None``, NaN and infinities)
    becomes ``0``. Results clamp to ``[0, MAX_COUNTER]``.
    """
    if isinstance(value, bool):
        result = int(value)
    elif isinstance(value, int):
        result = value
    elif isinstance(value, float):
        result = int(value) if math.isfinite(value) else 0
    elif isinstance(value, str):
        try:
            parsed = float(value.strip())
        except ValueError:
            return 0
        result = int(parsed) if math.isfinite(parsed) else 0
    else:
        return 0
    return min(max(result, 0), MAX_COUNTER)


_COMPILED_PATHS: dict[str, tuple[PathStep, ...]] = {
    name: parse_path(expr) for name, expr in COUNTER_PATHS.items()
}


# ── Public entry point ────────────────────────────────────────────────────────


def extract(raw: Any, now: Optional[datetime] = None) -> CounterRecord:
    """Extract the tracked counters from one raw character document.

    Args:
        raw: The decoded provider document (a dict). JSON text is decoded
            first; undecodable or non-mapping input yields an all-zero record.
        now: Capture time override; defaults to the current local time.

    Returns:
        A frozen :class:`CounterRecord` with ``character_id`` unset.
    """
    document = raw
    if isinstance(raw, (str, bytes, bytearray)):
        try:
            document = json.loads(raw)
        except ValueError:
            logger.debug("extract: raw document is not valid JSON; all counters zero")
            document = {}

    values = {
        name: to_counter(resolve_path(document, steps))
        for name, steps in _COMPILED_PATHS.items()
    }
    return CounterRecord(captured_at=now or localnow(), **values)
