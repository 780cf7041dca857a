"""
Time and date helpers shared by extraction, storage and reporting.

Capture times keep the offset of the clock that produced them, and a
snapshot's capture day is the wall-clock date at that offset. The default
clock is the machine's local time, so two runs on the same local evening
share one capture day. The Blizzard ``lastModified`` field is epoch
**milliseconds** and is always rendered in UTC.
"""

from __future__ import annotations

from datetime import date, datetime, timezone

LAST_MODIFIED_FORMAT = "%Y-%m-%d %H:%M:%S"


def utcnow() -> datetime:
    """Return the current UTC datetime with timezone info.

    Prefer this over ``datetime.utcnow()`` (which returns naive datetimes).
    """
    return datetime.now(tz=timezone.utc)


def localnow() -> datetime:
    """Return the current local time as an aware datetime."""
    return datetime.now().astimezone()


def to_aware(dt: datetime) -> datetime:
    """Attach the local offset to a naive ``dt``; aware values are unchanged."""
    if dt.tzinfo is None:
        return dt.astimezone()
    return dt


def capture_day_of(dt: datetime) -> date:
    """Return the wall-clock date of ``dt`` at its own offset.

    Naive values are read as local time. This date is a snapshot's
    uniqueness key in the store and part of its archive file name.
    """
    return to_aware(dt).date()


def epoch_ms_to_datetime(epoch_ms: int) -> datetime:
    """Convert provider epoch milliseconds to an aware UTC datetime.

    Sub-second precision is dropped.
    """
    return datetime.fromtimestamp(epoch_ms // 1000, tz=timezone.utc)


def format_last_modified(epoch_ms: int) -> str:
    """Format provider epoch milliseconds as ``YYYY-MM-DD HH:MM:SS`` (UTC).

    Returns an empty string for a zero (unknown) timestamp.
    """
    if epoch_ms <= 0:
        return ""
    return epoch_ms_to_datetime(epoch_ms).strftime(LAST_MODIFIED_FORMAT)
