"""
Time-of-day arithmetic
======================

Pure helpers for "HH:MM" windows expressed as minutes since midnight.

A window is ``[start, end)``. When ``end <= start`` the window wraps past
midnight (e.g. 23:00-00:30), except for adjacency checks which compare the
raw boundaries.
"""

from __future__ import annotations

import datetime
import logging
from zoneinfo import ZoneInfo

logger = logging.getLogger(__name__)

MINUTES_PER_DAY = 24 * 60


def time_to_minutes(time_str: str) -> int:
    """Convert HH:MM to minutes since midnight.

    Raises:
        ValueError: If ``time_str`` is not a valid 24-hour HH:MM string.
    """
    parts = time_str.split(":")
    if len(parts) != 2:
        raise ValueError(f"time must be in HH:MM format: {time_str!r}")
    hours, minutes = int(parts[0]), int(parts[1])
    if not (0 <= hours <= 23 and 0 <= minutes <= 59):
        raise ValueError(f"time out of range: {time_str!r}")
    return hours * 60 + minutes


def minutes_to_time(minutes: int) -> str:
    """Convert minutes since midnight to HH:MM, wrapping negatives and overflow."""
    normalized = minutes % MINUTES_PER_DAY
    return f"{normalized // 60:02d}:{normalized % 60:02d}"


def span_end_minutes(start: str, end: str) -> int:
    """Return the end of ``[start, end)`` in minutes, past 1440 when it wraps."""
    start_minutes = time_to_minutes(start)
    end_minutes = time_to_minutes(end)
    if end_minutes <= start_minutes:
        end_minutes += MINUTES_PER_DAY
    return end_minutes


def end_minutes(end: str) -> int:
    """Minute at which a slot ends; "00:00" means end of day (1440)."""
    minutes = time_to_minutes(end)
    return MINUTES_PER_DAY if minutes == 0 else minutes


def overlap_range(start1: str, end1: str, start2: str, end2: str) -> tuple[int, int] | None:
    """Return the shared minutes of two windows, or None when they do not overlap.

    Both windows are unwrapped first; the second is also tried one day earlier
    and later so a window crossing midnight meets one that starts after it.
    The returned bounds may lie outside ``[0, 1440)``.
    """
    first_start, first_end = time_to_minutes(start1), span_end_minutes(start1, end1)
    second_start, second_end = time_to_minutes(start2), span_end_minutes(start2, end2)
    for shift in (0, -MINUTES_PER_DAY, MINUTES_PER_DAY):
        start = max(first_start, second_start + shift)
        end = min(first_end, second_end + shift)
        if start < end:
            return start, end
    return None


def slots_overlap(start1: str, end1: str, start2: str, end2: str) -> bool:
    """Check if two windows overlap, handling midnight wraparound."""
    return overlap_range(start1, end1, start2, end2) is not None


def slots_adjacent(end1: str, start2: str) -> bool:
    """Check if the second window starts exactly where the first one ends."""
    return time_to_minutes(end1) == time_to_minutes(start2)


def minute_of_day(moment: datetime.datetime | datetime.time) -> int:
    return moment.hour * 60 + moment.minute


def resolve_timezone(timezone: str | None) -> ZoneInfo | None:
    """Return a ZoneInfo for ``timezone`` or None (host local time)."""
    if not timezone:
        return None
    try:
        return ZoneInfo(timezone)
    except Exception:
        logger.warning("Invalid timezone '%s', falling back to local time", timezone)
        return None


def civil_now(timezone: str | None = None) -> datetime.datetime:
    """Current wall-clock time in the civil timezone."""
    tz = resolve_timezone(timezone)
    return datetime.datetime.now(tz) if tz else datetime.datetime.now()


def civil_today(timezone: str | None = None) -> datetime.date:
    """Current civil date in the given timezone."""
    return civil_now(timezone).date()
