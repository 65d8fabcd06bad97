"""
Conflict Detector
=================

Finds overlapping windows on one device whose actions differ and folds them
into one conflict record per distinct overlapping time range.
"""

from __future__ import annotations

import logging
from itertools import combinations
from typing import Sequence

from octoswitch.domain.schedules import RawWindow, ScheduleConflict, TimeSlot
from octoswitch.utils.time import minutes_to_time, overlap_range

logger = logging.getLogger(__name__)


def _overlap_slot(first: RawWindow, second: RawWindow) -> TimeSlot | None:
    """Intersection of two windows as an HH:MM slot, or None."""
    shared = overlap_range(first.start, first.end, second.start, second.end)
    if shared is None:
        return None
    return TimeSlot(start=minutes_to_time(shared[0]), end=minutes_to_time(shared[1]))


def detect_conflicts(
    windows: Sequence[RawWindow],
    device_id: str,
    device_name: str,
) -> list[ScheduleConflict]:
    """
    Detect windows with different actions at overlapping times.

    Every unordered pair is compared, which is fine for the tens of windows a
    device realistically carries.

    Args:
        windows: All raw windows for one device
        device_id: Device the windows belong to
        device_name: Display name for the device

    Returns:
        One conflict per distinct overlapping time range
    """
    conflicts: list[ScheduleConflict] = []
    by_range: dict[TimeSlot, ScheduleConflict] = {}

    for first, second in combinations(windows, 2):
        if first.action == second.action:
            continue
        time_slot = _overlap_slot(first, second)
        if time_slot is None:
            continue

        conflict = by_range.get(time_slot)
        if conflict is None:
            conflict = ScheduleConflict(device_id=device_id, device_name=device_name, time_slot=time_slot)
            by_range[time_slot] = conflict
            conflicts.append(conflict)

        conflict.add_action(first)
        conflict.add_action(second)

    if conflicts:
        logger.debug("Detected %d conflict(s) for device %s", len(conflicts), device_id)
    return conflicts
