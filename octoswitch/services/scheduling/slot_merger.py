"""
Slot Merger
===========

Merges one device's same-action windows into effective slots.

Two windows merge only when the second starts exactly where the first ends.
Overlapping windows stay separate: overlap is a coverage concern, adjacency a
continuity concern. Windows sharing a start are folded together so a device
never gets two slots with the same ``(start, action)``.
"""

from __future__ import annotations

import logging
from typing import Iterable

from octoswitch.domain.schedules import EffectiveSlot, RawWindow, SourceSchedule
from octoswitch.utils.time import slots_adjacent, span_end_minutes, time_to_minutes

logger = logging.getLogger(__name__)


def _start_slot(window: RawWindow) -> EffectiveSlot:
    return EffectiveSlot(
        start=window.start,
        end=window.end,
        action=window.action,
        source_schedules=[SourceSchedule(id=window.schedule_id, name=window.schedule_name)],
    )


def merge_adjacent_slots(windows: Iterable[RawWindow]) -> list[EffectiveSlot]:
    """
    Merge adjacent windows of a single action into effective slots.

    Args:
        windows: Raw windows for one device, all with the same action

    Returns:
        Effective slots in start order
    """
    ordered = sorted(windows, key=lambda w: time_to_minutes(w.start))
    if not ordered:
        return []

    merged: list[EffectiveSlot] = []
    current = _start_slot(ordered[0])

    for window in ordered[1:]:
        if window.action != current.action:
            logger.debug("Window %s-%s has a different action, not merging", window.start, window.end)
            merged.append(current)
            current = _start_slot(window)
            continue

        if slots_adjacent(current.end, window.start):
            current.end = window.end
            current.add_source(window.schedule_id, window.schedule_name)
            continue

        if time_to_minutes(window.start) == time_to_minutes(current.start):
            if span_end_minutes(window.start, window.end) > span_end_minutes(current.start, current.end):
                current.end = window.end
            current.add_source(window.schedule_id, window.schedule_name)
            continue

        merged.append(current)
        current = _start_slot(window)

    merged.append(current)
    return merged
