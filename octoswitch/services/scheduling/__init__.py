"""
Schedule Engine
===============

Resolution (merge + conflict detection) and per-minute execution of
time-slot schedules.
"""

from .conflict_detector import detect_conflicts
from .schedule_executor import ExecutionResult, ScheduleExecutor, SlotEvent, TickReport, collect_slot_events
from .schedule_resolver import (
    ScheduleResolver,
    build_day_preview,
    effective_action_at,
    ending_slot_at,
    slot_ends_at,
    slot_starts_at,
)
from .slot_merger import merge_adjacent_slots

__all__ = [
    "ExecutionResult",
    "ScheduleExecutor",
    "ScheduleResolver",
    "SlotEvent",
    "TickReport",
    "build_day_preview",
    "collect_slot_events",
    "detect_conflicts",
    "effective_action_at",
    "ending_slot_at",
    "merge_adjacent_slots",
    "slot_ends_at",
    "slot_starts_at",
]
