"""
Schedule Domain Module
======================

This module provides:
- Schedule and its configuration variants
- ScheduleLog execution records
- Effective (merged) schedule models produced by the resolver
- ScheduleStore: Protocol for schedule persistence
"""
from octoswitch.domain.schedules.effective import (
    ConflictingAction,
    EffectiveDeviceSchedule,
    EffectiveSlot,
    RawWindow,
    ResolutionResult,
    ScheduleConflict,
    SchedulePreviewEvent,
    SourceSchedule,
)
from octoswitch.domain.schedules.repository import ScheduleLogPruner, ScheduleStore
from octoswitch.domain.schedules.schedule_entity import (
    CheapestHoursConfig,
    PriceThresholdConfig,
    Schedule,
    ScheduleConfig,
    ScheduleLog,
    TimeRange,
    TimeRangeConfig,
    TimeSlot,
    TimeSlotsConfig,
)

__all__ = [
    "CheapestHoursConfig",
    "ConflictingAction",
    "EffectiveDeviceSchedule",
    "EffectiveSlot",
    "PriceThresholdConfig",
    "RawWindow",
    "ResolutionResult",
    "Schedule",
    "ScheduleConfig",
    "ScheduleConflict",
    "ScheduleLog",
    "ScheduleLogPruner",
    "SchedulePreviewEvent",
    "ScheduleStore",
    "SourceSchedule",
    "TimeRange",
    "TimeRangeConfig",
    "TimeSlot",
    "TimeSlotsConfig",
]
