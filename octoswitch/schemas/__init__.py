"""
Schemas Module
==============

Pydantic models for validating schedule payloads handed over by the schedule
store.
"""

from octoswitch.schemas.schedule import (
    CheapestHoursConfigSchema,
    PriceThresholdConfigSchema,
    ScheduleConfigSchema,
    TimeRangeConfigSchema,
    TimeSlotSchema,
    TimeSlotsConfigSchema,
    parse_schedule_config,
)

__all__ = [
    "CheapestHoursConfigSchema",
    "PriceThresholdConfigSchema",
    "ScheduleConfigSchema",
    "TimeRangeConfigSchema",
    "TimeSlotSchema",
    "TimeSlotsConfigSchema",
    "parse_schedule_config",
]
