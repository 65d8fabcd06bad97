"""
Schedule-related Enumerations
=============================

This module contains all enums related to user schedules and their
configuration variants.
"""

from enum import Enum


class ScheduleConfigType(str, Enum):
    """Discriminant of a schedule configuration.

    - TIME_SLOTS: Explicit HH:MM windows (the only type executed by the engine)
    - PRICE_THRESHOLD: Run while the unit price is below a threshold
    - CHEAPEST_HOURS: Run during the cheapest N hours of a window
    - TIME_RANGE: Weekday-aware time ranges
    """

    TIME_SLOTS = "time_slots"
    PRICE_THRESHOLD = "price_threshold"
    CHEAPEST_HOURS = "cheapest_hours"
    TIME_RANGE = "time_range"

    def __str__(self):
        return self.value


class ScheduleRepeat(str, Enum):
    """Repeat mode for time-slot schedules."""

    ONCE = "once"
    DAILY = "daily"

    def __str__(self):
        return self.value


class SlotEventType(str, Enum):
    """Boundary of an effective slot that triggers an actuation."""

    START = "start"
    END = "end"

    def __str__(self):
        return self.value
