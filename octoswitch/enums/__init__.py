"""
Enums Module
============

This module provides enumeration types for OctoSwitch.
Enums ensure type safety and consistency across the codebase.
"""

from octoswitch.enums.device import ACTION_ORDER, DeviceAction, DeviceStatus, DeviceType
from octoswitch.enums.schedule import ScheduleConfigType, ScheduleRepeat, SlotEventType

__all__ = [
    "ACTION_ORDER",
    "DeviceAction",
    "DeviceStatus",
    "DeviceType",
    "ScheduleConfigType",
    "ScheduleRepeat",
    "SlotEventType",
]
