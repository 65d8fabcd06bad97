"""
Device-related Enumerations
===========================

Actions and connection states shared by the resolver, the executor and the
device collaborators.
"""

from enum import Enum


class DeviceAction(str, Enum):
    """Action applied to a device when a slot fires."""

    ON = "on"
    OFF = "off"
    TOGGLE = "toggle"

    def __str__(self):
        return self.value


# Merge order and same-minute application order
ACTION_ORDER: tuple[DeviceAction, ...] = (DeviceAction.ON, DeviceAction.OFF, DeviceAction.TOGGLE)


class DeviceStatus(str, Enum):
    """Connection status recorded in the device directory."""

    ONLINE = "online"
    OFFLINE = "offline"
    UNKNOWN = "unknown"

    def __str__(self):
        return self.value


class DeviceType(str, Enum):
    """Kinds of switchable devices."""

    SWITCH = "switch"
    PLUG = "plug"
    LIGHT = "light"
    HEATER = "heater"
    THERMOSTAT = "thermostat"
    HOT_WATER = "hot_water"

    def __str__(self):
        return self.value
