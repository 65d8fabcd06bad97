"""
Device collaborator protocols (structural typing interfaces).

The engine only needs a name lookup, a status sink and a way to switch a
device. Vendor clients and device persistence satisfy these protocols via
structural subtyping; no explicit inheritance needed.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from octoswitch.enums import DeviceAction, DeviceStatus


@dataclass(frozen=True)
class DeviceState:
    """Power state reported by a device after an action."""

    power: bool


@runtime_checkable
class DeviceDirectory(Protocol):
    """Name and status registry for devices."""

    def get_name(self, device_id: str) -> str | None:
        """Return the display name, or ``None`` if the device is unknown."""
        ...

    def set_status(self, device_id: str, status: DeviceStatus) -> None:
        """Record the device's connection status."""
        ...


@runtime_checkable
class DeviceActuator(Protocol):
    """Performs actions on physical devices."""

    def actuate(self, device_id: str, action: DeviceAction) -> DeviceState:
        """Apply ``action`` and return the resulting state.

        For ``toggle`` the actuator reads the current state and inverts it.

        Raises:
            ActuationError: If the device could not be switched.
        """
        ...
