"""
Mock Device Actuator
====================

In-memory DeviceActuator for development and tests. Keeps a power map,
resolves ``toggle`` against it and can be told to fail for chosen devices.
"""

from __future__ import annotations

import logging
import threading

from octoswitch.domain.devices import DeviceState
from octoswitch.domain.exceptions import ActuationError
from octoswitch.enums import DeviceAction

logger = logging.getLogger(__name__)


class MockDeviceActuator:
    """
    Simulated device switching.

    Attributes:
        calls: Every (device_id, action) received, in order, including failures
    """

    def __init__(self, initial_power: dict[str, bool] | None = None):
        self._lock = threading.Lock()
        self._power: dict[str, bool] = dict(initial_power or {})
        self._failures: dict[str, str] = {}
        self.calls: list[tuple[str, DeviceAction]] = []

    def fail_device(self, device_id: str, message: str = "Device unreachable") -> None:
        """Make every following actuation of ``device_id`` raise ActuationError."""
        with self._lock:
            self._failures[device_id] = message

    def recover_device(self, device_id: str) -> None:
        with self._lock:
            self._failures.pop(device_id, None)

    def power_of(self, device_id: str) -> bool | None:
        with self._lock:
            return self._power.get(device_id)

    def actuate(self, device_id: str, action: DeviceAction) -> DeviceState:
        """
        Apply ``action`` to the simulated device.

        Raises:
            ActuationError: If the device was marked as failing
        """
        action = DeviceAction(action)
        with self._lock:
            self.calls.append((device_id, action))

            message = self._failures.get(device_id)
            if message is not None:
                raise ActuationError(message, device_id=device_id, detail={"action": action.value})

            if action == DeviceAction.TOGGLE:
                power = not self._power.get(device_id, False)
            else:
                power = action == DeviceAction.ON
            self._power[device_id] = power

        logger.debug("Mock device %s -> %s (power=%s)", device_id, action, power)
        return DeviceState(power=power)
