"""
Infrastructure Module
=====================

Reference implementations of the engine's collaborator protocols.
"""

from octoswitch.infrastructure.memory import InMemoryDeviceDirectory, InMemoryScheduleStore
from octoswitch.infrastructure.mock_actuator import MockDeviceActuator

__all__ = ["InMemoryDeviceDirectory", "InMemoryScheduleStore", "MockDeviceActuator"]
