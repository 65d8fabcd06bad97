"""
Effective Schedule Models
=========================

Ephemeral results of one resolution pass. They are rebuilt from scratch on
every tick and never persisted.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from octoswitch.domain.schedules.schedule_entity import TimeSlot
from octoswitch.enums import DeviceAction, SlotEventType


@dataclass(frozen=True)
class RawWindow:
    """One schedule's contribution of one slot to one device."""

    start: str
    end: str
    action: DeviceAction
    schedule_id: str
    schedule_name: str


@dataclass(frozen=True)
class SourceSchedule:
    id: str
    name: str

    def to_dict(self) -> dict[str, str]:
        return {"id": self.id, "name": self.name}


@dataclass
class EffectiveSlot:
    """Merged window for one device.

    Attributes:
        start: Slot start (HH:MM)
        end: Slot end (HH:MM), "00:00" meaning end of day
        action: Action applied at ``start``
        source_schedules: Contributing schedules, unique by id
    """

    start: str
    end: str
    action: DeviceAction
    source_schedules: list[SourceSchedule] = field(default_factory=list)

    @property
    def schedule_ids(self) -> list[str]:
        return [source.id for source in self.source_schedules]

    @property
    def schedule_names(self) -> list[str]:
        return [source.name for source in self.source_schedules]

    def add_source(self, schedule_id: str, schedule_name: str) -> None:
        """Add a contributing schedule unless it is already listed."""
        if any(source.id == schedule_id for source in self.source_schedules):
            return
        self.source_schedules.append(SourceSchedule(id=schedule_id, name=schedule_name))

    def to_dict(self) -> dict[str, Any]:
        return {
            "start": self.start,
            "end": self.end,
            "action": self.action.value,
            "source_schedules": [source.to_dict() for source in self.source_schedules],
        }


@dataclass
class EffectiveDeviceSchedule:
    device_id: str
    device_name: str
    slots: list[EffectiveSlot] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "device_id": self.device_id,
            "device_name": self.device_name,
            "slots": [slot.to_dict() for slot in self.slots],
        }


@dataclass(frozen=True)
class ConflictingAction:
    schedule_id: str
    schedule_name: str
    action: DeviceAction

    def to_dict(self) -> dict[str, str]:
        return {"schedule_id": self.schedule_id, "schedule_name": self.schedule_name, "action": self.action.value}


@dataclass
class ScheduleConflict:
    """Two or more schedules disagree on the action for a device over ``time_slot``.

    Conflicts are informational only; execution still proceeds.
    """

    device_id: str
    device_name: str
    time_slot: TimeSlot
    conflicting_actions: list[ConflictingAction] = field(default_factory=list)

    @property
    def schedule_ids(self) -> list[str]:
        return [entry.schedule_id for entry in self.conflicting_actions]

    def add_action(self, window: RawWindow) -> None:
        """Record the window's schedule unless it is already listed."""
        if window.schedule_id in self.schedule_ids:
            return
        self.conflicting_actions.append(
            ConflictingAction(
                schedule_id=window.schedule_id,
                schedule_name=window.schedule_name,
                action=window.action,
            )
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "device_id": self.device_id,
            "device_name": self.device_name,
            "time_slot": self.time_slot.to_dict(),
            "conflicting_actions": [entry.to_dict() for entry in self.conflicting_actions],
        }


@dataclass
class ResolutionResult:
    effective_schedules: list[EffectiveDeviceSchedule] = field(default_factory=list)
    conflicts: list[ScheduleConflict] = field(default_factory=list)

    def for_device(self, device_id: str) -> EffectiveDeviceSchedule | None:
        for device_schedule in self.effective_schedules:
            if device_schedule.device_id == device_id:
                return device_schedule
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "effective_schedules": [entry.to_dict() for entry in self.effective_schedules],
            "conflicts": [conflict.to_dict() for conflict in self.conflicts],
        }


@dataclass(frozen=True)
class SchedulePreviewEvent:
    """A point in the day where a device's effective timeline changes."""

    device_id: str
    device_name: str
    time: str
    event_type: SlotEventType
    action: DeviceAction
    schedule_ids: tuple[str, ...]

    def to_dict(self) -> dict[str, Any]:
        return {
            "device_id": self.device_id,
            "device_name": self.device_name,
            "time": self.time,
            "event_type": self.event_type.value,
            "action": self.action.value,
            "schedule_ids": list(self.schedule_ids),
        }
