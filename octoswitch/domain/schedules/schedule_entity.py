"""
Schedule Domain Entity
======================

User-authored automation rules and their configuration variants:
- Schedule: targets one or more devices, enabled/disabled without deletion
- ScheduleConfig: closed tagged union keyed by ``type``
- ScheduleLog: append-only record of one actuation attempt

Only ``TimeSlotsConfig`` is resolved and executed by the engine; the other
variants are carried so that stored schedules round-trip untouched.
"""

from __future__ import annotations

import datetime
import logging
from dataclasses import dataclass, field
from typing import Any, ClassVar, Union

from octoswitch.enums import DeviceAction, ScheduleConfigType, ScheduleRepeat

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TimeSlot:
    """A ``[start, end)`` window in HH:MM, possibly wrapping past midnight."""

    start: str
    end: str

    def to_dict(self) -> dict[str, str]:
        return {"start": self.start, "end": self.end}


@dataclass
class TimeSlotsConfig:
    """Explicit time windows with a single action.

    Attributes:
        slots: Selected windows (non-empty)
        action: Action applied when a window starts
        repeat: ``daily`` or ``once``
        date: Civil date a ``once`` schedule applies to
    """

    type: ClassVar[ScheduleConfigType] = ScheduleConfigType.TIME_SLOTS

    slots: list[TimeSlot]
    action: DeviceAction = DeviceAction.ON
    repeat: ScheduleRepeat = ScheduleRepeat.DAILY
    date: datetime.date | None = None

    def __post_init__(self):
        if isinstance(self.action, str):
            self.action = DeviceAction(self.action)
        if isinstance(self.repeat, str):
            self.repeat = ScheduleRepeat(self.repeat)

    @property
    def is_once(self) -> bool:
        return self.repeat == ScheduleRepeat.ONCE

    def applies_on(self, day: datetime.date) -> bool:
        """Daily configs always apply; ``once`` configs only on their date."""
        if not self.is_once:
            return True
        return self.date == day

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type.value,
            "slots": [slot.to_dict() for slot in self.slots],
            "action": self.action.value,
            "repeat": self.repeat.value,
            "date": self.date.isoformat() if self.date else None,
        }


@dataclass
class PriceThresholdConfig:
    """Run while the unit price is at or below ``max_price`` (p/kWh)."""

    type: ClassVar[ScheduleConfigType] = ScheduleConfigType.PRICE_THRESHOLD

    max_price: float
    min_runtime: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type.value, "max_price": self.max_price, "min_runtime": self.min_runtime}


@dataclass
class CheapestHoursConfig:
    """Run during the cheapest ``hours`` between ``window_start`` and ``window_end``."""

    type: ClassVar[ScheduleConfigType] = ScheduleConfigType.CHEAPEST_HOURS

    hours: float
    window_start: str
    window_end: str
    consecutive: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type.value,
            "hours": self.hours,
            "window_start": self.window_start,
            "window_end": self.window_end,
            "consecutive": self.consecutive,
        }


@dataclass(frozen=True)
class TimeRange:
    start: str
    end: str
    days: tuple[int, ...] = ()  # 0-6 (Sun-Sat), empty = every day

    def to_dict(self) -> dict[str, Any]:
        return {"start": self.start, "end": self.end, "days": list(self.days)}


@dataclass
class TimeRangeConfig:
    type: ClassVar[ScheduleConfigType] = ScheduleConfigType.TIME_RANGE

    ranges: list[TimeRange]

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type.value, "ranges": [r.to_dict() for r in self.ranges]}


ScheduleConfig = Union[TimeSlotsConfig, PriceThresholdConfig, CheapestHoursConfig, TimeRangeConfig]


def _coerce_datetime(value: Any) -> datetime.datetime:
    if isinstance(value, datetime.datetime):
        return value
    if isinstance(value, str):
        return datetime.datetime.fromisoformat(value.replace("Z", "+00:00"))
    return datetime.datetime.now()


@dataclass
class Schedule:
    """
    User-defined automation rule for one or more devices.

    Attributes:
        schedule_id: Opaque unique identifier
        device_ids: Ordered, non-empty list of target device identifiers
        name: Human-readable schedule name
        enabled: Whether the schedule takes part in resolution
        config: Configuration variant, or None if the stored payload was invalid
        created_at: Creation timestamp
        updated_at: Last update timestamp
    """

    schedule_id: str
    device_ids: list[str]
    name: str = ""
    enabled: bool = True
    config: ScheduleConfig | None = None
    created_at: datetime.datetime = field(default_factory=datetime.datetime.now)
    updated_at: datetime.datetime = field(default_factory=datetime.datetime.now)

    @property
    def time_slots(self) -> TimeSlotsConfig | None:
        """The time-slot configuration, or None for any other variant."""
        return self.config if isinstance(self.config, TimeSlotsConfig) else None

    @property
    def is_once(self) -> bool:
        config = self.time_slots
        return config is not None and config.is_once

    def to_dict(self) -> dict[str, Any]:
        """Convert schedule to dictionary for serialization."""
        return {
            "schedule_id": self.schedule_id,
            "device_ids": list(self.device_ids),
            "name": self.name,
            "enabled": self.enabled,
            "config": self.config.to_dict() if self.config else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    @staticmethod
    def from_dict(data: dict[str, Any]) -> "Schedule":
        """Create Schedule from dictionary.

        An invalid ``config`` payload does not raise: the schedule is kept with
        ``config=None`` so that it simply produces no windows.
        """
        from pydantic import ValidationError as PydanticValidationError

        from octoswitch.schemas.schedule import parse_schedule_config

        schedule_id = str(data.get("schedule_id") or data.get("id") or "")
        config: ScheduleConfig | None = None
        raw_config = data.get("config")
        if raw_config is not None:
            try:
                config = parse_schedule_config(raw_config)
            except PydanticValidationError as e:
                logger.warning("Invalid config for schedule %s: %s", schedule_id, e.errors())

        return Schedule(
            schedule_id=schedule_id,
            device_ids=list(data.get("device_ids") or data.get("deviceIds") or []),
            name=data.get("name", ""),
            enabled=bool(data.get("enabled", True)),
            config=config,
            created_at=_coerce_datetime(data.get("created_at")),
            updated_at=_coerce_datetime(data.get("updated_at")),
        )


@dataclass
class ScheduleLog:
    """Audit record of one actuation attempt for one schedule and device."""

    schedule_id: str
    device_id: str
    action: DeviceAction
    trigger_reason: str
    success: bool
    error_message: str | None = None
    executed_at: datetime.datetime = field(default_factory=datetime.datetime.now)

    def to_dict(self) -> dict[str, Any]:
        return {
            "schedule_id": self.schedule_id,
            "device_id": self.device_id,
            "action": DeviceAction(self.action).value,
            "trigger_reason": self.trigger_reason,
            "success": self.success,
            "error_message": self.error_message,
            "executed_at": self.executed_at.isoformat(),
        }
