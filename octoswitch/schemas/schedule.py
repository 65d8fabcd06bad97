"""
Schedule Schemas
================

Pydantic models validating raw schedule configuration payloads (as stored by
the schedule store) and converting them into domain config dataclasses.

The configuration is a discriminated union on ``type``. Both snake_case and
the camelCase keys written by the web client are accepted.
"""

from __future__ import annotations

import datetime
from typing import Annotated, Any, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator, model_validator

from octoswitch.domain.schedules.schedule_entity import (
    CheapestHoursConfig,
    PriceThresholdConfig,
    ScheduleConfig,
    TimeRange,
    TimeRangeConfig,
    TimeSlot,
    TimeSlotsConfig,
)
from octoswitch.enums import DeviceAction, ScheduleRepeat

HHMM_PATTERN = r"^([01]?\d|2[0-3]):[0-5]\d$"


class _ConfigSchema(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class TimeSlotSchema(_ConfigSchema):
    start: str = Field(..., pattern=HHMM_PATTERN, description="Slot start HH:MM")
    end: str = Field(..., pattern=HHMM_PATTERN, description="Slot end HH:MM")


class TimeSlotsConfigSchema(_ConfigSchema):
    """Explicit time windows with a single action."""

    type: Literal["time_slots"]
    slots: List[TimeSlotSchema] = Field(..., min_length=1, description="Selected time slots")
    action: DeviceAction = Field(default=DeviceAction.ON, description="on, off or toggle")
    repeat: ScheduleRepeat = Field(default=ScheduleRepeat.DAILY, description="once or daily")
    date: Optional[datetime.date] = Field(default=None, description="Civil date for 'once' schedules")

    @field_validator("action", "repeat", mode="before")
    @classmethod
    def normalize_enum(cls, v):
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @model_validator(mode="after")
    def validate_once_date(self):
        if self.repeat == ScheduleRepeat.ONCE and self.date is None:
            raise ValueError("'once' schedules require a date")
        return self

    def to_domain(self) -> TimeSlotsConfig:
        return TimeSlotsConfig(
            slots=[TimeSlot(start=slot.start, end=slot.end) for slot in self.slots],
            action=self.action,
            repeat=self.repeat,
            date=self.date,
        )


class PriceThresholdConfigSchema(_ConfigSchema):
    type: Literal["price_threshold"]
    max_price: float = Field(..., alias="maxPrice", description="Maximum price in p/kWh")
    min_runtime: Optional[int] = Field(default=None, alias="minRuntime", ge=0)

    def to_domain(self) -> PriceThresholdConfig:
        return PriceThresholdConfig(max_price=self.max_price, min_runtime=self.min_runtime)


class CheapestHoursConfigSchema(_ConfigSchema):
    type: Literal["cheapest_hours"]
    hours: float = Field(..., gt=0, le=24)
    window_start: str = Field(..., alias="windowStart", pattern=HHMM_PATTERN)
    window_end: str = Field(..., alias="windowEnd", pattern=HHMM_PATTERN)
    consecutive: bool = False

    def to_domain(self) -> CheapestHoursConfig:
        return CheapestHoursConfig(
            hours=self.hours,
            window_start=self.window_start,
            window_end=self.window_end,
            consecutive=self.consecutive,
        )


class TimeRangeSchema(_ConfigSchema):
    start: str = Field(..., pattern=HHMM_PATTERN)
    end: str = Field(..., pattern=HHMM_PATTERN)
    days: List[int] = Field(default_factory=list, description="Days of week (0=Sunday, 6=Saturday)")

    @field_validator("days")
    @classmethod
    def validate_days(cls, v):
        if not all(0 <= d <= 6 for d in v):
            raise ValueError("Days must be 0-6 (Sunday-Saturday)")
        return sorted(set(v))


class TimeRangeConfigSchema(_ConfigSchema):
    type: Literal["time_range"]
    ranges: List[TimeRangeSchema] = Field(..., min_length=1)

    def to_domain(self) -> TimeRangeConfig:
        return TimeRangeConfig(
            ranges=[TimeRange(start=r.start, end=r.end, days=tuple(r.days)) for r in self.ranges]
        )


ScheduleConfigSchema = Annotated[
    Union[
        TimeSlotsConfigSchema,
        PriceThresholdConfigSchema,
        CheapestHoursConfigSchema,
        TimeRangeConfigSchema,
    ],
    Field(discriminator="type"),
]

_config_adapter: TypeAdapter = TypeAdapter(ScheduleConfigSchema)

_DOMAIN_CONFIG_TYPES = (TimeSlotsConfig, PriceThresholdConfig, CheapestHoursConfig, TimeRangeConfig)


def parse_schedule_config(data: Any) -> ScheduleConfig:
    """Validate a raw config mapping and return the matching domain config.

    Raises:
        pydantic.ValidationError: If the payload is not a valid configuration.
    """
    if isinstance(data, _DOMAIN_CONFIG_TYPES):
        return data
    return _config_adapter.validate_python(data).to_domain()
