"""
Schedule Resolver
=================

Turns the set of enabled schedules into one effective timeline per device.

Steps per pass:
- Keep time-slot schedules that apply today ('once' schedules only on their date)
- Expand every (schedule, device, slot) into a raw window
- Per device: detect conflicts on all windows, merge adjacent windows per action

The resolver holds no state between passes; callers re-run it on every tick.
Malformed schedules are skipped with a warning so that one bad schedule never
blocks resolution for the others.
"""

from __future__ import annotations

import datetime
import logging
from typing import TYPE_CHECKING, Iterable

from octoswitch.domain.schedules import (
    EffectiveDeviceSchedule,
    EffectiveSlot,
    RawWindow,
    ResolutionResult,
    Schedule,
    SchedulePreviewEvent,
)
from octoswitch.enums import ACTION_ORDER, DeviceAction, SlotEventType
from octoswitch.services.scheduling.conflict_detector import detect_conflicts
from octoswitch.services.scheduling.slot_merger import merge_adjacent_slots
from octoswitch.utils.time import (
    MINUTES_PER_DAY,
    civil_today,
    end_minutes,
    minute_of_day,
    minutes_to_time,
    time_to_minutes,
)

if TYPE_CHECKING:
    from octoswitch.domain.devices import DeviceDirectory

logger = logging.getLogger(__name__)


def _slot_order_key(slot: EffectiveSlot) -> tuple[int, int]:
    """Start minute first; at the same minute apply on, then off, then toggle."""
    return (time_to_minutes(slot.start), ACTION_ORDER.index(slot.action))


class ScheduleResolver:
    """
    Resolves enabled schedules into effective per-device schedules.

    Args:
        device_directory: Optional directory used for device display names
        timezone: IANA timezone used for "today" when no date is passed
    """

    def __init__(
        self,
        device_directory: "DeviceDirectory" | None = None,
        timezone: str | None = None,
    ):
        self.device_directory = device_directory
        self.timezone = timezone

    def resolve(
        self,
        schedules: Iterable[Schedule],
        today: datetime.date | None = None,
    ) -> ResolutionResult:
        """
        Resolve all schedules into effective schedules and conflicts.

        Args:
            schedules: Enabled schedules (order is irrelevant)
            today: Civil date used to filter 'once' schedules

        Returns:
            ResolutionResult with one entry per device that has at least one window
        """
        if today is None:
            today = civil_today(self.timezone)

        device_windows: dict[str, list[RawWindow]] = {}
        for schedule in schedules:
            for device_id, window in self._expand_windows(schedule, today):
                device_windows.setdefault(device_id, []).append(window)

        result = ResolutionResult()
        for device_id, windows in device_windows.items():
            device_name = self._device_name(device_id)

            result.conflicts.extend(detect_conflicts(windows, device_id, device_name))

            slots: list[EffectiveSlot] = []
            for action in ACTION_ORDER:
                slots.extend(merge_adjacent_slots(w for w in windows if w.action == action))
            slots.sort(key=_slot_order_key)

            result.effective_schedules.append(
                EffectiveDeviceSchedule(device_id=device_id, device_name=device_name, slots=slots)
            )

        logger.debug(
            "Resolved %d device schedule(s) with %d conflict(s)",
            len(result.effective_schedules),
            len(result.conflicts),
        )
        return result

    def _expand_windows(self, schedule: Schedule, today: datetime.date) -> list[tuple[str, RawWindow]]:
        """Return (device_id, window) pairs contributed by one schedule, or none."""
        config = schedule.time_slots
        if config is None or not config.applies_on(today):
            return []

        try:
            for slot in config.slots:
                time_to_minutes(slot.start)
                time_to_minutes(slot.end)
        except (AttributeError, TypeError, ValueError) as e:
            logger.warning("Skipping schedule %s (%s): malformed slot: %s", schedule.schedule_id, schedule.name, e)
            return []

        return [
            (
                device_id,
                RawWindow(
                    start=slot.start,
                    end=slot.end,
                    action=config.action,
                    schedule_id=schedule.schedule_id,
                    schedule_name=schedule.name,
                ),
            )
            for device_id in schedule.device_ids
            for slot in config.slots
        ]

    def _device_name(self, device_id: str) -> str:
        """Display name for a device, falling back to its id."""
        if self.device_directory is None:
            return device_id
        try:
            name = self.device_directory.get_name(device_id)
        except Exception as e:
            logger.warning("Device name lookup failed for %s: %s", device_id, e)
            return device_id
        return name or device_id


# ==================== Timeline Queries ====================


def slot_starts_at(slot: EffectiveSlot, minute: int) -> bool:
    return time_to_minutes(slot.start) == minute


def slot_ends_at(slot: EffectiveSlot, minute: int) -> bool:
    """True when ``slot`` ends at ``minute``; an end of "00:00" ends at minute 0."""
    return end_minutes(slot.end) % MINUTES_PER_DAY == minute


def effective_action_at(
    device_schedule: EffectiveDeviceSchedule,
    now: datetime.datetime,
) -> tuple[DeviceAction, EffectiveSlot] | None:
    """Return the action and slot starting at ``now``'s minute, if any."""
    current = minute_of_day(now)
    for slot in device_schedule.slots:
        if slot_starts_at(slot, current):
            return slot.action, slot
    return None


def ending_slot_at(
    device_schedule: EffectiveDeviceSchedule,
    now: datetime.datetime,
) -> EffectiveSlot | None:
    """Return the slot ending at ``now``'s minute, if any."""
    current = minute_of_day(now)
    for slot in device_schedule.slots:
        if slot_ends_at(slot, current):
            return slot
    return None


def build_day_preview(result: ResolutionResult) -> list[SchedulePreviewEvent]:
    """
    List the day's actuation points across all devices in time order.

    Only 'on' slots produce an end event, matching what the executor does.
    An end at 00:00 is listed at minute 0, and at any minute ends come before starts.
    """
    events: list[tuple[int, int, int, SchedulePreviewEvent]] = []
    for device_schedule in result.effective_schedules:
        for slot in device_schedule.slots:
            schedule_ids = tuple(slot.schedule_ids)
            events.append(
                (
                    time_to_minutes(slot.start),
                    1,
                    ACTION_ORDER.index(slot.action),
                    SchedulePreviewEvent(
                        device_id=device_schedule.device_id,
                        device_name=device_schedule.device_name,
                        time=slot.start,
                        event_type=SlotEventType.START,
                        action=slot.action,
                        schedule_ids=schedule_ids,
                    ),
                )
            )
            if slot.action != DeviceAction.ON:
                continue
            end = end_minutes(slot.end)
            events.append(
                (
                    end % MINUTES_PER_DAY,
                    0,
                    ACTION_ORDER.index(DeviceAction.OFF),
                    SchedulePreviewEvent(
                        device_id=device_schedule.device_id,
                        device_name=device_schedule.device_name,
                        time=minutes_to_time(end),
                        event_type=SlotEventType.END,
                        action=DeviceAction.OFF,
                        schedule_ids=schedule_ids,
                    ),
                )
            )

    events.sort(key=lambda item: item[:3])
    return [event for _, _, _, event in events]
