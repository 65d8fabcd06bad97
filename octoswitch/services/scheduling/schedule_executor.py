"""
Schedule Executor
=================

Per-minute driver of the schedule engine.

Each tick:
1. Re-resolves the enabled schedules (no merged state carried between ticks)
2. Finds slots starting or ending at the current minute
3. Actuates the affected devices, one worker per device
4. Writes one ScheduleLog per contributing schedule and updates device status
5. Disables 'once' schedules whose slot just started

Ticks are non-reentrant: a tick requested while another is still running is
skipped. A minute that already completed is never evaluated twice.
"""

from __future__ import annotations

import datetime
import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from octoswitch.domain.schedules import EffectiveSlot, ResolutionResult, Schedule, ScheduleLog
from octoswitch.enums import DeviceAction, DeviceStatus, SlotEventType
from octoswitch.services.scheduling.schedule_resolver import ScheduleResolver, slot_ends_at, slot_starts_at
from octoswitch.utils.time import civil_now, minute_of_day

if TYPE_CHECKING:
    from octoswitch.domain.devices import DeviceActuator, DeviceDirectory
    from octoswitch.domain.schedules import ScheduleStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SlotEvent:
    """A slot boundary that must be acted on for one device this minute."""

    device_id: str
    slot: EffectiveSlot
    event_type: SlotEventType
    action: DeviceAction

    @property
    def trigger_reason(self) -> str:
        verb = "started" if self.event_type == SlotEventType.START else "ended"
        names = ", ".join(self.slot.schedule_names)
        return f"Merged slot {self.slot.start}-{self.slot.end} {verb} (from: {names})"


@dataclass
class ExecutionResult:
    """Outcome of one actuation."""

    device_id: str
    action: DeviceAction
    event_type: SlotEventType
    schedule_ids: list[str]
    success: bool
    error_message: str | None = None
    power: bool | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "device_id": self.device_id,
            "action": self.action.value,
            "event_type": self.event_type.value,
            "schedule_ids": list(self.schedule_ids),
            "success": self.success,
            "error_message": self.error_message,
            "power": self.power,
        }


@dataclass
class TickReport:
    """Summary of one completed tick."""

    ticked_at: datetime.datetime
    minute: int
    results: list[ExecutionResult] = field(default_factory=list)
    conflicts: int = 0
    disabled_schedule_ids: list[str] = field(default_factory=list)

    @property
    def succeeded(self) -> int:
        return sum(1 for r in self.results if r.success)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.results if not r.success)

    def to_dict(self) -> dict[str, Any]:
        return {
            "ticked_at": self.ticked_at.isoformat(),
            "minute": self.minute,
            "results": [r.to_dict() for r in self.results],
            "conflicts": self.conflicts,
            "disabled_schedule_ids": list(self.disabled_schedule_ids),
            "succeeded": self.succeeded,
            "failed": self.failed,
        }


def collect_slot_events(result: ResolutionResult, minute: int) -> dict[str, list[SlotEvent]]:
    """
    Find the slot boundaries that fire at ``minute``, grouped by device.

    A slot starting now produces a start event with its own action. Otherwise
    an 'on' slot ending now produces an end event that switches the device
    off; 'off' and 'toggle' slots are never reverted.

    Per device, end events come before start events, so a slot handing over
    to another one at the same minute (e.g. 22:00-00:00 then 00:00-06:00)
    leaves the device in the state of the slot that begins.
    """
    events: dict[str, list[SlotEvent]] = {}
    for device_schedule in result.effective_schedules:
        device_id = device_schedule.device_id
        endings: list[SlotEvent] = []
        starts: list[SlotEvent] = []
        for slot in device_schedule.slots:
            if slot_starts_at(slot, minute):
                starts.append(SlotEvent(device_id, slot, SlotEventType.START, slot.action))
            elif slot.action == DeviceAction.ON and slot_ends_at(slot, minute):
                endings.append(SlotEvent(device_id, slot, SlotEventType.END, DeviceAction.OFF))
        if endings or starts:
            events[device_id] = endings + starts
    return events


class ScheduleExecutor:
    """
    Executes effective schedules once per minute.

    Args:
        store: Schedule store (enabled schedules, enabled flag, logs)
        resolver: Resolver re-run on every tick
        device_directory: Receives online/offline status updates
        actuator: Switches devices
        timezone: IANA timezone of the civil clock
        max_workers: Upper bound on devices actuated concurrently
    """

    def __init__(
        self,
        store: "ScheduleStore",
        resolver: ScheduleResolver,
        device_directory: "DeviceDirectory",
        actuator: "DeviceActuator",
        timezone: str | None = None,
        max_workers: int = 4,
    ):
        self.store = store
        self.resolver = resolver
        self.device_directory = device_directory
        self.actuator = actuator
        self.timezone = timezone

        self._pool = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="schedule-actuation")
        self._tick_lock = threading.Lock()
        self._last_completed_minute: datetime.datetime | None = None

    def run(self) -> TickReport | None:
        """Scheduled-task entry point: run one tick, logging any failure."""
        try:
            return self.tick()
        except Exception as e:
            logger.error("Schedule tick failed: %s", e, exc_info=True)
            return None

    def tick(self, now: datetime.datetime | None = None) -> TickReport | None:
        """
        Evaluate the current minute.

        Args:
            now: Civil time of the tick (defaults to the configured timezone's now)

        Returns:
            TickReport, or None when the tick was skipped

        Raises:
            Exception: Store or resolver failures propagate to the caller
        """
        if not self._tick_lock.acquire(blocking=False):
            logger.warning("Previous schedule tick still running, skipping this one")
            return None
        try:
            return self._tick(now or civil_now(self.timezone))
        finally:
            self._tick_lock.release()

    def shutdown(self, wait: bool = True) -> None:
        self._pool.shutdown(wait=wait)

    def _tick(self, now: datetime.datetime) -> TickReport | None:
        minute_key = now.replace(second=0, microsecond=0)
        if minute_key == self._last_completed_minute:
            logger.debug("Minute %s already evaluated, skipping", minute_key.strftime("%Y-%m-%d %H:%M"))
            return None

        schedules = self.store.list_enabled()
        result = self.resolver.resolve(schedules, today=now.date())
        for conflict in result.conflicts:
            logger.warning(
                "Schedule conflict on %s (%s) %s-%s between: %s",
                conflict.device_name,
                conflict.device_id,
                conflict.time_slot.start,
                conflict.time_slot.end,
                ", ".join(f"{c.schedule_name} ({c.action})" for c in conflict.conflicting_actions),
            )

        minute = minute_of_day(now)
        report = TickReport(ticked_at=now, minute=minute, conflicts=len(result.conflicts))
        events = collect_slot_events(result, minute)
        if events:
            logger.info(
                "Executing %d slot event(s) on %d device(s) at %s",
                sum(len(e) for e in events.values()),
                len(events),
                now.strftime("%H:%M"),
            )
            report.results = self._dispatch(events, executed_at=now.replace(tzinfo=None))
            report.disabled_schedule_ids = self._disable_fired_once_schedules(schedules, events)

        self._last_completed_minute = minute_key
        return report

    def _dispatch(
        self,
        events: dict[str, list[SlotEvent]],
        executed_at: datetime.datetime,
    ) -> list[ExecutionResult]:
        """Run each device's events on the worker pool and gather results in device order.

        ``executed_at`` is the naive civil time of the tick, stamped on every log entry.
        """
        futures = {
            device_id: self._pool.submit(self._run_device_events, device_events, executed_at)
            for device_id, device_events in events.items()
        }

        results: list[ExecutionResult] = []
        for device_id, future in futures.items():
            try:
                results.extend(future.result())
            except Exception as e:
                logger.error("Slot events for device %s failed: %s", device_id, e, exc_info=True)
        return results

    def _run_device_events(
        self,
        events: list[SlotEvent],
        executed_at: datetime.datetime,
    ) -> list[ExecutionResult]:
        return [self._execute_event(event, executed_at) for event in events]

    def _execute_event(self, event: SlotEvent, executed_at: datetime.datetime) -> ExecutionResult:
        """Actuate one device, then record status and logs for that outcome."""
        schedule_ids = event.slot.schedule_ids
        try:
            state = self.actuator.actuate(event.device_id, event.action)
        except Exception as e:
            error_message = str(e) or e.__class__.__name__
            logger.error(
                "Failed to %s device %s for slot %s-%s: %s",
                event.action,
                event.device_id,
                event.slot.start,
                event.slot.end,
                error_message,
            )
            self._set_status(event.device_id, DeviceStatus.OFFLINE)
            self._append_logs(event, executed_at, success=False, error_message=error_message)
            return ExecutionResult(
                device_id=event.device_id,
                action=event.action,
                event_type=event.event_type,
                schedule_ids=schedule_ids,
                success=False,
                error_message=error_message,
            )

        power = getattr(state, "power", None)
        logger.info(
            "Device %s: %s (slot %s-%s %s, power=%s)",
            event.device_id,
            event.action,
            event.slot.start,
            event.slot.end,
            event.event_type,
            power,
        )
        self._set_status(event.device_id, DeviceStatus.ONLINE)
        self._append_logs(event, executed_at, success=True)
        return ExecutionResult(
            device_id=event.device_id,
            action=event.action,
            event_type=event.event_type,
            schedule_ids=schedule_ids,
            success=True,
            power=power,
        )

    def _set_status(self, device_id: str, status: DeviceStatus) -> None:
        try:
            self.device_directory.set_status(device_id, status)
        except Exception as e:
            logger.error("Failed to set status %s for device %s: %s", status, device_id, e)

    def _append_logs(
        self,
        event: SlotEvent,
        executed_at: datetime.datetime,
        success: bool,
        error_message: str | None = None,
    ) -> None:
        reason = event.trigger_reason
        for schedule_id in event.slot.schedule_ids:
            entry = ScheduleLog(
                schedule_id=schedule_id,
                device_id=event.device_id,
                action=event.action,
                trigger_reason=reason,
                success=success,
                error_message=error_message,
                executed_at=executed_at,
            )
            try:
                self.store.append_log(entry)
            except Exception as e:
                logger.error("Failed to write schedule log for %s on %s: %s", schedule_id, event.device_id, e)

    def _disable_fired_once_schedules(
        self,
        schedules: list[Schedule],
        events: dict[str, list[SlotEvent]],
    ) -> list[str]:
        """Disable every 'once' schedule that contributed to a start event this tick."""
        once_ids = {schedule.schedule_id for schedule in schedules if schedule.is_once}
        fired: list[str] = []
        for device_events in events.values():
            for event in device_events:
                if event.event_type != SlotEventType.START:
                    continue
                for schedule_id in event.slot.schedule_ids:
                    if schedule_id in once_ids and schedule_id not in fired:
                        fired.append(schedule_id)

        disabled: list[str] = []
        for schedule_id in fired:
            try:
                self.store.set_enabled(schedule_id, False)
            except Exception as e:
                logger.error("Failed to disable one-time schedule %s: %s", schedule_id, e)
                continue
            logger.info("Disabled one-time schedule %s after it fired", schedule_id)
            disabled.append(schedule_id)
        return disabled
