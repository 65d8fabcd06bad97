"""
In-Memory Collaborators
=======================

Thread-safe, process-local implementations of the ScheduleStore and
DeviceDirectory protocols. Used by the default ServiceContainer and by
tests; production deployments plug in their own persistence.
"""

from __future__ import annotations

import datetime
import logging
import threading
from dataclasses import replace
from typing import Iterable

from octoswitch.domain.exceptions import NotFoundError
from octoswitch.domain.schedules import Schedule, ScheduleLog
from octoswitch.enums import DeviceStatus

logger = logging.getLogger(__name__)


class InMemoryScheduleStore:
    """
    Schedule store backed by dicts and a list, guarded by one lock.

    Schedules are copied on the way in and out so callers never share
    mutable state with the store.
    """

    def __init__(self, schedules: Iterable[Schedule] = ()) -> None:
        self._lock = threading.RLock()
        self._schedules: dict[str, Schedule] = {}
        self._logs: list[ScheduleLog] = []
        for schedule in schedules:
            self.save(schedule)

    # ==================== Schedules ====================

    @staticmethod
    def _copy(schedule: Schedule) -> Schedule:
        return replace(schedule, device_ids=list(schedule.device_ids))

    def save(self, schedule: Schedule) -> Schedule:
        """Insert or replace a schedule."""
        with self._lock:
            self._schedules[schedule.schedule_id] = self._copy(schedule)
        return schedule

    def get(self, schedule_id: str) -> Schedule | None:
        with self._lock:
            schedule = self._schedules.get(schedule_id)
            return self._copy(schedule) if schedule else None

    def delete(self, schedule_id: str) -> bool:
        with self._lock:
            return self._schedules.pop(schedule_id, None) is not None

    def list_all(self) -> list[Schedule]:
        with self._lock:
            return [self._copy(s) for s in self._schedules.values()]

    def list_enabled(self) -> list[Schedule]:
        with self._lock:
            return [self._copy(s) for s in self._schedules.values() if s.enabled]

    def set_enabled(self, schedule_id: str, enabled: bool) -> None:
        """
        Enable or disable a schedule.

        Raises:
            NotFoundError: If the schedule does not exist
        """
        with self._lock:
            schedule = self._schedules.get(schedule_id)
            if schedule is None:
                raise NotFoundError(f"Schedule {schedule_id} not found", detail={"schedule_id": schedule_id})
            schedule.enabled = bool(enabled)
            schedule.updated_at = datetime.datetime.now()

    # ==================== Execution Logs ====================

    def append_log(self, entry: ScheduleLog) -> None:
        with self._lock:
            self._logs.append(entry)

    def list_logs(self, schedule_id: str | None = None, device_id: str | None = None) -> list[ScheduleLog]:
        """Log entries in insertion order, optionally filtered."""
        with self._lock:
            logs = list(self._logs)
        if schedule_id is not None:
            logs = [entry for entry in logs if entry.schedule_id == schedule_id]
        if device_id is not None:
            logs = [entry for entry in logs if entry.device_id == device_id]
        return logs

    def delete_logs_before(self, cutoff: datetime.datetime) -> int:
        """Delete log entries executed at or before ``cutoff``; return the count."""
        with self._lock:
            kept = [entry for entry in self._logs if entry.executed_at > cutoff]
            deleted = len(self._logs) - len(kept)
            self._logs = kept
        if deleted:
            logger.debug("Deleted %d schedule log entries up to %s", deleted, cutoff.isoformat())
        return deleted


class InMemoryDeviceDirectory:
    """Device names and connection status, guarded by one lock."""

    def __init__(self, names: dict[str, str] | None = None) -> None:
        self._lock = threading.Lock()
        self._names: dict[str, str] = dict(names or {})
        self._statuses: dict[str, DeviceStatus] = {}

    def register(self, device_id: str, name: str, status: DeviceStatus = DeviceStatus.UNKNOWN) -> None:
        with self._lock:
            self._names[device_id] = name
            self._statuses[device_id] = status

    def get_name(self, device_id: str) -> str | None:
        with self._lock:
            return self._names.get(device_id)

    def set_status(self, device_id: str, status: DeviceStatus) -> None:
        with self._lock:
            previous = self._statuses.get(device_id)
            self._statuses[device_id] = DeviceStatus(status)
        if previous != status:
            logger.info("Device %s is now %s", device_id, status)

    def get_status(self, device_id: str) -> DeviceStatus:
        with self._lock:
            return self._statuses.get(device_id, DeviceStatus.UNKNOWN)
