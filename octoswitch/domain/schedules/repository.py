"""
Schedule Store Protocol
=======================

Defines the interface the engine needs from schedule persistence.
Implementations can use SQLite, PostgreSQL, or other storage.
"""

from __future__ import annotations

import datetime
from abc import abstractmethod
from typing import Protocol, runtime_checkable

from octoswitch.domain.schedules.schedule_entity import Schedule, ScheduleLog


@runtime_checkable
class ScheduleStore(Protocol):
    """Protocol for schedule persistence operations."""

    @abstractmethod
    def list_enabled(self) -> list[Schedule]:
        """
        Get all enabled schedules.

        Returns:
            Enabled schedules in no particular order
        """
        ...

    @abstractmethod
    def set_enabled(self, schedule_id: str, enabled: bool) -> None:
        """
        Enable or disable a schedule.

        Args:
            schedule_id: Schedule ID
            enabled: True to enable, False to disable
        """
        ...

    @abstractmethod
    def append_log(self, entry: ScheduleLog) -> None:
        """
        Append an execution log entry.

        Args:
            entry: Outcome of one actuation attempt
        """
        ...


@runtime_checkable
class ScheduleLogPruner(Protocol):
    """Optional store capability used by the log retention task."""

    def delete_logs_before(self, cutoff: datetime.datetime) -> int:
        """Delete log entries executed at or before ``cutoff``; return the count."""
        ...
