"""
Shared test fixtures for the OctoSwitch test suite.

Provides:
- In-memory schedule store and device directory
- Mock device actuator with injectable failures
- Resolver / executor wired to those collaborators
- Helpers for building schedules and civil timestamps

Usage:
    def test_example(executor, store, make_schedule, at):
        store.save(make_schedule("s1", ["plug-1"], [("10:00", "11:00")]))
        report = executor.tick(at("10:00"))
        assert report.succeeded == 1
"""

from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Iterable

import pytest

from octoswitch.domain.schedules import Schedule, TimeSlot, TimeSlotsConfig
from octoswitch.enums import DeviceAction, ScheduleRepeat
from octoswitch.infrastructure import InMemoryDeviceDirectory, InMemoryScheduleStore, MockDeviceActuator
from octoswitch.services.scheduling import ScheduleExecutor, ScheduleResolver

# ---------------------------------------------------------------------------
# Logging - keep test output clean
# ---------------------------------------------------------------------------
logging.getLogger("octoswitch").setLevel(logging.WARNING)

TEST_TIMEZONE = "Europe/London"
TODAY = date(2026, 3, 10)


# ========================== Builders ======================================


def build_schedule(
    schedule_id: str,
    device_ids: Iterable[str],
    slots: Iterable[tuple[str, str]],
    *,
    action: str = "on",
    repeat: str = "daily",
    day: date | None = None,
    name: str | None = None,
    enabled: bool = True,
) -> Schedule:
    return Schedule(
        schedule_id=schedule_id,
        device_ids=list(device_ids),
        name=name or schedule_id,
        enabled=enabled,
        config=TimeSlotsConfig(
            slots=[TimeSlot(start=start, end=end) for start, end in slots],
            action=DeviceAction(action),
            repeat=ScheduleRepeat(repeat),
            date=day,
        ),
    )


@pytest.fixture()
def make_schedule():
    """Factory for time-slot schedules: make_schedule(id, devices, [(start, end)], action=...)."""
    return build_schedule


@pytest.fixture()
def at():
    """Factory for naive civil timestamps on TODAY: at("10:00") or at("00:00", day=...)."""

    def _at(hhmm: str, day: date = TODAY) -> datetime:
        hour, minute = (int(part) for part in hhmm.split(":"))
        return datetime(day.year, day.month, day.day, hour, minute, 5)

    return _at


# ========================== Collaborators =================================


@pytest.fixture()
def store():
    return InMemoryScheduleStore()


@pytest.fixture()
def directory():
    return InMemoryDeviceDirectory(
        {
            "plug-1": "Kitchen Plug",
            "plug-2": "Office Plug",
            "heater-1": "Hot Water",
        }
    )


@pytest.fixture()
def actuator():
    return MockDeviceActuator()


# ========================== Services ======================================


@pytest.fixture()
def resolver(directory):
    return ScheduleResolver(device_directory=directory, timezone=TEST_TIMEZONE)


@pytest.fixture()
def executor(store, resolver, directory, actuator):
    executor = ScheduleExecutor(
        store=store,
        resolver=resolver,
        device_directory=directory,
        actuator=actuator,
        timezone=TEST_TIMEZONE,
        max_workers=4,
    )
    yield executor
    executor.shutdown()
