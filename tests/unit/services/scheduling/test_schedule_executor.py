"""Tests for the per-minute ScheduleExecutor."""

import threading
from datetime import date, datetime
from unittest.mock import MagicMock
from zoneinfo import ZoneInfo

import pytest

from octoswitch.domain.devices import DeviceState
from octoswitch.domain.exceptions import RepositoryError
from octoswitch.enums import DeviceAction, DeviceStatus, SlotEventType
from octoswitch.infrastructure import MockDeviceActuator
from octoswitch.services.scheduling import ScheduleExecutor, ScheduleResolver

TODAY = date(2026, 3, 10)


class TestStartAndEndEvents:
    def test_on_slot_start_switches_device_on(self, executor, store, actuator, directory, make_schedule, at):
        store.save(make_schedule("s1", ["plug-1"], [("10:00", "11:00")], name="Morning"))

        report = executor.tick(at("10:00"))

        assert actuator.calls == [("plug-1", DeviceAction.ON)]
        assert report.succeeded == 1
        assert report.results[0].event_type == SlotEventType.START
        assert report.results[0].power is True
        assert directory.get_status("plug-1") == DeviceStatus.ONLINE

        logs = store.list_logs()
        assert len(logs) == 1
        assert logs[0].schedule_id == "s1"
        assert logs[0].success is True
        assert logs[0].action == DeviceAction.ON
        assert logs[0].trigger_reason == "Merged slot 10:00-11:00 started (from: Morning)"

    def test_on_slot_end_switches_device_off(self, executor, store, actuator, make_schedule, at):
        store.save(make_schedule("s1", ["plug-1"], [("10:00", "11:00")], name="Morning"))

        report = executor.tick(at("11:00"))

        assert actuator.calls == [("plug-1", DeviceAction.OFF)]
        assert report.results[0].event_type == SlotEventType.END
        assert store.list_logs()[0].trigger_reason == "Merged slot 10:00-11:00 ended (from: Morning)"

    def test_off_slot_end_is_not_reverted(self, executor, store, actuator, make_schedule, at):
        store.save(make_schedule("s1", ["plug-1"], [("10:00", "11:00")], action="off"))

        report = executor.tick(at("11:00"))

        assert actuator.calls == []
        assert report.results == []
        assert store.list_logs() == []

    def test_toggle_slot_inverts_power_and_is_not_reverted(self, store, resolver, directory, make_schedule, at):
        actuator = MockDeviceActuator({"plug-1": True})
        executor = ScheduleExecutor(store, resolver, directory, actuator)
        store.save(make_schedule("s1", ["plug-1"], [("10:00", "11:00")], action="toggle"))

        try:
            start = executor.tick(at("10:00"))
            end = executor.tick(at("11:00"))
        finally:
            executor.shutdown()

        assert start.results[0].power is False
        assert end.results == []
        assert actuator.calls == [("plug-1", DeviceAction.TOGGLE)]

    def test_minutes_between_boundaries_do_nothing(self, executor, store, actuator, make_schedule, at):
        store.save(make_schedule("s1", ["plug-1"], [("10:00", "11:00")]))

        report = executor.tick(at("10:30"))

        assert report is not None
        assert report.results == []
        assert actuator.calls == []

    def test_slot_ending_at_midnight_switches_off_at_minute_zero(
        self, executor, store, actuator, make_schedule, at
    ):
        store.save(make_schedule("night", ["heater-1"], [("22:00", "00:00")]))

        report = executor.tick(at("00:00", day=date(2026, 3, 11)))

        assert actuator.calls == [("heater-1", DeviceAction.OFF)]
        assert report.results[0].event_type == SlotEventType.END


class TestMergedSlots:
    def test_adjacent_schedules_fire_once_at_the_merged_boundaries(
        self, executor, store, actuator, make_schedule, at
    ):
        store.save(make_schedule("a", ["plug-1"], [("10:00", "11:00")], name="A"))
        store.save(make_schedule("b", ["plug-1"], [("11:00", "12:00")], name="B"))

        start = executor.tick(at("10:00"))
        middle = executor.tick(at("11:00"))
        end = executor.tick(at("12:00"))

        assert actuator.calls == [("plug-1", DeviceAction.ON), ("plug-1", DeviceAction.OFF)]
        assert start.results[0].schedule_ids == ["a", "b"]
        assert middle.results == []
        assert end.results[0].schedule_ids == ["a", "b"]

        logs = store.list_logs()
        assert [(log.schedule_id, log.action) for log in logs] == [
            ("a", DeviceAction.ON),
            ("b", DeviceAction.ON),
            ("a", DeviceAction.OFF),
            ("b", DeviceAction.OFF),
        ]
        assert logs[-1].trigger_reason == "Merged slot 10:00-12:00 ended (from: A, B)"

    def test_on_and_off_starting_together_apply_on_then_off(self, executor, store, actuator, make_schedule, at):
        store.save(make_schedule("off", ["plug-1"], [("10:00", "10:30")], action="off"))
        store.save(make_schedule("on", ["plug-1"], [("10:00", "11:00")], action="on"))

        report = executor.tick(at("10:00"))

        assert actuator.calls == [("plug-1", DeviceAction.ON), ("plug-1", DeviceAction.OFF)]
        assert report.conflicts == 1
        assert actuator.power_of("plug-1") is False

    def test_conflicts_are_logged_as_warnings(self, executor, store, make_schedule, at, caplog):
        store.save(make_schedule("a", ["plug-1"], [("10:00", "11:00")], action="on", name="Heat"))
        store.save(make_schedule("b", ["plug-1"], [("10:30", "11:30")], action="off", name="Eco"))

        report = executor.tick(at("09:00"))

        assert report.conflicts == 1
        assert "Schedule conflict on Kitchen Plug (plug-1) 10:30-11:00" in caplog.text


class TestHandover:
    def test_slot_ending_at_midnight_hands_over_to_slot_starting_at_midnight(
        self, executor, store, actuator, make_schedule, at
    ):
        store.save(make_schedule("evening", ["heater-1"], [("22:00", "00:00")]))
        store.save(make_schedule("night", ["heater-1"], [("00:00", "06:00")]))

        report = executor.tick(at("00:00", day=date(2026, 3, 11)))

        assert actuator.calls == [("heater-1", DeviceAction.OFF), ("heater-1", DeviceAction.ON)]
        assert [r.event_type for r in report.results] == [SlotEventType.END, SlotEventType.START]
        assert actuator.power_of("heater-1") is True

    def test_wrapping_slot_hands_over_to_morning_slot(self, executor, store, actuator, make_schedule, at):
        store.save(make_schedule("overnight", ["heater-1"], [("23:00", "07:00")]))
        store.save(make_schedule("morning", ["heater-1"], [("07:00", "09:00")]))

        report = executor.tick(at("07:00"))

        assert actuator.calls == [("heater-1", DeviceAction.OFF), ("heater-1", DeviceAction.ON)]
        assert report.results[-1].schedule_ids == ["morning"]
        assert actuator.power_of("heater-1") is True

    def test_handover_on_one_device_does_not_reorder_another(self, executor, store, actuator, make_schedule, at):
        store.save(make_schedule("evening", ["heater-1"], [("22:00", "00:00")]))
        store.save(make_schedule("night", ["heater-1", "plug-1"], [("00:00", "06:00")]))

        executor.tick(at("00:00", day=date(2026, 3, 11)))

        assert actuator.power_of("heater-1") is True
        assert actuator.power_of("plug-1") is True


class TestLogTimestamps:
    def test_logs_carry_the_tick_time(self, executor, store, make_schedule, at):
        store.save(make_schedule("s1", ["plug-1"], [("10:00", "11:00")]))

        executor.tick(at("10:00"))

        assert store.list_logs()[0].executed_at == at("10:00")

    def test_aware_tick_time_is_stored_as_naive_civil_time(self, executor, store, make_schedule):
        store.save(make_schedule("s1", ["plug-1"], [("10:00", "11:00")]))
        now = datetime(2026, 7, 4, 10, 0, 12, tzinfo=ZoneInfo("Europe/London"))

        executor.tick(now)

        executed_at = store.list_logs()[0].executed_at
        assert executed_at.tzinfo is None
        assert executed_at == datetime(2026, 7, 4, 10, 0, 12)

class TestOneTimeSchedules:
    def test_once_schedule_fires_exactly_once(self, store, resolver, directory, actuator, make_schedule, at):
        store.save(make_schedule("once", ["plug-1"], [("10:00", "10:30")], repeat="once", day=TODAY))
        first = ScheduleExecutor(store, resolver, directory, actuator)
        retry = ScheduleExecutor(store, resolver, directory, actuator)

        try:
            report = first.tick(at("10:00"))
            assert report.disabled_schedule_ids == ["once"]
            assert store.get("once").enabled is False

            # A retry of the same minute, even from a fresh executor, does not fire again
            assert first.tick(at("10:00")) is None
            assert retry.tick(at("10:00")).results == []
        finally:
            first.shutdown()
            retry.shutdown()

        assert actuator.calls == [("plug-1", DeviceAction.ON)]

    def test_once_schedule_disabled_even_when_actuation_fails(
        self, executor, store, actuator, make_schedule, at
    ):
        store.save(make_schedule("once", ["plug-1"], [("10:00", "10:30")], repeat="once", day=TODAY))
        actuator.fail_device("plug-1")

        report = executor.tick(at("10:00"))

        assert report.failed == 1
        assert report.disabled_schedule_ids == ["once"]
        assert store.get("once").enabled is False

    def test_once_schedule_for_another_day_is_ignored(self, executor, store, actuator, make_schedule, at):
        store.save(
            make_schedule("later", ["plug-1"], [("10:00", "10:30")], repeat="once", day=date(2026, 3, 11))
        )

        report = executor.tick(at("10:00"))

        assert report.results == []
        assert store.get("later").enabled is True

    def test_daily_contributors_stay_enabled(self, executor, store, make_schedule, at):
        store.save(make_schedule("daily", ["plug-1"], [("10:00", "10:30")]))
        store.save(make_schedule("once", ["plug-1"], [("10:45", "11:00")], repeat="once", day=TODAY))

        executor.tick(at("10:00"))

        assert store.get("daily").enabled is True
        assert store.get("once").enabled is True

    def test_end_event_does_not_disable(self, executor, store, make_schedule, at):
        store.save(make_schedule("once", ["plug-1"], [("09:00", "10:00")], repeat="once", day=TODAY))

        report = executor.tick(at("10:00"))

        assert report.results[0].event_type == SlotEventType.END
        assert report.disabled_schedule_ids == []
        assert store.get("once").enabled is True

    def test_disable_failure_is_logged(self, resolver, directory, actuator, make_schedule, at, caplog):
        store = MagicMock()
        store.list_enabled.return_value = [
            make_schedule("once", ["plug-1"], [("10:00", "10:30")], repeat="once", day=TODAY)
        ]
        store.set_enabled.side_effect = RepositoryError("read-only")
        executor = ScheduleExecutor(store, resolver, directory, actuator)

        try:
            report = executor.tick(at("10:00"))
        finally:
            executor.shutdown()

        assert report.disabled_schedule_ids == []
        assert "Failed to disable one-time schedule once" in caplog.text


class TestFailureIsolation:
    def test_one_failing_device_does_not_affect_another(
        self, executor, store, actuator, directory, make_schedule, at
    ):
        store.save(make_schedule("s1", ["plug-1", "plug-2"], [("10:00", "11:00")]))
        actuator.fail_device("plug-1", "Connection refused")

        report = executor.tick(at("10:00"))

        assert report.succeeded == 1
        assert report.failed == 1
        assert directory.get_status("plug-1") == DeviceStatus.OFFLINE
        assert directory.get_status("plug-2") == DeviceStatus.ONLINE

        failed = store.list_logs(device_id="plug-1")
        succeeded = store.list_logs(device_id="plug-2")
        assert [(log.success, log.error_message) for log in failed] == [(False, "Connection refused")]
        assert [(log.success, log.error_message) for log in succeeded] == [(True, None)]

    def test_any_actuator_exception_is_contained(self, store, resolver, directory, make_schedule, at):
        actuator = MagicMock()
        actuator.actuate.side_effect = TimeoutError()
        executor = ScheduleExecutor(store, resolver, directory, actuator)
        store.save(make_schedule("s1", ["plug-1"], [("10:00", "11:00")]))

        try:
            report = executor.tick(at("10:00"))
        finally:
            executor.shutdown()

        assert report.results[0].success is False
        assert report.results[0].error_message == "TimeoutError"
        assert directory.get_status("plug-1") == DeviceStatus.OFFLINE

    def test_log_write_failure_does_not_abort_tick(self, resolver, directory, actuator, make_schedule, at):
        store = MagicMock()
        store.list_enabled.return_value = [make_schedule("s1", ["plug-1", "plug-2"], [("10:00", "11:00")])]
        store.append_log.side_effect = RepositoryError("disk full")
        executor = ScheduleExecutor(store, resolver, directory, actuator)

        try:
            report = executor.tick(at("10:00"))
        finally:
            executor.shutdown()

        assert report.succeeded == 2
        assert store.append_log.call_count == 2

    def test_actuate_happens_before_logs_for_each_device(self, resolver, directory, make_schedule, at):
        events = []
        actuator = MagicMock()
        actuator.actuate.side_effect = lambda device_id, action: events.append(("actuate", device_id)) or DeviceState(
            power=True
        )
        store = MagicMock()
        store.list_enabled.return_value = [make_schedule("s1", ["plug-1", "plug-2"], [("10:00", "11:00")])]
        store.append_log.side_effect = lambda entry: events.append(("log", entry.device_id))
        executor = ScheduleExecutor(store, resolver, directory, actuator)

        try:
            executor.tick(at("10:00"))
        finally:
            executor.shutdown()

        for device_id in ("plug-1", "plug-2"):
            assert events.index(("actuate", device_id)) < events.index(("log", device_id))


class TestTickGuards:
    def test_completed_minute_is_not_evaluated_again(self, executor, store, actuator, make_schedule, at):
        store.save(make_schedule("s1", ["plug-1"], [("10:00", "11:00")]))

        assert executor.tick(at("10:00")) is not None
        assert executor.tick(at("10:00")) is None
        assert executor.tick(at("10:01")) is not None
        assert actuator.calls == [("plug-1", DeviceAction.ON)]

    def test_overlapping_tick_is_skipped(self, store, resolver, directory, make_schedule, at, caplog):
        entered = threading.Event()
        release = threading.Event()

        def slow_actuate(device_id, action):
            entered.set()
            release.wait(timeout=5)
            return DeviceState(power=True)

        actuator = MagicMock()
        actuator.actuate.side_effect = slow_actuate
        executor = ScheduleExecutor(store, resolver, directory, actuator)
        store.save(make_schedule("s1", ["plug-1"], [("10:00", "11:00")]))

        results = {}
        worker = threading.Thread(target=lambda: results.setdefault("first", executor.tick(at("10:00"))))
        worker.start()
        try:
            assert entered.wait(timeout=5)
            assert executor.tick(at("10:01")) is None
        finally:
            release.set()
            worker.join(timeout=5)
            executor.shutdown()

        assert results["first"].succeeded == 1
        assert actuator.actuate.call_count == 1
        assert "Previous schedule tick still running" in caplog.text

    def test_store_failure_propagates_from_tick(self, resolver, directory, actuator, at):
        store = MagicMock()
        store.list_enabled.side_effect = RepositoryError("database locked")
        executor = ScheduleExecutor(store, resolver, directory, actuator)

        try:
            with pytest.raises(RepositoryError):
                executor.tick(at("10:00"))
        finally:
            executor.shutdown()

    def test_run_logs_failures_and_next_tick_proceeds(self, resolver, directory, actuator, at, caplog):
        store = MagicMock()
        store.list_enabled.side_effect = RepositoryError("database locked")
        executor = ScheduleExecutor(store, resolver, directory, actuator, timezone="Europe/London")

        try:
            assert executor.run() is None
            assert "Schedule tick failed" in caplog.text

            store.list_enabled.side_effect = None
            store.list_enabled.return_value = []
            report = executor.tick(at("10:00"))
        finally:
            executor.shutdown()

        assert report is not None
        assert report.results == []

    def test_report_serializes(self, executor, store, make_schedule, at):
        store.save(make_schedule("s1", ["plug-1"], [("10:00", "11:00")]))

        data = executor.tick(at("10:00")).to_dict()

        assert data["minute"] == 600
        assert data["succeeded"] == 1
        assert data["results"][0]["action"] == "on"
        assert data["results"][0]["event_type"] == "start"


def test_resolver_receives_tick_date(store, directory, actuator, at):
    resolver = MagicMock(spec=ScheduleResolver)
    resolver.resolve.return_value.effective_schedules = []
    resolver.resolve.return_value.conflicts = []
    executor = ScheduleExecutor(store, resolver, directory, actuator)

    try:
        executor.tick(at("10:00", day=date(2026, 7, 4)))
    finally:
        executor.shutdown()

    _, kwargs = resolver.resolve.call_args
    assert kwargs["today"] == date(2026, 7, 4)
