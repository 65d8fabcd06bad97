from datetime import date, datetime
from unittest.mock import MagicMock

from octoswitch.domain.schedules import PriceThresholdConfig, Schedule, TimeSlot, TimeSlotsConfig
from octoswitch.enums import DeviceAction, SlotEventType
from octoswitch.services.scheduling import (
    ScheduleResolver,
    build_day_preview,
    effective_action_at,
    ending_slot_at,
)

TODAY = date(2026, 3, 10)


def spans(device_schedule):
    return [(slot.start, slot.end, slot.action) for slot in device_schedule.slots]


class TestFiltering:
    def test_daily_schedules_apply_every_day(self, resolver, make_schedule):
        result = resolver.resolve([make_schedule("s1", ["plug-1"], [("10:00", "11:00")])], today=TODAY)

        assert [d.device_id for d in result.effective_schedules] == ["plug-1"]

    def test_once_schedule_applies_only_on_its_date(self, resolver, make_schedule):
        once_today = make_schedule("today", ["plug-1"], [("10:00", "11:00")], repeat="once", day=TODAY)
        once_tomorrow = make_schedule(
            "tomorrow", ["plug-2"], [("10:00", "11:00")], repeat="once", day=date(2026, 3, 11)
        )

        result = resolver.resolve([once_today, once_tomorrow], today=TODAY)

        assert [d.device_id for d in result.effective_schedules] == ["plug-1"]

    def test_other_config_types_produce_no_windows(self, resolver):
        price = Schedule(schedule_id="p1", device_ids=["plug-1"], name="Cheap", config=PriceThresholdConfig(15.0))
        missing = Schedule(schedule_id="p2", device_ids=["plug-1"], name="Broken", config=None)

        result = resolver.resolve([price, missing], today=TODAY)

        assert result.effective_schedules == []
        assert result.conflicts == []

    def test_malformed_schedule_is_skipped_with_warning(self, resolver, make_schedule, caplog):
        bad = Schedule(
            schedule_id="bad",
            device_ids=["plug-1"],
            name="Bad",
            config=TimeSlotsConfig(slots=[TimeSlot("25:00", "26:00")]),
        )
        good = make_schedule("good", ["plug-1"], [("10:00", "11:00")])

        result = resolver.resolve([bad, good], today=TODAY)

        assert spans(result.effective_schedules[0]) == [("10:00", "11:00", DeviceAction.ON)]
        assert "Skipping schedule bad" in caplog.text

    def test_today_defaults_to_civil_date(self, make_schedule):
        resolver = ScheduleResolver(timezone="Europe/London")
        schedule = make_schedule("old", ["plug-1"], [("10:00", "11:00")], repeat="once", day=date(2000, 1, 1))

        assert resolver.resolve([schedule]).effective_schedules == []


class TestGrouping:
    def test_one_entry_per_device_in_first_seen_order(self, resolver, make_schedule):
        result = resolver.resolve(
            [
                make_schedule("s1", ["plug-2", "plug-1"], [("10:00", "11:00")]),
                make_schedule("s2", ["heater-1"], [("06:00", "07:00")]),
            ],
            today=TODAY,
        )

        assert [d.device_id for d in result.effective_schedules] == ["plug-2", "plug-1", "heater-1"]

    def test_device_names_come_from_directory(self, resolver, make_schedule):
        result = resolver.resolve([make_schedule("s1", ["plug-1"], [("10:00", "11:00")])], today=TODAY)

        assert result.effective_schedules[0].device_name == "Kitchen Plug"

    def test_unknown_device_name_falls_back_to_id(self, resolver, make_schedule):
        result = resolver.resolve([make_schedule("s1", ["garage-9"], [("10:00", "11:00")])], today=TODAY)

        assert result.effective_schedules[0].device_name == "garage-9"

    def test_directory_failure_falls_back_to_id(self, make_schedule):
        directory = MagicMock()
        directory.get_name.side_effect = RuntimeError("directory offline")
        resolver = ScheduleResolver(device_directory=directory)

        result = resolver.resolve([make_schedule("s1", ["plug-1"], [("10:00", "11:00")])], today=TODAY)

        assert result.effective_schedules[0].device_name == "plug-1"

    def test_no_directory_uses_ids(self, make_schedule):
        result = ScheduleResolver().resolve([make_schedule("s1", ["plug-1"], [("10:00", "11:00")])], today=TODAY)

        assert result.effective_schedules[0].device_name == "plug-1"


class TestMerging:
    def test_adjacent_windows_from_different_schedules_merge(self, resolver, make_schedule):
        result = resolver.resolve(
            [
                make_schedule("a", ["plug-1"], [("10:00", "11:00")], name="Morning"),
                make_schedule("b", ["plug-1"], [("11:00", "12:00")], name="Midday"),
            ],
            today=TODAY,
        )

        device = result.for_device("plug-1")
        assert spans(device) == [("10:00", "12:00", DeviceAction.ON)]
        assert device.slots[0].schedule_names == ["Morning", "Midday"]

    def test_different_actions_never_merge(self, resolver, make_schedule):
        result = resolver.resolve(
            [
                make_schedule("a", ["plug-1"], [("10:00", "11:00")], action="on"),
                make_schedule("b", ["plug-1"], [("11:00", "12:00")], action="off"),
            ],
            today=TODAY,
        )

        assert spans(result.for_device("plug-1")) == [
            ("10:00", "11:00", DeviceAction.ON),
            ("11:00", "12:00", DeviceAction.OFF),
        ]

    def test_slots_sorted_by_start_then_action(self, resolver, make_schedule):
        result = resolver.resolve(
            [
                make_schedule("t", ["plug-1"], [("09:00", "09:30")], action="toggle"),
                make_schedule("off", ["plug-1"], [("10:00", "10:30")], action="off"),
                make_schedule("on", ["plug-1"], [("10:00", "11:00"), ("08:00", "08:30")], action="on"),
            ],
            today=TODAY,
        )

        assert spans(result.for_device("plug-1")) == [
            ("08:00", "08:30", DeviceAction.ON),
            ("09:00", "09:30", DeviceAction.TOGGLE),
            ("10:00", "11:00", DeviceAction.ON),
            ("10:00", "10:30", DeviceAction.OFF),
        ]

    def test_no_two_slots_share_start_and_action(self, resolver, make_schedule):
        result = resolver.resolve(
            [
                make_schedule("a", ["plug-1"], [("10:00", "11:00")]),
                make_schedule("b", ["plug-1"], [("10:00", "10:30")]),
            ],
            today=TODAY,
        )

        slots = result.for_device("plug-1").slots
        assert len({(s.start, s.action) for s in slots}) == len(slots) == 1
        assert slots[0].schedule_ids == ["a", "b"]


class TestConflicts:
    def test_conflicts_collected_across_devices(self, resolver, make_schedule):
        result = resolver.resolve(
            [
                make_schedule("a", ["plug-1", "plug-2"], [("10:00", "11:00")], action="on"),
                make_schedule("b", ["plug-1"], [("10:30", "11:30")], action="off"),
                make_schedule("c", ["plug-2"], [("10:45", "12:00")], action="toggle"),
            ],
            today=TODAY,
        )

        assert [(c.device_id, c.time_slot.start, c.time_slot.end) for c in result.conflicts] == [
            ("plug-1", "10:30", "11:00"),
            ("plug-2", "10:45", "11:00"),
        ]

    def test_result_serializes(self, resolver, make_schedule):
        result = resolver.resolve([make_schedule("a", ["plug-1"], [("10:00", "11:00")])], today=TODAY)

        data = result.to_dict()
        assert data["effective_schedules"][0]["device_id"] == "plug-1"
        assert data["effective_schedules"][0]["slots"][0]["action"] == "on"
        assert data["conflicts"] == []


class TestTimelineQueries:
    def test_effective_action_at_slot_start(self, resolver, make_schedule):
        result = resolver.resolve([make_schedule("a", ["plug-1"], [("10:00", "11:00")])], today=TODAY)
        device = result.for_device("plug-1")

        action, slot = effective_action_at(device, datetime(2026, 3, 10, 10, 0, 30))
        assert action == DeviceAction.ON
        assert slot.start == "10:00"
        assert effective_action_at(device, datetime(2026, 3, 10, 10, 1)) is None

    def test_ending_slot_at_midnight_matches_minute_zero(self, resolver, make_schedule):
        result = resolver.resolve([make_schedule("a", ["plug-1"], [("22:00", "00:00")])], today=TODAY)
        device = result.for_device("plug-1")

        assert ending_slot_at(device, datetime(2026, 3, 11, 0, 0)).start == "22:00"
        assert ending_slot_at(device, datetime(2026, 3, 10, 23, 59)) is None

    def test_day_preview_lists_events_in_time_order(self, resolver, make_schedule):
        result = resolver.resolve(
            [
                make_schedule("a", ["plug-1"], [("10:00", "11:00")], action="on"),
                make_schedule("b", ["plug-2"], [("09:00", "09:30")], action="off"),
            ],
            today=TODAY,
        )

        preview = build_day_preview(result)

        assert [(e.time, e.device_id, e.event_type, e.action) for e in preview] == [
            ("09:00", "plug-2", SlotEventType.START, DeviceAction.OFF),
            ("10:00", "plug-1", SlotEventType.START, DeviceAction.ON),
            ("11:00", "plug-1", SlotEventType.END, DeviceAction.OFF),
        ]
        assert preview[1].to_dict()["schedule_ids"] == ["a"]

    def test_day_preview_lists_handover_end_before_start(self, resolver, make_schedule):
        result = resolver.resolve(
            [
                make_schedule("evening", ["heater-1"], [("22:00", "00:00")]),
                make_schedule("night", ["heater-1"], [("00:00", "06:00")]),
            ],
            today=TODAY,
        )

        preview = build_day_preview(result)

        assert [(e.time, e.event_type) for e in preview] == [
            ("00:00", SlotEventType.END),
            ("00:00", SlotEventType.START),
            ("06:00", SlotEventType.END),
            ("22:00", SlotEventType.START),
        ]
