"""Unit tests for scheduler: config, weekend rule, day/month/range views, booking checks."""

from __future__ import annotations

import os
from datetime import date, datetime, timezone
from unittest.mock import patch

import pytest

from src.slot_scheduler import scheduler
from src.slot_scheduler.errors import InvalidConfigError, InvalidDateError
from src.slot_scheduler.scheduler import SchedulerConfig

CONFIG = SchedulerConfig()


class FakeCalendar:
    """Stands in for GoogleCalendarClient; returns canned API items and records calls."""

    def __init__(self, items=None):
        self.items = items or []
        self.calls = []

    def list_events(self, time_min, time_max, time_zone=None):
        self.calls.append((time_min, time_max, time_zone))
        return list(self.items)


def api_event(start_iso, end_iso, **extra):
    item = {"status": "confirmed", "start": {"dateTime": start_iso}, "end": {"dateTime": end_iso}}
    item.update(extra)
    return item


NOON_JAN_10 = api_event("2024-01-10T12:00:00-05:00", "2024-01-10T13:00:00-05:00", summary="Lunch")


def utc(y, mo, d, h, mi=0):
    return datetime(y, mo, d, h, mi, tzinfo=timezone.utc)


def test_config_defaults():
    assert CONFIG.timezone == "America/New_York"
    assert (CONFIG.start_hour, CONFIG.end_hour, CONFIG.slot_minutes) == (9, 17, 30)
    assert CONFIG.exclude_weekends is True


@patch.dict(os.environ, {
    "BUSINESS_TIMEZONE": "America/Chicago",
    "BUSINESS_START_HOUR": "8",
    "BUSINESS_END_HOUR": "16",
    "SLOT_MINUTES": "60",
    "EXCLUDE_WEEKENDS": "false",
})
def test_config_from_env():
    cfg = SchedulerConfig.from_env()
    assert cfg.timezone == "America/Chicago"
    assert (cfg.start_hour, cfg.end_hour, cfg.slot_minutes) == (8, 16, 60)
    assert cfg.exclude_weekends is False


@patch.dict(os.environ, {"BUSINESS_START_HOUR": "nine"})
def test_config_from_env_rejects_garbage():
    with pytest.raises(InvalidConfigError):
        SchedulerConfig.from_env()


@patch.dict(os.environ, {"BUSINESS_TIMEZONE": "Nowhere/Special"})
def test_config_from_env_rejects_unknown_zone():
    with pytest.raises(InvalidConfigError):
        SchedulerConfig.from_env()


def test_is_weekend():
    assert scheduler.is_weekend(date(2024, 1, 13))
    assert scheduler.is_weekend(date(2024, 1, 14))
    assert not scheduler.is_weekend(date(2024, 1, 12))


def test_day_availability_adjacent_and_all():
    result = scheduler.day_availability(date(2024, 1, 10), [NOON_JAN_10], CONFIG)
    assert [s.to_dict() for s in result.adjacent] == [
        {"start": "2024-01-10T16:30:00Z", "end": "2024-01-10T17:00:00Z"},
        {"start": "2024-01-10T18:00:00Z", "end": "2024-01-10T18:30:00Z"},
    ]
    assert len(result.all_free) == 14
    assert result.to_dict()["isWeekend"] is False


def test_day_availability_without_events():
    result = scheduler.day_availability(date(2024, 1, 10), [], CONFIG)
    assert result.adjacent == []
    assert len(result.all_free) == 16


def test_weekend_short_circuits_without_reading_events():
    class Untouchable:
        def __iter__(self):
            raise AssertionError("weekend events should not be read")

    result = scheduler.day_availability(date(2024, 1, 13), Untouchable(), CONFIG)
    assert result.adjacent == [] and result.all_free == []
    assert result.is_weekend


def test_cancelled_stub_does_not_fail_the_day():
    result = scheduler.day_availability(
        date(2024, 1, 10), [NOON_JAN_10, {"id": "b", "status": "cancelled"}], CONFIG
    )
    assert len(result.adjacent) == 2


def test_cancelled_stub_does_not_fail_the_month():
    cal = FakeCalendar([NOON_JAN_10, {"id": "b", "status": "cancelled"}])
    result = scheduler.month_availability(2024, 1, CONFIG, cal)
    assert result["2024-01-10"] is True


def test_month_resolves_each_window_once():
    with patch("src.slot_scheduler.scheduler.window_for", wraps=scheduler.window_for) as spy:
        scheduler.month_availability(2024, 1, CONFIG, FakeCalendar([NOON_JAN_10]))
    assert spy.call_count == 23  # weekdays in January 2024


def test_weekend_computed_when_exclusion_disabled():
    cfg = SchedulerConfig(exclude_weekends=False)
    sat_event = api_event("2024-01-13T12:00:00-05:00", "2024-01-13T13:00:00-05:00")
    result = scheduler.day_availability(date(2024, 1, 13), [sat_event], cfg)
    assert len(result.adjacent) == 2
    assert result.is_weekend


def test_available_slots_queries_window():
    cal = FakeCalendar([NOON_JAN_10])
    slots = scheduler.available_slots(date(2024, 1, 10), CONFIG, cal, "Europe/Paris")
    assert len(slots) == 2
    assert cal.calls == [(utc(2024, 1, 10, 14), utc(2024, 1, 10, 22), "Europe/Paris")]


def test_available_slots_weekend_skips_calendar():
    cal = FakeCalendar([NOON_JAN_10])
    assert scheduler.available_slots(date(2024, 1, 14), CONFIG, cal) == []
    assert cal.calls == []


def test_month_availability():
    cal = FakeCalendar([NOON_JAN_10])
    result = scheduler.month_availability(2024, 1, CONFIG, cal)
    assert len(result) == 31
    assert result["2024-01-10"] is True
    assert result["2024-01-11"] is False
    assert result["2024-01-13"] is False and result["2024-01-14"] is False
    assert sum(result.values()) == 1
    # one listing from the first weekday window to the last
    assert cal.calls == [(utc(2024, 1, 1, 14), utc(2024, 1, 31, 22), "America/New_York")]


def test_month_availability_weekend_event_ignored():
    sat = api_event("2024-01-13T12:00:00-05:00", "2024-01-13T13:00:00-05:00")
    result = scheduler.month_availability(2024, 1, CONFIG, FakeCalendar([sat]))
    assert not any(result.values())


def test_month_availability_invalid_month():
    with pytest.raises(InvalidDateError):
        scheduler.month_availability(2024, 13, CONFIG, FakeCalendar())


def test_range_availability():
    fri = api_event("2024-01-12T10:00:00-05:00", "2024-01-12T10:30:00-05:00")
    cal = FakeCalendar([fri])
    result = scheduler.range_availability(date(2024, 1, 12), date(2024, 1, 14), CONFIG, cal)
    assert list(result) == ["2024-01-12", "2024-01-13", "2024-01-14"]
    assert [s["start"] for s in result["2024-01-12"]["adjacent"]] == ["2024-01-12T14:30:00Z", "2024-01-12T15:30:00Z"]
    assert len(result["2024-01-12"]["all"]) == 15
    assert result["2024-01-13"] == {"adjacent": [], "all": [], "isWeekend": True}
    assert len(cal.calls) == 1


def test_range_of_only_weekend_days_skips_calendar():
    cal = FakeCalendar()
    result = scheduler.range_availability(date(2024, 1, 13), date(2024, 1, 14), CONFIG, cal)
    assert all(v["isWeekend"] for v in result.values())
    assert cal.calls == []


def test_range_rejects_inverted_or_oversized():
    with pytest.raises(InvalidDateError):
        scheduler.range_availability(date(2024, 1, 14), date(2024, 1, 12), CONFIG, FakeCalendar())
    with pytest.raises(InvalidDateError):
        scheduler.range_availability(date(2024, 1, 1), date(2024, 6, 1), CONFIG, FakeCalendar())


def test_parse_instant():
    assert scheduler.parse_instant("2024-01-10T16:30:00.000Z") == utc(2024, 1, 10, 16, 30)
    assert scheduler.parse_instant("2024-01-10T11:30:00-05:00") == utc(2024, 1, 10, 16, 30)
    assert scheduler.parse_instant("2024-01-10T16:30:00") == utc(2024, 1, 10, 16, 30)
    with pytest.raises(InvalidDateError):
        scheduler.parse_instant("tomorrow at noon")


def test_booking_inside_window_accepted():
    assert scheduler.booking_rejection(utc(2024, 1, 10, 16, 30), utc(2024, 1, 10, 17), CONFIG) is None
    # whole window is fine too
    assert scheduler.booking_rejection(utc(2024, 1, 10, 14), utc(2024, 1, 10, 22), CONFIG) is None


def test_booking_outside_hours_rejected():
    reason = scheduler.booking_rejection(utc(2024, 1, 10, 13, 30), utc(2024, 1, 10, 14), CONFIG)
    assert reason and "9:00" in reason
    assert scheduler.booking_rejection(utc(2024, 1, 10, 21, 45), utc(2024, 1, 10, 22, 15), CONFIG)


def test_booking_on_weekend_rejected():
    reason = scheduler.booking_rejection(utc(2024, 1, 13, 16), utc(2024, 1, 13, 16, 30), CONFIG)
    assert reason == "Meetings cannot be booked on weekends."


def test_booking_end_before_start_rejected():
    assert scheduler.booking_rejection(utc(2024, 1, 10, 17), utc(2024, 1, 10, 16, 30), CONFIG)


def test_build_event_body():
    body = scheduler.build_event_body(
        utc(2024, 1, 10, 16, 30),
        utc(2024, 1, 10, 17),
        "Ada Lovelace",
        "ada@example.com",
        "America/New_York",
        owner_email="owner@example.com",
        meeting_link="https://meet.example.com/owner",
    )
    assert body["summary"] == "Meeting with Ada Lovelace"
    assert body["start"] == {"dateTime": "2024-01-10T16:30:00+00:00", "timeZone": "America/New_York"}
    assert body["attendees"] == [{"email": "ada@example.com"}, {"email": "owner@example.com"}]
    assert body["reminders"]["overrides"] == [
        {"method": "email", "minutes": 60},
        {"method": "popup", "minutes": 10},
    ]
    assert "Wednesday, January 10, 2024" in body["description"]
    assert "11:30 AM - 12:00 PM (America/New_York)" in body["description"]
    assert "https://meet.example.com/owner" in body["description"]


def test_build_event_body_without_owner():
    body = scheduler.build_event_body(
        utc(2024, 1, 10, 16, 30), utc(2024, 1, 10, 17), "Ada", "ada@example.com", "UTC"
    )
    assert body["attendees"] == [{"email": "ada@example.com"}]
    assert "Meeting link" not in body["description"]
