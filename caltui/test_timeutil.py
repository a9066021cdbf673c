"""Tests for timezone resolution and day membership"""

from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest

from .events import CalendarEvent, EventTime
from .timeutil import (
    day_bounds,
    days_range,
    duration_minutes,
    falls_on_day,
    format_day_header,
    format_day_short,
    format_hour_label,
    format_time_range,
    get_zone,
    intervals_overlap,
    minutes_from_midnight,
    now_minutes,
    resolve_time,
    round_to_nearest_hour,
)

NY = ZoneInfo("America/New_York")


def all_day(start: str, end: str) -> CalendarEvent:
    return CalendarEvent(id="ad", start=EventTime(date=start), end=EventTime(date=end))


def timed(start: str, end: str, tz: str = None) -> CalendarEvent:
    return CalendarEvent(
        id="t",
        start=EventTime(date_time=start, time_zone=tz),
        end=EventTime(date_time=end, time_zone=tz),
    )


def test_get_zone_names():
    assert get_zone("UTC") is timezone.utc
    assert get_zone("America/New_York") == NY
    assert get_zone("+05:30").utcoffset(None) == timedelta(hours=5, minutes=30)
    assert get_zone("-0800").utcoffset(None) == timedelta(hours=-8)
    assert get_zone(NY) is NY


@pytest.mark.parametrize("name", ["Not/AZone", "+25:00", "Mars/Olympus_Mons"])
def test_get_zone_rejects_unknown(name):
    with pytest.raises(ValueError):
        get_zone(name)


def test_resolve_time_converts_to_target():
    resolved = resolve_time(EventTime(date_time="2024-02-05T14:00:00Z"), "America/New_York")
    assert resolved.hour == 9
    assert resolved.date() == date(2024, 2, 5)


def test_resolve_time_naive_uses_source_zone():
    resolved = resolve_time(EventTime(date_time="2024-02-05T09:00:00", time_zone="America/New_York"), "UTC")
    assert (resolved.hour, resolved.minute) == (14, 0)


def test_resolve_time_invalid_source_zone_uses_target():
    resolved = resolve_time(EventTime(date_time="2024-02-05T09:00:00", time_zone="Nowhere/Land"), "UTC")
    assert (resolved.hour, resolved.minute) == (9, 0)


def test_resolve_time_all_day_is_start_of_day():
    resolved = resolve_time(EventTime(date="2024-02-05"), "America/New_York")
    assert resolved == datetime(2024, 2, 5, tzinfo=NY)


@pytest.mark.parametrize("event_time", [
    EventTime(date_time="not a time"),
    EventTime(date="2024-13-45"),
    EventTime(),
])
def test_resolve_time_malformed_falls_back_to_now(event_time):
    before = datetime.now(timezone.utc)
    resolved = resolve_time(event_time, "UTC")
    after = datetime.now(timezone.utc)
    assert before <= resolved <= after


def test_all_day_end_is_exclusive():
    event = all_day("2024-02-05", "2024-02-07")
    assert not falls_on_day(event, date(2024, 2, 4), "UTC")
    assert falls_on_day(event, date(2024, 2, 5), "UTC")
    assert falls_on_day(event, date(2024, 2, 6), "UTC")
    assert not falls_on_day(event, date(2024, 2, 7), "UTC")


def test_all_day_ignores_timezone():
    event = all_day("2024-02-05", "2024-02-06")
    for tz in ("Pacific/Auckland", "America/Los_Angeles", "UTC"):
        assert falls_on_day(event, date(2024, 2, 5), tz)
        assert not falls_on_day(event, date(2024, 2, 6), tz)


def test_timed_event_ending_at_midnight_is_not_on_next_day():
    event = timed("2024-02-05T23:00:00Z", "2024-02-06T00:00:00Z")
    assert falls_on_day(event, date(2024, 2, 5), "UTC")
    assert not falls_on_day(event, date(2024, 2, 6), "UTC")


def test_day_membership_depends_on_target_zone():
    # 03:00 UTC is the previous evening in New York
    event = timed("2024-02-06T03:00:00Z", "2024-02-06T04:00:00Z")
    assert falls_on_day(event, date(2024, 2, 5), "America/New_York")
    assert not falls_on_day(event, date(2024, 2, 5), "UTC")


def test_intervals_overlap_is_closed_open():
    base = datetime(2024, 2, 5, 9, tzinfo=timezone.utc)
    hour = timedelta(hours=1)
    assert intervals_overlap(base, base + hour, base + hour / 2, base + 2 * hour)
    assert not intervals_overlap(base, base + hour, base + hour, base + 2 * hour)
    assert not intervals_overlap(base + hour, base, base - hour, base + 2 * hour)


def test_day_bounds_across_dst():
    start, end = day_bounds(date(2024, 3, 10), "America/New_York")
    assert duration_minutes(start, end) == 23 * 60


def test_duration_minutes_uses_real_elapsed_time():
    start = datetime(2024, 3, 10, 1, 0, tzinfo=NY)
    end = datetime(2024, 3, 10, 3, 0, tzinfo=NY)
    assert duration_minutes(start, end) == 60


def test_minutes_and_now():
    assert minutes_from_midnight(datetime(2024, 2, 5, 9, 40)) == 580
    now = datetime(2024, 2, 5, 14, 40, tzinfo=timezone.utc)
    assert now_minutes("America/New_York", now) == 9 * 60 + 40


def test_round_to_nearest_hour():
    assert round_to_nearest_hour(datetime(2024, 2, 5, 9, 29)) == datetime(2024, 2, 5, 9)
    assert round_to_nearest_hour(datetime(2024, 2, 5, 9, 30)) == datetime(2024, 2, 5, 10)


def test_formatters():
    assert format_day_short(date(2024, 2, 5)) == "Mon 5"
    assert format_day_header(date(2024, 2, 5)) == "Monday, February 5"
    assert [format_hour_label(h) for h in (0, 9, 12, 23)] == ["12am", "9am", "12pm", "11pm"]
    start = datetime(2024, 2, 5, 9, 0)
    assert format_time_range(start, start + timedelta(minutes=30)) == "09:00 – 09:30"


def test_days_range():
    days = days_range(date(2024, 2, 5), 1, 2)
    assert days == [date(2024, 2, 4), date(2024, 2, 5), date(2024, 2, 6), date(2024, 2, 7)]
