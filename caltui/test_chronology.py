"""Tests for chronological traversal and nearest-event lookup"""

from datetime import date

from .chronology import chronological_order, event_index, nearest_event
from .events import CalendarEvent, EventTime
from .layout import layout_day
from .timeutil import event_start

DAY = date(2024, 2, 5)


def timed(event_id: str, start: str, end: str) -> CalendarEvent:
    return CalendarEvent(
        id=event_id,
        start=EventTime(date_time=f"2024-02-05T{start}:00Z"),
        end=EventTime(date_time=f"2024-02-05T{end}:00Z"),
    )


def all_day(event_id: str) -> CalendarEvent:
    return CalendarEvent(id=event_id, start=EventTime(date="2024-02-05"), end=EventTime(date="2024-02-06"))


def test_all_day_first_then_by_start():
    events = [timed("late", "15:00", "16:00"), all_day("holiday"), timed("early", "08:00", "09:00"),
              all_day("birthday"), timed("mid", "11:00", "11:30")]
    ordered = chronological_order(layout_day(events, DAY, "UTC"))

    assert [e.id for e in ordered] == ["holiday", "birthday", "early", "mid", "late"]
    starts = [event_start(e, "UTC") for e in ordered[2:]]
    assert starts == sorted(starts)


def test_nearest_event_is_a_minimiser():
    events = [timed("a", "08:00", "09:00"), timed("b", "10:00", "11:00"), timed("c", "13:30", "14:00")]
    layout = layout_day(events, DAY, "UTC")

    for target in range(0, 1440, 37):
        found = nearest_event(layout, target)
        best = min(abs(entry.start_minutes - target) for entry in layout.timed_events)
        found_entry = next(e for e in layout.timed_events if e.event.id == found.id)
        assert abs(found_entry.start_minutes - target) == best


def test_nearest_event_tie_goes_to_earlier():
    layout = layout_day([timed("a", "09:00", "09:30"), timed("b", "10:00", "10:30")], DAY, "UTC")
    assert nearest_event(layout, 9 * 60 + 30).id == "a"


def test_nearest_event_without_timed_events():
    assert nearest_event(layout_day([], DAY, "UTC"), 600) is None
    layout = layout_day([all_day("holiday"), all_day("birthday")], DAY, "UTC")
    assert nearest_event(layout, 600).id == "holiday"


def test_event_index():
    events = [timed("a", "09:00", "09:30"), timed("b", "10:00", "10:30")]
    assert event_index(events, "b") == 1
    assert event_index(events, "missing") == -1
    assert event_index(events, None) == -1
