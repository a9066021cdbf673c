"""Tests for available time slots"""

from datetime import date

from .events import Attendee, CalendarEvent, EventTime
from .layout import layout_day
from .slots import FreeSlot, find_available_slots, slot_blocks

DAY = date(2024, 2, 5)


def timed(event_id: str, start: str, end: str, **kwargs) -> CalendarEvent:
    return CalendarEvent(
        id=event_id,
        start=EventTime(date_time=f"2024-02-05T{start}:00Z"),
        end=EventTime(date_time=f"2024-02-05T{end}:00Z"),
        **kwargs,
    )


def slots_for(*events):
    return find_available_slots(layout_day(events, DAY, "UTC"))


def test_gaps_inside_core_hours():
    slots = slots_for(timed("a", "10:00", "11:00"))
    assert slots == [FreeSlot(540, 600), FreeSlot(660, 1020)]


def test_overlapping_events_block_as_one():
    slots = slots_for(timed("a", "09:00", "12:00"), timed("b", "11:00", "13:00"), timed("c", "13:10", "17:00"))
    assert slots == []


def test_declined_events_do_not_block():
    declined = timed("a", "09:00", "17:00",
                     attendees=(Attendee("me@example.com", response_status="declined", is_self=True),))
    assert slots_for(declined) == [FreeSlot(540, 1020)]


def test_evening_gap_only_between_events():
    slots = slots_for(timed("a", "09:00", "17:00"), timed("b", "18:00", "19:00"), timed("c", "20:00", "21:00"))
    assert slots == [FreeSlot(19 * 60, 20 * 60, in_core_hours=False)]


def test_short_gaps_are_skipped():
    slots = slots_for(timed("a", "09:00", "12:00"), timed("b", "12:20", "17:00"))
    assert slots == []


def test_slot_blocks():
    assert slot_blocks(FreeSlot(540, 600)) == "🟩🟩 Available"
    assert slot_blocks(FreeSlot(0, 1440)) == "🟩" * 10 + " Available"
    assert slot_blocks(FreeSlot(1140, 1200, in_core_hours=False)) == "⬛⬛ Available"
