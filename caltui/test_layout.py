"""Tests for the day layout engine"""

from datetime import date

from .events import CalendarEvent, EventTime
from .layout import get_event_layout, layout_day, overlap_groups

DAY = date(2024, 2, 5)


def timed(event_id: str, start: str, end: str, day: str = "2024-02-05", end_day: str = None, **kwargs) -> CalendarEvent:
    return CalendarEvent(
        id=event_id,
        summary=event_id,
        start=EventTime(date_time=f"{day}T{start}:00Z"),
        end=EventTime(date_time=f"{end_day or day}T{end}:00Z"),
        **kwargs,
    )


def all_day(event_id: str, start: str = "2024-02-05", end: str = "2024-02-06") -> CalendarEvent:
    return CalendarEvent(id=event_id, summary=event_id, start=EventTime(date=start), end=EventTime(date=end))


def by_id(layout):
    return {entry.event.id: entry for entry in layout.timed_events}


def mixed_events():
    return [
        timed("late", "22:00", "01:00", end_day="2024-02-06"),
        timed("early", "22:00", "01:00", day="2024-02-04", end_day="2024-02-05"),
        timed("a", "09:00", "10:00"),
        timed("b", "09:30", "10:30"),
        timed("c", "10:00", "10:30"),
        timed("d", "10:15", "11:00"),
        timed("zero", "12:00", "12:00"),
        timed("e", "14:00", "15:00"),
        timed("multi", "20:00", "08:00", day="2024-02-04", end_day="2024-02-07"),
        all_day("holiday"),
        timed("gone", "09:00", "10:00", status="cancelled"),
        timed("other", "09:00", "10:00", day="2024-02-06"),
    ]


def test_two_overlapping_events_share_a_group():
    layout = layout_day([timed("a", "09:00", "10:00"), timed("b", "09:30", "10:30")], DAY, "UTC")
    a, b = layout.timed_events
    assert a.overlap_group == b.overlap_group
    assert {a.column, b.column} == {0, 1}
    assert a.total_columns == b.total_columns == 2
    assert a.has_overlap and b.has_overlap
    assert (a.overlap_index, b.overlap_index) == (0, 1)
    assert a.overlap_count == 2


def test_running_group_end_keeps_transitive_members():
    a = timed("A", "09:00", "10:00")
    b = timed("B", "10:00", "11:00")
    c = timed("C", "09:30", "09:45")
    layout = layout_day([a, b, c], DAY, "UTC")
    entries = by_id(layout)

    assert entries["A"].overlap_group == entries["C"].overlap_group
    assert entries["B"].overlap_group != entries["A"].overlap_group
    assert not entries["B"].has_overlap
    assert entries["B"].total_columns == 1
    assert (entries["A"].column, entries["C"].column) == (0, 1)
    assert [e.event.id for e in layout.timed_events] == ["A", "C", "B"]


def test_columns_are_reused_once_free():
    layout = layout_day([
        timed("A", "09:00", "10:00"),
        timed("B", "09:30", "11:00"),
        timed("C", "10:00", "10:30"),
    ], DAY, "UTC")
    entries = by_id(layout)
    assert len({e.overlap_group for e in entries.values()}) == 1
    assert [entries[k].column for k in "ABC"] == [0, 1, 0]
    assert all(e.total_columns == 2 for e in entries.values())


def test_minutes_are_clamped_to_the_day():
    layout = layout_day(mixed_events(), DAY, "UTC")
    entries = by_id(layout)

    assert (entries["early"].start_minutes, entries["early"].end_minutes) == (0, 60)
    assert (entries["late"].start_minutes, entries["late"].end_minutes) == (22 * 60, 1440)
    assert (entries["multi"].start_minutes, entries["multi"].end_minutes) == (0, 1440)
    assert entries["late"].hour_bucket_end == 23
    assert entries["late"].duration_minutes == 120


def test_event_ending_at_midnight_maps_to_end_of_day():
    layout = layout_day([timed("x", "23:00", "00:00", end_day="2024-02-06")], DAY, "UTC")
    entry = layout.timed_events[0]
    assert (entry.start_minutes, entry.end_minutes) == (23 * 60, 1440)
    assert entry.hour_bucket_start == entry.hour_bucket_end == 23


def test_layout_invariants():
    layout = layout_day(mixed_events(), DAY, "UTC")
    ids = [e.event.id for e in layout.timed_events]
    assert "gone" not in ids and "other" not in ids
    assert [e.id for e in layout.all_day_events] == ["holiday"]

    for entry in layout.timed_events:
        assert 0 <= entry.start_minutes <= entry.end_minutes <= 1440
        assert 0 <= entry.hour_bucket_start <= entry.hour_bucket_end <= 23
        assert entry.offset_in_hour == entry.start_minutes % 60
        assert 0 <= entry.column < entry.total_columns

    # Groups partition the timed events
    groups = overlap_groups(layout)
    flattened = [entry.event.id for group in groups for entry in group]
    assert sorted(flattened) == sorted(ids)
    assert len({entry.overlap_group for entry in layout.timed_events}) == len(groups)

    # Members sharing a column never overlap
    for group in groups:
        assert all(entry.overlap_count == len(group) for entry in group)
        for i, first in enumerate(group):
            for second in group[i + 1:]:
                if first.column == second.column:
                    assert (first.end_minutes <= second.start_minutes
                            or second.end_minutes <= first.start_minutes)


def test_hour_buckets():
    layout = layout_day(mixed_events(), DAY, "UTC")
    assert len(layout.hour_buckets) == 24
    assert [e.event.id for e in layout.hour_buckets[9]] == ["a", "b"]
    assert [e.event.id for e in layout.hour_buckets[10]] == ["c", "d"]
    assert sum(len(bucket) for bucket in layout.hour_buckets) == len(layout.timed_events)


def test_layout_is_idempotent():
    events = mixed_events()
    assert layout_day(events, DAY, "UTC") == layout_day(events, DAY, "UTC")


def test_identical_starts_keep_input_order():
    layout = layout_day([timed("second", "09:00", "10:00"), timed("first", "09:00", "09:30")], DAY, "UTC")
    assert [e.event.id for e in layout.timed_events] == ["second", "first"]
    assert [e.column for e in layout.timed_events] == [0, 1]


def test_layout_in_target_timezone():
    event = timed("standup", "14:00", "14:30")
    layout = layout_day([event], DAY, "America/New_York")
    entry = layout.timed_events[0]
    assert layout.timezone == "America/New_York"
    assert (entry.start_minutes, entry.end_minutes) == (9 * 60, 9 * 60 + 30)


def test_empty_day():
    layout = layout_day([], DAY, "UTC")
    assert layout.is_empty
    assert layout.hour_buckets == tuple(() for _ in range(24))
    assert get_event_layout(layout, "missing") is None
