"""
Day layout engine

Turns an unordered collection of events into the geometry of a single day:
all-day events, per-event minute ranges, overlap groups and column packing
for side-by-side rendering, and an hour -> events index.

layout_day() is a pure function. It keeps no state between calls and the
returned DayLayout is frozen, so the renderer and the navigation session
can share it freely.
"""

from dataclasses import dataclass
from datetime import date, datetime
from typing import Iterable, List, Optional, Tuple, Union

from .events import CalendarEvent
from .timeutil import (
    MINUTES_PER_DAY,
    TimezoneLike,
    as_utc,
    as_date,
    day_bounds,
    duration_minutes,
    event_end,
    event_start,
    falls_on_day,
    get_zone,
    minutes_from_midnight,
    zone_name,
)

HOURS_PER_DAY = 24


@dataclass(frozen=True)
class TimedEventLayout:
    """Geometry of one timed event on one day"""
    event: CalendarEvent
    start_minutes: int          # 0-1440
    end_minutes: int            # 0-1440
    hour_bucket_start: int      # 0-23
    hour_bucket_end: int        # 0-23
    duration_minutes: int
    offset_in_hour: int         # minutes past the start hour
    has_overlap: bool = False
    overlap_group: int = 0
    overlap_index: int = 0      # position within overlap group
    overlap_count: int = 1      # members in overlap group
    column: int = 0
    total_columns: int = 1


@dataclass(frozen=True)
class DayLayout:
    day: date
    timezone: str
    all_day_events: Tuple[CalendarEvent, ...]
    timed_events: Tuple[TimedEventLayout, ...]
    hour_buckets: Tuple[Tuple[TimedEventLayout, ...], ...]   # indexed by hour 0-23

    @property
    def is_empty(self) -> bool:
        return not self.all_day_events and not self.timed_events


@dataclass
class _Clamped:
    event: CalendarEvent
    start: datetime
    end: datetime
    start_minutes: int
    end_minutes: int


def _clamp(event: CalendarEvent, day_start: datetime, day_end: datetime, zone) -> _Clamped:
    start = event_start(event, zone)
    end = event_end(event, zone)

    # Clamp to day boundaries
    if as_utc(start) < as_utc(day_start):
        start = day_start
    if as_utc(end) > as_utc(day_end):
        end = day_end

    start_minutes = max(0, minutes_from_midnight(start))
    end_minutes = min(MINUTES_PER_DAY, minutes_from_midnight(end))
    if end_minutes == 0 and as_utc(end) > as_utc(day_start):
        # Runs to (or past) midnight
        end_minutes = MINUTES_PER_DAY
    # A DST fall-back hour can put the wall-clock end before the start
    end_minutes = max(end_minutes, start_minutes)

    return _Clamped(event, start, end, start_minutes, end_minutes)


def _group_overlaps(items: List[_Clamped]) -> List[List[int]]:
    """Sweep sorted items into overlap groups; returns lists of indices"""
    groups: List[List[int]] = []
    current: List[int] = []
    group_end = 0

    for i, item in enumerate(items):
        if current and item.start_minutes < group_end:
            current.append(i)
            group_end = max(group_end, item.end_minutes)
        else:
            if current:
                groups.append(current)
            current = [i]
            group_end = item.end_minutes

    if current:
        groups.append(current)
    return groups


def _pack_columns(items: List[_Clamped], group: List[int]) -> List[int]:
    """Greedy interval colouring of one group, in start order"""
    columns: List[int] = []
    active: List[Tuple[int, int]] = []   # (end_minutes, column)

    for i in group:
        item = items[i]
        active = [(end, col) for end, col in active if end > item.start_minutes]
        used = {col for _, col in active}
        col = 0
        while col in used:
            col += 1
        columns.append(col)
        active.append((item.end_minutes, col))

    return columns


def layout_day(events: Iterable[CalendarEvent], day: Union[date, datetime], tz: TimezoneLike) -> DayLayout:
    """Compute the layout of one day in timezone tz"""
    zone = get_zone(tz)
    d = as_date(day, zone)
    day_start, day_end = day_bounds(d, zone)

    all_day: List[CalendarEvent] = []
    timed: List[_Clamped] = []

    for event in events:
        if event.status == 'cancelled':
            continue
        if not falls_on_day(event, d, zone):
            continue
        if event.is_all_day:
            all_day.append(event)
        else:
            timed.append(_clamp(event, day_start, day_end, zone))

    # Stable: identical starts keep input order
    timed.sort(key=lambda c: as_utc(c.start))

    layouts: List[TimedEventLayout] = [None] * len(timed)
    for group_id, group in enumerate(_group_overlaps(timed)):
        columns = _pack_columns(timed, group)
        total_columns = max(columns) + 1
        overlapping = len(group) > 1

        for position, (i, col) in enumerate(zip(group, columns)):
            item = timed[i]
            hour_bucket_start = min(HOURS_PER_DAY - 1, item.start_minutes // 60)
            if item.end_minutes == MINUTES_PER_DAY:
                hour_bucket_end = HOURS_PER_DAY - 1
            else:
                hour_bucket_end = max(hour_bucket_start, min(HOURS_PER_DAY - 1, (item.end_minutes - 1) // 60))

            layouts[i] = TimedEventLayout(
                event=item.event,
                start_minutes=item.start_minutes,
                end_minutes=item.end_minutes,
                hour_bucket_start=hour_bucket_start,
                hour_bucket_end=hour_bucket_end,
                duration_minutes=max(0, duration_minutes(item.start, item.end)),
                offset_in_hour=item.start_minutes % 60,
                has_overlap=overlapping,
                overlap_group=group_id,
                overlap_index=position,
                overlap_count=len(group),
                column=col,
                total_columns=total_columns,
            )

    buckets: List[List[TimedEventLayout]] = [[] for _ in range(HOURS_PER_DAY)]
    for entry in layouts:
        buckets[entry.hour_bucket_start].append(entry)

    return DayLayout(
        day=d,
        timezone=zone_name(tz),
        all_day_events=tuple(all_day),
        timed_events=tuple(layouts),
        hour_buckets=tuple(tuple(b) for b in buckets),
    )


def get_event_layout(layout: DayLayout, event_id: str) -> Optional[TimedEventLayout]:
    """Get layout for a specific event"""
    for entry in layout.timed_events:
        if entry.event.id == event_id:
            return entry
    return None


def overlap_groups(layout: DayLayout) -> List[List[TimedEventLayout]]:
    """Timed events grouped by overlap group, in layout order"""
    groups: List[List[TimedEventLayout]] = []
    for entry in layout.timed_events:
        if groups and groups[-1][0].overlap_group == entry.overlap_group:
            groups[-1].append(entry)
        else:
            groups.append([entry])
    return groups
