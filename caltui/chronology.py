"""Chronological traversal of a day layout (j/k navigation, jump to now)"""

from typing import List, Optional, Sequence

from .events import CalendarEvent
from .layout import DayLayout


def chronological_order(layout: DayLayout) -> List[CalendarEvent]:
    """All-day events first, then timed events by start time"""
    return list(layout.all_day_events) + [entry.event for entry in layout.timed_events]


def nearest_event(layout: DayLayout, target_minute: int) -> Optional[CalendarEvent]:
    """Find the timed event starting closest to target_minute

    Ties go to the earlier event. With no timed events the first all-day
    event is returned, or None for an empty day.
    """
    if not layout.timed_events:
        return layout.all_day_events[0] if layout.all_day_events else None

    nearest = layout.timed_events[0]
    min_distance = abs(nearest.start_minutes - target_minute)

    for entry in layout.timed_events[1:]:
        distance = abs(entry.start_minutes - target_minute)
        if distance < min_distance:
            min_distance = distance
            nearest = entry

    return nearest.event


def event_index(events: Sequence[CalendarEvent], event_id: Optional[str]) -> int:
    if event_id is None:
        return -1
    for i, event in enumerate(events):
        if event.id == event_id:
            return i
    return -1
