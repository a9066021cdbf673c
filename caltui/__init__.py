"""Terminal calendar: day layout, keyboard navigation and a curses front end"""

from .events import Attendee, CalendarEvent, EventTime
from .layout import DayLayout, TimedEventLayout, layout_day
from .navigation import CalendarSession, NavigationState
from .sources import StaticEventSource

__all__ = [
    'Attendee',
    'CalendarEvent',
    'CalendarSession',
    'DayLayout',
    'EventTime',
    'NavigationState',
    'StaticEventSource',
    'TimedEventLayout',
    'layout_day',
]
