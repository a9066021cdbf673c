"""Event snapshot providers consumed by the navigation session"""

from typing import Iterable, List, Optional, Protocol

from .events import CalendarEvent


class EventSource(Protocol):
    """Anything that hands out the current best-known events

    ``version`` changes whenever the snapshot changes; sources that cannot
    track that expose ``None`` and get no layout caching.
    """
    version: Optional[int]

    def get_events(self) -> List[CalendarEvent]:
        ...


class StaticEventSource:
    """In-memory snapshot, replaced wholesale on every update"""

    def __init__(self, events: Iterable[CalendarEvent] = ()):
        self._events: List[CalendarEvent] = list(events)
        self.version = 0

    def get_events(self) -> List[CalendarEvent]:
        return self._events

    def set_events(self, events: Iterable[CalendarEvent]):
        self._events = list(events)
        self.version += 1
