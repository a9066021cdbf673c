"""
Calendar event records

Events arrive as Google Calendar style JSON dicts (from the MCP server or a
test fixture) and are converted once into immutable CalendarEvent objects.
The layout and navigation code never mutates them.
"""

from dataclasses import dataclass, field, replace
from typing import Dict, Optional, Tuple

EVENT_STATUSES = ('confirmed', 'tentative', 'cancelled')
RESPONSE_STATUSES = ('needsAction', 'declined', 'tentative', 'accepted')


@dataclass(frozen=True)
class EventTime:
    """Start or end of an event: either a calendar date or a zoned instant"""
    date: Optional[str] = None          # YYYY-MM-DD for all-day events
    date_time: Optional[str] = None     # ISO 8601 for timed events
    time_zone: Optional[str] = None     # source timezone of date_time

    @classmethod
    def from_dict(cls, time_obj: Optional[Dict]) -> 'EventTime':
        if not isinstance(time_obj, dict):
            return cls()
        return cls(
            date=time_obj.get('date') or None,
            date_time=time_obj.get('dateTime') or None,
            time_zone=time_obj.get('timeZone') or None,
        )

    def to_dict(self) -> Dict:
        data = {}
        if self.date:
            data['date'] = self.date
        if self.date_time:
            data['dateTime'] = self.date_time
        if self.time_zone:
            data['timeZone'] = self.time_zone
        return data


@dataclass(frozen=True)
class Attendee:
    email: str
    display_name: Optional[str] = None
    response_status: str = 'needsAction'
    organizer: bool = False
    is_self: bool = False

    @classmethod
    def from_dict(cls, data: Dict) -> 'Attendee':
        status = data.get('responseStatus', 'needsAction')
        if status not in RESPONSE_STATUSES:
            status = 'needsAction'
        return cls(
            email=data.get('email', ''),
            display_name=data.get('displayName'),
            response_status=status,
            organizer=bool(data.get('organizer', False)),
            is_self=bool(data.get('self', False)),
        )

    def to_dict(self) -> Dict:
        data = {'email': self.email, 'responseStatus': self.response_status}
        if self.display_name:
            data['displayName'] = self.display_name
        if self.organizer:
            data['organizer'] = True
        if self.is_self:
            data['self'] = True
        return data


@dataclass(frozen=True)
class CalendarEvent:
    """Represents a calendar event"""
    id: str
    summary: str = ''
    start: EventTime = field(default_factory=EventTime)
    end: EventTime = field(default_factory=EventTime)
    status: str = 'confirmed'
    event_type: str = 'default'
    description: Optional[str] = None
    location: Optional[str] = None
    recurrence: Tuple[str, ...] = ()
    recurring_event_id: Optional[str] = None
    attendees: Tuple[Attendee, ...] = ()
    hangout_link: Optional[str] = None

    @classmethod
    def from_dict(cls, event_data: Dict) -> 'CalendarEvent':
        """Build an event from a Google Calendar JSON object"""
        status = event_data.get('status', 'confirmed')
        if status not in EVENT_STATUSES:
            status = 'confirmed'

        event_type = event_data.get('eventType', 'default') or 'default'
        description = event_data.get('description') or None

        # Google Tasks appear as focusTime events but have tasks.google.com in description
        if event_type == 'focusTime' and description and 'tasks.google.com/task/' in description:
            event_type = 'task'

        return cls(
            id=str(event_data.get('id', '')),
            summary=event_data.get('summary', '') or '',
            start=EventTime.from_dict(event_data.get('start')),
            end=EventTime.from_dict(event_data.get('end')),
            status=status,
            event_type=event_type,
            description=description,
            location=event_data.get('location') or None,
            recurrence=tuple(event_data.get('recurrence') or ()),
            recurring_event_id=event_data.get('recurringEventId') or None,
            attendees=tuple(Attendee.from_dict(a) for a in event_data.get('attendees') or ()),
            hangout_link=event_data.get('hangoutLink') or None,
        )

    def to_dict(self) -> Dict:
        data = {
            'id': self.id,
            'summary': self.summary,
            'status': self.status,
            'eventType': self.event_type,
            'start': self.start.to_dict(),
            'end': self.end.to_dict(),
        }
        if self.description:
            data['description'] = self.description
        if self.location:
            data['location'] = self.location
        if self.recurrence:
            data['recurrence'] = list(self.recurrence)
        if self.recurring_event_id:
            data['recurringEventId'] = self.recurring_event_id
        if self.attendees:
            data['attendees'] = [a.to_dict() for a in self.attendees]
        if self.hangout_link:
            data['hangoutLink'] = self.hangout_link
        return data

    @property
    def is_all_day(self) -> bool:
        return bool(self.start.date) and not self.start.date_time

    @property
    def is_recurring(self) -> bool:
        return bool(self.recurrence) or bool(self.recurring_event_id)

    @property
    def has_other_attendees(self) -> bool:
        return any(not a.is_self and not a.organizer for a in self.attendees)

    @property
    def self_response_status(self) -> Optional[str]:
        for attendee in self.attendees:
            if attendee.is_self:
                return attendee.response_status
        return None

    @property
    def display_title(self) -> str:
        return self.summary.strip() or '(No title)'

    def with_response(self, response: str) -> 'CalendarEvent':
        """Copy of this event with the self attendee's response replaced"""
        attendees = tuple(
            replace(a, response_status=response) if a.is_self else a
            for a in self.attendees
        )
        return replace(self, attendees=attendees)

    def get_response_char(self) -> str:
        """Get character representing RSVP status"""
        if self.event_type == 'task':
            return '📋'
        if self.event_type == 'focusTime':
            return '🎧'
        if self.event_type == 'outOfOffice':
            return '🚫'
        if self.event_type == 'birthday':
            return '🎂'

        status = self.self_response_status
        if status is None:
            return '❓' if self.attendees else ''

        status_map = {
            'accepted': '✅',
            'declined': '❌',
            'tentative': '⏳',
            'needsAction': '❓'
        }
        return status_map.get(status, '❓')

    def get_attendee_count(self) -> str:
        """Get formatted attendee count as accepted/total"""
        total = len(self.attendees)
        if total == 0:
            return '—'
        accepted = sum(1 for a in self.attendees if a.response_status == 'accepted')
        return f'(👍🏼{accepted}/{total})'

    def get_meet_link_display(self) -> tuple:
        """Get meet link for display - returns (display_text, full_url)

        Google Meet links are shortened to https://g.co/meet/xxx-yyyy-zzz.
        """
        if not self.hangout_link:
            return ('—', None)

        if 'meet.google.com/' in self.hangout_link:
            parts = self.hangout_link.split('meet.google.com/')
            if len(parts) > 1:
                meeting_id = parts[1].split('?')[0]
                return (f"https://g.co/meet/{meeting_id}", self.hangout_link)

        return (self.hangout_link, self.hangout_link)
