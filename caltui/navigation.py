"""
Navigation state machine

One CalendarSession per running app owns the NavigationState: selected day,
view anchor of the day list, selected event, focus context, overlay stack,
multi-column focus and timeline scroll. Every transition is total: indices
clamp, empty days are no-ops and a selected event that disappeared from the
snapshot is re-derived instead of raising.

The session never talks to the calendar backend. Saves, deletes and RSVPs
are queued as intents which the TUI drains and performs.
"""

from dataclasses import dataclass, field, replace
from datetime import date, datetime, time, timedelta
from typing import Any, Callable, Dict, List, Optional, Tuple

from .chronology import chronological_order, event_index, nearest_event
from .config import ALLOWED_COLUMNS, Config
from .debug import debug_log
from .events import CalendarEvent
from .layout import DayLayout, get_event_layout, layout_day
from .sources import EventSource
from .timeutil import as_date, days_range, get_zone, minutes_from_midnight, now_in

FOCUS_CONTEXTS = ('days', 'timeline', 'details', 'dialog', 'command',
                  'confirm', 'notifications', 'calendars', 'search')

# Focus context each overlay kind takes while it is on top of the stack
OVERLAY_FOCUS = {
    'details': 'details',
    'dialog': 'dialog',
    'confirm': 'confirm',
    'command': 'command',
    'help': 'dialog',
    'notifications': 'notifications',
    'search': 'search',
}

DEFAULT_FOCUS = 'timeline'

RECURRENCE_SCOPES = ('this', 'following', 'all')
RSVP_RESPONSES = ('accepted', 'declined', 'tentative')

MINUTES_PER_SLOT = 15
SLOTS_PER_HOUR = 60 // MINUTES_PER_SLOT
SLOTS_PER_DAY = 24 * SLOTS_PER_HOUR
DEFAULT_SCROLL_HOUR = 8


@dataclass
class Overlay:
    kind: str
    payload: Dict[str, Any] = field(default_factory=dict)
    prev_focus: Optional[str] = None


@dataclass(frozen=True)
class PendingAction:
    """Multi-step edit/delete in progress"""
    event_id: str
    scope: Optional[str] = None
    notify_attendees: Optional[bool] = None


@dataclass(frozen=True)
class SaveIntent:
    event: Dict[str, Any]
    is_edit: bool = False
    scope: Optional[str] = None


@dataclass(frozen=True)
class DeleteIntent:
    event_id: str
    scope: Optional[str] = None
    notify_attendees: bool = False


@dataclass(frozen=True)
class RsvpIntent:
    event_id: str
    response: str


@dataclass
class NavigationState:
    selected_day: date
    view_anchor_day: date
    selected_event_id: Optional[str] = None
    focus: str = DEFAULT_FOCUS
    overlay_stack: List[Overlay] = field(default_factory=list)
    focused_column: int = 0
    columns: int = 1
    scroll_offset: int = DEFAULT_SCROLL_HOUR * SLOTS_PER_HOUR
    window_height: int = 15
    timeline_rows: int = 15
    # Edit buffer for the event dialog
    dialog_event: Optional[Dict[str, Any]] = None
    is_edit_mode: bool = False
    pending_action: Optional[PendingAction] = None
    command_input: str = ''
    status_message: str = ''


class CalendarSession:
    """Owns the navigation state and applies user actions to it"""

    def __init__(self, source: EventSource, config: Config,
                 clock: Optional[Callable[[], datetime]] = None):
        self.source = source
        self.config = config
        self.timezone = config.timezone
        self.clock = clock or (lambda: now_in(self.timezone))
        self.intents: List[Any] = []
        self._layout_cache: Dict[Tuple, DayLayout] = {}
        self._cache_version: Optional[int] = None

        today = self.today()
        self.state = NavigationState(
            selected_day=today,
            view_anchor_day=today,
            columns=config.columns,
            window_height=config.window_height,
            timeline_rows=config.window_height,
        )

    # ----- query surface -----

    @property
    def selected_day(self) -> date:
        return self.state.selected_day

    @property
    def selected_event_id(self) -> Optional[str]:
        return self.state.selected_event_id

    @property
    def focus(self) -> str:
        return self.state.focus

    @property
    def overlay_stack(self) -> Tuple[Overlay, ...]:
        return tuple(self.state.overlay_stack)

    @property
    def focused_column(self) -> int:
        return self.state.focused_column

    @property
    def scroll_offset(self) -> int:
        return self.state.scroll_offset

    @property
    def has_overlay(self) -> bool:
        return bool(self.state.overlay_stack)

    @property
    def top_overlay(self) -> Optional[Overlay]:
        return self.state.overlay_stack[-1] if self.state.overlay_stack else None

    def today(self) -> date:
        return as_date(self.clock(), get_zone(self.timezone))

    def now_minutes(self) -> int:
        return minutes_from_midnight(self.clock().astimezone(get_zone(self.timezone)))

    # ----- derived values -----

    def events(self) -> List[CalendarEvent]:
        return list(self.source.get_events())

    def day_layout(self, day: Optional[date] = None) -> DayLayout:
        """Layout of a day (the selected day by default)

        Memoised only when the source reports a snapshot version.
        """
        day = day or self.state.selected_day
        version = getattr(self.source, 'version', None)
        if version is None:
            return layout_day(self.events(), day, self.timezone)

        if version != self._cache_version:
            self._layout_cache.clear()
            self._cache_version = version

        key = (version, day, self.timezone)
        layout = self._layout_cache.get(key)
        if layout is None:
            layout = layout_day(self.events(), day, self.timezone)
            self._layout_cache[key] = layout
        return layout

    def day_events(self, day: Optional[date] = None) -> List[CalendarEvent]:
        return chronological_order(self.day_layout(day))

    def selected_event(self) -> Optional[CalendarEvent]:
        events = self.day_events()
        i = event_index(events, self.state.selected_event_id)
        return events[i] if i >= 0 else None

    def find_event(self, event_id: str) -> Optional[CalendarEvent]:
        for event in self.events():
            if event.id == event_id:
                return event
        return None

    def window_bounds(self) -> Tuple[date, date]:
        """First and last day of the visible day list"""
        height = self.state.window_height
        before = height // 2
        after = height - before - 1
        anchor = self.state.view_anchor_day
        return anchor - timedelta(days=before), anchor + timedelta(days=after)

    def visible_days(self) -> List[date]:
        height = self.state.window_height
        before = height // 2
        return days_range(self.state.view_anchor_day, before, height - before - 1)

    def column_days(self) -> List[date]:
        """Days shown side by side, the focused column being the selected day"""
        first = self.state.selected_day - timedelta(days=self.state.focused_column)
        return [first + timedelta(days=i) for i in range(self.state.columns)]

    def pending_invites(self) -> List[CalendarEvent]:
        return [e for e in self.events()
                if e.status != 'cancelled' and e.self_response_status == 'needsAction']

    # ----- selection bookkeeping -----

    def _ensure_day_visible(self):
        first, last = self.window_bounds()
        group_last = self.state.selected_day + timedelta(
            days=self.state.columns - 1 - self.state.focused_column)

        if group_last > last:
            self.state.view_anchor_day += group_last - last
            first, last = self.window_bounds()
        if self.state.selected_day < first:
            self.state.view_anchor_day -= first - self.state.selected_day

    def _max_scroll(self) -> int:
        return max(0, SLOTS_PER_DAY - self.state.timeline_rows)

    def _ensure_event_visible(self):
        entry = get_event_layout(self.day_layout(), self.state.selected_event_id or '')
        if entry is None:
            return
        slot = entry.start_minutes // MINUTES_PER_SLOT
        rows = self.state.timeline_rows
        if slot < self.state.scroll_offset:
            self.state.scroll_offset = slot
        elif slot >= self.state.scroll_offset + rows:
            self.state.scroll_offset = slot - rows + 1
        self.state.scroll_offset = max(0, min(self._max_scroll(), self.state.scroll_offset))

    def reconcile_selection(self):
        """Drop a selection that is not on the focused day and pick a new one

        Today picks the event nearest to now, other days their first event.
        """
        layout = self.day_layout()
        events = chronological_order(layout)
        if event_index(events, self.state.selected_event_id) >= 0:
            return

        if self.state.selected_event_id is not None:
            debug_log(f"Selected event {self.state.selected_event_id} not on {layout.day}, re-deriving")

        if not events:
            self.state.selected_event_id = None
            return

        if layout.day == self.today():
            event = nearest_event(layout, self.now_minutes())
        else:
            event = events[0]
        self.state.selected_event_id = event.id if event else None

    def events_changed(self):
        """The snapshot behind the source was replaced"""
        if getattr(self.source, 'version', None) is None:
            self._layout_cache.clear()
        self.reconcile_selection()

    def _set_selected_day(self, day: date):
        self.state.selected_day = day
        self._ensure_day_visible()
        self.reconcile_selection()

    def set_viewport(self, window_height: Optional[int] = None, timeline_rows: Optional[int] = None):
        """Renderer reports how many rows the day list and timeline have"""
        if window_height is not None:
            self.state.window_height = max(1, window_height)
            self._ensure_day_visible()
        if timeline_rows is not None:
            self.state.timeline_rows = max(1, timeline_rows)
            self.state.scroll_offset = min(self.state.scroll_offset, self._max_scroll())

    # ----- day navigation -----

    def move_day(self, direction: str):
        """Move day selection: up/down by one, start/end by half the window"""
        half = max(1, self.state.window_height // 2)
        steps = {'up': -1, 'down': 1, 'start': -half, 'end': half}
        if direction not in steps:
            return
        self._set_selected_day(self.state.selected_day + timedelta(days=steps[direction]))

    def select_day(self, day: date):
        """Select day and focus timeline with its first event selected"""
        self._set_selected_day(as_date(day))
        self.confirm_day()

    def confirm_day(self):
        self.state.focus = 'timeline'
        events = self.day_events()
        self.state.selected_event_id = events[0].id if events else None
        self._ensure_event_visible()

    def goto_date(self, day: date):
        """Jump to a day and centre the day list on it"""
        self.state.view_anchor_day = as_date(day)
        self._set_selected_day(as_date(day))

    def jump_to_now(self):
        now = self.clock().astimezone(get_zone(self.timezone))
        self._set_selected_day(now.date())

        now_mins = minutes_from_midnight(now)
        event = nearest_event(self.day_layout(), now_mins)
        if event:
            self.state.selected_event_id = event.id

        now_slot = now_mins // MINUTES_PER_SLOT
        self.state.scroll_offset = max(0, min(self._max_scroll(), now_slot - 2 * SLOTS_PER_HOUR))

    # ----- event navigation -----

    def move_event(self, direction: str):
        """Move event selection through the focused day in chronological order"""
        events = self.day_events()
        if not events:
            return

        current = event_index(events, self.state.selected_event_id)
        last = len(events) - 1

        if direction == 'next':
            new_index = current + 1 if current < last else current
        elif direction == 'prev':
            new_index = current - 1 if current > 0 else 0
        elif direction == 'first':
            new_index = 0
        elif direction == 'last':
            new_index = last
        else:
            return

        self.state.selected_event_id = events[new_index].id
        self._ensure_event_visible()

    def scroll_timeline(self, direction):
        """Scroll by half a page ('up'/'down') or to an absolute slot"""
        if isinstance(direction, int):
            target = direction
        else:
            step = max(1, self.state.timeline_rows // 2)
            target = self.state.scroll_offset + (-step if direction == 'up' else step)
        self.state.scroll_offset = max(0, min(self._max_scroll(), target))

    # ----- columns -----

    def move_column(self, direction: str):
        """Move column focus; at an edge the whole column group shifts a day"""
        if direction not in ('left', 'right'):
            return
        if self.state.columns <= 1:
            self.move_day('up' if direction == 'left' else 'down')
            return

        if direction == 'left':
            if self.state.focused_column > 0:
                self.state.focused_column -= 1
            self._set_selected_day(self.state.selected_day - timedelta(days=1))
        else:
            if self.state.focused_column < self.state.columns - 1:
                self.state.focused_column += 1
            self._set_selected_day(self.state.selected_day + timedelta(days=1))

    def set_columns(self, columns: int):
        if columns not in ALLOWED_COLUMNS:
            return
        self.state.columns = columns
        self.state.focused_column = min(self.state.focused_column, columns - 1)
        self._ensure_day_visible()

    def toggle_columns(self):
        """Cycle 1 -> 3 -> 5 -> 1 columns"""
        i = ALLOWED_COLUMNS.index(self.state.columns) if self.state.columns in ALLOWED_COLUMNS else -1
        self.set_columns(ALLOWED_COLUMNS[(i + 1) % len(ALLOWED_COLUMNS)])
        self.state.status_message = f"{self.state.columns}-day view"

    # ----- focus and overlays -----

    def toggle_focus(self):
        """Toggle focus between days and timeline"""
        if self.has_overlay:
            return
        if self.state.focus == 'days':
            self.state.focus = 'timeline'
        elif self.state.focus == 'timeline':
            self.state.focus = 'days'

    def push_overlay(self, kind: str, payload: Optional[Dict[str, Any]] = None):
        if kind not in OVERLAY_FOCUS:
            raise ValueError(f"Unknown overlay kind: {kind!r}")
        self.state.overlay_stack.append(Overlay(kind, dict(payload or {}), prev_focus=self.state.focus))
        self.state.focus = OVERLAY_FOCUS[kind]

    def pop_overlay(self):
        if not self.state.overlay_stack:
            return
        top = self.state.overlay_stack.pop()
        self.state.focus = top.prev_focus or DEFAULT_FOCUS

        if top.kind == 'dialog':
            self.state.dialog_event = None
            self.state.is_edit_mode = False
            self.state.pending_action = None
        elif top.kind == 'confirm':
            self.state.pending_action = None
        elif top.kind == 'command':
            self.state.command_input = ''

    def open_details(self):
        event = self.selected_event()
        if event is None:
            return
        self.push_overlay('details', {'event_id': event.id})

    def open_help(self):
        self.push_overlay('help')

    def open_notifications(self):
        self.push_overlay('notifications', {'count': len(self.pending_invites())})

    def open_search(self):
        self.push_overlay('search')

    # ----- event dialog -----

    def open_new_dialog(self, title: Optional[str] = None):
        """Open the event dialog with a one hour draft starting next hour"""
        zone = get_zone(self.timezone)
        now = self.clock().astimezone(zone)
        start_hour = now.hour + 1 if now.hour < 23 else now.hour
        start = datetime.combine(self.state.selected_day, time(start_hour), tzinfo=zone)
        end = start + timedelta(hours=1)

        self.state.dialog_event = {
            'summary': title or '',
            'status': 'confirmed',
            'eventType': 'default',
            'start': {'dateTime': start.isoformat(), 'timeZone': self.timezone},
            'end': {'dateTime': end.isoformat(), 'timeZone': self.timezone},
        }
        self.state.is_edit_mode = False
        self.state.pending_action = None
        self.push_overlay('dialog')

    def open_edit_dialog(self):
        event = self.selected_event()
        if event is None:
            return

        # Recurring events ask for a scope first
        if event.is_recurring:
            self.state.pending_action = PendingAction(event.id)
            self.push_overlay('confirm', {'type': 'editScope'})
            return

        self.state.pending_action = None
        self.state.dialog_event = event.to_dict()
        self.state.is_edit_mode = True
        self.push_overlay('dialog')

    def continue_edit_with_scope(self, scope: str):
        pending = self.state.pending_action
        if pending is None or scope not in RECURRENCE_SCOPES:
            return
        event = self.find_event(pending.event_id)
        if event is None:
            return

        self.pop_overlay()
        self.state.pending_action = replace(pending, scope=scope)
        self.state.dialog_event = event.to_dict()
        self.state.is_edit_mode = True
        self.push_overlay('dialog')

    def update_draft(self, **fields: Any):
        if self.state.dialog_event is None:
            return
        self.state.dialog_event.update(fields)

    def save_dialog(self):
        draft = self.state.dialog_event
        if draft is None:
            return
        pending = self.state.pending_action
        self.intents.append(SaveIntent(
            event=dict(draft),
            is_edit=self.state.is_edit_mode,
            scope=pending.scope if pending and pending.event_id == draft.get('id') else None,
        ))
        self.pop_overlay()

    # ----- delete flow -----

    def initiate_delete(self):
        event = self.selected_event()
        if event is None:
            return

        self.state.pending_action = PendingAction(event.id)
        if event.is_recurring:
            self.push_overlay('confirm', {'type': 'deleteScope'})
        elif event.has_other_attendees:
            self.push_overlay('confirm', {'type': 'notifyAttendees'})
        else:
            self.push_overlay('confirm', {'type': 'deleteConfirm'})

    def continue_delete_with_scope(self, scope: str):
        pending = self.state.pending_action
        if pending is None or scope not in RECURRENCE_SCOPES:
            return
        event = self.find_event(pending.event_id)
        if event is None:
            return

        self.pop_overlay()
        self.state.pending_action = replace(pending, scope=scope)
        if event.has_other_attendees:
            self.push_overlay('confirm', {'type': 'notifyAttendees'})
        else:
            self.push_overlay('confirm', {'type': 'deleteConfirm'})

    def continue_delete_with_notify(self, notify: bool):
        pending = self.state.pending_action
        if pending is None:
            return
        self.pop_overlay()
        self.state.pending_action = replace(pending, notify_attendees=notify)
        self.push_overlay('confirm', {'type': 'deleteConfirm'})

    def confirm_delete(self):
        pending = self.state.pending_action
        if pending is None:
            return
        self.intents.append(DeleteIntent(
            event_id=pending.event_id,
            scope=pending.scope,
            notify_attendees=bool(pending.notify_attendees),
        ))
        self.state.selected_event_id = None
        self.pop_overlay()

    def cancel_delete(self):
        self.state.pending_action = None
        self.pop_overlay()

    def confirm_answer(self, answer: bool):
        """y/n on the confirm overlay, routed by what it is asking"""
        top = self.top_overlay
        if top is None or top.kind != 'confirm':
            return
        kind = top.payload.get('type')
        if kind == 'notifyAttendees':
            self.continue_delete_with_notify(answer)
        elif kind == 'deleteConfirm' and answer:
            self.confirm_delete()
        else:
            self.cancel_delete()

    def choose_scope(self, scope: str):
        top = self.top_overlay
        if top is None or top.kind != 'confirm':
            return
        kind = top.payload.get('type')
        if kind == 'editScope':
            self.continue_edit_with_scope(scope)
        elif kind == 'deleteScope':
            self.continue_delete_with_scope(scope)

    # ----- RSVP -----

    def respond(self, response: str):
        if response not in RSVP_RESPONSES:
            return
        event = self.selected_event()
        if event is None:
            self.state.status_message = "No event selected"
            return
        if not event.attendees:
            self.state.status_message = "No attendees for this event"
            return
        self.intents.append(RsvpIntent(event.id, response))
        self.state.status_message = f"✅ Event {response}"

    # ----- command bar -----

    def open_command(self):
        self.push_overlay('command')

    def set_command_input(self, text: str):
        self.state.command_input = text

    def execute_command(self):
        text = self.state.command_input.strip().lstrip(':/')
        self.pop_overlay()
        if not text:
            return

        name, _, arg = text.partition(' ')
        arg = arg.strip()

        if name == 'new':
            self.open_new_dialog(arg or None)
        elif name == 'goto':
            try:
                self.goto_date(date.fromisoformat(arg))
            except ValueError:
                self.state.status_message = f"Invalid date: {arg!r}"
        elif name in ('today', 'now'):
            self.jump_to_now()
        elif name == 'columns':
            if arg.isdigit() and int(arg) in ALLOWED_COLUMNS:
                self.set_columns(int(arg))
            else:
                self.state.status_message = f"columns must be one of {ALLOWED_COLUMNS}"
        else:
            self.state.status_message = f"Unknown command: {name}"

    def drain_intents(self) -> List[Any]:
        intents, self.intents = self.intents, []
        return intents
