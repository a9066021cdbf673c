"""
Event source backed by the Google Calendar MCP server

The TUI talks to gcal-mcp-server over stdio. Fetched events are kept as an
immutable snapshot; every change (fetch, optimistic RSVP or delete) swaps in
a new list and bumps ``version`` so the navigation session re-derives its
layouts.
"""

import json
from datetime import date, datetime, time, timedelta
from typing import Any, Dict, List, Optional, Set

from mcp import ClientSession, StdioServerParameters
from mcp.client.stdio import stdio_client

from .debug import debug_log
from .events import CalendarEvent
from .navigation import DeleteIntent, RsvpIntent, SaveIntent
from .timeutil import as_date, event_start, get_zone


class MCPClient:
    """Client for interacting with MCP server via stdio"""

    def __init__(self, server_path: str):
        self.server_path = server_path
        self.session: Optional[ClientSession] = None
        self.stdio_context = None
        self.session_context = None

    async def connect(self):
        """Connect to MCP server"""
        server_params = StdioServerParameters(
            command=self.server_path,
            args=[],
            env=None
        )

        # Enter the stdio context
        self.stdio_context = stdio_client(server_params)
        stdio, write = await self.stdio_context.__aenter__()

        # Enter the session context
        self.session_context = ClientSession(stdio, write)
        self.session = await self.session_context.__aenter__()

        await self.session.initialize()

    async def disconnect(self):
        """Disconnect from MCP server"""
        # Exit contexts in reverse order
        if self.session_context:
            await self.session_context.__aexit__(None, None, None)
            self.session_context = None
            self.session = None

        if self.stdio_context:
            await self.stdio_context.__aexit__(None, None, None)
            self.stdio_context = None

    async def call_tool(self, tool_name: str, arguments: Dict) -> Any:
        """Call an MCP tool and return the text of its first content item"""
        if not self.session:
            raise RuntimeError("Not connected to MCP server")

        result = await self.session.call_tool(tool_name, arguments)
        return result.content[0].text if result.content else {}


def _is_error_result(result: Any) -> bool:
    return isinstance(result, str) and ("Error:" in result or "error" in result.lower())


class McpEventSource:
    """Snapshot of events fetched through the MCP list_events tool"""

    def __init__(self, client: MCPClient, timezone: str):
        self.client = client
        self.timezone = timezone
        self.version = 0
        self.last_error: Optional[str] = None
        self.loaded_dates: Set[date] = set()
        self._events: List[CalendarEvent] = []

    def get_events(self) -> List[CalendarEvent]:
        return self._events

    def _replace(self, events: List[CalendarEvent]):
        self._events = events
        self.version += 1

    async def refresh(self, start: date, end: date) -> bool:
        """Fetch [start, end] (inclusive dates) and replace that range"""
        zone = get_zone(self.timezone)
        range_start = datetime.combine(start, time(), tzinfo=zone)
        range_end = datetime.combine(end + timedelta(days=1), time(), tzinfo=zone)

        params = {
            "time_filter": "custom",
            "time_min": range_start.isoformat(),
            "time_max": range_end.isoformat(),
            "timezone": self.timezone,
            "detect_overlaps": False,
            "show_declined": True,
            "max_results": 250,
            "output_format": "json"
        }

        try:
            result = await self.client.call_tool("list_events", params)
            data = json.loads(result) if isinstance(result, str) else result
            fetched = [CalendarEvent.from_dict(e) for e in data.get('events', [])]
        except json.JSONDecodeError as e:
            self.last_error = f"JSON parse error: {e}"
            debug_log(f"{self.last_error}. Result: {str(result)[:200]}")
            return False
        except Exception as e:
            self.last_error = f"{type(e).__name__}: {e}"
            debug_log(f"Error fetching {start} to {end}: {self.last_error}")
            return False

        def in_range(event: CalendarEvent) -> bool:
            return start <= as_date(event_start(event, zone), zone) <= end

        # Keep only events outside the reload range, then add the server's view
        kept = [e for e in self._events if not in_range(e)]
        fetched_ids = {e.id for e in fetched}
        kept = [e for e in kept if e.id not in fetched_ids]
        self._replace(kept + fetched)

        current = start
        while current <= end:
            self.loaded_dates.add(current)
            current += timedelta(days=1)

        self.last_error = None
        debug_log(f"Fetched {len(fetched)} events for {start} to {end}, {len(self._events)} in snapshot")
        return True

    async def apply(self, intent) -> bool:
        """Perform a save/delete/RSVP intent queued by the session"""
        try:
            if isinstance(intent, RsvpIntent):
                return await self._apply_rsvp(intent)
            if isinstance(intent, DeleteIntent):
                return await self._apply_delete(intent)
            if isinstance(intent, SaveIntent):
                return await self._apply_save(intent)
        except Exception as e:
            self.last_error = f"{type(e).__name__}: {e}"
            debug_log(f"Intent {intent} failed: {self.last_error}")
            return False

        debug_log(f"Unknown intent {intent!r}")
        return False

    def _find(self, event_id: str) -> Optional[CalendarEvent]:
        for event in self._events:
            if event.id == event_id:
                return event
        return None

    def _check(self, result: Any, what: str) -> bool:
        if _is_error_result(result):
            self.last_error = f"{what} failed"
            debug_log(f"{what} error: {result}")
            return False
        self.last_error = None
        return True

    async def _apply_rsvp(self, intent: RsvpIntent) -> bool:
        event = self._find(intent.event_id)
        if event is None:
            debug_log(f"Event {intent.event_id} not found for RSVP update")
            return False

        # Optimistic update: local snapshot first
        updated = event.with_response(intent.response)
        self._replace([updated if e.id == event.id else e for e in self._events])

        attendees = [
            {"email": a.email, "response_status": a.response_status}
            for a in updated.attendees
        ]
        debug_log(f"Updating RSVP for {event.id} to {intent.response}")
        result = await self.client.call_tool(
            "edit_event",
            {
                "event_id": event.id,
                "attendees": attendees,
                "send_notifications": False
            }
        )
        return self._check(result, "RSVP update")

    async def _apply_delete(self, intent: DeleteIntent) -> bool:
        self._replace([e for e in self._events if e.id != intent.event_id])

        params = {
            "event_id": intent.event_id,
            "send_notifications": intent.notify_attendees,
        }
        if intent.scope:
            params["scope"] = intent.scope
        debug_log(f"Deleting event: {intent.event_id}")
        result = await self.client.call_tool("delete_event", params)
        return self._check(result, "Delete")

    async def _apply_save(self, intent: SaveIntent) -> bool:
        draft = intent.event
        args = {
            "summary": draft.get('summary', ''),
            "start_time": draft.get('start', {}).get('dateTime') or draft.get('start', {}).get('date'),
            "end_time": draft.get('end', {}).get('dateTime') or draft.get('end', {}).get('date'),
            "timezone": self.timezone,
            "send_notifications": False
        }
        for key in ('description', 'location'):
            if draft.get(key):
                args[key] = draft[key]

        if intent.is_edit and draft.get('id'):
            args["event_id"] = draft['id']
            if intent.scope:
                args["scope"] = intent.scope
            result = await self.client.call_tool("edit_event", args)
            return self._check(result, "Update")

        result = await self.client.call_tool("create_event", args)
        return self._check(result, "Create")
