"""Tests for intent handling in the TUI main loop, without a curses terminal"""

import asyncio
import json
from datetime import date, datetime, timezone

from .calendar_tui import CalendarTUI
from .config import Config
from .mcp_source import McpEventSource
from .navigation import CalendarSession

NOW = datetime(2024, 2, 5, 9, 40, tzinfo=timezone.utc)
DAY = date(2024, 2, 5)


class SlowClient:
    """Answers list_events at once; every other tool call hangs until cancelled"""

    def __init__(self, *events):
        self.listing = json.dumps({"events": list(events)})
        self.calls = []

    async def call_tool(self, tool_name, arguments):
        self.calls.append(tool_name)
        if tool_name == "list_events":
            return self.listing
        await asyncio.Event().wait()


def event_json(event_id, hour):
    return {
        "id": event_id,
        "summary": event_id,
        "start": {"dateTime": f"2024-02-05T{hour:02d}:00:00Z"},
        "end": {"dateTime": f"2024-02-05T{hour:02d}:30:00Z"},
    }


def make_app(session, source):
    # Skip __init__: it needs an initialised curses screen
    app = CalendarTUI.__new__(CalendarTUI)
    app.session = session
    app.source = source
    app.config = session.config
    app.status_message = ""
    app.pending_tasks = []
    app.fetch_task = None
    app.draw = lambda: None
    return app


async def started_app():
    client = SlowClient(event_json("standup", 9), event_json("lunch", 11))
    source = McpEventSource(client, "UTC")
    await source.refresh(DAY, DAY)
    session = CalendarSession(source, Config(timezone="UTC"), clock=lambda: NOW)
    session.events_changed()
    return client, session, make_app(session, source)


def test_optimistic_delete_is_reconciled_on_flush():
    async def scenario():
        client, session, app = await started_app()
        assert session.selected_event_id == "standup"

        session.initiate_delete()
        session.confirm_answer(True)
        await app.flush_intents()

        assert client.calls[-1] == "delete_event"
        assert [e.id for e in app.source.get_events()] == ["lunch"]
        assert session.selected_event_id == "lunch"
        assert len(app.pending_tasks) == 1

        await app.cancel_pending()

    asyncio.run(scenario())


def test_cancel_pending_waits_for_tasks():
    async def scenario():
        client, session, app = await started_app()
        session.respond("accepted")   # no attendees, nothing queued
        session.initiate_delete()
        session.confirm_answer(True)
        await app.flush_intents()
        tasks = list(app.pending_tasks)

        await app.cancel_pending()
        assert tasks and all(t.done() for t in tasks)
        assert all(t.cancelled() for t in tasks)
        assert app.pending_tasks == []
        assert app.fetch_task is None

    asyncio.run(scenario())
