#!/usr/bin/env python3
"""
Interactive Terminal Calendar Application
Uses Google Calendar MCP Server to fetch and manage events

Requirements:
    pip install mcp pyyaml
"""

import argparse
import asyncio
import curses
import sys
from datetime import timedelta
from pathlib import Path
from typing import List, Optional

from .config import Config, ConfigError, load_config
from .debug import debug_log, set_debug
from .events import CalendarEvent
from .keymap import dispatch, help_sections, key_name
from .layout import DayLayout
from .mcp_source import MCPClient, McpEventSource
from .navigation import MINUTES_PER_SLOT, SLOTS_PER_HOUR, CalendarSession, DeleteIntent, SaveIntent
from .slots import find_available_slots, slot_blocks
from .timeutil import (
    event_end,
    event_start,
    format_day_header,
    format_day_short,
    format_hour_label,
    format_time,
    format_time_range,
)

SIDEBAR_WIDTH = 12
HOUR_LABEL_WIDTH = 6
MAX_ALL_DAY_ROWS = 2

# Color pairs
PAIR_SELECTED = 1
PAIR_OVERLAP = 2
PAIR_ACCEPTED = 3
PAIR_TENTATIVE = 4
PAIR_DIM = 5
PAIR_FOCUS_TIME = 6
PAIR_TODAY = 12
PAIR_NOW = 13


class CalendarTUI:
    """Terminal UI for calendar management"""

    def __init__(self, stdscr, session: CalendarSession, source: McpEventSource, config: Config):
        self.stdscr = stdscr
        self.session = session
        self.source = source
        self.config = config
        self.status_message = ""
        self.search_query = ""

        # Spinner for loading states
        self.spinner_frames = ['⠋', '⠙', '⠹', '⠸', '⠼', '⠴', '⠦', '⠧', '⠇', '⠏']
        self.spinner_index = 0
        self.is_loading = False
        self.loading_message = ""

        self.fetch_task: Optional[asyncio.Task] = None
        self.pending_tasks: List[asyncio.Task] = []

        self._init_colors()
        curses.curs_set(0)

    def _init_colors(self):
        curses.start_color()

        # Dark red for conflicts where the terminal allows custom colors
        conflict_color = curses.COLOR_RED
        if curses.can_change_color():
            try:
                curses.init_color(8, 545, 0, 0)
                conflict_color = 8
            except curses.error:
                conflict_color = curses.COLOR_RED

        curses.init_pair(PAIR_SELECTED, curses.COLOR_BLACK, curses.COLOR_WHITE)
        curses.init_pair(PAIR_OVERLAP, conflict_color, curses.COLOR_BLACK)
        curses.init_pair(PAIR_ACCEPTED, curses.COLOR_GREEN, curses.COLOR_BLACK)
        curses.init_pair(PAIR_TENTATIVE, curses.COLOR_MAGENTA, curses.COLOR_BLACK)
        curses.init_pair(PAIR_DIM, curses.COLOR_WHITE, curses.COLOR_BLACK)
        curses.init_pair(PAIR_FOCUS_TIME, curses.COLOR_YELLOW, curses.COLOR_BLACK)
        curses.init_pair(PAIR_TODAY, curses.COLOR_BLACK, curses.COLOR_GREEN)
        curses.init_pair(PAIR_NOW, curses.COLOR_RED, curses.COLOR_BLACK)

    # ----- drawing helpers -----

    def addstr(self, y: int, x: int, text: str, attr: int = 0, max_width: Optional[int] = None):
        """addstr that clips to the screen and ignores edge-of-screen errors"""
        height, width = self.stdscr.getmaxyx()
        if y < 0 or y >= height or x < 0 or x >= width:
            return
        limit = width - x - 1
        if max_width is not None:
            limit = min(limit, max_width)
        if limit <= 0:
            return
        try:
            self.stdscr.addstr(y, x, text[:limit], attr)
        except curses.error:
            pass

    def event_attr(self, event: CalendarEvent, selected: bool, overlapping: bool = False) -> int:
        if selected:
            return curses.color_pair(PAIR_SELECTED) | curses.A_BOLD
        status = event.self_response_status
        if status == 'declined':
            return curses.color_pair(PAIR_DIM) | curses.A_DIM
        if event.event_type in ('focusTime', 'task'):
            return curses.color_pair(PAIR_FOCUS_TIME)
        if overlapping:
            return curses.color_pair(PAIR_OVERLAP)
        if status == 'tentative':
            return curses.color_pair(PAIR_TENTATIVE)
        if status == 'accepted':
            return curses.color_pair(PAIR_ACCEPTED)
        return 0

    # ----- main panes -----

    def draw_header(self):
        _, width = self.stdscr.getmaxyx()
        title = f"📅 {format_day_header(self.session.selected_day)}"
        if self.session.selected_day == self.session.today():
            title += "  TODAY"
        if self.is_loading:
            title += f" {self.spinner_frames[self.spinner_index]}"
        self.addstr(0, 1, title, curses.A_BOLD)

        invites = len(self.session.pending_invites())
        if invites:
            badge = f"🔔 {invites}"
            self.addstr(0, max(1, width - len(badge) - 3), badge, curses.color_pair(PAIR_FOCUS_TIME))

    def draw_days(self, top: int, rows: int):
        focused = self.session.focus == 'days'
        label = "▶ Days" if focused else "  Days"
        self.addstr(top, 0, label, curses.A_BOLD if focused else curses.A_DIM)

        today = self.session.today()
        for i, day in enumerate(self.session.visible_days()[:rows]):
            selected = day == self.session.selected_day
            text = ("▸ " if selected and focused else "  ") + format_day_short(day)
            if day == today and not selected:
                text += " •"
            if selected:
                attr = curses.color_pair(PAIR_SELECTED) if focused else curses.A_BOLD
            elif day == today:
                attr = curses.color_pair(PAIR_TODAY)
            elif day not in self.source.loaded_dates:
                attr = curses.A_DIM
            else:
                attr = 0
            self.addstr(top + 1 + i, 0, text, attr, max_width=SIDEBAR_WIDTH - 1)

    def draw_timeline(self, top: int, rows: int):
        _, width = self.stdscr.getmaxyx()
        x0 = SIDEBAR_WIDTH + HOUR_LABEL_WIDTH + 1
        days = self.session.column_days()
        column_width = max(8, (width - x0 - 1) // len(days))

        layouts = [self.session.day_layout(day) for day in days]
        all_day_rows = min(MAX_ALL_DAY_ROWS, max(len(l.all_day_events) for l in layouts))
        slot_top = top + 1 + all_day_rows
        slot_rows = max(1, rows - 1 - all_day_rows)
        self.session.set_viewport(timeline_rows=slot_rows)

        for c, (day, layout) in enumerate(zip(days, layouts)):
            x = x0 + c * column_width
            focused_col = c == self.session.focused_column
            heading = format_day_short(day)
            attr = curses.A_BOLD | (curses.A_UNDERLINE if focused_col else 0)
            self.addstr(top, x, heading, attr, max_width=column_width - 1)

            for i, event in enumerate(layout.all_day_events[:all_day_rows]):
                selected = focused_col and event.id == self.session.selected_event_id
                self.addstr(top + 1 + i, x, f"▪ {event.display_title}",
                            self.event_attr(event, selected), max_width=column_width - 1)

            self._draw_slots(layout, x, column_width - 1, slot_top, slot_rows, focused_col)

        self._draw_hour_labels(slot_top, slot_rows)

    def _draw_hour_labels(self, top: int, rows: int):
        now_slot = self.session.now_minutes() // MINUTES_PER_SLOT
        showing_today = self.session.today() in self.session.column_days()
        for row in range(rows):
            slot = self.session.scroll_offset + row
            if showing_today and slot == now_slot:
                self.addstr(top + row, SIDEBAR_WIDTH, "now".rjust(HOUR_LABEL_WIDTH - 1) + "◀",
                            curses.color_pair(PAIR_NOW) | curses.A_BOLD)
            elif slot % SLOTS_PER_HOUR == 0:
                label = format_hour_label(slot // SLOTS_PER_HOUR).rjust(HOUR_LABEL_WIDTH - 1)
                self.addstr(top + row, SIDEBAR_WIDTH, label + "┼", curses.A_DIM)
            else:
                self.addstr(top + row, SIDEBAR_WIDTH + HOUR_LABEL_WIDTH - 1, "│", curses.A_DIM)

    def _draw_slots(self, layout: DayLayout, x: int, width: int, top: int, rows: int, focused_col: bool):
        free = {s.start_minutes // MINUTES_PER_SLOT: s for s in find_available_slots(
            layout, self.config.core_start_hour, self.config.core_end_hour)}

        for row in range(rows):
            slot = self.session.scroll_offset + row
            slot_start = slot * MINUTES_PER_SLOT
            slot_end = slot_start + MINUTES_PER_SLOT
            y = top + row

            active = [e for e in layout.timed_events if e.start_minutes < slot_end and e.end_minutes > slot_start]
            if not active and slot in free:
                self.addstr(y, x, slot_blocks(free[slot]), curses.A_DIM, max_width=width)
                continue

            for entry in active:
                sub_width = max(1, width // entry.total_columns)
                sx = x + entry.column * sub_width
                selected = focused_col and entry.event.id == self.session.selected_event_id \
                    and self.session.focus != 'days'
                attr = self.event_attr(entry.event, selected, entry.has_overlap)
                if entry.start_minutes // MINUTES_PER_SLOT == slot or row == 0:
                    start = event_start(entry.event, layout.timezone)
                    text = f"● {format_time(start)} {entry.event.get_response_char()}{entry.event.display_title}"
                else:
                    text = "│"
                self.addstr(y, sx, text, attr, max_width=sub_width - 1)

    def draw_footer(self):
        height, _ = self.stdscr.getmaxyx()
        hints = "j/k:nav │ h/l:day │ Enter:details │ a:new │ e:edit │ D:delete │ c:columns │ ?:help │ q:quit"
        self.addstr(height - 1, 1, hints, curses.A_DIM)
        self.update_status_line()

    def update_status_line(self):
        """Update only the status line without redrawing entire screen"""
        height, width = self.stdscr.getmaxyx()
        message = self.session.state.status_message or self.status_message
        try:
            self.stdscr.move(height - 2, 0)
            self.stdscr.clrtoeol()
        except curses.error:
            pass
        self.addstr(height - 2, 1, message, curses.A_BOLD)
        self.stdscr.refresh()

    # ----- overlays -----

    def _draw_box(self, title: str, lines: List[str], min_width: int = 40):
        height, width = self.stdscr.getmaxyx()
        box_width = min(width - 4, max(min_width, max((len(l) for l in lines), default=0) + 4))
        box_height = min(height - 2, len(lines) + 4)
        top = max(1, (height - box_height) // 2)
        left = max(1, (width - box_width) // 2)

        for row in range(box_height):
            self.addstr(top + row, left, " " * box_width, curses.color_pair(PAIR_DIM))
        self.addstr(top, left + 2, f" {title} ", curses.A_BOLD)
        for i, line in enumerate(lines[:box_height - 4]):
            self.addstr(top + 2 + i, left + 2, line, 0, max_width=box_width - 4)

    def draw_overlay(self):
        top = self.session.top_overlay
        if top is None:
            return
        if top.kind == 'details':
            self.draw_details()
        elif top.kind == 'dialog':
            self.draw_dialog()
        elif top.kind == 'confirm':
            self.draw_confirm(top.payload.get('type'))
        elif top.kind == 'command':
            self.draw_command()
        elif top.kind == 'help':
            self.draw_help()
        elif top.kind == 'notifications':
            self.draw_notifications()
        elif top.kind == 'search':
            self.draw_search()

    def draw_details(self):
        event = self.session.selected_event()
        if event is None:
            return
        tz = self.session.timezone
        if event.is_all_day:
            when = "All day"
        else:
            when = format_time_range(event_start(event, tz), event_end(event, tz))
        lines = [event.display_title, when]
        if event.location:
            lines.append(f"📍 {event.location}")
        display, _ = event.get_meet_link_display()
        if display != '—':
            lines.append(f"🔗 {display}")
        if event.attendees:
            lines.append(f"Attendees {event.get_attendee_count()}")
            for attendee in event.attendees:
                name = attendee.display_name or attendee.email
                marker = " (organizer)" if attendee.organizer else ""
                lines.append(f"  {attendee.response_status:<11} {name}{marker}")
        if event.description:
            lines.append("")
            lines.extend(event.description.splitlines()[:8])
        lines.append("")
        lines.append("y:accept  n:decline  m:maybe  e:edit  D:delete  Esc:close")
        self._draw_box("Event", lines, min_width=50)

    def draw_dialog(self):
        draft = self.session.state.dialog_event or {}
        title = "Edit event" if self.session.state.is_edit_mode else "New event"
        lines = [
            f"Title: {draft.get('summary', '')}",
            f"Start: {draft.get('start', {}).get('dateTime') or draft.get('start', {}).get('date', '')}",
            f"End:   {draft.get('end', {}).get('dateTime') or draft.get('end', {}).get('date', '')}",
            "",
            "Enter:save  Esc:cancel",
        ]
        self._draw_box(title, lines)

    def draw_confirm(self, kind: Optional[str]):
        prompts = {
            'editScope': ["Edit recurring event:", "t: this event  f: this and following  a: all events"],
            'deleteScope': ["Delete recurring event:", "t: this event  f: this and following  a: all events"],
            'notifyAttendees': ["Notify attendees about the cancellation?", "y: send  n: don't send"],
            'deleteConfirm': ["Delete this event?", "y: delete  n: cancel"],
        }
        self._draw_box("Confirm", prompts.get(kind, ["Are you sure?", "y / n"]))

    def draw_command(self):
        height, width = self.stdscr.getmaxyx()
        try:
            self.stdscr.move(height - 2, 0)
            self.stdscr.clrtoeol()
        except curses.error:
            pass
        self.addstr(height - 2, 0, f":{self.session.state.command_input}", curses.A_BOLD)

    def draw_help(self):
        lines = []
        under = self.session.overlay_stack[-1].prev_focus or 'timeline'
        for title, bindings in help_sections(under):
            lines.append(title)
            for binding in bindings:
                lines.append(f"  {binding.display:<10} {binding.description}")
            lines.append("")
        self._draw_box("Keyboard shortcuts", lines, min_width=50)

    def draw_notifications(self):
        tz = self.session.timezone
        lines = []
        for event in self.session.pending_invites()[:20]:
            start = event_start(event, tz)
            lines.append(f"{start.strftime('%a %d %b %H:%M')}  {event.display_title}")
        self._draw_box("Pending invites", lines or ["No pending invites"])

    def search_results(self) -> List[CalendarEvent]:
        query = self.search_query.lower().strip()
        if not query:
            return []
        return [e for e in self.source.get_events()
                if query in e.display_title.lower() or query in (e.location or '').lower()]

    def draw_search(self):
        tz = self.session.timezone
        lines = [f"/{self.search_query}", ""]
        for event in self.search_results()[:15]:
            start = event_start(event, tz)
            lines.append(f"{start.strftime('%a %d %b')}  {event.display_title}")
        self._draw_box("Search", lines, min_width=50)

    def draw(self):
        """Draw the entire UI"""
        self.stdscr.erase()
        height, _ = self.stdscr.getmaxyx()
        body_rows = max(1, height - 4)
        self.session.set_viewport(window_height=body_rows - 1)

        self.draw_header()
        self.draw_days(1, body_rows - 1)
        self.draw_timeline(1, body_rows)
        self.draw_footer()
        self.draw_overlay()
        self.stdscr.refresh()

    # ----- loading and intents -----

    def update_spinner(self):
        """Update spinner to next frame"""
        if self.is_loading:
            self.spinner_index = (self.spinner_index + 1) % len(self.spinner_frames)
            spinner = self.spinner_frames[self.spinner_index]
            self.status_message = f"{spinner} {self.loading_message}"

    async def run_with_spinner(self, coro, loading_msg: str, success_msg: str = None):
        """Run a coroutine while animating the spinner"""
        self.is_loading = True
        self.loading_message = loading_msg
        task = asyncio.create_task(coro)

        while not task.done():
            self.update_spinner()
            self.update_status_line()
            await asyncio.sleep(0.05)

        self.is_loading = False
        result = await task
        if success_msg is not None:
            self.status_message = success_msg
            self.update_status_line()
        return result

    async def _fetch_range(self, start, end):
        self.is_loading = True
        self.loading_message = f"Loading {start} to {end}..."
        ok = await self.source.refresh(start, end)
        self.is_loading = False
        if ok:
            self.session.events_changed()
            self.status_message = ""
        else:
            self.status_message = f"❌ {self.source.last_error}"
        self.draw()

    def ensure_loaded(self):
        """Start a background fetch when visible days are missing"""
        if self.fetch_task and not self.fetch_task.done():
            return
        missing = [d for d in self.session.column_days() + [self.session.selected_day]
                   if d not in self.source.loaded_dates]
        if not missing:
            return
        start = min(missing) - timedelta(days=7)
        end = max(missing) + timedelta(days=7)
        debug_log(f"Fetching missing range {start} to {end}")
        self.fetch_task = asyncio.create_task(self._fetch_range(start, end))

    async def _apply_intent(self, intent):
        ok = await self.source.apply(intent)
        if ok:
            if isinstance(intent, SaveIntent):
                # Server assigns ids to new events
                day = self.session.selected_day
                await self.source.refresh(day, day)
                self.status_message = "✅ Saved"
            elif isinstance(intent, DeleteIntent):
                self.status_message = "✅ Deleted"
        else:
            self.status_message = f"❌ {self.source.last_error}, reloading"
            day = self.session.selected_day
            await self.source.refresh(day, day)
        self.session.events_changed()
        self.draw()

    async def flush_intents(self):
        for intent in self.session.drain_intents():
            debug_log(f"Dispatching {intent}")
            self.pending_tasks.append(asyncio.create_task(self._apply_intent(intent)))
        # Let each task reach its first MCP call, after the optimistic swap
        await asyncio.sleep(0)
        self.session.events_changed()
        self.pending_tasks = [t for t in self.pending_tasks if not t.done()]

    async def cancel_pending(self):
        """Cancel in-flight MCP calls and wait for them to unwind"""
        tasks = [t for t in self.pending_tasks + [self.fetch_task] if t is not None and not t.done()]
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self.pending_tasks = []
        self.fetch_task = None

    def handle_text_input(self, key: int) -> bool:
        """Feed typed characters into the command bar or search box"""
        focus = self.session.focus
        top = self.session.top_overlay
        editing_title = focus == 'dialog' and top is not None and top.kind == 'dialog'
        if focus not in ('command', 'search') and not editing_title:
            return False
        name = key_name(key)
        if name in ('return', 'escape', 'tab', None):
            return False
        if name != 'backspace' and not (0 <= key < 256 and chr(key).isprintable()):
            return False

        if editing_title:
            title = self.session.state.dialog_event.get('summary', '')
            title = title[:-1] if name == 'backspace' else title + chr(key)
            self.session.update_draft(summary=title)
        elif focus == 'command':
            text = self.session.state.command_input
            text = text[:-1] if name == 'backspace' else text + chr(key)
            self.session.set_command_input(text)
        else:
            self.search_query = self.search_query[:-1] if name == 'backspace' else self.search_query + chr(key)
        return True

    async def run(self):
        """Main event loop"""
        today = self.session.today()
        success = await self.run_with_spinner(
            self.source.refresh(today - timedelta(days=7), today + timedelta(days=14)),
            "Loading events...",
            "✅ Ready!"
        )
        if not success:
            self.stdscr.clear()
            self.addstr(0, 0, f"Failed to fetch events: {self.source.last_error}. Press any key to exit.")
            self.stdscr.refresh()
            self.stdscr.nodelay(False)
            self.stdscr.getch()
            return

        # Position cursor at current/next event on initial load
        self.session.events_changed()
        self.session.jump_to_now()

        self.stdscr.nodelay(True)
        self.draw()

        while True:
            key = self.stdscr.getch()
            await asyncio.sleep(0.05)

            if self.is_loading:
                self.update_spinner()
                self.draw_header()
                self.stdscr.refresh()

            if key == -1:
                continue

            if key == curses.KEY_RESIZE:
                self.draw()
                continue

            if self.handle_text_input(key):
                self.draw()
                continue

            name = key_name(key)
            if name is None:
                continue
            if self.session.focus != 'command':
                self.session.state.status_message = ""

            if self.session.focus == 'search' and name == 'escape':
                self.search_query = ""

            action = dispatch(self.session, name)
            if action == 'quit':
                break
            if action is None:
                continue

            await self.flush_intents()
            self.ensure_loaded()
            self.draw()

        await self.cancel_pending()


def main():
    """Main entry point"""
    parser = argparse.ArgumentParser(description='Interactive Calendar TUI')
    parser.add_argument('--config', default=None, help='Path to config YAML')
    parser.add_argument('--timezone', default=None, help='Timezone for events (default: system timezone)')
    parser.add_argument('--columns', type=int, choices=[1, 3, 5], default=None, help='Days shown side by side')
    parser.add_argument('--server-path', help='Path to gcal-mcp-server binary')
    parser.add_argument('--debug', action='store_true', default=None, help='Enable debug logging to stderr')

    args = parser.parse_args()

    try:
        config = load_config(Path(args.config) if args.config else None)
    except ConfigError as exc:
        print(str(exc), file=sys.stderr)
        return 2

    config = config.with_overrides(
        timezone=args.timezone,
        columns=args.columns,
        server_path=args.server_path,
        debug=args.debug,
    )
    set_debug(config.debug)

    if not config.server_path:
        print("No MCP server configured. Use --server-path or set server_path in the config.", file=sys.stderr)
        return 2

    async def async_run_app(stdscr):
        """Async function that runs inside curses"""
        mcp_client = MCPClient(config.server_path)
        await mcp_client.connect()

        try:
            source = McpEventSource(mcp_client, config.timezone)
            session = CalendarSession(source, config)
            app = CalendarTUI(stdscr, session, source, config)
            await app.run()
        finally:
            await mcp_client.disconnect()

    def curses_main(stdscr):
        """Curses wrapper function - runs the async event loop"""
        asyncio.run(async_run_app(stdscr))

    if config.debug:
        print("Debug logs are being written to stderr. Run with 2>debug.log and `tail -f debug.log`.",
              file=sys.stderr)

    try:
        curses.wrapper(curses_main)
    except KeyboardInterrupt:
        pass
    return 0


if __name__ == '__main__':
    raise SystemExit(main())
