"""
Keybinds

Central registry of keybinds per focus context plus a global scope, and the
dispatcher that turns a key name into a CalendarSession transition. The
registry also feeds the help overlay.
"""

import curses
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple

from .navigation import CalendarSession


@dataclass(frozen=True)
class KeyBinding:
    key: str            # key name as produced by key_name(), e.g. "shift+g"
    display: str        # human readable, e.g. "G"
    description: str
    action: str


KEYBIND_REGISTRY: Dict[str, List[KeyBinding]] = {
    'global': [
        KeyBinding('?', '?', 'Show keyboard shortcuts', 'openHelp'),
        KeyBinding('escape', 'Esc', 'Close overlay / go back', 'popOverlay'),
        KeyBinding(':', ':', 'Open command bar', 'openCommand'),
        KeyBinding('/', '/', 'Search events', 'openSearch'),
        KeyBinding('shift+n', 'N', 'Pending invites', 'openNotifications'),
        KeyBinding('c', 'c', 'Toggle 1/3/5 day columns', 'toggleColumns'),
        KeyBinding('q', 'q', 'Quit application', 'quit'),
        KeyBinding('ctrl+c', 'Ctrl+c', 'Quit application', 'quit'),
    ],

    'days': [
        KeyBinding('j', 'j / ↓', 'Next day', 'nextDay'),
        KeyBinding('down', 'j / ↓', 'Next day', 'nextDay'),
        KeyBinding('k', 'k / ↑', 'Previous day', 'prevDay'),
        KeyBinding('up', 'k / ↑', 'Previous day', 'prevDay'),
        KeyBinding('g', 'g', 'Jump back half a window', 'startDay'),
        KeyBinding('shift+g', 'G', 'Jump ahead half a window', 'endDay'),
        KeyBinding('return', 'Enter', 'Select day and focus timeline', 'confirmDay'),
        KeyBinding('h', 'h / l', 'Switch to timeline', 'toggleFocus'),
        KeyBinding('l', 'h / l', 'Switch to timeline', 'toggleFocus'),
        KeyBinding('tab', 'Tab', 'Switch to timeline', 'toggleFocus'),
        KeyBinding('n', 'n', 'Jump to now', 'jumpToNow'),
    ],

    'timeline': [
        KeyBinding('j', 'j / ↓', 'Next event', 'nextEvent'),
        KeyBinding('down', 'j / ↓', 'Next event', 'nextEvent'),
        KeyBinding('k', 'k / ↑', 'Previous event', 'prevEvent'),
        KeyBinding('up', 'k / ↑', 'Previous event', 'prevEvent'),
        KeyBinding('g', 'g', 'First event', 'firstEvent'),
        KeyBinding('shift+g', 'G', 'Last event', 'lastEvent'),
        KeyBinding('h', 'h / ←', 'Previous column / day', 'prevColumn'),
        KeyBinding('left', 'h / ←', 'Previous column / day', 'prevColumn'),
        KeyBinding('l', 'l / →', 'Next column / day', 'nextColumn'),
        KeyBinding('right', 'l / →', 'Next column / day', 'nextColumn'),
        KeyBinding('ctrl+u', 'Ctrl+u', 'Scroll up', 'scrollUp'),
        KeyBinding('ctrl+d', 'Ctrl+d', 'Scroll down', 'scrollDown'),
        KeyBinding('n', 'n', 'Jump to now', 'jumpToNow'),
        KeyBinding('return', 'Enter', 'Open event details', 'openDetails'),
        KeyBinding('space', 'Space', 'Open event details', 'openDetails'),
        KeyBinding('a', 'a', 'New event', 'newEvent'),
        KeyBinding('e', 'e', 'Edit event', 'editEvent'),
        KeyBinding('shift+d', 'D', 'Delete event', 'deleteEvent'),
        KeyBinding('tab', 'Tab', 'Switch to days sidebar', 'toggleFocus'),
    ],

    'details': [
        KeyBinding('y', 'y', 'Accept invitation (Yes)', 'acceptInvite'),
        KeyBinding('n', 'n', 'Decline invitation (No)', 'declineInvite'),
        KeyBinding('m', 'm', 'Maybe / Tentative', 'tentativeInvite'),
        KeyBinding('e', 'e', 'Edit event', 'editEvent'),
        KeyBinding('shift+d', 'D', 'Delete event', 'deleteEvent'),
    ],

    'dialog': [
        KeyBinding('return', 'Enter', 'Save', 'save'),
        KeyBinding('escape', 'Esc', 'Cancel and close', 'popOverlay'),
    ],

    'command': [
        KeyBinding('return', 'Enter', 'Execute command', 'execute'),
        KeyBinding('escape', 'Esc', 'Cancel', 'popOverlay'),
    ],

    'confirm': [
        KeyBinding('y', 'y', 'Confirm / Yes', 'confirm'),
        KeyBinding('n', 'n', 'Cancel / No', 'deny'),
        KeyBinding('t', 't', 'This occurrence', 'scopeThis'),
        KeyBinding('f', 'f', 'This and following', 'scopeFollowing'),
        KeyBinding('a', 'a', 'All occurrences', 'scopeAll'),
        KeyBinding('escape', 'Esc', 'Cancel', 'cancel'),
    ],

    'notifications': [],
    'search': [
        KeyBinding('escape', 'Esc', 'Close search', 'popOverlay'),
    ],
}

SCOPE_TITLES = {
    'days': 'Days Sidebar',
    'timeline': 'Timeline',
    'details': 'Event Details',
    'dialog': 'Dialog',
    'command': 'Command Bar',
    'confirm': 'Confirm Dialog',
    'notifications': 'Notifications',
    'search': 'Search',
}

ACTIONS: Dict[str, Callable[[CalendarSession], None]] = {
    'openHelp': lambda s: s.open_help(),
    'popOverlay': lambda s: s.pop_overlay(),
    'openCommand': lambda s: s.open_command(),
    'openSearch': lambda s: s.open_search(),
    'openNotifications': lambda s: s.open_notifications(),
    'toggleColumns': lambda s: s.toggle_columns(),
    'quit': lambda s: None,

    'nextDay': lambda s: s.move_day('down'),
    'prevDay': lambda s: s.move_day('up'),
    'startDay': lambda s: s.move_day('start'),
    'endDay': lambda s: s.move_day('end'),
    'confirmDay': lambda s: s.confirm_day(),
    'toggleFocus': lambda s: s.toggle_focus(),
    'jumpToNow': lambda s: s.jump_to_now(),

    'nextEvent': lambda s: s.move_event('next'),
    'prevEvent': lambda s: s.move_event('prev'),
    'firstEvent': lambda s: s.move_event('first'),
    'lastEvent': lambda s: s.move_event('last'),
    'prevColumn': lambda s: s.move_column('left'),
    'nextColumn': lambda s: s.move_column('right'),
    'scrollUp': lambda s: s.scroll_timeline('up'),
    'scrollDown': lambda s: s.scroll_timeline('down'),
    'openDetails': lambda s: s.open_details(),
    'newEvent': lambda s: s.open_new_dialog(),
    'editEvent': lambda s: s.open_edit_dialog(),
    'deleteEvent': lambda s: s.initiate_delete(),

    'acceptInvite': lambda s: s.respond('accepted'),
    'declineInvite': lambda s: s.respond('declined'),
    'tentativeInvite': lambda s: s.respond('tentative'),

    'save': lambda s: s.save_dialog(),
    'execute': lambda s: s.execute_command(),

    'confirm': lambda s: s.confirm_answer(True),
    'deny': lambda s: s.confirm_answer(False),
    'cancel': lambda s: s.cancel_delete(),
    'scopeThis': lambda s: s.choose_scope('this'),
    'scopeFollowing': lambda s: s.choose_scope('following'),
    'scopeAll': lambda s: s.choose_scope('all'),
}

_SPECIAL_KEYS = {
    curses.KEY_UP: 'up',
    curses.KEY_DOWN: 'down',
    curses.KEY_LEFT: 'left',
    curses.KEY_RIGHT: 'right',
    curses.KEY_ENTER: 'return',
    curses.KEY_BTAB: 'shift+tab',
    curses.KEY_BACKSPACE: 'backspace',
    10: 'return',
    13: 'return',
    27: 'escape',
    9: 'tab',
    32: 'space',
    127: 'backspace',
    3: 'ctrl+c',
    4: 'ctrl+d',
    21: 'ctrl+u',
}


def key_name(code: int) -> Optional[str]:
    """Translate a curses key code into a registry key name"""
    if code in _SPECIAL_KEYS:
        return _SPECIAL_KEYS[code]
    if 0 <= code < 256:
        ch = chr(code)
        if ch.isalpha() and ch.isupper():
            return f"shift+{ch.lower()}"
        if ch.isprintable():
            return ch
    return None


def find_binding(scope: str, key: str) -> Optional[KeyBinding]:
    for binding in KEYBIND_REGISTRY.get(scope, ()):
        if binding.key == key:
            return binding
    return None


def dispatch(session: CalendarSession, key: str) -> Optional[str]:
    """Run the action bound to key in the focused scope, then global

    Returns the action name, or None when the key is unbound.
    """
    binding = find_binding(session.focus, key) or find_binding('global', key)
    if binding is None:
        return None
    ACTIONS[binding.action](session)
    return binding.action


def help_sections(focus: str) -> List[Tuple[str, List[KeyBinding]]]:
    """Keybinds for the help dialog, deduped by display text"""

    def dedupe(bindings: List[KeyBinding]) -> List[KeyBinding]:
        seen = set()
        result = []
        for binding in bindings:
            if binding.display in seen:
                continue
            seen.add(binding.display)
            result.append(binding)
        return result

    sections = []
    context = dedupe(KEYBIND_REGISTRY.get(focus, []))
    if context:
        sections.append((SCOPE_TITLES.get(focus, focus), context))
    sections.append(('Global', dedupe(KEYBIND_REGISTRY['global'])))
    return sections
