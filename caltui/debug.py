"""Debug logging for the calendar TUI.

curses owns the terminal while the app runs, so debug output goes to stderr
and is meant to be redirected (``caltui --debug 2>debug.log``).
"""

import sys

_enabled = False


def set_debug(enabled: bool):
    """Turn debug logging on or off for the running process"""
    global _enabled
    _enabled = bool(enabled)


def is_debug() -> bool:
    return _enabled


def debug_log(message: str):
    """Log debug message to stderr if debug mode is enabled"""
    if _enabled:
        print(f"[DEBUG] {message}", file=sys.stderr, flush=True)
