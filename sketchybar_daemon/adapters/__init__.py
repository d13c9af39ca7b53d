"""External query adapters.

Each adapter performs exactly one external call with a timeout and either
returns a typed value or raises AdapterError. Adapters never retry; the next
scheduler tick is the retry.
"""

from .process import run_command, run_text_command
from .system import BatteryReading, query_battery, query_frontmost_app, query_keyboard_layout
from .yabai import query_displays, query_spaces, query_windows

__all__ = [
    "BatteryReading",
    "query_battery",
    "query_displays",
    "query_frontmost_app",
    "query_keyboard_layout",
    "query_spaces",
    "query_windows",
    "run_command",
    "run_text_command",
]
