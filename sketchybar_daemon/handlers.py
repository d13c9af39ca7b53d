"""Item update handlers.

Two shapes:

- direct-query handlers are coroutines that call adapters every tick
  (clock, battery, keyboard)
- state-driven handlers are plain functions of a DaemonState and never touch
  adapters (spaces, current_app, window)

Both return a list of ItemUpdate. An empty list means nothing is sent to the
bar this tick. Rendering is split into pure render_* functions so a handler
called twice with the same input produces the same updates.
"""

import logging
from datetime import datetime
from typing import List, Optional

from .adapters import system
from .adapters.system import BatteryReading
from .config import Colors, DaemonConfig, format_color
from .models import DaemonState, ItemUpdate, Space

logger = logging.getLogger(__name__)

CLOCK_FORMAT = "%y%m%d %H%M %a"
WINDOW_TITLE_LIMIT = 50
NO_WINDOW_LABEL = "No Window"

# Nerd Font battery glyphs
ICON_BATTERY_CHARGING = "\U000f0084"
ICON_ERROR = "\uea87"
_BATTERY_ICONS = [
    (95, "\U000f0079"),   # 100
    (85, "\U000f0082"),   # 90
    (75, "\U000f0081"),   # 80
    (65, "\U000f0080"),   # 70
    (55, "\U000f007f"),   # 60
    (45, "\U000f007e"),   # 50
    (35, "\U000f007d"),   # 40
    (25, "\U000f007c"),   # 30
    (15, "\U000f007b"),   # 20
    (5, "\U000f007a"),    # 10
]

_KEYBOARD_LAYOUTS = [
    (("U.S.", "ABC"), "US"),
    (("Dvorak",), "DV"),
    (("Colemak",), "CM"),
]
UNKNOWN_LAYOUT = "??"


# ============================================================================
# Rendering
# ============================================================================

def render_clock(now: datetime) -> ItemUpdate:
    return ItemUpdate.of("clock", ("label", now.strftime(CLOCK_FORMAT)))


def battery_icon(percentage: int, charging: bool) -> str:
    if charging:
        return ICON_BATTERY_CHARGING
    for threshold, icon in _BATTERY_ICONS:
        if percentage >= threshold:
            return icon
    return ICON_ERROR


def battery_color(percentage: int, charging: bool, colors: Colors) -> int:
    if charging or percentage >= 95:
        return colors.blue
    bands = [
        (85, colors.sapphire),
        (75, colors.sky),
        (65, colors.teal),
        (55, colors.green),
        (45, colors.yellow),
        (35, colors.peach),
        (25, colors.maroon),
    ]
    for threshold, color in bands:
        if percentage >= threshold:
            return color
    return colors.red


def render_battery(reading: BatteryReading, colors: Colors) -> ItemUpdate:
    """Battery icon, color and zero-padded percentage label."""
    color = format_color(battery_color(reading.percentage, reading.charging, colors))
    return ItemUpdate.of(
        "battery",
        ("icon", battery_icon(reading.percentage, reading.charging)),
        ("icon.color", color),
        ("icon.padding_left", "10"),
        ("label", f"{reading.percentage:02d}"),
        ("label.color", color),
        ("label.padding_right", "10"),
    )


def keyboard_layout_code(source_text: str) -> str:
    """Map HIToolbox input-source text to a two-letter layout code."""
    for markers, code in _KEYBOARD_LAYOUTS:
        if any(marker in source_text for marker in markers):
            return code
    return UNKNOWN_LAYOUT


def render_keyboard(source_text: str) -> ItemUpdate:
    return ItemUpdate.of("keyboard", ("label", keyboard_layout_code(source_text)))


def space_item_name(space_id: int) -> str:
    return f"space.{space_id}"


def render_space(space: Space, colors: Colors) -> ItemUpdate:
    """Focused spaces are highlighted; occupied spaces get a green border."""
    if space.is_focused:
        background, border = colors.blue, colors.blue
    elif space.is_occupied:
        background, border = colors.surface0, colors.green
    else:
        background, border = colors.surface0, colors.overlay0
    return ItemUpdate.of(
        space_item_name(space.id),
        ("background.color", format_color(background)),
        ("background.border_color", format_color(border)),
    )


def truncate_title(title: str, limit: int = WINDOW_TITLE_LIMIT) -> str:
    if len(title) > limit:
        return title[:limit - 3] + "..."
    return title


# ============================================================================
# Handlers
# ============================================================================

class DirectQueryHandlers:
    """Handlers that query adapters on every tick."""

    def __init__(self, config: Optional[DaemonConfig] = None) -> None:
        self.config = config or DaemonConfig()

    async def clock(self) -> List[ItemUpdate]:
        return [render_clock(datetime.now())]

    async def battery(self) -> List[ItemUpdate]:
        reading = await system.query_battery(self.config.timeouts.query)
        return [render_battery(reading, self.config.colors)]

    async def keyboard(self) -> List[ItemUpdate]:
        source = await system.query_keyboard_layout(self.config.timeouts.query)
        return [render_keyboard(source)]


class StateDrivenHandlers:
    """Handlers that render from the current snapshot only.

    An empty snapshot renders the same way as a stale one: whatever is
    visible is what gets drawn.
    """

    def __init__(self, config: Optional[DaemonConfig] = None) -> None:
        self.config = config or DaemonConfig()

    def spaces(self, state: DaemonState) -> List[ItemUpdate]:
        return [render_space(space, self.config.colors) for space in state.spaces]

    def current_app(self, state: DaemonState) -> List[ItemUpdate]:
        if state.frontmost_app is None:
            return []
        return [ItemUpdate.of("current_app", ("label", state.frontmost_app.name))]

    def window(self, state: DaemonState) -> List[ItemUpdate]:
        focused = state.focused_window()
        label = truncate_title(focused.title) if focused else NO_WINDOW_LABEL
        return [ItemUpdate.of("window", ("label", label))]
