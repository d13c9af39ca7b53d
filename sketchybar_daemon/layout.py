"""Bar layout: per-display bar configuration and item declarations.

A bar is provisioned once for the display it belongs to: bar properties,
item defaults, then every item the indicators update. Builtin displays get
a tall top bar and the battery item; external displays get a compact bottom
bar without it.
"""

from dataclasses import dataclass
from typing import List, Tuple

from .config import Colors, format_color
from .handlers import space_item_name
from .models import Display

Properties = List[Tuple[str, str]]

SPACE_SLOTS = 10
FONT_FAMILY = "MesloLGL Nerd Font"

# Nerd Font glyphs
ICON_APP = "\uf013"
ICON_KEYBOARD = "\uf11c"
ICON_WINDOW = "\uf2d0"


@dataclass(frozen=True)
class ItemSpec:
    """One bar item: how it is added, its initial properties and events."""

    kind: str                                  # "item" or "space"
    name: str
    position: str                              # "left" or "right"
    properties: Tuple[Tuple[str, str], ...] = ()
    events: Tuple[str, ...] = ()


def _flag(value: bool) -> str:
    return "on" if value else "off"


def bar_properties(display: Display, colors: Colors) -> Properties:
    """`--bar` properties: builtin bar on top, external bars at the bottom."""
    builtin = display.is_builtin
    return [
        ("position", "top" if builtin else "bottom"),
        ("height", "56" if builtin else "26"),
        ("sticky", _flag(True)),
        ("shadow", _flag(False)),
        ("font_smoothing", _flag(False)),
        ("margin", "0"),
        ("color", format_color(colors.transparent)),
        ("y_offset", "8" if builtin else "0"),
        ("padding_left", "2"),
        ("padding_right", "2"),
        ("display", str(display.id)),
        ("topmost", _flag(True)),
    ]


def default_properties(display: Display, colors: Colors) -> Properties:
    """`--default` properties applied to every item added afterwards."""
    if display.is_builtin:
        padding, background_height, corner_radius, font_size, label_padding = 4, 40, 10, 16, 10
    else:
        padding, background_height, corner_radius, font_size, label_padding = 2, 20, 5, 14, 4
    return [
        ("updates", "when_shown"),
        ("position", "left"),
        ("y_offset", "0"),
        ("padding_left", str(padding)),
        ("padding_right", str(padding)),
        ("width", "dynamic"),
        ("scroll_texts", _flag(True)),
        ("blur_radius", "25"),
        ("align", "center"),
        ("background.drawing", _flag(True)),
        ("background.color", format_color(colors.surface0)),
        ("background.border_color", "0xffffffff"),
        ("background.border_width", "1"),
        ("background.height", str(background_height)),
        ("background.corner_radius", str(corner_radius)),
        ("icon.font", f"{FONT_FAMILY}:Regular:{font_size}.0"),
        ("label.font", f"{FONT_FAMILY}:Regular:{font_size}.0"),
        ("label.padding_left", str(label_padding)),
        ("label.padding_right", str(label_padding)),
    ]


def item_specs(display: Display, colors: Colors) -> List[ItemSpec]:
    """Items for one display, in the order they are added."""
    associated = ("associated_display", str(display.id))
    specs = [
        ItemSpec(
            "item", "clock", "right",
            (
                ("label.color", format_color(colors.flamingo)),
                ("background.border_color", format_color(colors.flamingo)),
            ) + ((associated,) if display.is_builtin else ()),
            ("system_woke",),
        ),
        ItemSpec(
            "item", "keyboard", "right",
            (
                ("icon", ICON_KEYBOARD),
                ("icon.color", format_color(colors.blue)),
                ("label", "US"),
                ("label.color", format_color(colors.blue)),
                ("background.border_color", format_color(colors.blue)),
            ) + ((associated,) if display.is_builtin else ()),
        ),
    ]

    for slot in range(1, SPACE_SLOTS + 1):
        specs.append(ItemSpec(
            "space", space_item_name(slot), "left",
            (
                ("associated_space", str(slot)),
                ("icon", str(slot)),
                ("icon.color", format_color(colors.text)),
                ("background.color", format_color(colors.surface0)),
                ("background.border_color", format_color(colors.overlay0)),
                associated,
            ),
            ("space_change", "display_change"),
        ))

    specs.append(ItemSpec(
        "item", "current_app", "left",
        (
            ("icon", ICON_APP),
            ("icon.color", format_color(colors.mauve)),
            ("label.color", format_color(colors.mauve)),
            ("background.border_color", format_color(colors.mauve)),
            associated,
        ),
        ("front_app_switched",),
    ))
    specs.append(ItemSpec(
        "item", "window", "left",
        (
            ("icon", ICON_WINDOW),
            ("icon.color", format_color(colors.green)),
            ("label.color", format_color(colors.green)),
            ("background.border_color", format_color(colors.green)),
            associated,
        ),
        ("window_focus", "window_title"),
    ))

    if display.is_builtin:
        specs.append(ItemSpec(
            "item", "battery", "right", (associated,),
            ("power_source_change", "system_woke"),
        ))
    return specs
