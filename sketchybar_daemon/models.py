"""Data models for the SketchyBar daemon.

Snapshot types are frozen dataclasses holding tuples and frozensets so a
DaemonState handed to a reader can never change underneath it.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import FrozenSet, List, Optional, Tuple


class DisplayKind(Enum):
    """Physical display classification."""
    BUILTIN = "builtin"
    EXTERNAL = "external"


@dataclass(frozen=True)
class Geometry:
    """Display frame in global screen coordinates."""
    x: float = 0.0
    y: float = 0.0
    w: float = 0.0
    h: float = 0.0


@dataclass(frozen=True)
class Display:
    """A display known to the window manager."""

    id: int                              # yabai display index (1-based)
    kind: DisplayKind
    geometry: Geometry = field(default_factory=Geometry)

    @property
    def is_builtin(self) -> bool:
        return self.kind is DisplayKind.BUILTIN


@dataclass(frozen=True)
class Space:
    """A window-manager space (virtual desktop)."""

    id: int                              # yabai space index
    display_id: int
    is_focused: bool = False
    window_ids: FrozenSet[int] = frozenset()
    label: str = ""

    @property
    def is_occupied(self) -> bool:
        return bool(self.window_ids)


@dataclass(frozen=True)
class Window:
    """A managed window."""

    id: int
    app_name: str
    title: str
    space_id: int
    is_focused: bool = False
    display_id: int = 0


@dataclass(frozen=True)
class Application:
    """An application process."""

    name: str
    is_frontmost: bool = False


@dataclass(frozen=True)
class DaemonState:
    """Complete snapshot of window-manager state.

    Replaced as a whole by the refresh task; never mutated.
    """

    displays: Tuple[Display, ...] = ()
    spaces: Tuple[Space, ...] = ()
    windows: Tuple[Window, ...] = ()
    frontmost_app: Optional[Application] = None
    last_refreshed_at: Optional[datetime] = None
    version: int = 0                     # Stamped by StateStore.replace()

    @classmethod
    def empty(cls) -> "DaemonState":
        """State visible before the first successful refresh."""
        return cls()

    @property
    def is_empty(self) -> bool:
        return self.last_refreshed_at is None

    def focused_space(self) -> Optional[Space]:
        return next((s for s in self.spaces if s.is_focused), None)

    def focused_window(self) -> Optional[Window]:
        return next((w for w in self.windows if w.is_focused), None)

    def spaces_for_display(self, display_id: int) -> List[Space]:
        return [s for s in self.spaces if s.display_id == display_id]

    def same_content(self, other: "DaemonState") -> bool:
        """Compare everything except bookkeeping (version, refresh time)."""
        return (
            self.displays == other.displays
            and self.spaces == other.spaces
            and self.windows == other.windows
            and self.frontmost_app == other.frontmost_app
        )


class HandlerKind(Enum):
    """How an indicator obtains its input on each tick."""
    STATE_DRIVEN = "state-driven"    # Reads the State Store only
    DIRECT_QUERY = "direct-query"    # Calls adapters live


@dataclass(frozen=True)
class IndicatorTask:
    """Declarative description of one periodic task."""

    name: str
    interval: float                  # Seconds between ticks
    handler_kind: HandlerKind

    def __post_init__(self) -> None:
        """Validate task description."""
        if not self.name:
            raise ValueError("Task name cannot be empty")
        if self.interval <= 0:
            raise ValueError(f"Invalid interval for task {self.name}: {self.interval}")


@dataclass(frozen=True)
class ItemUpdate:
    """One `--set` clause: an item name and its ordered properties."""

    item: str
    properties: Tuple[Tuple[str, str], ...]

    @classmethod
    def of(cls, item: str, *properties: Tuple[str, str]) -> "ItemUpdate":
        return cls(item=item, properties=tuple(properties))

    def to_args(self) -> List[str]:
        """Render as bar-control arguments."""
        return ["--set", self.item] + [f"{key}={value}" for key, value in self.properties]
