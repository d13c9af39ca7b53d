"""Configuration dataclasses for the SketchyBar daemon."""

import os
from dataclasses import dataclass, field


@dataclass
class UpdateIntervals:
    """Update intervals for tasks (in seconds)."""
    state_refresh: float = 2.0
    clock: float = 1.0
    battery: float = 30.0
    keyboard: float = 5.0
    spaces: float = 1.0
    current_app: float = 1.0
    window: float = 1.0


@dataclass
class Timeouts:
    """Timeouts for external invocations (in seconds)."""
    query: float = 2.0     # yabai / osascript / pmset / defaults
    sink: float = 2.0      # sketchybar --set


@dataclass
class Colors:
    """ARGB palette used by the indicators (Catppuccin Mocha)."""
    flamingo: int = 0xfff2cdcd
    mauve: int = 0xffcba6f7
    blue: int = 0xff89b4fa
    sapphire: int = 0xff74c7ec
    sky: int = 0xff89dceb
    teal: int = 0xff94e2d5
    green: int = 0xffa6e3a1
    yellow: int = 0xfff9e2af
    peach: int = 0xfffab387
    maroon: int = 0xffeba0ac
    red: int = 0xfff38ba8
    surface0: int = 0xff313244
    overlay0: int = 0xff6c7086
    text: int = 0xffcdd6f4
    transparent: int = 0x00000000


def format_color(color: int) -> str:
    """Format an ARGB value the way sketchybar expects it (0xAARRGGBB)."""
    return f"0x{color:08x}"


def _env_flag(name: str) -> bool:
    return os.environ.get(name, "").strip().lower() in ("1", "true", "yes", "on")


@dataclass
class DaemonConfig:
    """Complete daemon configuration.

    Built from defaults and environment; command-line flags override it in
    daemon.main().
    """

    intervals: UpdateIntervals = field(default_factory=UpdateIntervals)
    timeouts: Timeouts = field(default_factory=Timeouts)
    colors: Colors = field(default_factory=Colors)
    yabai_bin: str = "yabai"
    default_bar: str = "sketchybar"
    dry_run: bool = False
    provision_bars: bool = True
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "DaemonConfig":
        """Load configuration from LOG_LEVEL and SKETCHYBAR_DAEMON_DRY_RUN."""
        return cls(
            log_level=os.environ.get("LOG_LEVEL", "INFO").upper(),
            dry_run=_env_flag("SKETCHYBAR_DAEMON_DRY_RUN"),
        )
