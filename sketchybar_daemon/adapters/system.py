"""macOS scripting-bridge adapters.

Small text queries answered by osascript, pmset and defaults. Each returns a
single value; non-zero exit or empty output is a PROCESS failure.
"""

import logging
import re
from dataclasses import dataclass

from ..errors import AdapterError, FailureKind
from ..models import Application
from .process import run_text_command

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 2.0

FRONTMOST_APP_SCRIPT = (
    'tell application "System Events" to get name of first application process '
    'whose frontmost is true'
)

BATTERY_COMMAND = ["pmset", "-g", "batt"]
KEYBOARD_COMMAND = ["defaults", "read", "com.apple.HIToolbox", "AppleSelectedInputSources"]

_PERCENT_RE = re.compile(r"(\d+)%")


@dataclass(frozen=True)
class BatteryReading:
    """Parsed `pmset -g batt` output."""

    percentage: int          # Charge level (0-100)
    charging: bool           # On AC power

    @classmethod
    def parse(cls, text: str) -> "BatteryReading":
        """Parse pmset output.

        Raises:
            ValueError: If no percentage is present
        """
        match = _PERCENT_RE.search(text)
        if not match:
            raise ValueError("no battery percentage in pmset output")
        percentage = max(0, min(100, int(match.group(1))))
        return cls(percentage=percentage, charging="AC Power" in text)


async def query_frontmost_app(timeout: float = DEFAULT_TIMEOUT) -> Application:
    """Ask System Events for the frontmost application."""
    name = await run_text_command(["osascript", "-e", FRONTMOST_APP_SCRIPT], timeout)
    return Application(name=name, is_frontmost=True)


async def query_battery(timeout: float = DEFAULT_TIMEOUT) -> BatteryReading:
    """Query battery charge and power source."""
    text = await run_text_command(BATTERY_COMMAND, timeout)
    try:
        reading = BatteryReading.parse(text)
    except ValueError as e:
        raise AdapterError(FailureKind.MALFORMED, BATTERY_COMMAND, str(e)) from e
    logger.debug(f"Battery: {reading.percentage}% (charging={reading.charging})")
    return reading


async def query_keyboard_layout(timeout: float = DEFAULT_TIMEOUT) -> str:
    """Return the raw selected-input-sources text."""
    return await run_text_command(KEYBOARD_COMMAND, timeout)
