"""Pytest configuration and fixtures for SketchyBar daemon tests."""

import sys
from pathlib import Path
from unittest.mock import patch

import pytest

# Make the package importable without installation
package_root = Path(__file__).parent.parent
if str(package_root) not in sys.path:
    sys.path.insert(0, str(package_root))

from sketchybar_daemon.config import DaemonConfig, Timeouts, UpdateIntervals  # noqa: E402
from sketchybar_daemon.models import (  # noqa: E402
    Application,
    DaemonState,
    Display,
    DisplayKind,
    Space,
    Window,
)
from tests.fixtures.mock_shell import MockShell  # noqa: E402


@pytest.fixture
def mock_shell():
    """Replace process spawning with a recording MockShell."""
    shell = MockShell()
    with patch("asyncio.create_subprocess_exec", new=shell):
        yield shell


@pytest.fixture
def fast_config():
    """Configuration with short timeouts for tests."""
    return DaemonConfig(
        intervals=UpdateIntervals(
            state_refresh=0.05,
            clock=0.05,
            battery=0.05,
            keyboard=0.05,
            spaces=0.05,
            current_app=0.05,
            window=0.05,
        ),
        timeouts=Timeouts(query=0.2, sink=0.2),
    )


@pytest.fixture
def mock_pmset_discharging():
    """pmset -g batt output on battery power."""
    return (
        "Now drawing from 'Battery Power'\n"
        " -InternalBattery-0 (id=4653155)\t85%; discharging; 5:12 remaining present: true\n"
    )


@pytest.fixture
def mock_pmset_charging():
    """pmset -g batt output while charging."""
    return (
        "Now drawing from 'AC Power'\n"
        " -InternalBattery-0 (id=4653155)\t7%; charging; 2:01 remaining present: true\n"
    )


@pytest.fixture
def mock_input_sources_us():
    """defaults read com.apple.HIToolbox AppleSelectedInputSources output."""
    return (
        "(\n"
        "        {\n"
        "        InputSourceKind = \"Keyboard Layout\";\n"
        "        \"KeyboardLayout ID\" = 0;\n"
        "        \"KeyboardLayout Name\" = \"U.S.\";\n"
        "    }\n"
        ")\n"
    )


@pytest.fixture
def sample_state():
    """A populated snapshot: two displays, three spaces, two windows."""
    return DaemonState(
        displays=(
            Display(id=1, kind=DisplayKind.BUILTIN),
            Display(id=2, kind=DisplayKind.EXTERNAL),
        ),
        spaces=(
            Space(id=1, display_id=1, is_focused=True, window_ids=frozenset({11})),
            Space(id=2, display_id=1, window_ids=frozenset({12})),
            Space(id=3, display_id=2),
        ),
        windows=(
            Window(id=11, app_name="Terminal", title="zsh", space_id=1, is_focused=True),
            Window(id=12, app_name="Safari", title="Docs", space_id=2),
        ),
        frontmost_app=Application(name="Terminal", is_frontmost=True),
    )
