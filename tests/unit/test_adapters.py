"""Unit tests for the external query adapters."""

import json

import pytest

from sketchybar_daemon.adapters import system, yabai
from sketchybar_daemon.adapters.process import run_command, run_text_command
from sketchybar_daemon.adapters.system import BatteryReading
from sketchybar_daemon.errors import AdapterError, FailureKind
from sketchybar_daemon.models import DisplayKind
from tests.fixtures.mock_shell import yabai_display, yabai_space, yabai_window


class TestRunCommand:
    """Test bounded process invocation."""

    @pytest.mark.asyncio
    async def test_returns_stdout(self, mock_shell):
        mock_shell.register(["echo"], stdout="hello\n")

        assert await run_command(["echo", "hello"], timeout=1.0) == "hello\n"
        assert mock_shell.calls == [["echo", "hello"]]

    @pytest.mark.asyncio
    async def test_nonzero_exit_is_process_failure(self, mock_shell):
        mock_shell.register(["yabai"], returncode=1, stderr="failed to connect to socket")

        with pytest.raises(AdapterError) as exc_info:
            await run_command(["yabai", "-m", "query", "--spaces"], timeout=1.0)

        error = exc_info.value
        assert error.kind is FailureKind.PROCESS
        assert "exit code 1" in error.message
        assert "failed to connect to socket" in error.message
        assert error.command == ["yabai", "-m", "query", "--spaces"]

    @pytest.mark.asyncio
    async def test_missing_binary_is_process_failure(self, mock_shell):
        """Unregistered commands behave like a missing executable."""
        with pytest.raises(AdapterError) as exc_info:
            await run_command(["not-installed"], timeout=1.0)

        assert exc_info.value.kind is FailureKind.PROCESS
        assert "cannot execute" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_unexecutable_binary_is_process_failure(self, mock_shell):
        """A binary built for another architecture fails at spawn time."""
        mock_shell.register(["sketchybar"], raises=OSError(8, "Exec format error"))

        with pytest.raises(AdapterError) as exc_info:
            await run_command(["sketchybar", "--query", "bar"], timeout=1.0)

        assert exc_info.value.kind is FailureKind.PROCESS
        assert "Exec format error" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_permission_denied_is_process_failure(self, mock_shell):
        mock_shell.register(["pmset"], raises=PermissionError(13, "Permission denied"))

        with pytest.raises(AdapterError) as exc_info:
            await run_command(["pmset", "-g", "batt"], timeout=1.0)

        assert exc_info.value.kind is FailureKind.PROCESS

    @pytest.mark.asyncio
    async def test_timeout_kills_process(self, mock_shell):
        mock_shell.register(["pmset"], stdout="100%", delay=5.0)

        with pytest.raises(AdapterError) as exc_info:
            await run_command(["pmset", "-g", "batt"], timeout=0.05)

        assert exc_info.value.kind is FailureKind.TIMEOUT
        assert mock_shell.processes[0].killed

    @pytest.mark.asyncio
    async def test_empty_text_output_is_process_failure(self, mock_shell):
        mock_shell.register(["osascript"], stdout="  \n")

        with pytest.raises(AdapterError) as exc_info:
            await run_text_command(["osascript", "-e", "..."], timeout=1.0)

        assert exc_info.value.kind is FailureKind.PROCESS
        assert "empty output" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_text_output_is_stripped(self, mock_shell):
        mock_shell.register(["osascript"], stdout="Finder\n")

        assert await run_text_command(["osascript", "-e", "..."], timeout=1.0) == "Finder"


class TestYabaiParsing:
    """Test lenient parsing of yabai JSON."""

    def test_unknown_fields_ignored(self):
        entries = yabai.parse_entries(
            '[{"index": 2, "display": 1, "has-focus": true, "some-future-field": [1, 2]}]',
            yabai.YabaiSpace, ["yabai"],
        )

        assert entries[0].index == 2
        assert entries[0].has_focus is True

    def test_missing_fields_use_defaults(self):
        space = yabai.parse_entries('[{"index": 4}]', yabai.YabaiSpace, ["yabai"])[0].to_space()

        assert space.id == 4
        assert space.display_id == 1
        assert space.is_focused is False
        assert space.window_ids == frozenset()
        assert space.label == ""

    def test_short_field_names_accepted(self):
        """`id` and `focused` are accepted in place of `index` and `has-focus`."""
        space = yabai.parse_entries('[{"id": 1, "focused": true}]', yabai.YabaiSpace, ["yabai"])[0]

        assert space.index == 1
        assert space.has_focus is True

    def test_index_preferred_over_id(self):
        """Real yabai output carries both; the mission-control index wins."""
        entry = yabai_space(3)
        assert entry["id"] != entry["index"]

        space = yabai.parse_entries(json.dumps([entry]), yabai.YabaiSpace, ["yabai"])[0]

        assert space.index == 3

    @pytest.mark.parametrize("raw", [
        "{not json",
        '{"index": 1}',
        '"spaces"',
        '[{"display": 1}]',
        '[{"index": "first"}]',
    ])
    def test_malformed_payloads(self, raw):
        with pytest.raises(AdapterError) as exc_info:
            yabai.parse_entries(raw, yabai.YabaiSpace, ["yabai", "-m", "query", "--spaces"])

        assert exc_info.value.kind is FailureKind.MALFORMED

    def test_empty_array_is_valid(self):
        assert yabai.parse_entries("[]", yabai.YabaiWindow, ["yabai"]) == []

    def test_window_defaults(self):
        window = yabai.parse_entries('[{"id": 7}]', yabai.YabaiWindow, ["yabai"])[0].to_window()

        assert window.id == 7
        assert window.app_name == ""
        assert window.title == ""
        assert window.is_focused is False

    def test_null_space_fields_use_defaults(self):
        raw = '[{"index": 2, "display": null, "has-focus": null, "windows": null, "label": null}]'
        space = yabai.parse_entries(raw, yabai.YabaiSpace, ["yabai"])[0].to_space()

        assert space.id == 2
        assert space.display_id == 1
        assert space.is_focused is False
        assert space.window_ids == frozenset()
        assert space.label == ""

    def test_null_window_fields_use_defaults(self):
        """Windows without a title (e.g. some Electron popups) report null."""
        entry = yabai_window(9, app=None, title=None, space=None, display=None)
        window = yabai.parse_entries(json.dumps([entry]), yabai.YabaiWindow, ["yabai"])[0].to_window()

        assert window.id == 9
        assert window.title == ""
        assert window.app_name == ""
        assert window.space_id == 0
        assert window.display_id == 0

    def test_null_display_fields_use_defaults(self):
        entry = yabai_display(2, label=None, frame=None)
        display = yabai.parse_entries(json.dumps([entry]), yabai.YabaiDisplay, ["yabai"])[0].to_display()

        assert display.id == 2
        assert display.kind is DisplayKind.EXTERNAL
        assert display.geometry.w == 0.0

    def test_null_frame_coordinates_use_defaults(self):
        entry = yabai_display(1, frame={"x": None, "y": 0.0, "w": 1728.0, "h": None})
        display = yabai.YabaiDisplay.model_validate(entry).to_display()

        assert display.geometry.x == 0.0
        assert display.geometry.w == 1728.0
        assert display.geometry.h == 0.0

    def test_null_index_falls_back_to_id(self):
        space = yabai.parse_entries('[{"index": null, "id": 5}]', yabai.YabaiSpace, ["yabai"])[0]

        assert space.index == 5

    @pytest.mark.parametrize("model,raw", [
        (yabai.YabaiSpace, '[{"index": null}]'),
        (yabai.YabaiWindow, '[{"id": null, "app": "Finder"}]'),
        (yabai.YabaiDisplay, '[{"index": null, "id": null}]'),
    ])
    def test_null_identifier_is_malformed(self, model, raw):
        with pytest.raises(AdapterError) as exc_info:
            yabai.parse_entries(raw, model, ["yabai"])

        assert exc_info.value.kind is FailureKind.MALFORMED


class TestYabaiDisplays:
    """Test display classification."""

    @pytest.mark.parametrize("index,label,expected", [
        (1, "", DisplayKind.BUILTIN),
        (2, "Built-in Retina Display", DisplayKind.BUILTIN),
        (2, "DELL U2720Q", DisplayKind.EXTERNAL),
        (3, "", DisplayKind.EXTERNAL),
    ])
    def test_builtin_classification(self, index, label, expected):
        entry = yabai.YabaiDisplay.model_validate(yabai_display(index, label))

        assert entry.to_display().kind is expected

    def test_geometry_from_frame(self):
        display = yabai.YabaiDisplay.model_validate(yabai_display(1)).to_display()

        assert display.geometry.w == 1728.0
        assert display.geometry.h == 1117.0


class TestYabaiQueries:
    """Test the yabai query coroutines against a mocked shell."""

    @pytest.mark.asyncio
    async def test_query_spaces_sorted_by_index(self, mock_shell):
        mock_shell.register_yabai("spaces", [
            yabai_space(3, display=2),
            yabai_space(1, focused=True, windows=[11, 12]),
            yabai_space(2),
        ])

        spaces = await yabai.query_spaces()

        assert [s.id for s in spaces] == [1, 2, 3]
        assert spaces[0].is_focused
        assert spaces[0].window_ids == frozenset({11, 12})
        assert spaces[2].display_id == 2
        assert mock_shell.calls == [["yabai", "-m", "query", "--spaces"]]

    @pytest.mark.asyncio
    async def test_query_windows_keeps_order(self, mock_shell):
        mock_shell.register_yabai("windows", [
            yabai_window(20, "Safari", "Docs"),
            yabai_window(10, "Terminal", "zsh", focused=True),
        ])

        windows = await yabai.query_windows()

        assert [w.id for w in windows] == [20, 10]
        assert windows[1].is_focused

    @pytest.mark.asyncio
    async def test_query_displays(self, mock_shell):
        mock_shell.register_yabai("displays", [yabai_display(2, "LG"), yabai_display(1, "Built-in")])

        displays = await yabai.query_displays()

        assert [d.id for d in displays] == [1, 2]
        assert [d.kind for d in displays] == [DisplayKind.BUILTIN, DisplayKind.EXTERNAL]

    @pytest.mark.asyncio
    async def test_custom_binary(self, mock_shell):
        mock_shell.register(["/opt/homebrew/bin/yabai"], stdout="[]")

        assert await yabai.query_windows("/opt/homebrew/bin/yabai") == ()

    @pytest.mark.asyncio
    async def test_malformed_output(self, mock_shell):
        mock_shell.register_yabai("spaces", "yabai-msg: failed to connect")

        with pytest.raises(AdapterError) as exc_info:
            await yabai.query_spaces()

        assert exc_info.value.kind is FailureKind.MALFORMED


class TestBatteryReading:
    """Test pmset output parsing."""

    def test_discharging(self, mock_pmset_discharging):
        reading = BatteryReading.parse(mock_pmset_discharging)

        assert reading.percentage == 85
        assert reading.charging is False

    def test_charging(self, mock_pmset_charging):
        reading = BatteryReading.parse(mock_pmset_charging)

        assert reading.percentage == 7
        assert reading.charging is True

    def test_clamped_to_100(self):
        assert BatteryReading.parse("250%").percentage == 100

    def test_no_percentage(self):
        with pytest.raises(ValueError):
            BatteryReading.parse("No batteries available")


class TestSystemQueries:
    """Test osascript, pmset and defaults adapters."""

    @pytest.mark.asyncio
    async def test_query_battery(self, mock_shell, mock_pmset_charging):
        mock_shell.register(["pmset"], stdout=mock_pmset_charging)

        reading = await system.query_battery()

        assert reading == BatteryReading(percentage=7, charging=True)

    @pytest.mark.asyncio
    async def test_query_battery_malformed(self, mock_shell):
        mock_shell.register(["pmset"], stdout="Now drawing from 'AC Power'\n")

        with pytest.raises(AdapterError) as exc_info:
            await system.query_battery()

        assert exc_info.value.kind is FailureKind.MALFORMED
        assert exc_info.value.command == system.BATTERY_COMMAND

    @pytest.mark.asyncio
    async def test_query_frontmost_app(self, mock_shell):
        mock_shell.register(["osascript"], stdout="Safari\n")

        app = await system.query_frontmost_app()

        assert app.name == "Safari"
        assert app.is_frontmost

    @pytest.mark.asyncio
    async def test_query_keyboard_layout(self, mock_shell, mock_input_sources_us):
        mock_shell.register(system.KEYBOARD_COMMAND, stdout=mock_input_sources_us)

        text = await system.query_keyboard_layout()

        assert '"KeyboardLayout Name" = "U.S.";' in text
        assert mock_shell.calls == [["defaults", "read", "com.apple.HIToolbox", "AppleSelectedInputSources"]]
