"""yabai window-manager query adapters.

Each query runs `yabai -m query --<selector>` once and parses the JSON array
into snapshot models. Parsing goes through lenient pydantic models: unknown
fields are ignored and missing ones fall back to the defaults declared below,
because yabai adds and drops fields between releases. Only the identifier of
each entry is required; a field reported as null counts as missing.
"""

import json
import logging
from typing import Any, List, Tuple, Type, TypeVar

from pydantic import AliasChoices, BaseModel, Field, ValidationError, model_validator

from ..errors import AdapterError, FailureKind
from ..models import Display, DisplayKind, Geometry, Space, Window
from .process import run_command

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 2.0

BUILTIN_LABEL_MARKER = "Built-in"


class YabaiEntry(BaseModel):
    """Base for yabai entries: unknown fields ignored, null fields defaulted."""

    model_config = {"extra": "ignore"}

    @model_validator(mode="before")
    @classmethod
    def drop_null_fields(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return {key: value for key, value in data.items() if value is not None}
        return data


class YabaiFrame(YabaiEntry):
    x: float = 0.0
    y: float = 0.0
    w: float = 0.0
    h: float = 0.0


class YabaiDisplay(YabaiEntry):
    """Display entry from `yabai -m query --displays`."""

    index: int = Field(validation_alias=AliasChoices("index", "id"))
    label: str = ""
    frame: YabaiFrame = Field(default_factory=YabaiFrame)

    def to_display(self) -> Display:
        is_builtin = BUILTIN_LABEL_MARKER in self.label or self.index == 1
        return Display(
            id=self.index,
            kind=DisplayKind.BUILTIN if is_builtin else DisplayKind.EXTERNAL,
            geometry=Geometry(x=self.frame.x, y=self.frame.y, w=self.frame.w, h=self.frame.h),
        )


class YabaiSpace(YabaiEntry):
    """Space entry from `yabai -m query --spaces`."""

    index: int = Field(validation_alias=AliasChoices("index", "id"))
    display: int = 1
    has_focus: bool = Field(default=False, validation_alias=AliasChoices("has-focus", "focused"))
    windows: List[int] = Field(default_factory=list)
    label: str = ""

    def to_space(self) -> Space:
        return Space(
            id=self.index,
            display_id=self.display,
            is_focused=self.has_focus,
            window_ids=frozenset(self.windows),
            label=self.label,
        )


class YabaiWindow(YabaiEntry):
    """Window entry from `yabai -m query --windows`."""

    id: int
    app: str = ""
    title: str = ""
    space: int = 0
    display: int = 0
    has_focus: bool = Field(default=False, validation_alias=AliasChoices("has-focus", "focused"))

    def to_window(self) -> Window:
        return Window(
            id=self.id,
            app_name=self.app,
            title=self.title,
            space_id=self.space,
            display_id=self.display,
            is_focused=self.has_focus,
        )


ModelT = TypeVar("ModelT", bound=BaseModel)


def parse_entries(raw: str, model: Type[ModelT], command: List[str]) -> List[ModelT]:
    """Parse a yabai JSON array into a list of models.

    Raises:
        AdapterError: MALFORMED if the payload is not a JSON array of objects
            or an entry lacks its identifier
    """
    try:
        payload: Any = json.loads(raw)
    except json.JSONDecodeError as e:
        raise AdapterError(FailureKind.MALFORMED, command, f"invalid JSON: {e}") from e

    if not isinstance(payload, list):
        raise AdapterError(
            FailureKind.MALFORMED, command,
            f"expected a JSON array, got {type(payload).__name__}"
        )

    try:
        return [model.model_validate(entry) for entry in payload]
    except ValidationError as e:
        raise AdapterError(
            FailureKind.MALFORMED, command,
            f"{model.__name__}: {e.error_count()} validation error(s)"
        ) from e


def _query_command(selector: str, yabai_bin: str) -> List[str]:
    return [yabai_bin, "-m", "query", f"--{selector}"]


async def query_displays(yabai_bin: str = "yabai", timeout: float = DEFAULT_TIMEOUT) -> Tuple[Display, ...]:
    """Query displays, ordered by index."""
    command = _query_command("displays", yabai_bin)
    entries = parse_entries(await run_command(command, timeout), YabaiDisplay, command)
    displays = tuple(sorted((e.to_display() for e in entries), key=lambda d: d.id))
    logger.debug(f"Queried {len(displays)} displays from yabai")
    return displays


async def query_spaces(yabai_bin: str = "yabai", timeout: float = DEFAULT_TIMEOUT) -> Tuple[Space, ...]:
    """Query spaces, ordered by index."""
    command = _query_command("spaces", yabai_bin)
    entries = parse_entries(await run_command(command, timeout), YabaiSpace, command)
    spaces = tuple(sorted((e.to_space() for e in entries), key=lambda s: s.id))
    logger.debug(f"Queried {len(spaces)} spaces from yabai")
    return spaces


async def query_windows(yabai_bin: str = "yabai", timeout: float = DEFAULT_TIMEOUT) -> Tuple[Window, ...]:
    """Query windows in the order yabai reports them."""
    command = _query_command("windows", yabai_bin)
    entries = parse_entries(await run_command(command, timeout), YabaiWindow, command)
    windows = tuple(e.to_window() for e in entries)
    logger.debug(f"Queried {len(windows)} windows from yabai")
    return windows
