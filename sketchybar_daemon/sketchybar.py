"""Bar sink: pushes item updates to sketchybar.

Every update is an independent `<bar> --set <item> key=value ...` process
invocation. Setting a property is idempotent and invocations share no state,
so updates for different items may be issued concurrently in any order.

Each display gets its own bar instance: the builtin display is driven by the
`sketchybar` binary and external display N by `external_N`. A bar is
provisioned (bar properties, defaults, items, hotload) the first time its
display is seen, and forgotten when the display disappears.
"""

import asyncio
import logging
from typing import Dict, FrozenSet, Iterable, List, Optional, Sequence, Tuple

from . import layout
from .adapters.process import run_command
from .config import Colors
from .errors import AdapterError, SinkError
from .models import Display, ItemUpdate

logger = logging.getLogger(__name__)

DEFAULT_BAR_NAME = "sketchybar"
DEFAULT_TIMEOUT = 2.0


def _pairs(properties: Iterable[Tuple[str, str]]) -> List[str]:
    return [f"{key}={value}" for key, value in properties]


def bar_args(properties: Iterable[Tuple[str, str]]) -> List[str]:
    return ["--bar", *_pairs(properties)]


def default_args(properties: Iterable[Tuple[str, str]]) -> List[str]:
    return ["--default", *_pairs(properties)]


def add_args(kind: str, name: str, position: str) -> List[str]:
    return ["--add", kind, name, position]


def subscribe_args(item: str, events: Iterable[str]) -> List[str]:
    return ["--subscribe", item, *events]


class SketchyBar:
    """One bar-control target."""

    def __init__(self, bar_name: str = DEFAULT_BAR_NAME,
                 timeout: float = DEFAULT_TIMEOUT, dry_run: bool = False):
        """Initialize bar target.

        Args:
            bar_name: Bar binary name (also the bar's identity)
            timeout: Seconds to wait for each invocation
            dry_run: Log commands instead of executing them
        """
        self.bar_name = bar_name
        self.timeout = timeout
        self.dry_run = dry_run
        self.display_id: Optional[int] = None          # Set once provisioned
        self.items: Optional[FrozenSet[str]] = None    # None: accept every item

    @property
    def is_provisioned(self) -> bool:
        return self.display_id is not None

    def build_command(self, updates: Sequence[ItemUpdate]) -> List[str]:
        command = [self.bar_name]
        for update in updates:
            command.extend(update.to_args())
        return command

    async def message(self, args: Sequence[str]) -> str:
        """Send raw arguments to the bar.

        Raises:
            SinkError: If the invocation fails or times out
        """
        command = [self.bar_name, *args]
        if self.dry_run:
            logger.info(f"[dry-run] {' '.join(command)}")
            return ""

        logger.debug(f"Sending message to {self.bar_name}: {' '.join(args)}")
        try:
            return await run_command(command, self.timeout)
        except AdapterError as e:
            raise SinkError(self.bar_name, e.message) from e

    async def bar(self, properties: Iterable[Tuple[str, str]]) -> None:
        await self.message(bar_args(properties))

    async def default(self, properties: Iterable[Tuple[str, str]]) -> None:
        await self.message(default_args(properties))

    async def add(self, kind: str, name: str, position: str) -> None:
        await self.message(add_args(kind, name, position))

    async def subscribe(self, item: str, events: Iterable[str]) -> None:
        await self.message(subscribe_args(item, events))

    async def hotload(self, enabled: bool = True) -> None:
        await self.message(["--hotload", "on" if enabled else "off"])

    async def set(self, item: str, properties: Iterable[Tuple[str, str]]) -> None:
        """Set properties on one item."""
        await self.apply([ItemUpdate(item=item, properties=tuple(properties))])

    async def apply(self, updates: Sequence[ItemUpdate]) -> None:
        """Apply several updates in a single invocation (no-op when empty)."""
        if not updates:
            return
        await self.message(self.build_command(updates)[1:])

    async def provision(self, display: Display, colors: Colors) -> None:
        """Configure the bar for a display and add its items.

        Bar and default properties go in one invocation, all items in a
        second. A hotload failure is only logged.

        Raises:
            SinkError: If configuring the bar or adding items fails; the bar
                stays unprovisioned so the next attempt starts over
        """
        logger.info(f"Setting up bar '{self.bar_name}' for display {display.id}")
        await self.message(
            bar_args(layout.bar_properties(display, colors))
            + default_args(layout.default_properties(display, colors))
        )

        specs = layout.item_specs(display, colors)
        args: List[str] = []
        for spec in specs:
            args += add_args(spec.kind, spec.name, spec.position)
            if spec.properties:
                args += ItemUpdate(item=spec.name, properties=spec.properties).to_args()
            if spec.events:
                args += subscribe_args(spec.name, spec.events)
        await self.message(args)

        try:
            await self.hotload(True)
        except SinkError as e:
            logger.warning(f"Failed to enable hotloading for bar '{self.bar_name}': {e}")

        self.items = frozenset(spec.name for spec in specs)
        self.display_id = display.id
        logger.info(f"Bar '{self.bar_name}' configured with {len(specs)} items")

    def accepts(self, update: ItemUpdate) -> bool:
        """Whether the bar has the item an update targets."""
        return self.items is None or update.item in self.items

    def __repr__(self) -> str:
        return f"SketchyBar({self.bar_name!r})"


def bar_name_for(display: Display, default_bar: str = DEFAULT_BAR_NAME) -> str:
    """Builtin display -> default bar, external display N -> external_N."""
    if display.is_builtin:
        return default_bar
    return f"external_{display.id}"


class BarSet:
    """Maps the current displays to bar targets and fans updates out to them."""

    def __init__(self, default_bar: str = DEFAULT_BAR_NAME,
                 timeout: float = DEFAULT_TIMEOUT, dry_run: bool = False,
                 colors: Optional[Colors] = None, provision: bool = True):
        self.default_bar = default_bar
        self.timeout = timeout
        self.dry_run = dry_run
        self.colors = colors or Colors()
        self.provision = provision
        self._bars: Dict[str, SketchyBar] = {}
        self._provision_lock = asyncio.Lock()

    @property
    def bar_names(self) -> List[str]:
        return list(self._bars)

    def _bar(self, name: str) -> SketchyBar:
        bar = self._bars.get(name)
        if bar is None:
            bar = SketchyBar(name, timeout=self.timeout, dry_run=self.dry_run)
            self._bars[name] = bar
            logger.info(f"Tracking bar '{name}'")
        return bar

    def _targets(self, displays: Sequence[Display]) -> List[Tuple[SketchyBar, Optional[Display]]]:
        wanted: Dict[str, Display] = {}
        for display in displays:
            wanted.setdefault(bar_name_for(display, self.default_bar), display)
        if not wanted:
            return [(self._bar(self.default_bar), None)]

        for name in [n for n in self._bars if n not in wanted]:
            del self._bars[name]
            logger.info(f"Removing bar '{name}' for disconnected display")
        return [(self._bar(name), display) for name, display in wanted.items()]

    def resolve(self, displays: Sequence[Display]) -> List[SketchyBar]:
        """Bars for the given displays; the default bar when none are known.

        Bars whose display is no longer present are forgotten.
        """
        return [bar for bar, _ in self._targets(displays)]

    async def _ensure_provisioned(self, bar: SketchyBar, display: Optional[Display]) -> None:
        if not self.provision or display is None or bar.display_id == display.id:
            return
        async with self._provision_lock:
            if bar.display_id != display.id:
                await bar.provision(display, self.colors)

    async def apply(self, updates: Sequence[ItemUpdate], displays: Sequence[Display]) -> int:
        """Apply updates to every bar, provisioning bars seen for the first time.

        All bars are attempted even if some fail. Each bar only receives the
        updates for items it has.

        Returns:
            Number of bars updated

        Raises:
            SinkError: If any bar failed (after all bars were attempted)
        """
        if not updates:
            return 0

        failures: List[SinkError] = []
        applied = 0
        for bar, display in self._targets(displays):
            try:
                await self._ensure_provisioned(bar, display)
                accepted = [u for u in updates if bar.accepts(u)]
                if accepted:
                    await bar.apply(accepted)
                    applied += 1
            except SinkError as e:
                failures.append(e)

        if failures:
            if len(failures) == 1:
                raise failures[0]
            raise SinkError(
                ",".join(f.bar_name for f in failures),
                "; ".join(f.message for f in failures)
            )
        return applied
