"""State store for the SketchyBar daemon.

Holds exactly one immutable DaemonState. Readers get the current reference;
the refresh task builds a complete new snapshot off to the side and installs
it with a single swap, so no reader ever observes a half-refreshed state.
"""

import asyncio
import dataclasses
import logging
import threading
from datetime import datetime
from typing import Optional

from .adapters import system, yabai
from .config import DaemonConfig
from .errors import AdapterError
from .models import Application, DaemonState

logger = logging.getLogger(__name__)


class StateStore:
    """Versioned holder of the current DaemonState with atomic swap-on-write."""

    def __init__(self, initial: Optional[DaemonState] = None) -> None:
        """Initialize store with an empty (or given) snapshot."""
        self._state = initial or DaemonState.empty()
        # Guards only the reference read/swap, never snapshot construction
        self._lock = threading.Lock()

    def read(self) -> DaemonState:
        """Return the most recent complete snapshot."""
        with self._lock:
            return self._state

    def replace(self, new: DaemonState) -> bool:
        """Atomically install a new snapshot.

        The snapshot is stamped with the next version number before it
        becomes visible.

        Args:
            new: Complete replacement state

        Returns:
            True if the content differs from the previous snapshot
        """
        with self._lock:
            previous = self._state
            self._state = dataclasses.replace(new, version=previous.version + 1)
        changed = not previous.same_content(new)
        if changed:
            logger.debug(
                f"State updated to v{previous.version + 1} "
                f"({len(new.spaces)} spaces, {len(new.windows)} windows, "
                f"{len(new.displays)} displays)"
            )
        return changed

    @property
    def version(self) -> int:
        return self.read().version


class StateRefresher:
    """Builds complete snapshots from the window manager and installs them."""

    def __init__(self, store: StateStore, config: Optional[DaemonConfig] = None) -> None:
        self.store = store
        self.config = config or DaemonConfig()

    async def refresh(self) -> bool:
        """Query the window manager and replace the stored snapshot.

        Displays, spaces and windows are queried concurrently. If any of them
        fails the others are cancelled (killing their processes), the first
        AdapterError propagates and the previous snapshot stays visible.

        Returns:
            True if the installed snapshot differs from the previous one
        """
        yabai_bin = self.config.yabai_bin
        timeout = self.config.timeouts.query

        try:
            async with asyncio.TaskGroup() as group:
                displays = group.create_task(yabai.query_displays(yabai_bin, timeout))
                spaces = group.create_task(yabai.query_spaces(yabai_bin, timeout))
                windows = group.create_task(yabai.query_windows(yabai_bin, timeout))
        except ExceptionGroup as eg:
            raise _first_failure(eg)

        snapshot = DaemonState(
            displays=displays.result(),
            spaces=spaces.result(),
            windows=windows.result(),
            frontmost_app=await self._resolve_frontmost_app(windows.result()),
            last_refreshed_at=datetime.now(),
        )
        return self.store.replace(snapshot)

    async def _resolve_frontmost_app(self, windows) -> Optional[Application]:
        """Focused window's application, else ask the scripting bridge."""
        focused = next((w for w in windows if w.is_focused and w.app_name), None)
        if focused:
            return Application(name=focused.app_name, is_frontmost=True)

        try:
            return await system.query_frontmost_app(self.config.timeouts.query)
        except AdapterError as e:
            logger.debug(f"Frontmost app unavailable: {e}")
            return None


def _first_failure(eg: ExceptionGroup) -> Exception:
    """Unwrap a query group failure, preferring an adapter failure."""
    leaves = list(eg.exceptions)
    return next((e for e in leaves if isinstance(e, AdapterError)), leaves[0])
