"""Indicator registry.

The fixed table of periodic tasks, and its one-time resolution into routines.
Each IndicatorTask names a handler of its declared kind; resolution binds it
to the store, handlers and bar set and returns a zero-argument coroutine the
scheduler can tick. An unknown name or a kind mismatch is a startup error.
"""

import logging
from typing import Callable, Dict, List, Optional, Tuple

from .config import DaemonConfig
from .errors import RegistryError
from .handlers import DirectQueryHandlers, StateDrivenHandlers
from .models import HandlerKind, IndicatorTask
from .scheduler import Routine, Scheduler
from .sketchybar import BarSet
from .state import StateRefresher, StateStore

logger = logging.getLogger(__name__)

STATE_REFRESH_TASK = "state_refresh"

DIRECT_QUERY_NAMES = ("clock", "battery", "keyboard")
STATE_DRIVEN_NAMES = ("spaces", "current_app", "window")


def default_tasks(config: Optional[DaemonConfig] = None) -> List[IndicatorTask]:
    """Indicator tasks in start order (refresh first)."""
    intervals = (config or DaemonConfig()).intervals
    return [
        IndicatorTask(STATE_REFRESH_TASK, intervals.state_refresh, HandlerKind.DIRECT_QUERY),
        IndicatorTask("clock", intervals.clock, HandlerKind.DIRECT_QUERY),
        IndicatorTask("battery", intervals.battery, HandlerKind.DIRECT_QUERY),
        IndicatorTask("keyboard", intervals.keyboard, HandlerKind.DIRECT_QUERY),
        IndicatorTask("spaces", intervals.spaces, HandlerKind.STATE_DRIVEN),
        IndicatorTask("current_app", intervals.current_app, HandlerKind.STATE_DRIVEN),
        IndicatorTask("window", intervals.window, HandlerKind.STATE_DRIVEN),
    ]


def build_routines(
    tasks: List[IndicatorTask],
    store: StateStore,
    bars: BarSet,
    config: Optional[DaemonConfig] = None,
    refresher: Optional[StateRefresher] = None,
) -> List[Tuple[IndicatorTask, Routine]]:
    """Resolve each task into a routine.

    Raises:
        RegistryError: If a task names an unknown handler or the wrong kind
    """
    config = config or DaemonConfig()
    refresher = refresher or StateRefresher(store, config)
    direct = DirectQueryHandlers(config)
    state_driven = StateDrivenHandlers(config)

    direct_table: Dict[str, Callable] = {name: getattr(direct, name) for name in DIRECT_QUERY_NAMES}
    state_table: Dict[str, Callable] = {name: getattr(state_driven, name) for name in STATE_DRIVEN_NAMES}

    resolved: List[Tuple[IndicatorTask, Routine]] = []
    for task in tasks:
        if task.name == STATE_REFRESH_TASK:
            if task.handler_kind is not HandlerKind.DIRECT_QUERY:
                raise RegistryError(task.name, "state refresh must be a direct-query task")
            resolved.append((task, refresher.refresh))
            continue

        if task.handler_kind is HandlerKind.DIRECT_QUERY:
            handler = direct_table.get(task.name)
            if handler is None:
                raise RegistryError(task.name, _unknown(task.name, state_table))
            resolved.append((task, _direct_routine(handler, store, bars)))
        elif task.handler_kind is HandlerKind.STATE_DRIVEN:
            handler = state_table.get(task.name)
            if handler is None:
                raise RegistryError(task.name, _unknown(task.name, direct_table))
            resolved.append((task, _state_routine(handler, store, bars)))
        else:
            raise RegistryError(task.name, f"unsupported handler kind {task.handler_kind!r}")

    return resolved


def build_scheduler(
    store: StateStore,
    bars: BarSet,
    config: Optional[DaemonConfig] = None,
    tasks: Optional[List[IndicatorTask]] = None,
    refresher: Optional[StateRefresher] = None,
) -> Scheduler:
    """Resolve the registry and register every routine with a new scheduler."""
    config = config or DaemonConfig()
    scheduler = Scheduler()
    for task, routine in build_routines(tasks or default_tasks(config), store, bars, config, refresher):
        scheduler.add(task, routine)
    return scheduler


def _unknown(name: str, other_table: Dict[str, Callable]) -> str:
    if name in other_table:
        return "handler exists but with the other handler kind"
    return "no such handler"


def _direct_routine(handler, store: StateStore, bars: BarSet) -> Routine:
    async def routine() -> None:
        updates = await handler()
        await bars.apply(updates, store.read().displays)
    return routine


def _state_routine(handler, store: StateStore, bars: BarSet) -> Routine:
    async def routine() -> None:
        state = store.read()
        await bars.apply(handler(state), state.displays)
    return routine
