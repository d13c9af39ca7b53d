"""Update scheduler: independent periodic tasks with per-tick failure isolation.

Each registered task runs in its own asyncio task on a fixed schedule
(start + k * interval). A routine that overruns its interval makes the next
tick fire late, never skipped. Any exception a routine raises is classified,
logged with the task name and swallowed at the tick boundary, so one failing
or slow task never affects another and never stops its own future ticks.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional

from .errors import FailureKind, RegistryError, classify_failure
from .models import IndicatorTask

logger = logging.getLogger(__name__)

Routine = Callable[[], Awaitable[Any]]


@dataclass
class TaskStats:
    """Runtime counters for one task."""

    ticks: int = 0
    failures: int = 0
    last_failure_kind: Optional[FailureKind] = None
    last_error: Optional[str] = None
    last_duration_ms: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ticks": self.ticks,
            "failures": self.failures,
            "last_failure_kind": self.last_failure_kind.value if self.last_failure_kind else None,
            "last_error": self.last_error,
            "last_duration_ms": round(self.last_duration_ms, 2),
        }


@dataclass
class _Entry:
    task: IndicatorTask
    routine: Routine
    stats: TaskStats = field(default_factory=TaskStats)


class Scheduler:
    """Runs N independent periodic tasks on the current event loop."""

    def __init__(self) -> None:
        self._entries: Dict[str, _Entry] = {}
        self._running: Dict[str, asyncio.Task] = {}

    def add(self, task: IndicatorTask, routine: Routine) -> None:
        """Register a task. Tasks start in registration order.

        Raises:
            RegistryError: If a task with the same name is already registered
        """
        if self._running:
            raise RuntimeError("Cannot add tasks to a running scheduler")
        if task.name in self._entries:
            raise RegistryError(task.name, "duplicate task name")
        self._entries[task.name] = _Entry(task=task, routine=routine)
        logger.debug(f"Registered task {task.name} ({task.handler_kind.value}, every {task.interval}s)")

    @property
    def task_names(self) -> List[str]:
        return list(self._entries)

    @property
    def is_running(self) -> bool:
        return bool(self._running)

    def stats(self) -> Dict[str, TaskStats]:
        return {name: entry.stats for name, entry in self._entries.items()}

    def start(self) -> None:
        """Spawn one asyncio task per registered task."""
        if self._running:
            return
        for name, entry in self._entries.items():
            self._running[name] = asyncio.create_task(self._run(entry), name=f"tick:{name}")
        logger.info(f"Scheduler started {len(self._running)} task(s): {', '.join(self._running)}")

    async def stop(self, timeout: float = 5.0) -> None:
        """Cancel every task and wait for them to finish."""
        tasks = list(self._running.values())
        self._running.clear()
        if not tasks:
            return

        for task in tasks:
            task.cancel()

        done, pending = await asyncio.wait(tasks, timeout=timeout)
        if pending:
            logger.warning(f"{len(pending)} task(s) did not stop within {timeout}s")
        logger.info("Scheduler stopped")

    async def run_until(self, stop_event: asyncio.Event) -> None:
        """Run all tasks until the event is set, then stop them."""
        self.start()
        try:
            await stop_event.wait()
        finally:
            await self.stop()

    async def tick(self, name: str) -> bool:
        """Run one tick of a task through the failure boundary.

        Returns:
            True if the routine completed without raising
        """
        return await self._tick(self._entries[name])

    async def tick_all(self) -> Dict[str, bool]:
        """Run one tick of every task sequentially, in registration order."""
        return {name: await self._tick(entry) for name, entry in self._entries.items()}

    async def _run(self, entry: _Entry) -> None:
        loop = asyncio.get_running_loop()
        interval = entry.task.interval
        next_tick = loop.time()

        while True:
            # Always yields, even when the schedule is behind
            await asyncio.sleep(max(0.0, next_tick - loop.time()))
            await self._tick(entry)
            next_tick += interval

    async def _tick(self, entry: _Entry) -> bool:
        name = entry.task.name
        stats = entry.stats
        started = time.perf_counter()
        try:
            await entry.routine()
            return True
        except asyncio.CancelledError:
            raise
        except Exception as e:
            kind = classify_failure(e)
            stats.failures += 1
            stats.last_failure_kind = kind
            stats.last_error = str(e)
            if kind is FailureKind.HANDLER:
                logger.error(f"[{name}] handler failure: {type(e).__name__}: {e}", exc_info=True)
            elif kind.is_adapter_failure:
                logger.error(f"[{name}] adapter failure ({kind.value}): {e}")
            else:
                logger.error(f"[{name}] {kind.category} failure: {e}")
            return False
        finally:
            stats.ticks += 1
            stats.last_duration_ms = (time.perf_counter() - started) * 1000

    def describe(self) -> List[str]:
        """One diagnostic line per task."""
        lines = []
        for name, entry in self._entries.items():
            s = entry.stats
            line = (
                f"{name}: every {entry.task.interval}s, ticks={s.ticks}, "
                f"failures={s.failures}, last={s.last_duration_ms:.1f}ms"
            )
            if s.last_failure_kind:
                line += f", last failure={s.last_failure_kind.value}: {s.last_error}"
            lines.append(line)
        return lines
