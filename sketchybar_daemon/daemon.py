"""Main daemon entry point.

This module provides the daemon lifecycle (initialize, run, shutdown),
signal handling and logging setup.
"""

import argparse
import asyncio
import logging
import os
import signal
import sys
from typing import List, Optional

from . import __version__
from .config import DaemonConfig
from .errors import RegistryError
from .registry import STATE_REFRESH_TASK, build_scheduler
from .scheduler import Scheduler
from .sketchybar import BarSet
from .state import StateRefresher, StateStore

logger = logging.getLogger(__name__)


class SketchyBarDaemon:
    """Main daemon class."""

    def __init__(self, config: Optional[DaemonConfig] = None) -> None:
        """Initialize daemon."""
        self.config = config or DaemonConfig()
        self.store: Optional[StateStore] = None
        self.refresher: Optional[StateRefresher] = None
        self.bars: Optional[BarSet] = None
        self.scheduler: Optional[Scheduler] = None
        self.shutdown_event = asyncio.Event()

    def initialize(self) -> None:
        """Build daemon components.

        Raises:
            RegistryError: If the indicator registry is misconfigured
        """
        logger.info("Initializing SketchyBar daemon...")

        self.store = StateStore()
        self.refresher = StateRefresher(self.store, self.config)
        self.bars = BarSet(
            default_bar=self.config.default_bar,
            timeout=self.config.timeouts.sink,
            dry_run=self.config.dry_run,
            colors=self.config.colors,
            provision=self.config.provision_bars,
        )
        self.scheduler = build_scheduler(
            self.store, self.bars, self.config, refresher=self.refresher
        )

        logger.info(f"Registered {len(self.scheduler.task_names)} task(s)")
        if self.config.dry_run:
            logger.info("Dry-run mode: bar commands will be logged, not executed")

    async def run(self) -> None:
        """Run all tasks until shutdown is requested."""
        logger.info("Starting update loops...")
        await self.scheduler.run_until(self.shutdown_event)

    async def run_once(self) -> int:
        """Refresh state once and tick every indicator once.

        Returns:
            Number of tasks whose tick failed
        """
        results = await self.scheduler.tick_all()
        failed = [name for name, ok in results.items() if not ok]
        if STATE_REFRESH_TASK in failed:
            logger.warning("State refresh failed; state-driven items rendered from empty state")
        logger.info(f"Single pass complete: {len(results) - len(failed)}/{len(results)} task(s) succeeded")
        return len(failed)

    async def shutdown(self) -> None:
        """Stop all tasks with a timeout to prevent hanging."""
        logger.info("Shutting down daemon...")
        if self.scheduler:
            try:
                await asyncio.wait_for(self.scheduler.stop(), timeout=5.0)
            except asyncio.TimeoutError:
                logger.warning("Scheduler shutdown timed out after 5s (continuing)")
        logger.info("Daemon shutdown complete")

    def request_shutdown(self) -> None:
        self.shutdown_event.set()

    def log_diagnostics(self) -> None:
        """Log per-task state (SIGUSR1)."""
        logger.info("=== DEBUG INFO (USR1) ===")
        logger.info(f"PID: {os.getpid()}")
        if self.store:
            state = self.store.read()
            logger.info(
                f"State v{state.version}: {len(state.spaces)} spaces, "
                f"{len(state.windows)} windows, refreshed at {state.last_refreshed_at}"
            )
        if self.scheduler:
            for line in self.scheduler.describe():
                logger.info(f"  {line}")
        logger.info("======================")

    def setup_signal_handlers(self) -> None:
        """Setup signal handlers for graceful shutdown."""
        loop = asyncio.get_running_loop()

        def shutdown_handler(signum, frame):
            """Handle SIGTERM/SIGINT for graceful shutdown."""
            logger.info(f"Received signal {signum}, initiating shutdown...")
            loop.call_soon_threadsafe(self.shutdown_event.set)

        def debug_handler(signum, frame):
            """Handle USR1 for debugging (print diagnostics without shutdown)."""
            loop.call_soon_threadsafe(self.log_diagnostics)

        signal.signal(signal.SIGTERM, shutdown_handler)
        signal.signal(signal.SIGINT, shutdown_handler)
        signal.signal(signal.SIGUSR1, debug_handler)


def setup_logging(log_level: str = "INFO") -> None:
    """Setup logging to stderr."""
    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    handler = logging.StreamHandler(sys.stderr)
    formatter = logging.Formatter(
        "%(levelname)s [%(name)s] %(message)s"
    )
    handler.setFormatter(formatter)
    root_logger.addHandler(handler)

    logger.info(f"Logging configured: level={log_level}")


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="sketchybar-daemon",
        description="Keep SketchyBar items up to date from yabai and macOS state",
    )
    parser.add_argument("--log-level", help="Logging level (default: $LOG_LEVEL or INFO)")
    parser.add_argument("--dry-run", action="store_true",
                        help="Log bar commands instead of executing them")
    parser.add_argument("--no-provision", action="store_true",
                        help="Only update items; leave bar setup to the sketchybarrc")
    parser.add_argument("--once", action="store_true",
                        help="Refresh and render every item once, then exit")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> DaemonConfig:
    """Environment defaults overridden by command-line flags."""
    config = DaemonConfig.from_env()
    if args.log_level:
        config.log_level = args.log_level.upper()
    if args.dry_run:
        config.dry_run = True
    if args.no_provision:
        config.provision_bars = False
    return config


async def main_async(config: DaemonConfig, once: bool = False) -> int:
    """Async main function.

    Returns:
        Exit code (0 = success, non-zero = error)
    """
    daemon = SketchyBarDaemon(config)

    try:
        daemon.initialize()
    except RegistryError as e:
        logger.error(f"Fatal configuration error: {e}")
        return 1

    if once:
        failed = await daemon.run_once()
        return 0 if failed == 0 else 2

    try:
        daemon.setup_signal_handlers()
        await daemon.run()
        return 0

    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        return 1

    finally:
        await daemon.shutdown()


def main(argv: Optional[List[str]] = None) -> None:
    """Main entry point."""
    args = parse_args(argv)
    config = build_config(args)
    setup_logging(config.log_level)

    logger.info(f"SketchyBar daemon v{__version__} starting...")
    logger.info(f"PID: {os.getpid()}")

    try:
        exit_code = asyncio.run(main_async(config, once=args.once))
        sys.exit(exit_code)

    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        sys.exit(0)


if __name__ == "__main__":
    main()
