"""Bounded external process invocation shared by all adapters.

Uses asyncio.create_subprocess_exec() so a slow tool only suspends the task
that called it. The child is killed when the timeout expires or the calling
task is cancelled, so no invocation outlives its caller.
"""

import asyncio
import logging
from typing import Sequence

from ..errors import AdapterError, FailureKind

logger = logging.getLogger(__name__)


async def run_command(command: Sequence[str], timeout: float) -> str:
    """Run a command and return its decoded stdout.

    Args:
        command: Program and arguments
        timeout: Seconds to wait for the process to finish

    Returns:
        Decoded stdout (not stripped)

    Raises:
        AdapterError: PROCESS if the program cannot be spawned (any OSError) or exits
            non-zero, TIMEOUT if it does not finish in time
    """
    logger.debug(f"Executing: {' '.join(command)}")

    try:
        proc = await asyncio.create_subprocess_exec(
            *command,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as e:
        raise AdapterError(FailureKind.PROCESS, command, f"cannot execute: {e}") from e

    try:
        stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=timeout)
    except asyncio.TimeoutError:
        await _kill(proc)
        raise AdapterError(FailureKind.TIMEOUT, command, f"timed out after {timeout}s")
    except asyncio.CancelledError:
        await _kill(proc)
        raise

    if proc.returncode != 0:
        stderr_text = stderr.decode("utf-8", errors="replace").strip()
        raise AdapterError(
            FailureKind.PROCESS, command,
            f"exit code {proc.returncode}: {stderr_text}"
        )

    return stdout.decode("utf-8", errors="replace")


async def run_text_command(command: Sequence[str], timeout: float) -> str:
    """Run a command whose result is a single text value.

    Empty output counts as a PROCESS failure.
    """
    text = (await run_command(command, timeout)).strip()
    if not text:
        raise AdapterError(FailureKind.PROCESS, command, "empty output")
    return text


async def _kill(proc: asyncio.subprocess.Process) -> None:
    if proc.returncode is not None:
        return
    try:
        proc.kill()
    except ProcessLookupError:
        return
    await proc.wait()
