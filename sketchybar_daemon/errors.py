"""
Failure taxonomy for the SketchyBar daemon.

Every failure raised while a task ticks is classified into one FailureKind so
the scheduler can log it with a uniform shape and keep ticking. Only
RegistryError is fatal, and only at startup.
"""

from enum import Enum
from typing import Any, Dict, Optional, Sequence


class FailureKind(Enum):
    """
    Classification of a failed tick.

    Adapter failures (external query did not produce a usable value):
    - PROCESS: could not spawn, non-zero exit, or empty output
    - TIMEOUT: the external call exceeded its timeout
    - MALFORMED: output could not be parsed

    Other failures:
    - HANDLER: a routine raised after its inputs were available
    - SINK: the bar-control invocation failed
    - REGISTRY: startup misconfiguration (fatal)
    """

    PROCESS = "process"
    TIMEOUT = "timeout"
    MALFORMED = "malformed"
    HANDLER = "handler"
    SINK = "sink"
    REGISTRY = "registry"

    @property
    def is_adapter_failure(self) -> bool:
        return self in (FailureKind.PROCESS, FailureKind.TIMEOUT, FailureKind.MALFORMED)

    @property
    def category(self) -> str:
        """Top-level taxonomy bucket: adapter, handler, sink or registry."""
        return "adapter" if self.is_adapter_failure else self.value


class DaemonError(Exception):
    """Base exception for classified daemon failures."""

    def __init__(
        self,
        kind: FailureKind,
        message: str,
        context: Optional[Dict[str, Any]] = None
    ):
        """
        Initialize daemon error.

        Args:
            kind: Failure classification
            message: Human-readable error message
            context: Additional context for debugging
        """
        self.kind = kind
        self.message = message
        self.context = context or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to a dictionary for diagnostics output."""
        result = {
            "kind": self.kind.value,
            "message": self.message
        }
        if self.context:
            result["context"] = self.context
        return result


class AdapterError(DaemonError):
    """An external query did not produce a usable value."""

    def __init__(self, kind: FailureKind, command: Sequence[str], reason: str):
        """
        Initialize adapter error.

        Args:
            kind: PROCESS, TIMEOUT or MALFORMED
            command: Command line of the failed invocation
            reason: Reason for failure
        """
        if not kind.is_adapter_failure:
            raise ValueError(f"Not an adapter failure kind: {kind}")
        self.command = list(command)
        super().__init__(
            kind=kind,
            message=f"{' '.join(self.command)}: {reason}",
            context={"command": self.command, "reason": reason}
        )


class SinkError(DaemonError):
    """The bar-control invocation failed."""

    def __init__(self, bar_name: str, reason: str):
        """
        Initialize sink error.

        Args:
            bar_name: Bar the command was addressed to
            reason: Reason for failure
        """
        self.bar_name = bar_name
        super().__init__(
            kind=FailureKind.SINK,
            message=f"bar '{bar_name}': {reason}",
            context={"bar": bar_name, "reason": reason}
        )


class RegistryError(DaemonError):
    """The indicator registry references something that does not exist."""

    def __init__(self, task_name: str, reason: str):
        super().__init__(
            kind=FailureKind.REGISTRY,
            message=f"Invalid indicator task '{task_name}': {reason}",
            context={"task": task_name, "reason": reason}
        )


def classify_failure(exc: BaseException) -> FailureKind:
    """Map an exception raised by a routine to its FailureKind.

    Classified daemon errors keep their own kind; anything else raised by a
    routine counts as a handler failure.
    """
    if isinstance(exc, DaemonError):
        return exc.kind
    return FailureKind.HANDLER
