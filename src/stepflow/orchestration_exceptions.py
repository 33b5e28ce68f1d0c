"""Orchestration exceptions.

These never escape a run on their own: the engine records them in
:class:`~stepflow.orchestration.results.StepExecutionMetadata` so callers can
inspect them. ``MissingContextValueError`` is the exception a step body gets
from :meth:`OrchestrationContext.require`.
"""

from typing import Any

from .base_exceptions import StepflowException


class OrchestrationException(StepflowException):
    """Base exception for errors raised while a pipeline runs."""

    pass


class BackoffInterruptedError(OrchestrationException):
    """Raised when the wait between two attempts of a step is cancelled."""

    def __init__(self, step_name: str, attempt: int, delay: float) -> None:
        """Initialize with the interrupted step details."""
        super().__init__(
            f"Backoff of {delay:.3f}s after attempt {attempt} of step '{step_name}' was interrupted",
            error_code="BACKOFF_INTERRUPTED",
            context={"step_name": step_name, "attempt": attempt, "delay": delay},
        )


class ConcurrentTaskFaultError(OrchestrationException):
    """Raised for a worker-pool level fault while joining a parallel group."""

    def __init__(self, step_name: str, reason: str) -> None:
        """Initialize with the faulted step details."""
        super().__init__(
            f"Concurrent execution of step '{step_name}' faulted: {reason}",
            error_code="CONCURRENT_TASK_FAULT",
            context={"step_name": step_name, "reason": reason},
        )


class MissingContextValueError(OrchestrationException):
    """Raised when a required key has no value in the context."""

    def __init__(self, key: Any) -> None:
        """Initialize with the missing key."""
        super().__init__(
            f"No value stored for {key!r}",
            error_code="MISSING_CONTEXT_VALUE",
            context={"key": getattr(key, "name", str(key))},
        )
