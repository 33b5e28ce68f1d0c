"""Folds per-step metadata into the final orchestration result."""

from collections.abc import Iterable

from .execution_context import OrchestrationContext
from .results import OrchestrationResult, OrchestrationStatus, StepExecutionMetadata


def resolve_status(any_failure: bool, stopped: bool) -> OrchestrationStatus:
    """Map the run flags to an overall status.

    Args:
        any_failure: Whether any step failed
        stopped: Whether a STOP decision halted the run

    Returns:
        SUCCESS without failures, FAILED when halted, PARTIAL otherwise
    """
    if not any_failure:
        return OrchestrationStatus.SUCCESS
    if stopped:
        return OrchestrationStatus.FAILED
    return OrchestrationStatus.PARTIAL


def aggregate(
    executions: Iterable[StepExecutionMetadata],
    any_failure: bool,
    stopped: bool,
    context: OrchestrationContext,
) -> OrchestrationResult:
    """Build the immutable result of a run."""
    return OrchestrationResult(
        status=resolve_status(any_failure, stopped),
        context=context,
        steps=tuple(executions),
    )
