"""Immutable records describing what a run did."""

from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .execution_context import OrchestrationContext


@dataclass(frozen=True)
class StepExecutionMetadata:
    """Outcome of one step execution.

    Created once per executed step. Steps that never started have no
    metadata at all.
    """

    step_name: str
    """Name of the step."""

    start_time: datetime
    """When the first attempt started (UTC)."""

    end_time: datetime
    """When the last attempt ended (UTC)."""

    success: bool
    """Whether an attempt succeeded."""

    exception: BaseException | None
    """Terminal failure, None on success."""

    attempts: int
    """Number of attempts made."""

    @property
    def processing_time(self) -> timedelta:
        """Time between start and end of the step."""
        return self.end_time - self.start_time

    @classmethod
    def succeeded(
        cls, step_name: str, start_time: datetime, end_time: datetime, attempts: int
    ) -> "StepExecutionMetadata":
        return cls(step_name, start_time, end_time, True, None, attempts)

    @classmethod
    def failed(
        cls,
        step_name: str,
        start_time: datetime,
        end_time: datetime,
        attempts: int,
        exception: BaseException,
    ) -> "StepExecutionMetadata":
        return cls(step_name, start_time, end_time, False, exception, attempts)

    def __str__(self) -> str:
        status = "SUCCESS" if self.success else f"FAILED({type(self.exception).__name__})"
        return (
            f"StepExecutionMetadata({self.step_name}, {status}, "
            f"attempts={self.attempts}, "
            f"duration={self.processing_time.total_seconds():.3f}s)"
        )


class OrchestrationStatus(Enum):
    """Overall status of a run."""

    SUCCESS = "SUCCESS"
    """No step failed."""

    PARTIAL = "PARTIAL"
    """Some steps failed but every failure resolved to CONTINUE."""

    FAILED = "FAILED"
    """A failure stopped the run."""


@dataclass(frozen=True)
class OrchestrationResult:
    """Final record of a run: status, shared context and per-step metadata."""

    status: OrchestrationStatus
    context: "OrchestrationContext"
    steps: tuple[StepExecutionMetadata, ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "steps", tuple(self.steps))

    @property
    def succeeded(self) -> bool:
        return self.status is OrchestrationStatus.SUCCESS

    @property
    def failed_steps(self) -> tuple[StepExecutionMetadata, ...]:
        return tuple(step for step in self.steps if not step.success)

    @property
    def total_attempts(self) -> int:
        return sum(step.attempts for step in self.steps)

    def step(self, name: str) -> StepExecutionMetadata | None:
        """Get the metadata of the first executed step with the given name."""
        for step in self.steps:
            if step.step_name == name:
                return step
        return None

    def __str__(self) -> str:
        return (
            f"OrchestrationResult({self.status.value}, steps={len(self.steps)}, "
            f"failed={len(self.failed_steps)})"
        )
