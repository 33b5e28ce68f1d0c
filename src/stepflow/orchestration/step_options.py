"""Per-step options: retry policy and failure strategy."""

from collections.abc import Callable
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import TYPE_CHECKING

from ..config_exceptions import require_not_none
from .retry_policy import RetryPolicy

if TYPE_CHECKING:
    from .execution_context import OrchestrationContext


class FailureStrategy(Enum):
    """What the pipeline does after a step fails for good."""

    STOP = "STOP"
    """Halt the pipeline; later groups do not run."""

    CONTINUE = "CONTINUE"
    """Record the failure and keep running later groups."""


FailureHandler = Callable[[BaseException, "OrchestrationContext"], FailureStrategy]
"""Decides the strategy from the terminal exception and the context."""


def stop() -> FailureHandler:
    """Failure handler that always stops the pipeline."""
    return lambda error, context: FailureStrategy.STOP


def cont() -> FailureHandler:
    """Failure handler that always lets the pipeline continue."""
    return lambda error, context: FailureStrategy.CONTINUE


@dataclass(frozen=True)
class StepOptions:
    """Retry policy and failure handler of one step.

    Defaults to a single attempt and STOP on any failure.
    """

    retry_policy: RetryPolicy = field(default_factory=RetryPolicy.none)
    failure_handler: FailureHandler = field(default_factory=stop)

    def __post_init__(self) -> None:
        require_not_none(self.retry_policy, "step_options.retry_policy")
        require_not_none(self.failure_handler, "step_options.failure_handler")

    @classmethod
    def defaults(cls) -> "StepOptions":
        return cls()

    @classmethod
    def retry(cls, attempts: int, backoff: float = 0.0) -> "StepOptions":
        """Options retrying up to ``attempts`` times with a fixed backoff."""
        return cls(retry_policy=RetryPolicy.fixed(attempts, backoff))

    @classmethod
    def continue_on_failure(cls) -> "StepOptions":
        return cls(failure_handler=cont())

    def with_retry_policy(self, retry_policy: RetryPolicy) -> "StepOptions":
        return replace(self, retry_policy=retry_policy)

    def with_failure_strategy(self, strategy: FailureStrategy) -> "StepOptions":
        require_not_none(strategy, "step_options.failure_strategy")
        return replace(self, failure_handler=lambda error, context: strategy)

    def with_failure_handler(self, handler: FailureHandler) -> "StepOptions":
        return replace(self, failure_handler=handler)
