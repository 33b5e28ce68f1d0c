"""Runs one step under its retry policy and failure strategy.

The runner is the unit of concurrency: a parallel group calls it once per
member, from worker threads.
"""

import threading
from dataclasses import dataclass
from datetime import datetime, timezone

from ..logging import get_logger
from ..orchestration_exceptions import BackoffInterruptedError
from .execution_context import OrchestrationContext
from .listeners import ListenerDispatcher
from .results import StepExecutionMetadata
from .step import StepDefinition
from .step_options import FailureStrategy

logger = get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class StepOutcome:
    """Metadata of a finished step and whether the pipeline may go on."""

    metadata: StepExecutionMetadata
    strategy: FailureStrategy

    @property
    def should_stop(self) -> bool:
        return self.strategy is FailureStrategy.STOP


class StepRunner:
    """Executes a single step.

    Step failures never propagate out of :meth:`run`; they are recorded in
    the returned metadata and resolved into a :class:`FailureStrategy`.

    Attributes:
        dispatcher: Listener dispatcher notified around the step
        cancel_event: Optional event that interrupts backoff waits
    """

    def __init__(
        self,
        dispatcher: ListenerDispatcher | None = None,
        cancel_event: threading.Event | None = None,
    ) -> None:
        self.dispatcher = dispatcher or ListenerDispatcher()
        self.cancel_event = cancel_event

    def run(self, step: StepDefinition, context: OrchestrationContext) -> StepOutcome:
        """Run a step with retries.

        Args:
            step: Step to run
            context: Shared context

        Returns:
            StepOutcome with the step metadata and the resulting strategy
        """
        self.dispatcher.before_step(step.name, context)

        retry_policy = step.options.retry_policy
        start = _utcnow()
        final_error: BaseException | None = None
        success = False
        attempts = 0

        while attempts < retry_policy.max_attempts:
            attempts += 1
            logger.debug("step_attempt", step=step.name, attempt=attempts)
            try:
                value = step.body(context)
            except Exception as e:
                final_error = e
            else:
                if step.key is not None:
                    context.put(step.key, value)
                success = True
                final_error = None
                break

            if attempts >= retry_policy.max_attempts or not retry_policy.is_retryable(final_error):
                break

            logger.info(
                "step_retrying",
                step=step.name,
                attempt=attempts,
                max_attempts=retry_policy.max_attempts,
                error=str(final_error),
            )
            if not retry_policy.wait_for_retry(attempts, self.cancel_event):
                interrupted = BackoffInterruptedError(
                    step.name, attempts, retry_policy.delay_for(attempts)
                )
                interrupted.__cause__ = final_error
                final_error = interrupted
                break

        end = _utcnow()

        if success:
            metadata = StepExecutionMetadata.succeeded(step.name, start, end, attempts)
            self.dispatcher.after_step(step.name, context, metadata)
            return StepOutcome(metadata, FailureStrategy.CONTINUE)

        assert final_error is not None
        metadata = StepExecutionMetadata.failed(step.name, start, end, attempts, final_error)
        logger.warning(
            "step_failed",
            step=step.name,
            attempts=attempts,
            error=str(final_error),
            error_type=type(final_error).__name__,
        )
        self.dispatcher.on_failure(step.name, final_error, context, metadata)
        return StepOutcome(metadata, self._decide(step, final_error, context))

    def _decide(
        self, step: StepDefinition, error: BaseException, context: OrchestrationContext
    ) -> FailureStrategy:
        """Evaluate the step's failure handler, treating a broken handler as STOP."""
        try:
            strategy = step.options.failure_handler(error, context)
        except Exception as e:
            logger.error("failure_handler_failed", step=step.name, error=str(e))
            return FailureStrategy.STOP

        if not isinstance(strategy, FailureStrategy):
            logger.error(
                "failure_handler_invalid_result", step=step.name, result=repr(strategy)
            )
            return FailureStrategy.STOP
        return strategy
