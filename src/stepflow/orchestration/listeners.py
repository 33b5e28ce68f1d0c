"""Listener hooks around step execution.

Listeners observe three points of every step:
- before_step: called before the first attempt
- after_step: called after the step succeeded
- on_failure: called after the step failed for good

Listener failures never affect the run. They are handed to a reporter
callback, which logs them by default.
"""

from collections.abc import Callable, Iterable
from typing import TYPE_CHECKING

from ..logging import get_logger

if TYPE_CHECKING:
    from .execution_context import OrchestrationContext
    from .results import StepExecutionMetadata

logger = get_logger(__name__)


class OrchestrationListener:
    """Base class for listeners.

    Every hook is a no-op; subclasses override the ones they need.
    """

    def before_step(self, step_name: str, context: "OrchestrationContext") -> None:
        """Called before a step runs.

        Args:
            step_name: Name of the step about to run
            context: Shared context
        """

    def after_step(
        self,
        step_name: str,
        context: "OrchestrationContext",
        metadata: "StepExecutionMetadata",
    ) -> None:
        """Called after a step succeeded.

        Args:
            step_name: Name of the step
            context: Shared context, including the step output
            metadata: Execution metadata of the step
        """

    def on_failure(
        self,
        step_name: str,
        error: BaseException,
        context: "OrchestrationContext",
        metadata: "StepExecutionMetadata",
    ) -> None:
        """Called after a step failed for good.

        Args:
            step_name: Name of the step
            error: Terminal exception of the step
            context: Shared context
            metadata: Execution metadata of the step
        """


ListenerErrorReporter = Callable[[str, str, OrchestrationListener, BaseException], None]
"""Receives ``(hook_name, step_name, listener, error)`` for a failed listener call."""


def log_listener_error(
    hook_name: str, step_name: str, listener: OrchestrationListener, error: BaseException
) -> None:
    """Default reporter: log the failure as a warning."""
    logger.warning(
        "listener_failed",
        hook=hook_name,
        step=step_name,
        listener=type(listener).__name__,
        error=str(error),
        error_type=type(error).__name__,
    )


class ListenerDispatcher:
    """Invokes listener hooks in registration order.

    Attributes:
        listeners: Registered listeners
        reporter: Callback receiving listener failures
    """

    def __init__(
        self,
        listeners: Iterable[OrchestrationListener] = (),
        reporter: ListenerErrorReporter | None = None,
    ) -> None:
        self.listeners: tuple[OrchestrationListener, ...] = tuple(listeners)
        self.reporter = reporter or log_listener_error

    def before_step(self, step_name: str, context: "OrchestrationContext") -> None:
        """Call before_step on all listeners."""
        for listener in self.listeners:
            try:
                listener.before_step(step_name, context)
            except Exception as e:
                self._report("before_step", step_name, listener, e)

    def after_step(
        self,
        step_name: str,
        context: "OrchestrationContext",
        metadata: "StepExecutionMetadata",
    ) -> None:
        """Call after_step on all listeners."""
        for listener in self.listeners:
            try:
                listener.after_step(step_name, context, metadata)
            except Exception as e:
                self._report("after_step", step_name, listener, e)

    def on_failure(
        self,
        step_name: str,
        error: BaseException,
        context: "OrchestrationContext",
        metadata: "StepExecutionMetadata",
    ) -> None:
        """Call on_failure on all listeners."""
        for listener in self.listeners:
            try:
                listener.on_failure(step_name, error, context, metadata)
            except Exception as e:
                self._report("on_failure", step_name, listener, e)

    def _report(
        self, hook_name: str, step_name: str, listener: OrchestrationListener, error: Exception
    ) -> None:
        try:
            self.reporter(hook_name, step_name, listener, error)
        except Exception as reporter_error:
            logger.error(
                "listener_reporter_failed",
                hook=hook_name,
                step=step_name,
                error=str(reporter_error),
            )


class LoggingListener(OrchestrationListener):
    """Logs the lifecycle of every step.

    Attributes:
        logger: Structured logger to write to
        log_context: Whether to log the context keys on each event
    """

    def __init__(self, logger_name: str = "stepflow.steps", log_context: bool = False) -> None:
        self.logger = get_logger(logger_name)
        self.log_context = log_context

    def before_step(self, step_name: str, context: "OrchestrationContext") -> None:
        if self.log_context:
            self.logger.info("step_started", step=step_name, context=str(context))
        else:
            self.logger.info("step_started", step=step_name)

    def after_step(
        self,
        step_name: str,
        context: "OrchestrationContext",
        metadata: "StepExecutionMetadata",
    ) -> None:
        self.logger.info(
            "step_completed",
            step=step_name,
            attempts=metadata.attempts,
            duration=metadata.processing_time.total_seconds(),
        )

    def on_failure(
        self,
        step_name: str,
        error: BaseException,
        context: "OrchestrationContext",
        metadata: "StepExecutionMetadata",
    ) -> None:
        self.logger.error(
            "step_failed",
            step=step_name,
            attempts=metadata.attempts,
            error=str(error),
            error_type=type(error).__name__,
        )
