"""Orchestrator facade and its builder.

Example::

    USER = Key.of("user")
    ORDERS = Key.of("orders")

    orchestrator = (
        Orchestrator.builder()
        .listener(LoggingListener())
        .step(USER, lambda ctx: load_user())
        .parallel_steps(
            lambda p: p.step(ORDERS, lambda ctx: load_orders(ctx.require(USER)))
            .step("warm-cache", warm_cache, StepOptions.retry(3, backoff=0.5))
        )
        .step("notify", notify, StepOptions.continue_on_failure())
        .build()
    )
    result = orchestrator.execute()
"""

import inspect
import threading
from collections.abc import Callable
from concurrent.futures import Executor
from typing import Any

from ..config_exceptions import InvalidConfigurationException, require_not_none
from .execution_context import OrchestrationContext
from .group_scheduler import GroupScheduler, WorkerPool
from .keys import Key
from .listeners import ListenerDispatcher, ListenerErrorReporter, OrchestrationListener
from .results import OrchestrationResult
from .step import StepBody, StepDefinition, StepGroup
from .step_options import StepOptions


def _accepts_context(body: Callable[..., Any]) -> bool:
    """Check whether a step body takes the context as its argument."""
    try:
        signature = inspect.signature(body)
    except (TypeError, ValueError):
        # Builtins without a signature are called with the context
        return True

    for parameter in signature.parameters.values():
        if parameter.kind in (parameter.POSITIONAL_ONLY, parameter.POSITIONAL_OR_KEYWORD):
            return True
        if parameter.kind == parameter.VAR_POSITIONAL:
            return True
    return False


def _adapt_body(body: Callable[..., Any]) -> StepBody:
    """Wrap zero-argument callables so every body takes the context."""
    if _accepts_context(body):
        return body

    def call_without_context(context: OrchestrationContext) -> Any:
        return body()

    return call_without_context


def _make_step(
    key_or_name: Key[Any] | str, body: Callable[..., Any], options: StepOptions | None
) -> StepDefinition:
    require_not_none(key_or_name, "step.key_or_name")
    require_not_none(body, "step.body")
    if not callable(body):
        raise InvalidConfigurationException("step.body", f"{body!r} is not callable")

    options = options or StepOptions.defaults()
    if isinstance(key_or_name, Key):
        return StepDefinition(key_or_name.name, _adapt_body(body), key_or_name, options)
    if isinstance(key_or_name, str):
        return StepDefinition(key_or_name, _adapt_body(body), None, options)
    raise InvalidConfigurationException(
        "step.key_or_name", f"expected a Key or a str, got {type(key_or_name).__name__}"
    )


class ParallelBuilder:
    """Collects the members of one parallel group."""

    def __init__(self) -> None:
        self._steps: list[StepDefinition] = []

    def step(
        self,
        key_or_name: Key[Any] | str,
        body: Callable[..., Any],
        options: StepOptions | None = None,
    ) -> "ParallelBuilder":
        """Add a member to the group.

        Args:
            key_or_name: Output key of a value-producing step, or the name of a step producing nothing
            body: Callable taking the context, or taking no arguments
            options: Retry and failure options (defaults when None)
        """
        self._steps.append(_make_step(key_or_name, body, options))
        return self

    def build(self) -> StepGroup:
        if not self._steps:
            raise InvalidConfigurationException(
                "parallel_steps", "parallel step group cannot be empty"
            )
        return StepGroup.parallel(self._steps)


class OrchestratorBuilder:
    """Fluent builder declaring step groups and listeners."""

    def __init__(self) -> None:
        self._groups: list[StepGroup] = []
        self._listeners: list[OrchestrationListener] = []
        self._reporter: ListenerErrorReporter | None = None

    def step(
        self,
        key_or_name: Key[Any] | str,
        body: Callable[..., Any],
        options: StepOptions | None = None,
    ) -> "OrchestratorBuilder":
        """Add a step running on its own.

        Args:
            key_or_name: Output key of a value-producing step, or the name of a step producing nothing
            body: Callable taking the context, or taking no arguments
            options: Retry and failure options (defaults when None)
        """
        self._groups.append(StepGroup.single(_make_step(key_or_name, body, options)))
        return self

    def parallel_steps(self, configure: Callable[[ParallelBuilder], Any]) -> "OrchestratorBuilder":
        """Add a group of steps running concurrently.

        Args:
            configure: Callable adding members to the given ParallelBuilder
        """
        require_not_none(configure, "parallel_steps.configure")
        parallel = ParallelBuilder()
        configure(parallel)
        self._groups.append(parallel.build())
        return self

    def group(self, group: StepGroup) -> "OrchestratorBuilder":
        """Add a prebuilt group."""
        self._groups.append(require_not_none(group, "group"))
        return self

    def listener(self, listener: OrchestrationListener) -> "OrchestratorBuilder":
        self._listeners.append(require_not_none(listener, "listener"))
        return self

    def listener_error_reporter(self, reporter: ListenerErrorReporter) -> "OrchestratorBuilder":
        """Route listener failures to ``reporter`` instead of the log."""
        self._reporter = require_not_none(reporter, "listener_error_reporter")
        return self

    def build(self) -> "Orchestrator":
        return Orchestrator(self._groups, self._listeners, self._reporter)


class Orchestrator:
    """Immutable pipeline of step groups.

    An orchestrator can be executed any number of times; each execution
    gets its own context, or the one passed in.
    """

    def __init__(
        self,
        groups: list[StepGroup],
        listeners: list[OrchestrationListener],
        reporter: ListenerErrorReporter | None = None,
    ) -> None:
        self._groups = tuple(groups)
        self._listeners = tuple(listeners)
        self._reporter = reporter

    @staticmethod
    def builder() -> OrchestratorBuilder:
        return OrchestratorBuilder()

    @property
    def groups(self) -> tuple[StepGroup, ...]:
        return self._groups

    @property
    def listeners(self) -> tuple[OrchestrationListener, ...]:
        return self._listeners

    def execute(
        self,
        context: OrchestrationContext | None = None,
        executor: WorkerPool | Executor | None = None,
        cancel_event: threading.Event | None = None,
    ) -> OrchestrationResult:
        """Run the pipeline.

        Args:
            context: Shared context (an empty one is created when None)
            executor: Worker pool for parallel groups; never shut down by the run
            cancel_event: Event interrupting backoff waits when set

        Returns:
            OrchestrationResult; step failures are reported there, never raised
        """
        context = context if context is not None else OrchestrationContext.empty()
        dispatcher = ListenerDispatcher(self._listeners, self._reporter)
        scheduler = GroupScheduler(dispatcher, executor, cancel_event)
        return scheduler.run(self._groups, context)
