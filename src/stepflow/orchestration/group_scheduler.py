"""Group scheduler: walks step groups in order and runs their members.

Single-step groups run inline on the calling thread. Multi-step groups are
submitted to a worker pool and joined before the next group starts.
"""

import threading
from collections.abc import Callable, Iterable
from concurrent.futures import CancelledError, Executor, Future, ThreadPoolExecutor
from datetime import datetime, timezone
from typing import Any, Protocol

from ..config import get_settings
from ..logging import get_logger
from ..orchestration_exceptions import ConcurrentTaskFaultError
from .execution_context import OrchestrationContext
from .listeners import ListenerDispatcher
from .result_aggregator import aggregate
from .results import OrchestrationResult, StepExecutionMetadata
from .step import StepGroup
from .step_runner import StepOutcome, StepRunner

logger = get_logger(__name__)


class WorkerPool(Protocol):
    """Protocol for the pool running parallel group members.

    Any :class:`concurrent.futures.Executor` satisfies it.
    """

    def submit(self, fn: Callable[..., Any], /, *args: Any, **kwargs: Any) -> Future: ...


class GroupScheduler:
    """Runs step groups in declaration order and aggregates the result.

    Pool ownership:
        When no ``executor`` is injected, the scheduler creates a
        ``ThreadPoolExecutor`` on the first parallel group of a run and shuts
        it down when the run ends, however it ends. The pool has at least as
        many threads as the widest parallel group of the run. An injected
        executor is never shut down.

    Attributes:
        dispatcher: Listener dispatcher shared by every step of the run
        executor: Optional caller-owned worker pool
        cancel_event: Optional event that interrupts backoff waits
    """

    def __init__(
        self,
        dispatcher: ListenerDispatcher | None = None,
        executor: WorkerPool | Executor | None = None,
        cancel_event: threading.Event | None = None,
    ) -> None:
        self.dispatcher = dispatcher or ListenerDispatcher()
        self.executor = executor
        self.cancel_event = cancel_event
        self.runner = StepRunner(self.dispatcher, cancel_event)

    def run(
        self, groups: Iterable[StepGroup], context: OrchestrationContext
    ) -> OrchestrationResult:
        """Execute every group until the end or the first STOP.

        Args:
            groups: Groups in declaration order
            context: Shared context

        Returns:
            OrchestrationResult of the run
        """
        groups = list(groups)
        executions: list[StepExecutionMetadata] = []
        any_failure = False
        stopped = False
        owned_pool: ThreadPoolExecutor | None = None

        logger.info("orchestration_started", groups=len(groups))

        try:
            for index, group in enumerate(groups):
                if group.is_parallel:
                    pool = self.executor
                    if pool is None:
                        if owned_pool is None:
                            owned_pool = self._create_pool(groups)
                        pool = owned_pool
                    metadata, group_failed, group_stop = self._run_parallel(
                        index, group, context, pool
                    )
                else:
                    outcome = self.runner.run(group.steps[0], context)
                    metadata = [outcome.metadata]
                    group_failed = not outcome.metadata.success
                    group_stop = outcome.should_stop

                executions.extend(metadata)
                any_failure |= group_failed

                if group_failed and group_stop:
                    stopped = True
                    logger.warning(
                        "orchestration_halted",
                        group=index,
                        skipped_groups=len(groups) - index - 1,
                    )
                    break
        finally:
            if owned_pool is not None:
                owned_pool.shutdown(wait=True)

        result = aggregate(executions, any_failure, stopped, context)
        logger.info(
            "orchestration_completed",
            status=result.status.value,
            steps=len(result.steps),
            failed=len(result.failed_steps),
        )
        return result

    def _create_pool(self, groups: list[StepGroup]) -> ThreadPoolExecutor:
        # One pool serves every parallel group of the run, so it needs a thread
        # per member of the widest group for all members to run at once
        settings = get_settings()
        widest = max(len(group) for group in groups if group.is_parallel)
        max_workers = max(settings.max_workers or 0, widest)
        logger.debug("worker_pool_created", max_workers=max_workers)
        return ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix=settings.thread_name_prefix
        )

    def _run_parallel(
        self,
        index: int,
        group: StepGroup,
        context: OrchestrationContext,
        pool: WorkerPool | Executor,
    ) -> tuple[list[StepExecutionMetadata], bool, bool]:
        """Run all members of a group concurrently and join them.

        Returns:
            Metadata in declaration order, whether a member failed, whether to stop
        """
        logger.debug("group_dispatched", group=index, steps=[step.name for step in group])
        dispatched_at = datetime.now(timezone.utc)

        futures: list[Future | None] = []
        submit_errors: list[BaseException | None] = []
        for step in group:
            try:
                futures.append(pool.submit(self.runner.run, step, context))
                submit_errors.append(None)
            except Exception as e:
                futures.append(None)
                submit_errors.append(e)

        metadata: list[StepExecutionMetadata] = []
        group_failed = False
        group_stop = False

        # Joining in declaration order waits for every member
        for step, future, submit_error in zip(group, futures, submit_errors):
            fault = submit_error
            outcome: StepOutcome | None = None
            if future is not None:
                try:
                    outcome = future.result()
                except CancelledError:
                    fault = ConcurrentTaskFaultError(step.name, "task was cancelled")
                except Exception as e:
                    fault = e

            if outcome is not None:
                metadata.append(outcome.metadata)
                group_failed |= not outcome.metadata.success
                group_stop |= outcome.should_stop
                continue

            logger.error(
                "concurrent_task_fault",
                group=index,
                step=step.name,
                error=str(fault),
                error_type=type(fault).__name__,
            )
            metadata.append(
                StepExecutionMetadata.failed(
                    step.name,
                    dispatched_at,
                    datetime.now(timezone.utc),
                    0,
                    self._as_fault(step.name, fault),
                )
            )
            group_failed = True
            group_stop = True

        return metadata, group_failed, group_stop

    @staticmethod
    def _as_fault(step_name: str, fault: BaseException | None) -> BaseException:
        if isinstance(fault, ConcurrentTaskFaultError):
            return fault
        wrapped = ConcurrentTaskFaultError(step_name, str(fault))
        wrapped.__cause__ = fault
        return wrapped

