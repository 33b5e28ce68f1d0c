"""Step orchestration package.

Provides typed context storage, retry policies, listener hooks, the step
runner, the group scheduler and the orchestrator builder.
"""

from .execution_context import OrchestrationContext
from .group_scheduler import GroupScheduler, WorkerPool
from .keys import Key
from .listeners import (
    ListenerDispatcher,
    ListenerErrorReporter,
    LoggingListener,
    OrchestrationListener,
    log_listener_error,
)
from .orchestrator import Orchestrator, OrchestratorBuilder, ParallelBuilder
from .result_aggregator import aggregate, resolve_status
from .results import OrchestrationResult, OrchestrationStatus, StepExecutionMetadata
from .retry_policy import BackoffStrategy, RetryPolicy
from .step import StepBody, StepDefinition, StepGroup
from .step_options import FailureHandler, FailureStrategy, StepOptions, cont, stop
from .step_runner import StepOutcome, StepRunner

__all__ = [
    # Context
    "Key",
    "OrchestrationContext",
    # Retry Policy
    "RetryPolicy",
    "BackoffStrategy",
    # Step declaration
    "StepOptions",
    "FailureStrategy",
    "FailureHandler",
    "stop",
    "cont",
    "StepBody",
    "StepDefinition",
    "StepGroup",
    # Results
    "StepExecutionMetadata",
    "OrchestrationResult",
    "OrchestrationStatus",
    # Listeners
    "OrchestrationListener",
    "ListenerDispatcher",
    "ListenerErrorReporter",
    "LoggingListener",
    "log_listener_error",
    # Engine
    "StepRunner",
    "StepOutcome",
    "GroupScheduler",
    "WorkerPool",
    "aggregate",
    "resolve_status",
    # Builder
    "Orchestrator",
    "OrchestratorBuilder",
    "ParallelBuilder",
]
