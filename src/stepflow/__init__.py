"""stepflow - in-process step orchestration.

Runs declared sequences of steps against a shared typed context with
per-step retry, per-step failure strategy and parallel step groups.
"""

__version__ = "0.1.0"

from .base_exceptions import StepflowException
from .config_exceptions import ConfigurationException, InvalidConfigurationException
from .orchestration import (
    BackoffStrategy,
    FailureStrategy,
    Key,
    LoggingListener,
    OrchestrationContext,
    OrchestrationListener,
    OrchestrationResult,
    OrchestrationStatus,
    Orchestrator,
    RetryPolicy,
    StepExecutionMetadata,
    StepOptions,
)
from .orchestration_exceptions import (
    BackoffInterruptedError,
    ConcurrentTaskFaultError,
    MissingContextValueError,
    OrchestrationException,
)

__all__ = [
    "__version__",
    # Exceptions
    "StepflowException",
    "ConfigurationException",
    "InvalidConfigurationException",
    "OrchestrationException",
    "BackoffInterruptedError",
    "ConcurrentTaskFaultError",
    "MissingContextValueError",
    # Orchestration
    "Orchestrator",
    "Key",
    "OrchestrationContext",
    "OrchestrationListener",
    "LoggingListener",
    "OrchestrationResult",
    "OrchestrationStatus",
    "StepExecutionMetadata",
    "StepOptions",
    "RetryPolicy",
    "BackoffStrategy",
    "FailureStrategy",
]
