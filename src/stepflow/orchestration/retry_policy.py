"""Retry policy for step execution.

Provides attempt limits, backoff strategies and the retryable-exception filter.
"""

import threading
import time
from dataclasses import dataclass
from enum import Enum, auto

from ..config_exceptions import InvalidConfigurationException


class BackoffStrategy(Enum):
    """Strategy for calculating retry delays."""

    FIXED = auto()
    """Fixed delay between attempts."""

    LINEAR = auto()
    """Linearly increasing delay (attempt * backoff)."""

    EXPONENTIAL = auto()
    """Exponentially increasing delay (backoff * 2^(attempt - 1))."""


@dataclass(frozen=True)
class RetryPolicy:
    """How many times a step is attempted and how long to wait in between.

    Attempts are counted from 1. A policy with ``max_attempts=1`` never
    retries.
    """

    max_attempts: int = 1
    """Total number of attempts, including the first one (>= 1)."""

    backoff: float = 0.0
    """Base delay in seconds applied after a failed attempt (>= 0)."""

    retry_on: tuple[type[BaseException], ...] = ()
    """Exception types that may be retried (empty = every exception)."""

    backoff_strategy: BackoffStrategy = BackoffStrategy.FIXED
    """Strategy for calculating delay between attempts."""

    max_backoff: float | None = None
    """Maximum delay in seconds (caps linear and exponential backoff)."""

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise InvalidConfigurationException(
                "retry_policy.max_attempts", f"must be >= 1, got {self.max_attempts}"
            )
        if self.backoff < 0:
            raise InvalidConfigurationException(
                "retry_policy.backoff", f"must be >= 0, got {self.backoff}"
            )
        if self.max_backoff is not None and self.max_backoff < 0:
            raise InvalidConfigurationException(
                "retry_policy.max_backoff", f"must be >= 0, got {self.max_backoff}"
            )
        # Accept any iterable of exception types, store an immutable tuple
        object.__setattr__(self, "retry_on", tuple(self.retry_on))

    def is_retryable(self, error: BaseException) -> bool:
        """Determine if an error is eligible for another attempt.

        Args:
            error: Exception raised by the step body

        Returns:
            True if ``retry_on`` is empty or ``error`` is an instance of one of its types
        """
        if not self.retry_on:
            return True
        return isinstance(error, self.retry_on)

    def delay_for(self, attempt: int) -> float:
        """Calculate the delay after a failed attempt.

        Args:
            attempt: Attempt number that just failed (1-indexed)

        Returns:
            Delay in seconds
        """
        if self.backoff_strategy == BackoffStrategy.LINEAR:
            delay = self.backoff * attempt
        elif self.backoff_strategy == BackoffStrategy.EXPONENTIAL:
            delay = self.backoff * (2 ** (attempt - 1))
        else:
            delay = self.backoff

        if self.max_backoff is not None:
            return min(delay, self.max_backoff)
        return delay

    def wait_for_retry(self, attempt: int, cancel_event: threading.Event | None = None) -> bool:
        """Wait for the appropriate delay before the next attempt.

        Args:
            attempt: Attempt number that just failed (1-indexed)
            cancel_event: Optional event that interrupts the wait when set

        Returns:
            True if the full delay elapsed, False if the wait was interrupted
        """
        delay = self.delay_for(attempt)
        if delay <= 0:
            return True
        if cancel_event is None:
            time.sleep(delay)
            return True
        return not cancel_event.wait(delay)

    @classmethod
    def none(cls) -> "RetryPolicy":
        """Create a policy with a single attempt."""
        return cls(max_attempts=1)

    @classmethod
    def fixed(
        cls,
        max_attempts: int,
        backoff: float = 0.0,
        retry_on: tuple[type[BaseException], ...] = (),
    ) -> "RetryPolicy":
        """Create a policy with a fixed delay between attempts.

        Args:
            max_attempts: Total number of attempts
            backoff: Fixed delay in seconds
            retry_on: Exception types that may be retried

        Returns:
            RetryPolicy with fixed backoff
        """
        return cls(max_attempts=max_attempts, backoff=backoff, retry_on=retry_on)

    @classmethod
    def linear(
        cls, max_attempts: int, backoff: float = 1.0, max_backoff: float | None = 30.0
    ) -> "RetryPolicy":
        """Create a policy with linearly growing delays."""
        return cls(
            max_attempts=max_attempts,
            backoff=backoff,
            backoff_strategy=BackoffStrategy.LINEAR,
            max_backoff=max_backoff,
        )

    @classmethod
    def exponential(
        cls, max_attempts: int, backoff: float = 1.0, max_backoff: float | None = 30.0
    ) -> "RetryPolicy":
        """Create a policy with exponentially growing delays.

        Args:
            max_attempts: Total number of attempts
            backoff: Delay after the first failed attempt
            max_backoff: Maximum delay cap in seconds

        Returns:
            RetryPolicy with exponential backoff
        """
        return cls(
            max_attempts=max_attempts,
            backoff=backoff,
            backoff_strategy=BackoffStrategy.EXPONENTIAL,
            max_backoff=max_backoff,
        )
