"""Root of the stepflow exception hierarchy.

Every exception the library raises on purpose derives from
:class:`StepflowException`, so callers can catch stepflow errors without
catching the exceptions their own step bodies raise.
"""

from typing import Any


class StepflowException(Exception):
    """An error raised by stepflow itself.

    Attributes:
        message: What went wrong
        error_code: Stable code such as ``INVALID_CONFIG`` for matching in code
        context: Details of the failure (step name, config key...)
    """

    def __init__(
        self, message: str, error_code: str | None = None, context: dict[str, Any] | None = None
    ) -> None:
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.context = context or {}

    def __str__(self) -> str:
        """Prefix the message with its code, as ``[CODE] message``."""
        if self.error_code:
            return f"[{self.error_code}] {self.message}"
        return self.message
