"""Configuration exceptions.

Raised while a pipeline is being declared, before any step runs.
"""

from .base_exceptions import StepflowException


class ConfigurationException(StepflowException):
    """Base exception for configuration errors."""

    pass


class InvalidConfigurationException(ConfigurationException):
    """Raised when a pipeline, step or policy is declared with invalid values."""

    def __init__(self, config_key: str, reason: str, **kwargs) -> None:
        """Initialize with config details."""
        super().__init__(
            f"Invalid configuration for '{config_key}': {reason}",
            error_code="INVALID_CONFIG",
            context={"config_key": config_key, "reason": reason, **kwargs},
        )


def require_not_none(value, config_key: str):
    """Return ``value`` or raise if it is None."""
    if value is None:
        raise InvalidConfigurationException(config_key, "must not be None")
    return value
