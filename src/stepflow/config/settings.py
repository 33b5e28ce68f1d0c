"""Configuration management for stepflow using pydantic-settings.

Settings are read from environment variables prefixed with ``STEPFLOW_`` and
from an optional ``.env`` file.
"""

import os
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class StepflowSettings(BaseSettings):
    """Main configuration settings for stepflow."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="STEPFLOW_",
        case_sensitive=False,
        extra="ignore",
    )

    # Worker pool settings
    max_workers: int | None = Field(
        None,
        ge=1,
        description="Minimum threads of an owned pool (raised to the widest parallel group)",
    )
    thread_name_prefix: str = Field(
        "stepflow-worker", description="Thread name prefix for owned worker pools"
    )

    # Logging settings
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        "INFO", description="Log level used when logging is initialised lazily"
    )
    structured_logging: bool = Field(True, description="Render logs as JSON")
    log_file: Path | None = Field(None, description="Optional file receiving log output")
    debug_mode: bool = Field(False, description="Enable debug logging with readable output")


class TestSettings(StepflowSettings):
    """Test-specific settings."""

    max_workers: int | None = 4
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "DEBUG"
    structured_logging: bool = False


# Singleton instance
_settings: StepflowSettings | None = None


def get_settings(env: str | None = None) -> StepflowSettings:
    """Get the singleton settings instance.

    Args:
        env: Environment name ('test' or anything else for the defaults)

    Returns:
        StepflowSettings instance
    """
    global _settings

    if _settings is None:
        env_name = env or os.getenv("STEPFLOW_ENV", "default")
        if env_name == "test":
            _settings = TestSettings()
        else:
            _settings = StepflowSettings()

    return _settings


def reset_settings() -> None:
    """Reset the settings singleton (mainly for testing)."""
    global _settings
    _settings = None
