"""Configuration package.

Usage:
    from stepflow.config import get_settings

    settings = get_settings()
    settings.max_workers
"""

from .settings import StepflowSettings, TestSettings, get_settings, reset_settings

__all__ = [
    "StepflowSettings",
    "TestSettings",
    "get_settings",
    "reset_settings",
]
