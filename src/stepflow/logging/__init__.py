"""Logging module for stepflow."""

from .logger import get_logger, reset_logging, setup_logging

__all__ = [
    "setup_logging",
    "get_logger",
    "reset_logging",
]
