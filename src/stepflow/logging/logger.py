"""Structured logging configuration for stepflow using structlog.

Engine modules log structured events (``step_started``, ``step_failed``...)
with keyword context instead of formatted strings. Using a logger only sets
up the ``stepflow`` logger namespace; :func:`setup_logging` is the explicit
call an application makes to own the root handlers.
"""

import logging
import os
import sys
from pathlib import Path
from typing import Any, cast

import structlog

from ..config import get_settings

DISABLE_CONSOLE_ENV = "STEPFLOW_DISABLE_CONSOLE_LOGGING"
LIBRARY_LOGGER = "stepflow"


def _build_processors(
    structured: bool = True,
    add_timestamp: bool = True,
    add_caller_info: bool = False,
    colorize: bool = True,
) -> list[Any]:
    processors: list[Any] = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
    ]

    if add_timestamp:
        processors.append(structlog.processors.TimeStamper(fmt="iso"))

    if add_caller_info:
        processors.append(
            structlog.processors.CallsiteParameterAdder(
                parameters=[
                    structlog.processors.CallsiteParameter.FILENAME,
                    structlog.processors.CallsiteParameter.LINENO,
                    structlog.processors.CallsiteParameter.FUNC_NAME,
                ]
            )
        )

    processors.extend(
        [
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
        ]
    )

    if structured:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=colorize))

    return processors


def setup_logging(
    level: str = "INFO",
    log_file: Path | None = None,
    structured: bool = True,
    console: bool = True,
    add_timestamp: bool = True,
    add_caller_info: bool = False,
    colorize: bool = True,
) -> None:
    """Configure structured logging for an application embedding stepflow.

    This replaces the root logger's handlers and level, so it is meant to be
    called once by the application, never by library code.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional path to log file
        structured: Use JSON structured output
        console: Enable console output (overridden by STEPFLOW_DISABLE_CONSOLE_LOGGING)
        add_timestamp: Add timestamps to logs
        add_caller_info: Add caller information
        colorize: Colorize console output (only for non-structured)
    """
    global _logging_initialized

    if os.getenv(DISABLE_CONSOLE_ENV) == "1":
        console = False
        log_file = None

    structlog.configure(
        processors=_build_processors(
            structured=structured,
            add_timestamp=add_timestamp,
            add_caller_info=add_caller_info,
            colorize=colorize and console,
        ),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handlers: list[logging.Handler] = []

    if console:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setFormatter(logging.Formatter("%(message)s"))
        handlers.append(console_handler)

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(logging.Formatter("%(message)s"))
        handlers.append(file_handler)

    if not handlers:
        handlers.append(logging.NullHandler())
        level = "CRITICAL"

    # The root level governs from here on
    logging.getLogger(LIBRARY_LOGGER).setLevel(logging.NOTSET)
    logging.basicConfig(
        format="%(message)s",
        level=getattr(logging, level.upper()),
        handlers=handlers,
        force=True,
    )
    _logging_initialized = True


_logging_initialized = False


def _ensure_logging_initialized() -> None:
    """Give the ``stepflow`` loggers library defaults on first use.

    Only the ``stepflow`` logger namespace is touched: it gets a
    ``NullHandler`` and the level from settings, and records propagate to
    whatever handlers the host application installed. structlog is
    configured only when nobody has configured it yet. Root handlers and the
    root level are left alone; call :func:`setup_logging` to own them.
    """
    global _logging_initialized

    if _logging_initialized:
        return
    _logging_initialized = True

    library_logger = logging.getLogger(LIBRARY_LOGGER)
    if not any(isinstance(h, logging.NullHandler) for h in library_logger.handlers):
        library_logger.addHandler(logging.NullHandler())

    if os.getenv(DISABLE_CONSOLE_ENV) == "1":
        library_logger.setLevel(logging.CRITICAL + 1)
        return

    try:
        settings = get_settings()
        level = "DEBUG" if settings.debug_mode else settings.log_level
        structured = settings.structured_logging and not settings.debug_mode
        log_file = settings.log_file
    except ValueError:
        # Invalid settings
        level, structured, log_file = "INFO", False, None

    library_logger.setLevel(getattr(logging, level))

    if log_file:
        try:
            log_file.parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(log_file, encoding="utf-8")
        except OSError:
            library_logger.warning("Cannot open log file %s", log_file)
        else:
            file_handler.setFormatter(logging.Formatter("%(message)s"))
            library_logger.addHandler(file_handler)

    if not structlog.is_configured():
        structlog.configure(
            processors=_build_processors(structured=structured, colorize=False),
            context_class=dict,
            logger_factory=structlog.stdlib.LoggerFactory(),
            # Not cached, so a later setup_logging() reaches module-level loggers
            cache_logger_on_first_use=False,
        )


def get_logger(name: str) -> structlog.BoundLogger:
    """Get a structured logger instance.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Structured logger instance
    """
    _ensure_logging_initialized()
    return cast(structlog.BoundLogger, structlog.get_logger(name))


def reset_logging() -> None:
    """Forget lazy initialisation so the next get_logger reconfigures."""
    global _logging_initialized
    _logging_initialized = False
    structlog.reset_defaults()

    library_logger = logging.getLogger(LIBRARY_LOGGER)
    for handler in list(library_logger.handlers):
        library_logger.removeHandler(handler)
        handler.close()
    library_logger.setLevel(logging.NOTSET)
