"""Structured logging configuration.

This module initializes structlog with a stable JSON event format on
stderr, so command output on stdout stays machine-readable. Pipeline
threads and the training loop all log through it.
"""

from __future__ import annotations

import sys
from typing import Any

import structlog

from core.config import resolve_log_level
from core.constants import DEFAULT_LOG_LEVEL


def configure_logging(level: str | None = None) -> None:
    """Configure structlog output and minimum level.

    Args:
        level: Level name; ``None`` reads WARPDRIVE_LOG_LEVEL.

    Raises:
        WarpdriveConfigError: If the level names no known level.
    """
    structlog.configure(
        processors=[
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(resolve_log_level(level)),
        logger_factory=_stderr_logger,
    )


def get_logger(name: str) -> Any:
    """Return a module logger instance.

    The environment is not read here, so importing a module never fails on
    a bad level; ``configure_logging`` applies it later.

    Args:
        name: Logger name, usually __name__.

    Returns:
        A structlog logger with structured output.
    """
    if not structlog.is_configured():
        configure_logging(DEFAULT_LOG_LEVEL)
    return structlog.get_logger(name)


def _stderr_logger(*_: Any) -> structlog.PrintLogger:
    """Bind to the current stderr, which may be swapped after import."""
    return structlog.PrintLogger(sys.stderr)
