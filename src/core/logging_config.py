"""Structured logging configuration.

This module initializes structlog with a stable JSON event format.
Scoring modules log snake_case events with keyword fields.
"""

from __future__ import annotations

import logging
from typing import Any

import structlog

from core.constants import DEFAULT_LOG_LEVEL

_configured_level: str | None = None


def configure_logging(log_level: str = DEFAULT_LOG_LEVEL) -> None:
    """Configure structlog processors and the minimum event level.

    Args:
        log_level: Standard level name, for example INFO or DEBUG.
    """
    global _configured_level
    structlog.configure(
        processors=[
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelName(log_level.upper())
        ),
        cache_logger_on_first_use=True,
    )
    _configured_level = log_level.upper()


def get_logger(name: str) -> Any:
    """Return a module logger instance.

    Args:
        name: Logger name, usually __name__.

    Returns:
        A structlog logger with structured JSON output.
    """
    if _configured_level is None:
        configure_logging()
    return structlog.get_logger(name)
