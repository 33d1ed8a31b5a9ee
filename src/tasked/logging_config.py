"""Structured logging configuration for tasked.

Uses structlog for key/value event logging. Output always goes to stderr:
stdout belongs to CLI output and to the MCP stdio transport.
"""

from __future__ import annotations

import logging
import sys
from typing import TYPE_CHECKING, Optional

import structlog
from structlog.types import Processor

if TYPE_CHECKING:
    from .config import Settings


def configure_logging(settings: Optional["Settings"] = None) -> None:
    """Configure structured logging based on settings.

    Args:
        settings: Resolved settings. If None, warnings and errors only,
            rendered for the console.
    """
    log_level = logging.WARNING
    log_format = "console"

    if settings is not None:
        log_level = getattr(logging, settings.log_level.upper(), logging.WARNING)
        log_format = settings.log_format

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if log_format == "json":
        processors: list[Processor] = [
            *shared_processors,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors = [
            *shared_processors,
            structlog.dev.ConsoleRenderer(
                colors=False,
                exception_formatter=structlog.dev.plain_traceback,
            ),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )

    # The mcp package logs through the standard library
    logging.basicConfig(
        format="%(message)s",
        level=log_level,
        handlers=[logging.StreamHandler(sys.stderr)],
    )


def get_logger(name: Optional[str] = None) -> structlog.stdlib.BoundLogger:
    """Get a logger instance.

    Args:
        name: Optional logger name (typically __name__)

    Returns:
        structlog logger
    """
    return structlog.get_logger(name) if name else structlog.get_logger()


def configure_default_logging() -> None:
    """Send warnings and errors to stderr until configure_logging is called.

    Keeps library use quiet on stdout. Loggers are not cached, so a later
    configure_logging call still takes effect for module-level loggers.
    """
    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(colors=False),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(logging.WARNING),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )


if not structlog.is_configured():
    configure_default_logging()
