"""
Structured logging setup.

Modules log through ``structlog.get_logger(__name__)`` with snake_case event
names and keyword context. This module wires the processor chain once at
startup: console rendering for development, JSON lines for production.

Usage:
    from pushfanout.logging_config import configure_logging

    configure_logging(level="INFO", json_output=False)
"""

import logging
import sys

import structlog


def configure_logging(level: str = "INFO", json_output: bool = False) -> None:
    """
    Configure structlog and the stdlib root logger.

    Args:
        level: Minimum log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_output: Render JSON lines when True, console output otherwise
    """
    log_level = logging.getLevelName(level.upper())
    if not isinstance(log_level, int):
        raise ValueError(f"Unknown log level: {level}")

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=log_level,
    )

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]
    if json_output:
        processors += [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        # ConsoleRenderer formats exceptions itself
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        cache_logger_on_first_use=True,
    )


def mask_identifier(value: str) -> str:
    """Mask a push endpoint or device token for logging (PII protection)."""
    if len(value) > 40:
        return value[:20] + "..." + value[-10:]
    if len(value) > 12:
        return value[:8] + "..."
    return value
