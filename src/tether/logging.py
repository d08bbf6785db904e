"""Structured logging.

Services log one JSON object per line; ``console`` output is meant for
interactive use of the CLI.
"""

import logging
from typing import Any

import structlog

LOG_FORMATS = ("json", "console")


def configure_logging(level: int | str = logging.INFO, log_format: str = "json") -> None:
    """Configure structlog over the standard logging module."""
    if log_format not in LOG_FORMATS:
        raise ValueError(f"log_format must be one of {', '.join(LOG_FORMATS)}")
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())

    renderer: Any = (
        structlog.processors.JSONRenderer()
        if log_format == "json"
        else structlog.dev.ConsoleRenderer(colors=False)
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
    logging.basicConfig(level=level, format="%(message)s")
    logging.getLogger().setLevel(level)


def bind_context(**kwargs: Any) -> structlog.stdlib.BoundLogger:
    """Return a logger carrying ``kwargs`` and bind them for the current context.

    Fields bound here are merged into every log event emitted from the same
    task, including the dispatcher's per-RPC events.
    """
    structlog.contextvars.bind_contextvars(**kwargs)
    return structlog.get_logger().bind(**kwargs)
