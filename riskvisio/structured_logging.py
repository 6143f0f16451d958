"""Structured logging with structlog.

Console output for development, JSON lines for deployments. Request
correlation is carried through structlog contextvars: the request-id
middleware binds ``request_id`` and every log call made while serving that
request picks it up.
"""

from __future__ import annotations

import logging
import sys

import structlog

from riskvisio.config import LoggingConfig


def setup_logging(config: LoggingConfig | None = None) -> None:
    """Configure structlog and the stdlib root logger.

    Safe to call more than once; the last call wins.
    """
    config = config or LoggingConfig()
    level = logging.getLevelName(config.level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    renderer: structlog.types.Processor
    if config.json_output:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=False)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(sys.stderr),
        cache_logger_on_first_use=False,
    )

    logging.basicConfig(stream=sys.stderr, level=level, format="%(message)s")
    logging.getLogger().setLevel(level)


def bind_request_context(**values: str) -> None:
    """Bind per-request values (e.g. request_id) into the log context."""
    structlog.contextvars.bind_contextvars(**values)


def clear_request_context() -> None:
    structlog.contextvars.clear_contextvars()
