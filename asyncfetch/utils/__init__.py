"""structlog setup for asyncfetch.

The CLI configures logging once on import. Library users call
``setup_logging`` themselves, or leave structlog's defaults alone.
"""

from __future__ import annotations

import structlog
from structlog.typing import FilteringBoundLogger, Processor

from asyncfetch.config import settings

_LEVELS = {"debug": 10, "info": 20, "warning": 30, "warn": 30, "error": 40, "critical": 50}


def setup_logging(level: str | int | None = None, fmt: str | None = None) -> None:
    """Configure structlog for asyncfetch.

    Args:
        level: Level name ("debug", "warning", ...) or number. Defaults to
               ``settings.log_level``; unknown names fall back to info.
        fmt:   "json" for one JSON object per line, anything else for the
               colored console renderer. Defaults to ``settings.log_format``.
    """
    level = settings.log_level if level is None else level
    fmt = settings.log_format if fmt is None else fmt

    if isinstance(level, int):
        min_level = level
    else:
        min_level = _LEVELS.get(level.lower(), 20)

    if fmt == "json":
        renderer: Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=True)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(min_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str | None = None) -> FilteringBoundLogger:
    """A structlog logger, bound to ``component=name`` when given."""
    log = structlog.get_logger()
    if name:
        log = log.bind(component=name)
    return log
