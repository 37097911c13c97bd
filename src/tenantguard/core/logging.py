"""
Logging setup.

Modules log through structlog with keyword fields. Request ids are
attached by the processor passed in from `main`.
"""

import logging
import sys
from typing import Any, Callable, Iterable

import structlog

from .config import Settings

Processor = Callable[[Any, str, dict[str, Any]], dict[str, Any]]


def configure_logging(settings: Settings, extra_processors: Iterable[Processor] = ()) -> None:
    """
    Configure stdlib logging and structlog.

    Args:
        settings: Application settings (log_level, log_format)
        extra_processors: Run before rendering, e.g. request-id injection
    """
    level = getattr(logging, settings.log_level.upper(), logging.INFO)
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)

    renderer: Processor
    if settings.log_format == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            *extra_processors,
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )
