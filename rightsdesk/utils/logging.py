"""Structured logging for the rightsdesk corpus service.

One processor chain feeds either a coloured console renderer (development)
or a JSON renderer (production, or ``json_output=True``).  Every event is
stamped with ``service`` and ``version`` so API and CLI output can be told
apart once shipped to a shared log sink.

Standard-library ``logging`` goes through the same formatter.  The HTTP
and SQLite client libraries log every request at INFO; they are held at
WARNING unless the service itself runs at DEBUG.
"""

import logging
import os
import sys
from collections.abc import MutableMapping
from typing import Any

import structlog

from rightsdesk import __version__

SERVICE_NAME = "rightsdesk"

# Client libraries that log one line per request or query.
_CHATTY_LOGGERS = ("httpx", "httpcore", "openai", "aiosqlite", "uvicorn.access")


def add_service_context(
    _logger: Any, _method_name: str, event_dict: MutableMapping[str, Any]
) -> MutableMapping[str, Any]:
    """structlog processor: stamp ``service`` and ``version`` unless already bound."""
    event_dict.setdefault("service", SERVICE_NAME)
    event_dict.setdefault("version", __version__)
    return event_dict


def configure_logging(log_level: str = "INFO", json_output: bool = False) -> structlog.BoundLogger:
    """Configure structlog and stdlib logging.

    Args:
        log_level: DEBUG, INFO, WARNING, ERROR or CRITICAL.
        json_output: Force JSON lines.  Otherwise JSON is used only when
            ``APP_ENV`` is ``production``.

    Returns:
        A logger bound to the service name.
    """
    level = log_level.upper()
    use_json = json_output or os.environ.get("APP_ENV", "development") == "production"

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        add_service_context,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    if use_json:
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=True)

    structlog.configure(
        processors=[*shared_processors, renderer],
        wrapper_class=structlog.make_filtering_bound_logger(logging.getLevelName(level)),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            *shared_processors,
            renderer,
        ],
    )
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(level)

    library_level = logging.DEBUG if level == "DEBUG" else logging.WARNING
    for name in _CHATTY_LOGGERS:
        logging.getLogger(name).setLevel(library_level)

    return structlog.get_logger(logger_name=SERVICE_NAME)


def get_logger(name: str) -> structlog.BoundLogger:
    """Return a logger named *name*, configuring defaults on first use."""
    if not structlog.is_configured():
        configure_logging()
    return structlog.get_logger(logger_name=name)
