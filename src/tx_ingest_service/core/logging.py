"""Structured logging for the ingestion service.

structlog renders either JSON (production) or a colored console stream
(development). Service name and version are bound as context variables at
setup time so every entry carries them; request handlers bind ``client_ip``
and ``tx_hash`` on top.
"""

import logging
import sys
from typing import Any

import structlog
from structlog.types import Processor

_NOISY_LOGGERS = ("uvicorn.access", "asyncio", "asyncpg")


def setup_logging(
    service_name: str,
    service_version: str = "0.1.0",
    log_level: str = "INFO",
    log_format: str = "console",
) -> None:
    """Configure structlog for the process.

    Args:
        service_name: Bound into every entry as ``service``
        service_version: Bound into every entry as ``version``
        log_level: Minimum level (DEBUG, INFO, WARNING, ERROR)
        log_format: "json" for production, "console" for development
    """
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    if log_format == "json":
        processors = shared_processors + [
            structlog.processors.dict_tracebacks,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors = shared_processors + [
            structlog.dev.ConsoleRenderer(colors=True),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, log_level.upper(), logging.INFO)
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stdout),
        cache_logger_on_first_use=True,
    )

    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(
        service=service_name,
        version=service_version,
    )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Return a structlog logger, bound to ``logger_name`` when given."""
    # Lazy proxy: configuration is resolved on first use, not at import.
    if name:
        return structlog.get_logger(logger_name=name)
    return structlog.get_logger()


def bind_context(**kwargs: Any) -> None:
    """Bind context variables to all subsequent log entries of this task."""
    structlog.contextvars.bind_contextvars(**kwargs)


def unbind_context(*keys: str) -> None:
    """Remove request-scoped context variables."""
    structlog.contextvars.unbind_contextvars(*keys)
