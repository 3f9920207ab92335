"""
Structured logging configuration using structlog.

Rendering follows LOG_FORMAT: "json" for log shippers, "console" for a
terminal, "auto" picks JSON when ENVIRONMENT is production.

Context travels through structlog contextvars: the request middleware binds
request_id/method/path, and the ledger binds operation/court_ids for the
duration of a court scope, so every line logged under a lock says which
courts it was holding.
"""

import logging
import sys
from contextlib import contextmanager
from typing import Iterable, Iterator

import structlog
from app.core.config import get_settings

_HANDLER_NAME = "court_booking"

_QUIET_LOGGERS = ("uvicorn.access", "sqlalchemy.engine", "aiosqlite", "asyncio")


def _use_json(settings) -> bool:
    if settings.LOG_FORMAT == "auto":
        return settings.ENVIRONMENT == "production"
    return settings.LOG_FORMAT == "json"


def setup_logging() -> None:
    settings = get_settings()

    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if _use_json(settings):
        shared_processors.append(structlog.processors.format_exc_info)
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=settings.DEBUG)

    structlog.configure(
        processors=[*shared_processors, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.set_name(_HANDLER_NAME)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer]
        )
    )

    root_logger = logging.getLogger()
    # Lifespan can run several times in one process (reloads, test clients)
    for existing in [h for h in root_logger.handlers if h.get_name() == _HANDLER_NAME]:
        root_logger.removeHandler(existing)
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str = __name__) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


@contextmanager
def ledger_context(operation: str, court_ids: Iterable[int]) -> Iterator[None]:
    """Tag every log line emitted inside a court scope."""
    with structlog.contextvars.bound_contextvars(operation=operation, court_ids=list(court_ids)):
        yield
