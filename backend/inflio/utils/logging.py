"""
Logging setup.

structlog renders key/value events: coloured console output while
``settings.debug`` is on, one JSON object per line otherwise. OAuth secrets
that end up in an event dict are masked before rendering.
"""
import logging
import sys
from typing import Any, Optional

import structlog
from structlog.types import EventDict, Processor

from inflio.config import settings

REDACTED = "[redacted]"

SECRET_KEYS = frozenset(
    {
        "access_token",
        "refresh_token",
        "client_secret",
        "authorization",
        "id_token",
        "token",
    }
)

# Third-party loggers that log every request or job run at INFO
NOISY_LOGGERS = ("httpx", "httpcore", "apscheduler", "googleapiclient.discovery_cache")


def add_app_context(
    logger: logging.Logger,
    method_name: str,
    event_dict: EventDict
) -> EventDict:
    event_dict["app"] = settings.app_name
    return event_dict


def redact_secrets(
    logger: logging.Logger,
    method_name: str,
    event_dict: EventDict
) -> EventDict:
    """Mask token-like values, including inside nested dicts."""
    for key, value in list(event_dict.items()):
        if key.lower() in SECRET_KEYS and value:
            event_dict[key] = REDACTED
        elif isinstance(value, dict):
            event_dict[key] = {
                k: REDACTED if k.lower() in SECRET_KEYS and v else v
                for k, v in value.items()
            }
    return event_dict


def _level() -> int:
    if settings.debug:
        return logging.DEBUG
    level = logging.getLevelName(settings.log_level.upper())
    return level if isinstance(level, int) else logging.INFO


def configure_logging() -> None:
    """Configure structlog and the stdlib root logger. Call once at startup."""
    level = _level()
    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        add_app_context,
        redact_secrets,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    renderer: Processor = (
        structlog.dev.ConsoleRenderer(colors=True)
        if settings.debug
        else structlog.processors.JSONRenderer()
    )

    structlog.configure(
        processors=shared_processors + [renderer],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))


def get_logger(name: Optional[str] = None) -> structlog.BoundLogger:
    """
    Logger bound to ``name``.

        logger = get_logger(__name__)
        logger.info("Suggestion generated", suggestion_id=suggestion_id)
    """
    logger = structlog.get_logger()
    if name:
        logger = logger.bind(name=name)
    return logger


def bind_context(**kwargs: Any) -> None:
    """Attach request-scoped values (request_id, user_id) to later events."""
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    structlog.contextvars.clear_contextvars()
