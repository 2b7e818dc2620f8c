"""structlog setup: JSON or console output, request correlation, PII masking.

Customer analytics handles names and e-mail addresses. They may be passed to
a logger as event fields but never reach the output unmasked.
"""

import logging
from collections.abc import MutableMapping
from contextvars import ContextVar
from typing import Any

import structlog

from commerce_insights.core.config import get_settings

# Set by RequestIdMiddleware for the duration of a request
request_id_ctx: ContextVar[str | None] = ContextVar("request_id", default=None)

PII_FIELDS = frozenset({"email", "first_name", "last_name", "customer_name"})
MASK = "***"

EventDict = MutableMapping[str, Any]


def add_request_id(
    _logger: structlog.types.WrappedLogger,
    _method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """Add request_id from context to log events."""
    request_id = request_id_ctx.get()
    if request_id:
        event_dict["request_id"] = request_id
    return event_dict


def add_service_context(
    _logger: structlog.types.WrappedLogger,
    _method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """Tag every event with the service name and environment."""
    settings = get_settings()
    event_dict.setdefault("service", settings.app_name)
    event_dict.setdefault("env", settings.app_env)
    return event_dict


def mask_pii(
    _logger: structlog.types.WrappedLogger,
    _method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """Replace customer identifying fields with a fixed mask.

    E-mail addresses keep their domain so that support can still tell
    customer segments apart.
    """
    for key in PII_FIELDS.intersection(event_dict):
        value = event_dict[key]
        if key == "email" and isinstance(value, str) and "@" in value:
            event_dict[key] = f"{MASK}@{value.rsplit('@', 1)[1]}"
        elif value:
            event_dict[key] = MASK
    return event_dict


def build_processors(log_format: str) -> list[structlog.types.Processor]:
    """Processor chain for the given output format, renderer last."""
    processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        add_request_id,
        add_service_context,
        mask_pii,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if log_format == "json":
        processors += [structlog.processors.dict_tracebacks, structlog.processors.JSONRenderer()]
    else:
        processors += [structlog.dev.ConsoleRenderer(colors=True)]
    return processors


def configure_logging() -> None:
    """Configure structlog once at startup from settings."""
    settings = get_settings()

    structlog.configure(
        processors=build_processors(settings.log_format),
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, settings.log_level)
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str | None = None) -> structlog.typing.FilteringBoundLogger:
    """Get a logger for a module.

    Args:
        name: Logger name (typically __name__ of the calling module).

    Returns:
        structlog logger; output follows ``configure_logging``.
    """
    logger: structlog.typing.FilteringBoundLogger = structlog.get_logger(name)
    return logger
