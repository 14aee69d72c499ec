"""Structured logging for rescued exceptions.

The rescue policy logs one event per rescued exception, named after the
registration that handled it (``unhandled_exception``, ``record_not_found``,
``record_invalid``, ``api_error``), plus ``unknown_status`` and
``rescue_failed`` warnings and errors from the policy itself. Each event
carries ``status``, ``error``, ``exception_class`` and the request ``path``
and ``method``; ``request_id`` is merged in from structlog.contextvars, where
RequestIDMiddleware binds it.

Applications that want these events as JSON lines call ``configure_logging``
once at startup; otherwise structlog's defaults apply.
"""

import logging
import logging.config
import sys
from datetime import UTC, datetime
from typing import Any, TextIO

import structlog
from structlog.stdlib import BoundLogger

from api_rescue.config import RescueSettings

RESCUE_LOGGER = "api_rescue"


def _add_timestamp(
    _logger: object,
    _method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """Add ISO 8601 UTC timestamp with timezone offset."""
    event_dict["timestamp"] = datetime.now(UTC).isoformat()
    return event_dict


def configure_logging(settings: RescueSettings, stream: TextIO | None = None) -> None:
    """Route structlog and stdlib logging to JSON lines on ``stream`` (stdout by default).

    The root logger level comes from ``settings.log_level``
    (``API_RESCUE_LOG_LEVEL``). Rescue events include the exception
    traceback rendered under the ``exception`` key.
    """
    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,  # request_id from RequestIDMiddleware
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        _add_timestamp,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "json": {
                    "()": structlog.stdlib.ProcessorFormatter,
                    "processor": structlog.processors.JSONRenderer(),
                    "foreign_pre_chain": processors,
                },
            },
            "handlers": {
                "default": {
                    "class": "logging.StreamHandler",
                    "formatter": "json",
                    "stream": stream if stream is not None else sys.stdout,
                },
            },
            "loggers": {
                "": {
                    "handlers": ["default"],
                    "level": settings.log_level,
                    "propagate": True,
                },
            },
        }
    )


def get_logger(name: str = RESCUE_LOGGER) -> BoundLogger:
    """Get a structured logger; the rescue policy's default is ``api_rescue``.

    Example:
        policy = RescuePolicy(logger=get_logger())
        # A rescued error() call then logs:
        # {"event": "api_error", "status": 404, "code": "user_not_found",
        #  "path": "/users/7", "method": "GET", "request_id": "...", ...}
    """
    return structlog.get_logger(name)  # type: ignore[no-any-return]
