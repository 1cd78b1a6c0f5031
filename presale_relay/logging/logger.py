"""
structlog setup for the relay.

Each line carries event_type, level, an ISO-8601 UTC timestamp, the module
name and whatever request context the HTTP middleware bound (request_id,
method, path). LOG_FORMAT=console switches to the dev renderer.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import Any

import structlog

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_FORMAT = os.getenv("LOG_FORMAT", "json").strip().lower()


def _event_type(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    # presale_tx_sent etc. are event types, not prose
    event = event_dict.pop("event", None)
    if event is not None:
        event_dict.setdefault("event_type", event)
    return event_dict


def configure_structlog() -> None:
    renderer: Any
    if LOG_FORMAT == "console":
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())
    else:
        renderer = structlog.processors.JSONRenderer()
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True, key="timestamp"),
            structlog.processors.format_exc_info,
            _event_type,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(getattr(logging, LOG_LEVEL, logging.INFO)),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stdout),
        cache_logger_on_first_use=True,
    )


if not structlog.is_configured():
    configure_structlog()


def get_logger(name: str) -> structlog.BoundLogger:
    """
    Module logger; the first positional arg is the event type:

        get_logger(__name__).info("presale_tx_sent", signature=sig)
    """
    return structlog.get_logger(name).bind(logger=name)


def bind_request(request_id: str, **context: Any) -> None:
    """Attach request_id (plus extra keys) to every log line until clear_request()."""
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(request_id=request_id, **context)


def clear_request() -> None:
    structlog.contextvars.clear_contextvars()
