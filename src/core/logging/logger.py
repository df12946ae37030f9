#!/usr/bin/env python3
"""
Shop API logging (structlog)

Every log line is a flat event dict: message, level, timestamp, the request
id of the HTTP request being served, and the caller's fields. Cache code
adds `stage` (see Stage in core.config.constants) plus `cache_key` or
`pattern`.

Cache keys carry customer input: `search:<query>:...` and response keys
with the raw query string (`cache:/api/v1/products/search?q=...`). The
scrubbing processor therefore cleans those fields as well as the message,
and shortens keys long enough to flood a log line.

Output is JSON (LOG_FORMAT=json) or a coloured console rendering for local
runs.

Author: Platform Team
Date: 2026-10-18
"""

import logging
import re
import sys
from contextvars import ContextVar
from datetime import datetime, timezone

import structlog
from structlog.types import EventDict, WrappedLogger

from src.core.config.settings import get_settings

request_id_ctx: ContextVar[str | None] = ContextVar("request_id", default=None)

_EMAIL = re.compile(r"\b[\w.+-]+(?:@|%40)[\w.-]+\.\w+\b")
_PHONE = re.compile(r"\b\d{3}[-.]?\d{3}[-.]?\d{4}\b")

# Event fields that may embed a request's query text
SCRUBBED_FIELDS = ("event", "cache_key", "key", "pattern", "path", "query")
MAX_KEY_LENGTH = 200


def scrub(text: str) -> str:
    """Replace emails (plain or URL-encoded) and phone numbers."""
    return _PHONE.sub("[PHONE]", _EMAIL.sub("[EMAIL]", text))


# =============================================================================
# PROCESSORS
# =============================================================================


def add_request_id(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """STAGE-L.1: attach the current request id, when serving a request."""
    request_id = request_id_ctx.get()
    if request_id:
        event_dict["request_id"] = request_id
    return event_dict


def add_timestamp(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    event_dict["timestamp"] = datetime.now(timezone.utc).isoformat()
    return event_dict


def redact_pii(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """
    STAGE-L.3: scrub customer data from the message and key fields.

    `[EMAIL]` and `[PHONE]` replace matches. Non-string values are left
    alone.
    """
    for field in SCRUBBED_FIELDS:
        value = event_dict.get(field)
        if isinstance(value, str):
            event_dict[field] = scrub(value)
    return event_dict


def shorten_cache_keys(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """Cut `cache_key`/`key` values over MAX_KEY_LENGTH, keeping the prefix."""
    for field in ("cache_key", "key"):
        value = event_dict.get(field)
        if isinstance(value, str) and len(value) > MAX_KEY_LENGTH:
            event_dict[field] = f"{value[:MAX_KEY_LENGTH]}...(+{len(value) - MAX_KEY_LENGTH})"
    return event_dict


def add_log_level_name(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    if "level" in event_dict:
        event_dict["level"] = event_dict["level"].upper()
    return event_dict


# =============================================================================
# SETUP
# =============================================================================


def setup_logging(log_level: str | None = None, log_format: str | None = None) -> None:
    """
    Configure structlog on top of stdlib logging.

    Args:
        log_level: DEBUG, INFO, WARNING, ERROR or CRITICAL (default: LOG_LEVEL)
        log_format: 'json' or 'console' (default: LOG_FORMAT)
    """
    settings = get_settings().logging
    log_level = (log_level or settings.LOG_LEVEL).upper()
    log_format = log_format or settings.LOG_FORMAT

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=getattr(logging, log_level))

    renderer = (
        structlog.processors.JSONRenderer()
        if log_format == "json"
        else structlog.dev.ConsoleRenderer(colors=True)
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            add_request_id,
            add_timestamp,
            structlog.stdlib.add_log_level,
            add_log_level_name,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            shorten_cache_keys,
            redact_pii,
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


# =============================================================================
# REQUEST CONTEXT
# =============================================================================


def set_request_id(request_id: str) -> None:
    request_id_ctx.set(request_id)


def get_request_id() -> str | None:
    return request_id_ctx.get()


def clear_request_id() -> None:
    request_id_ctx.set(None)


def log_stage(
    logger: structlog.stdlib.BoundLogger, stage: str, message: str, level: str = "info", **kwargs
) -> None:
    """
    Log `message` tagged with a stage identifier.

    `stage` may be a Stage member or a plain string; the enum's value is
    what gets logged.

    Usage:
        log_stage(logger, Stage.L1_LOOKUP, "L1 cache hit", cache_key="product:42")
    """
    log_func = getattr(logger, level.lower())
    log_func(message, stage=str(getattr(stage, "value", stage)), **kwargs)
