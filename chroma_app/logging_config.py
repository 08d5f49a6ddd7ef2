"""Structured JSON logging for the Chroma wardrobe core.

Every log line is one JSON object carrying the event name, the active
correlation id and any extra fields, with credentials, emails and image
references masked before they are written.
"""

from __future__ import annotations

import contextlib
import contextvars
import json
import logging
import os
import re
import sys
import uuid
from typing import Any, Dict, Iterable, Iterator, TextIO

CORRELATION_ID: contextvars.ContextVar[str | None] = contextvars.ContextVar("correlation_id", default=None)

# Attributes every LogRecord carries; anything else arrived through ``extra``.
_RECORD_ATTRIBUTES = frozenset(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {"message", "asctime"}

REDACT_KEYS = frozenset(
    {
        "email",
        "password",
        "new_password",
        "password_hash",
        "token",
        "reset_token",
        "avatar_url",
        "image_url",
        "try_on_image_url",
        "style_dna",
    }
)
_EMAIL_PATTERN = re.compile(r"[\w.\-+]+@[\w.\-]+")
_URL_PREFIXES = ("http://", "https://", "data:")


def _scrub_text(value: str) -> str:
    if value.lower().startswith(_URL_PREFIXES):
        return "[redacted-url]"
    return _EMAIL_PATTERN.sub("[redacted-email]", value)


def redact_for_log(payload: Any, keys: Iterable[str] = REDACT_KEYS) -> Any:
    """Return a JSON-friendly copy of ``payload`` with sensitive values masked."""

    keys = keys if isinstance(keys, frozenset) else frozenset(keys)
    if payload is None or isinstance(payload, (bool, int, float)):
        return payload
    if isinstance(payload, str):
        return _scrub_text(payload)
    if isinstance(payload, dict):
        return {key: "[redacted]" if key in keys else redact_for_log(value, keys) for key, value in payload.items()}
    if isinstance(payload, (list, tuple, set, frozenset)):
        return [redact_for_log(value, keys) for value in payload]
    return _scrub_text(str(payload))


class JsonFormatter(logging.Formatter):
    """Render records as single-line JSON documents."""

    def __init__(self, redact_keys: Iterable[str] = REDACT_KEYS) -> None:
        super().__init__()
        self.redact_keys = frozenset(redact_keys)

    def format(self, record: logging.LogRecord) -> str:
        message = record.getMessage()
        document: Dict[str, Any] = {
            "timestamp": self.formatTime(record, datefmt="%Y-%m-%dT%H:%M:%S%z"),
            "level": record.levelname,
            "logger": record.name,
            "message": message,
            "event": getattr(record, "event", message),
            "correlation_id": getattr(record, "correlation_id", None) or CORRELATION_ID.get(),
        }
        for key, value in vars(record).items():
            if key not in _RECORD_ATTRIBUTES and key not in document:
                document[key] = redact_for_log(value, self.redact_keys)
        if record.exc_info:
            document["exception"] = self.formatException(record.exc_info)
        return json.dumps(document, default=str)


def configure_logging(level: int | str | None = None, stream: TextIO | None = None) -> logging.Handler:
    """Install the JSON handler on the root logger, replacing an earlier one.

    Handlers installed by someone else (pytest's capture handler, for one)
    are left alone.
    """

    root = logging.getLogger()
    for handler in list(root.handlers):
        if getattr(handler, "chroma_json", False):
            root.removeHandler(handler)
    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(JsonFormatter())
    handler.chroma_json = True  # type: ignore[attr-defined]
    root.addHandler(handler)
    desired = level or os.getenv("LOG_LEVEL", "INFO")
    root.setLevel(desired.upper() if isinstance(desired, str) else desired)
    return handler


def get_logger(name: str) -> logging.Logger:
    if not any(getattr(handler, "chroma_json", False) for handler in logging.getLogger().handlers):
        configure_logging()
    return logging.getLogger(name)


def ensure_correlation_id(correlation_id: str | None = None) -> str:
    """Bind ``correlation_id`` (or keep the bound one, or mint one) and return it."""

    if correlation_id:
        CORRELATION_ID.set(correlation_id)
        return correlation_id
    current = CORRELATION_ID.get()
    if current:
        return current
    minted = uuid.uuid4().hex
    CORRELATION_ID.set(minted)
    return minted


@contextlib.contextmanager
def correlation_context(correlation_id: str | None = None) -> Iterator[str]:
    """Scope a correlation id to a block, e.g. one HTTP request."""

    token = CORRELATION_ID.set(correlation_id or uuid.uuid4().hex)
    try:
        yield CORRELATION_ID.get()
    finally:
        CORRELATION_ID.reset(token)


def log_event(logger: logging.Logger, level: int, event: str, **fields: Any) -> None:
    """Log ``event`` with redacted ``fields`` attached as record attributes."""

    exc_info = fields.pop("exc_info", None)
    correlation_id = ensure_correlation_id(fields.pop("correlation_id", None))
    extra = {key: value for key, value in redact_for_log(fields).items() if key not in _RECORD_ATTRIBUTES}
    logger.log(level, event, exc_info=exc_info, extra={**extra, "event": event, "correlation_id": correlation_id})


__all__ = [
    "CORRELATION_ID",
    "JsonFormatter",
    "REDACT_KEYS",
    "configure_logging",
    "correlation_context",
    "ensure_correlation_id",
    "get_logger",
    "log_event",
    "redact_for_log",
]
