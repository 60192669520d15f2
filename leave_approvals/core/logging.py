"""Logging setup for the API process and the queue worker."""

from __future__ import annotations

import json
import logging
import sys
import time
from datetime import UTC, datetime
from typing import Any

from leave_approvals.core.config import settings

TRACE_LEVEL = 5
logging.addLevelName(TRACE_LEVEL, "TRACE")

# Attributes present on every LogRecord; anything else came in through `extra=`.
_RESERVED_RECORD_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", (), None)).keys()
) | {"message", "asctime", "taskName"}

_configured = False


def _record_extras(record: logging.LogRecord) -> dict[str, Any]:
    return {
        key: value
        for key, value in vars(record).items()
        if key not in _RESERVED_RECORD_ATTRS and not key.startswith("_")
    }


def _stringify(value: object) -> str:
    if isinstance(value, str):
        return value
    try:
        return json.dumps(value, default=str, ensure_ascii=True)
    except (TypeError, ValueError):
        return str(value)


class TextFormatter(logging.Formatter):
    """Human-readable formatter that appends `extra` fields as key=value pairs."""

    def __init__(self, *, use_utc: bool) -> None:
        super().__init__(fmt="%(asctime)s %(levelname)s %(name)s %(message)s")
        if use_utc:
            self.converter = time.gmtime

    def format(self, record: logging.LogRecord) -> str:
        base = super().format(record)
        extras = _record_extras(record)
        if not extras:
            return base
        rendered = " ".join(f"{key}={_stringify(value)}" for key, value in sorted(extras.items()))
        return f"{base} {rendered}"


class JsonFormatter(logging.Formatter):
    """One JSON object per line, including `extra` fields."""

    def __init__(self, *, use_utc: bool) -> None:
        super().__init__()
        self.use_utc = use_utc

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.fromtimestamp(record.created, tz=UTC)
        if not self.use_utc:
            timestamp = timestamp.astimezone()
        payload: dict[str, Any] = {
            "timestamp": timestamp.isoformat(timespec="milliseconds"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        payload.update(_record_extras(record))
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str, ensure_ascii=True)


def _resolve_level(raw: str) -> int:
    value = raw.strip().upper()
    if value == "TRACE":
        return TRACE_LEVEL
    level = logging.getLevelName(value)
    return level if isinstance(level, int) else logging.INFO


def configure_logging(*, force: bool = False) -> None:
    """Install the root handler once, honoring LOG_LEVEL/LOG_FORMAT/LOG_USE_UTC."""
    global _configured
    if _configured and not force:
        return

    formatter: logging.Formatter
    if settings.log_format.strip().lower() == "json":
        formatter = JsonFormatter(use_utc=settings.log_use_utc)
    else:
        formatter = TextFormatter(use_utc=settings.log_use_utc)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(_resolve_level(settings.log_level))

    # Uvicorn access logs duplicate the request logs emitted by error_handling.
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    _configured = True


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
