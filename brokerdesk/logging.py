from __future__ import annotations

import json
import logging
import os
import sys
from datetime import datetime, timezone
from typing import Any

from brokerdesk.context import get_correlation_id, get_user_id


# extras outside this set stay out of the JSON payload
LOGGED_FIELDS = frozenset(
    {
        "method",
        "path",
        "status_code",
        "duration_ms",
        "user_id",
        "role",
        "resource",
        "resource_id",
        "client_id",
        "decision",
        "action",
        "error_code",
        "fields",
        "error",
        "invitation_token",
    }
)
_MAX_ERROR_LENGTH = 500
_QUIET_LOGGERS = ("uvicorn.access",)

_base_factory = logging.getLogRecordFactory()


def _context_record_factory(*args: Any, **kwargs: Any) -> logging.LogRecord:
    # user_id is left to the filter so callers can still pass it as an extra
    record = _base_factory(*args, **kwargs)
    if not getattr(record, "correlation_id", None):
        record.correlation_id = get_correlation_id()
    return record


class RequestContextFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        if not getattr(record, "correlation_id", None):
            record.correlation_id = get_correlation_id()
        if not getattr(record, "user_id", None):
            record.user_id = get_user_id()
        return True


def _structured_fields(record: logging.LogRecord) -> dict[str, Any]:
    fields = {key: value for key, value in record.__dict__.items() if key in LOGGED_FIELDS and value is not None}
    if isinstance(fields.get("error"), str):
        fields["error"] = fields["error"][:_MAX_ERROR_LENGTH]
    return fields


class JsonLogFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        fields = _structured_fields(record)
        if record.exc_info:
            fields["exception"] = self.formatException(record.exc_info)
        return json.dumps(
            {
                "ts": datetime.now(timezone.utc).isoformat(),
                "level": record.levelname,
                "logger": record.name,
                "msg": record.getMessage(),
                "correlation_id": getattr(record, "correlation_id", None),
                "fields": fields,
            },
            default=str,
        )


def configure_logging() -> None:
    root = logging.getLogger()
    if getattr(root, "_brokerdesk_configured", False):
        return

    level = logging.getLevelName(os.getenv("LOG_LEVEL", "INFO").upper())
    if not isinstance(level, int):
        level = logging.INFO

    handler = logging.StreamHandler(stream=sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(JsonLogFormatter())
    handler.addFilter(RequestContextFilter())

    root.handlers.clear()
    root.filters.clear()
    root.setLevel(level)
    root.addHandler(handler)
    logging.setLogRecordFactory(_context_record_factory)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    root._brokerdesk_configured = True  # type: ignore[attr-defined]
