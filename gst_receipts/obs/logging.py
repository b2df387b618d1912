"""JSON log records for the receipt engine.

Receipts carry buyer phone numbers and GSTINs, so every message and traceback
is scrubbed before it leaves the process.
"""

from __future__ import annotations

import json
import logging
import re
import sys
from datetime import datetime, timezone
from typing import IO, Any

from ..middlewares.request_id import request_id_ctx

REDACTED = "***"
_PII_PATTERNS = (
    re.compile(r"[\w.+-]+@[\w-]+\.[\w.-]+", re.I),
    re.compile(r"\b\d{2}[A-Z]{5}\d{4}[A-Z][1-9A-Z]Z[0-9A-Z]\b"),
    re.compile(r"(?<!\d)(?:\+?91[ -]?)?[6-9]\d{9}(?!\d)"),
)

# ``extra=`` keys copied onto the JSON object when present
RECORD_FIELDS = ("invoice", "method", "outcome", "width")


def redact(text: str) -> str:
    """Mask e-mail addresses, GSTINs and Indian mobile numbers."""
    for pattern in _PII_PATTERNS:
        text = pattern.sub(REDACTED, text)
    return text


class RequestIdFilter(logging.Filter):
    """Stamp records with the id of the HTTP request being served, if any."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.req_id = request_id_ctx.get()
        return True


class JsonFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        data: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "req_id": getattr(record, "req_id", None),
            "msg": redact(record.getMessage()),
        }
        for field in RECORD_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                data[field] = value
        if record.exc_info:
            data["exc"] = redact(self.formatException(record.exc_info))
        return json.dumps(data, ensure_ascii=False, default=str)


def configure_logging(
    level: int | str = logging.INFO, *, stream: IO[str] | None = None
) -> logging.Handler:
    """Send all records to ``stream`` (stderr by default) as JSON."""
    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(JsonFormatter())
    handler.addFilter(RequestIdFilter())

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)
    return handler
