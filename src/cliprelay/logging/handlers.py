"""Structured log formatting for cliprelay."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any

# Attributes every LogRecord carries; anything else arrived through extra=
_RECORD_ATTRS: frozenset[str] = frozenset(vars(logging.makeLogRecord({}))) | {
    "message",
    "asctime",
    "request_id",
    "request_tag",
}


class JSONFormatter(logging.Formatter):
    """Render each record as a single-line JSON object.

    Keys are ``timestamp`` (UTC ISO-8601), ``level``, ``message``, ``logger``
    for non-root loggers, ``context`` holding the record's extra fields plus
    the request id, and ``exception`` when the record carries exc_info.
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(
                record.created, tz=timezone.utc
            ).isoformat(),
            "level": record.levelname,
            "message": record.getMessage(),
        }
        if record.name and record.name != "root":
            entry["logger"] = record.name

        context = self._context(record)
        if context:
            entry["context"] = context
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)

    @staticmethod
    def _context(record: logging.LogRecord) -> dict[str, Any]:
        context = {
            key: value
            for key, value in vars(record).items()
            if key not in _RECORD_ATTRS and not key.startswith("_")
        }
        # Set by RequestContextFilter; an extra= of the same name cannot win
        request_id = getattr(record, "request_id", None)
        if request_id:
            context["request_id"] = request_id
        return context
