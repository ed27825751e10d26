"""JSON logging for sync runs.

Every record is rendered as one JSON object carrying the active sync
context (see ``filters``) and, inside a span, the OpenTelemetry trace and
span ids. ``setup_logging`` installs the handler through ``dictConfig``.
"""

from __future__ import annotations

import json
import logging
import logging.config
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Dict, FrozenSet, Optional

from opentelemetry import trace

if TYPE_CHECKING:
    from tablesync.settings import SyncSettings


# Attributes every LogRecord has; anything else came in through ``extra``.
_STANDARD_ATTRIBUTES: FrozenSet[str] = frozenset(vars(logging.makeLogRecord({}))) | {"asctime", "message"}

# Driver-level loggers that drown sync output below WARNING.
_CHATTY_LOGGERS = ("sqlalchemy.engine", "sqlalchemy.pool")


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


class CustomJsonFormatter(logging.Formatter):
    """Render a record, its ``extra`` fields and trace ids as JSON."""

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        payload.update(
            (key, value)
            for key, value in vars(record).items()
            if key not in _STANDARD_ATTRIBUTES and key not in payload
        )

        span_context = trace.get_current_span().get_span_context()
        if span_context.is_valid:
            payload["trace_id"] = format(span_context.trace_id, "032x")
            payload["span_id"] = format(span_context.span_id, "016x")

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=str)


def setup_logging(level: Optional[str] = None, settings: Optional["SyncSettings"] = None) -> None:
    """Send JSON logs with sync context to stdout.

    Args:
        level: Root log level; ``settings.log_level`` (or the loaded
            settings) when omitted.
        settings: Settings to read the level from.
    """
    if level is None:
        if settings is None:
            from tablesync.settings import get_settings
            settings = get_settings()
        level = settings.log_level
    level = level.upper()

    logging.config.dictConfig({
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {"json": {"()": CustomJsonFormatter}},
        "filters": {"sync_context": {"()": "tablesync.logging.filters.ContextFilter"}},
        "handlers": {
            "stdout": {
                "class": "logging.StreamHandler",
                "formatter": "json",
                "filters": ["sync_context"],
                "stream": "ext://sys.stdout",
            }
        },
        "loggers": {
            name: {"level": level if level == "DEBUG" else "WARNING"}
            for name in _CHATTY_LOGGERS
        },
        "root": {"level": level, "handlers": ["stdout"]},
    })
