"""Logging filters for context injection.

Injects the active sync id and target table into every log record so the
lines of one sync can be correlated.
"""

from __future__ import annotations

import logging
from contextvars import ContextVar
from typing import Optional

from tablesync.__version__ import __version__

sync_id_var: ContextVar[Optional[str]] = ContextVar("sync_id", default=None)
target_table_var: ContextVar[Optional[str]] = ContextVar("target_table", default=None)


class ContextFilter(logging.Filter):
    """Logging filter that adds context variables to log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        """Add context variables to the log record.

        Args:
            record: Log record to enhance

        Returns:
            Always True (doesn't filter out any records)
        """
        setattr(record, "sync_id", sync_id_var.get())
        setattr(record, "target_table", target_table_var.get())
        setattr(record, "sdk_name", "tablesync")
        setattr(record, "sdk_version", __version__)

        return True


def set_sync_context(
    sync_id: Optional[str] = None,
    target_table: Optional[str] = None,
) -> None:
    """Set sync context variables."""
    if sync_id is not None:
        sync_id_var.set(sync_id)
    if target_table is not None:
        target_table_var.set(target_table)


def clear_sync_context() -> None:
    """Clear all sync context variables."""
    sync_id_var.set(None)
    target_table_var.set(None)
