"""Logging infrastructure for tablesync.

Structured JSON output with per-sync context tracking.
"""

from tablesync.logging.filters import ContextFilter
from tablesync.logging.logger import CustomJsonFormatter, get_logger, setup_logging

__all__ = [
    "get_logger",
    "setup_logging",
    "CustomJsonFormatter",
    "ContextFilter",
]
