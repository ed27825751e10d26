"""Shared constants for tablesync."""

from tablesync.constants.sql import (
    DEFAULT_DECIMAL_PRECISION,
    DEFAULT_DECIMAL_SCALE,
    DEFAULT_STAGING_SCHEMA,
    DEFAULT_TIMEOUT_SECONDS,
    MAX_IDENTIFIER_LENGTH,
    MAX_NVARCHAR_LENGTH,
    ScriptPurpose,
    ScriptType,
    SyncMode,
    SyncState,
)

__all__ = [
    "ScriptType",
    "ScriptPurpose",
    "SyncState",
    "SyncMode",
    "DEFAULT_STAGING_SCHEMA",
    "DEFAULT_TIMEOUT_SECONDS",
    "MAX_IDENTIFIER_LENGTH",
    "MAX_NVARCHAR_LENGTH",
    "DEFAULT_DECIMAL_PRECISION",
    "DEFAULT_DECIMAL_SCALE",
]
