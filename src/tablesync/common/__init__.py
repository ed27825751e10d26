from tablesync.common.exceptions import (
    ConfigurationError,
    ErrorCode,
    MetadataError,
    ScriptExecutionError,
    SyncCancelledError,
    SyncError,
    SyncTimeoutError,
    TransportError,
)

__all__ = [
    "ErrorCode",
    "SyncError",
    "ConfigurationError",
    "MetadataError",
    "TransportError",
    "SyncTimeoutError",
    "SyncCancelledError",
    "ScriptExecutionError",
]
