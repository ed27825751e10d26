from tablesync.protocols.providers import (
    BulkLoader,
    ConnectionProvider,
    MetadataResolver,
    ProgressCallback,
    ScriptExecutor,
)

__all__ = [
    "MetadataResolver",
    "ConnectionProvider",
    "ScriptExecutor",
    "BulkLoader",
    "ProgressCallback",
]
