"""tablesync: bulk stage/merge/cleanup synchronization into SQL Server tables."""

from tablesync.__version__ import __version__
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
from tablesync.constants.sql import SyncState
from tablesync.metadata.registry import SchemaRegistry, get_registry
from tablesync.query_builder import (
    build_create_staging_script,
    build_key_script,
    build_merge_script,
    map_type,
)
from tablesync.sync.orchestrator import BulkSynchronizer
from tablesync.types import (
    AutoIncrementState,
    ColumnDescriptor,
    Dataset,
    MergePolicy,
    SemanticType,
    SyncResult,
    TableSchema,
)

__all__ = [
    "__version__",
    "BulkSynchronizer",
    "SchemaRegistry",
    "get_registry",
    "SemanticType",
    "ColumnDescriptor",
    "TableSchema",
    "AutoIncrementState",
    "Dataset",
    "MergePolicy",
    "SyncResult",
    "SyncState",
    "map_type",
    "build_create_staging_script",
    "build_merge_script",
    "build_key_script",
    "ErrorCode",
    "SyncError",
    "ConfigurationError",
    "MetadataError",
    "TransportError",
    "SyncTimeoutError",
    "SyncCancelledError",
    "ScriptExecutionError",
]
