from tablesync.types.base import FrozenModel, SyncBaseModel
from tablesync.types.dataset import Dataset, MergePolicy, SyncResult
from tablesync.types.schema import AutoIncrementState, ColumnDescriptor, SemanticType, TableSchema

__all__ = [
    "SyncBaseModel",
    "FrozenModel",
    "SemanticType",
    "ColumnDescriptor",
    "TableSchema",
    "AutoIncrementState",
    "Dataset",
    "MergePolicy",
    "SyncResult",
]
