"""Table metadata: explicit registration, reflection and identity reads."""

from tablesync.metadata.identity import read_identity_state
from tablesync.metadata.reflection import (
    describe_table,
    load_dataset,
    schema_from_dataframe,
    semantic_type_from_dtype,
    semantic_type_from_sql,
)
from tablesync.metadata.registry import SchemaRegistry, get_registry

__all__ = [
    "SchemaRegistry",
    "get_registry",
    "read_identity_state",
    "describe_table",
    "load_dataset",
    "schema_from_dataframe",
    "semantic_type_from_dtype",
    "semantic_type_from_sql",
]
