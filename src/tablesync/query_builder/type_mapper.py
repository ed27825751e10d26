"""Semantic type to T-SQL column type mapping.

``map_type`` is total: every column gets a type string, and anything the
table below does not know about becomes ``[nvarchar](MAX)`` so that schema
drift never blocks a sync.
"""

from typing import Dict

from tablesync.constants.sql import DEFAULT_DECIMAL_PRECISION, DEFAULT_DECIMAL_SCALE
from tablesync.types.schema import ColumnDescriptor, SemanticType

MAX_TEXT_TYPE = "[nvarchar](MAX)"

# Unsigned types widen to the next signed type that holds their full range;
# SQL Server has no UNSIGNED modifier.
SQLSERVER_TYPES: Dict[SemanticType, str] = {
    SemanticType.BOOLEAN: "[bit]",
    SemanticType.CHAR: "[nchar](1)",
    SemanticType.INT8: "[smallint]",
    SemanticType.INT16: "[smallint]",
    SemanticType.INT32: "[int]",
    SemanticType.INT64: "[bigint]",
    SemanticType.UINT8: "[tinyint]",
    SemanticType.UINT16: "[int]",
    SemanticType.UINT32: "[bigint]",
    SemanticType.UINT64: "[decimal](20, 0)",
    SemanticType.SINGLE: "[real]",
    SemanticType.DOUBLE: "[float]",
    SemanticType.TIMESTAMP: "[datetime2]",
    SemanticType.UUID: "[uniqueidentifier]",
    SemanticType.OBJECT: MAX_TEXT_TYPE,
}


def map_type(column: ColumnDescriptor) -> str:
    """Return the T-SQL type for ``column``.

    Args:
        column: Column to map

    Returns:
        Bracket-quoted T-SQL type, e.g. ``[nvarchar](50)`` or ``[bigint]``
    """
    semantic_type = column.semantic_type

    if semantic_type == SemanticType.TEXT:
        if column.max_length is None:
            return MAX_TEXT_TYPE
        return f"[nvarchar]({column.max_length})"

    if semantic_type == SemanticType.DECIMAL:
        precision = column.precision or DEFAULT_DECIMAL_PRECISION
        scale = column.scale if column.scale is not None else min(DEFAULT_DECIMAL_SCALE, precision)
        return f"[decimal]({precision}, {scale})"

    return SQLSERVER_TYPES.get(semantic_type, MAX_TEXT_TYPE)
