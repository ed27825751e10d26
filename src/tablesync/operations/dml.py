"""Data Manipulation Language (DML) operations.

Merge of a staging table into its target, the parameterised insert used
by the bulk loader, and the identity-state read.
"""

from typing import List, Literal

from pydantic import Field

from tablesync.constants.sql import ScriptType
from tablesync.operations.base import BaseOperation
from tablesync.types.schema import TableSchema


class MergeTable(BaseOperation):
    """Merge ``source_table`` into the table described by ``table_schema``.

    Rows are joined on primary-key equality. Matched rows always have every
    non-key column overwritten; insert and delete branches are optional.
    """
    operation_type: Literal[ScriptType.MERGE] = Field(
        default=ScriptType.MERGE,
        frozen=True
    )

    table_schema: TableSchema
    source_table: str = Field(..., min_length=1)
    allow_insert: bool = Field(default=True)
    allow_delete: bool = Field(default=False)


class BulkInsert(BaseOperation):
    """Parameterised INSERT with one ``?`` placeholder per column."""
    operation_type: Literal[ScriptType.BULK_INSERT] = Field(
        default=ScriptType.BULK_INSERT,
        frozen=True
    )

    table_name: str = Field(..., min_length=1)
    columns: List[str] = Field(..., min_length=1)


class ReadIdentity(BaseOperation):
    """Read IDENT_CURRENT / IDENT_SEED / IDENT_INCR for ``table_name``."""
    operation_type: Literal[ScriptType.READ_IDENTITY] = Field(
        default=ScriptType.READ_IDENTITY,
        frozen=True
    )

    table_name: str = Field(..., min_length=1)
