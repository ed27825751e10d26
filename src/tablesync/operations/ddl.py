"""Data Definition Language (DDL) operations.

Staging table creation, primary-key constraints and table drops.
"""

from typing import Literal, Optional

from pydantic import Field

from tablesync.constants.sql import DEFAULT_STAGING_SCHEMA, ScriptType
from tablesync.operations.base import BaseOperation
from tablesync.types.schema import TableSchema


class CreateStagingTable(BaseOperation):
    """Create (or recreate) a staging table shaped like ``table_schema``.

    The rendered script creates the staging schema when missing, drops a
    leftover staging table from a crashed run, creates the table and then
    appends the primary-key constraint when the schema has one.
    """
    operation_type: Literal[ScriptType.CREATE_STAGING_TABLE] = Field(
        default=ScriptType.CREATE_STAGING_TABLE,
        frozen=True
    )

    table_schema: TableSchema
    staging_schema: str = Field(default=DEFAULT_STAGING_SCHEMA, min_length=1, max_length=128)
    staging_table: str = Field(..., min_length=1, max_length=128)


class AddPrimaryKey(BaseOperation):
    """Add the primary key of ``table_schema`` to ``table_name``.

    ``table_name`` may be bare or schema-qualified.
    """
    operation_type: Literal[ScriptType.ADD_PRIMARY_KEY] = Field(
        default=ScriptType.ADD_PRIMARY_KEY,
        frozen=True
    )

    table_schema: TableSchema
    table_name: str = Field(..., min_length=1)


class DropTable(BaseOperation):
    """Drop table operation."""
    operation_type: Literal[ScriptType.DROP_TABLE] = Field(
        default=ScriptType.DROP_TABLE,
        frozen=True
    )

    table_name: str = Field(..., min_length=1, max_length=128)
    schema_name: Optional[str] = Field(default=None, max_length=128)
    if_exists: bool = Field(default=False)
