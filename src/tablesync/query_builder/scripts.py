"""Functional entry points for script generation.

Thin wrappers that build an operation and render it with the default
SQL Server builder. Useful for golden-file tests and for callers that just
want the script text.
"""

from typing import Optional

from tablesync.constants.sql import DEFAULT_STAGING_SCHEMA
from tablesync.operations import AddPrimaryKey, CreateStagingTable, DropTable, MergeTable, ReadIdentity
from tablesync.query_builder.base import BaseScriptBuilder
from tablesync.query_builder.sqlserver import SqlServerScriptBuilder
from tablesync.types.schema import TableSchema

_default_builder: Optional[BaseScriptBuilder] = None


def _builder() -> BaseScriptBuilder:
    global _default_builder
    if _default_builder is None:
        _default_builder = SqlServerScriptBuilder()
    return _default_builder


def build_create_staging_script(
    table_schema: TableSchema,
    staging_schema_name: str = DEFAULT_STAGING_SCHEMA,
    staging_table_name: Optional[str] = None,
) -> str:
    """Script creating the staging schema and table, plus its primary key.

    Args:
        table_schema: Schema of the target table
        staging_schema_name: Schema the staging table lives in
        staging_table_name: Staging table name, defaults to the target table name

    Returns:
        Script text
    """
    return _builder().build_script(
        CreateStagingTable(
            table_schema=table_schema,
            staging_schema=staging_schema_name,
            staging_table=staging_table_name or table_schema.table_name,
        )
    )


def build_merge_script(
    table_schema: TableSchema,
    source_table_name: str,
    allow_insert: bool = True,
    allow_delete: bool = False,
) -> str:
    """MERGE of ``source_table_name`` into the table of ``table_schema``."""
    return _builder().build_script(
        MergeTable(
            table_schema=table_schema,
            source_table=source_table_name,
            allow_insert=allow_insert,
            allow_delete=allow_delete,
        )
    )


def build_key_script(table_schema: TableSchema, table_name: str) -> str:
    """ALTER TABLE adding the primary key, or ``""`` for a keyless schema."""
    return _builder().build_script(AddPrimaryKey(table_schema=table_schema, table_name=table_name))


def build_drop_script(table_name: str, schema_name: Optional[str] = None, if_exists: bool = False) -> str:
    return _builder().build_script(
        DropTable(table_name=table_name, schema_name=schema_name, if_exists=if_exists)
    )


def build_identity_query(table_name: str) -> str:
    return _builder().build_script(ReadIdentity(table_name=table_name))
