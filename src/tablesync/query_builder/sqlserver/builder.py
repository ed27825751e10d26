"""SQL Server (T-SQL) script builder."""

from typing import List

from tablesync.common.exceptions import ErrorCode, configuration_error
from tablesync.operations import (
    AddPrimaryKey,
    BulkInsert,
    CreateStagingTable,
    DropTable,
    MergeTable,
    ReadIdentity,
)
from tablesync.query_builder.base import BaseScriptBuilder
from tablesync.query_builder.type_mapper import map_type
from tablesync.types.schema import ColumnDescriptor, TableSchema

_INDENT = "    "


class SqlServerScriptBuilder(BaseScriptBuilder):
    """Script builder for SQL Server and Azure SQL.

    Output is deterministic: column lists follow declaration order and no
    names or timestamps are generated, so the same operation always renders
    to byte-identical text.
    """

    def map_type(self, column: ColumnDescriptor) -> str:
        return map_type(column)

    def format_column_definition(self, column: ColumnDescriptor) -> str:
        null_clause = "NULL" if column.nullable else "NOT NULL"
        return f"{self.quote_identifier(column.name, 'column')} {self.map_type(column)} {null_clause}"

    def _build_create_staging_table(self, operation: CreateStagingTable) -> str:
        table_schema = operation.table_schema
        if not table_schema.columns:
            raise configuration_error(
                f"Cannot create staging table for '{table_schema.qualified_name}': schema has no columns",
                error_code=ErrorCode.CONFIG_INVALID,
            )

        quoted_schema = self.quote_identifier(operation.staging_schema, "schema")
        staging = self.qualified_name(operation.staging_schema, operation.staging_table)
        schema_literal = self.quote_string(self.unquote_identifier(quoted_schema))
        create_schema_literal = self.quote_string(f"CREATE SCHEMA {quoted_schema}")

        column_definitions = f",\n{_INDENT}".join(
            self.format_column_definition(column) for column in table_schema.columns
        )

        lines = [
            f"IF SCHEMA_ID({schema_literal}) IS NULL",
            f"{_INDENT}EXECUTE ({create_schema_literal});",
            f"IF OBJECT_ID({self.quote_string(staging)}, N'U') IS NOT NULL",
            f"{_INDENT}DROP TABLE {staging};",
            "",
            f"CREATE TABLE {staging} (",
            f"{_INDENT}{column_definitions}",
            ") ON [PRIMARY];",
        ]
        script = "\n".join(lines) + "\n"

        key_script = self._build_add_primary_key(
            AddPrimaryKey(table_schema=table_schema, table_name=staging)
        )
        return script + key_script

    def _build_add_primary_key(self, operation: AddPrimaryKey) -> str:
        key_names = list(operation.table_schema.primary_key_names)
        if not key_names:
            return ""

        table = self.table_reference(operation.table_name)
        key_list = self.format_column_list(key_names)

        if len(key_names) == 1:
            return f"ALTER TABLE {table}\n   ADD PRIMARY KEY ({key_list});\n"

        # Known limitation: permuted key sets on different tables share a name.
        constraint = self.quote_identifier(f"pk_{''.join(key_names)}", "constraint")
        return f"ALTER TABLE {table}\nADD CONSTRAINT {constraint} PRIMARY KEY ({key_list});\n"

    def _build_merge(self, operation: MergeTable) -> str:
        table_schema = operation.table_schema
        key_names = list(table_schema.primary_key_names)
        if not key_names:
            raise configuration_error(
                f"Cannot merge into '{table_schema.qualified_name}': table has no primary key",
                error_code=ErrorCode.MISSING_PRIMARY_KEY,
            )

        update_columns = [
            column.name for column in table_schema.non_key_columns if not column.auto_increment
        ]
        if not update_columns:
            raise configuration_error(
                f"Cannot merge into '{table_schema.qualified_name}': no updatable non-key columns",
                error_code=ErrorCode.CONFIG_INVALID,
            )

        target = self.qualified_name(table_schema.schema_name, table_schema.table_name)
        source = self.table_reference(operation.source_table)

        predicate = " AND ".join(
            f"([Source].{self.quote_identifier(name, 'column')} = [Target].{self.quote_identifier(name, 'column')})"
            for name in key_names
        )

        lines = [
            f"MERGE {target} AS [Target]",
            f"USING {source} AS [Source]",
            f"ON {predicate}",
        ]

        if operation.allow_insert:
            insert_columns = self._insert_columns(table_schema)
            if not insert_columns:
                raise configuration_error(
                    f"Cannot insert into '{table_schema.qualified_name}': every column is auto-increment",
                    error_code=ErrorCode.CONFIG_INVALID,
                )
            lines.extend([
                "WHEN NOT MATCHED BY TARGET THEN",
                f"{_INDENT}INSERT ({self.format_column_list(insert_columns)})",
                f"{_INDENT}VALUES ({self.format_column_list(insert_columns, prefix='[Source]')})",
            ])

        assignments = f",\n{_INDENT}".join(
            f"[Target].{self.quote_identifier(name, 'column')} = [Source].{self.quote_identifier(name, 'column')}"
            for name in update_columns
        )
        lines.extend([
            "WHEN MATCHED THEN UPDATE SET",
            f"{_INDENT}{assignments}",
        ])

        if operation.allow_delete:
            lines.append("WHEN NOT MATCHED BY SOURCE THEN DELETE")

        return "\n".join(lines) + ";\n"

    @staticmethod
    def _insert_columns(table_schema: TableSchema) -> List[str]:
        """Columns restated in the INSERT branch.

        Auto-increment columns are assigned by the server, and auto-increment
        keys are what the predicate matched on, so both are left out. Natural
        (non-identity) key columns are carried over from the source.
        """
        return [column.name for column in table_schema.columns if not column.auto_increment]

    def _build_drop_table(self, operation: DropTable) -> str:
        table = self.qualified_name(operation.schema_name, operation.table_name)
        if operation.if_exists:
            return (
                f"IF OBJECT_ID({self.quote_string(table)}, N'U') IS NOT NULL\n"
                f"{_INDENT}DROP TABLE {table};\n"
            )
        return f"DROP TABLE {table};\n"

    def _build_read_identity(self, operation: ReadIdentity) -> str:
        table = self.quote_string(self.table_reference(operation.table_name))
        return (
            f"SELECT IDENT_CURRENT({table}) AS CurrentValue, "
            f"IDENT_SEED({table}) AS SeedValue, "
            f"IDENT_INCR({table}) AS IncrementValue;"
        )

    def _build_bulk_insert(self, operation: BulkInsert) -> str:
        table = self.table_reference(operation.table_name)
        placeholders = ", ".join("?" for _ in operation.columns)
        return f"INSERT INTO {table} ({self.format_column_list(operation.columns)}) VALUES ({placeholders})"

