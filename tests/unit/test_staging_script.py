"""Unit tests for the create-staging-table script."""

import pytest

from tablesync.common.exceptions import ConfigurationError, ErrorCode
from tablesync.query_builder import build_create_staging_script
from tablesync.types import ColumnDescriptor, SemanticType, TableSchema


class TestCreateStagingScript:
    """Test CREATE TABLE generation for staging tables."""

    def test_full_script_for_identity_keyed_table(self, users_schema):
        script = build_create_staging_script(users_schema, "tmp", "Users")

        assert script == (
            "IF SCHEMA_ID(N'tmp') IS NULL\n"
            "    EXECUTE (N'CREATE SCHEMA [tmp]');\n"
            "IF OBJECT_ID(N'[tmp].[Users]', N'U') IS NOT NULL\n"
            "    DROP TABLE [tmp].[Users];\n"
            "\n"
            "CREATE TABLE [tmp].[Users] (\n"
            "    [id] [bigint] NOT NULL,\n"
            "    [name] [nvarchar](50) NULL,\n"
            "    [active] [bit] NULL\n"
            ") ON [PRIMARY];\n"
            "ALTER TABLE [tmp].[Users]\n"
            "   ADD PRIMARY KEY ([id]);\n"
        )

    def test_staging_table_defaults_to_target_name(self, users_schema):
        script = build_create_staging_script(users_schema)
        assert "CREATE TABLE [tmp].[Users] (" in script

    def test_custom_staging_schema_and_table(self, users_schema):
        script = build_create_staging_script(users_schema, "etl", "Users_batch1")

        assert "IF SCHEMA_ID(N'etl') IS NULL" in script
        assert "EXECUTE (N'CREATE SCHEMA [etl]');" in script
        assert "CREATE TABLE [etl].[Users_batch1] (" in script
        assert "ALTER TABLE [etl].[Users_batch1]" in script

    def test_keyless_table_has_no_key_clause(self, keyless_schema):
        script = build_create_staging_script(keyless_schema, "tmp", "AuditLog")

        assert "PRIMARY KEY" not in script
        assert script.endswith(") ON [PRIMARY];\n")
        assert "    [message] [nvarchar](MAX) NULL,\n" in script
        assert "    [logged_at] [datetime2] NOT NULL\n" in script

    def test_composite_key_uses_named_constraint(self, composite_schema):
        script = build_create_staging_script(composite_schema, "tmp", "OrderLines")

        assert script.endswith(
            "ALTER TABLE [tmp].[OrderLines]\n"
            "ADD CONSTRAINT [pk_OrderIdLineNo] PRIMARY KEY ([OrderId], [LineNo]);\n"
        )
        assert "    [Quantity] [decimal](18, 4) NULL\n" in script

    def test_columns_follow_declaration_order(self, composite_schema):
        script = build_create_staging_script(composite_schema)
        positions = [script.index(f"[{name}] [") for name in composite_schema.column_names]
        assert positions == sorted(positions)

    def test_output_is_deterministic(self, users_schema):
        assert build_create_staging_script(users_schema) == build_create_staging_script(users_schema)

    def test_empty_schema_is_rejected(self):
        empty = TableSchema(table_name="Nothing", schema_name="dbo")

        with pytest.raises(ConfigurationError) as exc_info:
            build_create_staging_script(empty)

        assert exc_info.value.error_code == ErrorCode.CONFIG_INVALID

    def test_invalid_staging_schema_is_rejected(self, users_schema):
        with pytest.raises(ConfigurationError) as exc_info:
            build_create_staging_script(users_schema, "tmp\nDROP TABLE x", "Users")

        assert exc_info.value.error_code == ErrorCode.INVALID_IDENTIFIER

    def test_delimited_column_names_are_bracketed(self):
        schema = TableSchema(
            table_name="Orders",
            columns=[
                ColumnDescriptor(name="Order Date", semantic_type=SemanticType.TIMESTAMP,
                                 primary_key=True, nullable=False),
                ColumnDescriptor(name="Straße", semantic_type=SemanticType.TEXT),
                ColumnDescriptor(name="a]b", semantic_type=SemanticType.INT32),
            ],
        )

        script = build_create_staging_script(schema)

        assert "    [Order Date] [datetime2] NOT NULL,\n" in script
        assert "    [Straße] [nvarchar](MAX) NULL,\n" in script
        assert "    [a]]b] [int] NULL\n" in script
        assert "ADD PRIMARY KEY ([Order Date]);" in script

    def test_control_characters_in_column_names_are_rejected(self):
        schema = TableSchema(
            table_name="Bad",
            columns=[ColumnDescriptor(name="a\nb", semantic_type=SemanticType.INT32)],
        )

        with pytest.raises(ConfigurationError) as exc_info:
            build_create_staging_script(schema)

        assert exc_info.value.details["identifier_type"] == "column"
