"""Unit tests for schema inference from live tables and DataFrames."""

from unittest.mock import MagicMock, patch

import pandas as pd
import pytest
from sqlalchemy import types as sqltypes
from sqlalchemy.dialects import mssql

from tablesync.common.exceptions import ErrorCode, MetadataError
from tablesync.metadata import (
    describe_table,
    load_dataset,
    schema_from_dataframe,
    semantic_type_from_dtype,
    semantic_type_from_sql,
)
from tablesync.types import SemanticType


class TestSemanticTypeFromSql:
    """Test reflected type mapping."""

    @pytest.mark.parametrize("sql_type, expected", [
        (mssql.BIT(), SemanticType.BOOLEAN),
        (mssql.TINYINT(), SemanticType.UINT8),
        (sqltypes.SmallInteger(), SemanticType.INT16),
        (sqltypes.Integer(), SemanticType.INT32),
        (sqltypes.BigInteger(), SemanticType.INT64),
        (mssql.REAL(), SemanticType.SINGLE),
        (sqltypes.Float(), SemanticType.DOUBLE),
        (mssql.DATETIME2(), SemanticType.TIMESTAMP),
        (mssql.UNIQUEIDENTIFIER(), SemanticType.UUID),
        (sqltypes.NCHAR(1), SemanticType.CHAR),
        (sqltypes.LargeBinary(), SemanticType.OBJECT),
    ])
    def test_types(self, sql_type, expected):
        assert semantic_type_from_sql(sql_type)["semantic_type"] == expected

    def test_decimal_keeps_precision_and_scale(self):
        assert semantic_type_from_sql(sqltypes.Numeric(12, 3)) == {
            "semantic_type": SemanticType.DECIMAL,
            "precision": 12,
            "scale": 3,
        }

    def test_text_length(self):
        assert semantic_type_from_sql(sqltypes.NVARCHAR(50)) == {
            "semantic_type": SemanticType.TEXT,
            "max_length": 50,
        }

    def test_max_text_is_unbounded(self):
        assert semantic_type_from_sql(sqltypes.NVARCHAR())["max_length"] is None
        assert semantic_type_from_sql(sqltypes.VARCHAR(8000))["max_length"] is None


@pytest.fixture
def inspector():
    inspector = MagicMock()
    inspector.has_table.return_value = True
    inspector.get_columns.return_value = [
        {"name": "id", "type": sqltypes.BigInteger(), "nullable": False, "autoincrement": True,
         "identity": {"start": 1, "increment": 1}},
        {"name": "name", "type": sqltypes.NVARCHAR(50), "nullable": True, "autoincrement": False},
        {"name": "active", "type": mssql.BIT(), "nullable": True, "autoincrement": False},
    ]
    inspector.get_pk_constraint.return_value = {"constrained_columns": ["id"], "name": "PK_Users"}
    return inspector


class TestDescribeTable:
    """Test reflection of a live table."""

    def test_reflects_columns_and_keys(self, inspector):
        with patch("tablesync.metadata.reflection.inspect", return_value=inspector):
            table_schema = describe_table(MagicMock(), "Users", "dbo", apply_identity=False)

        assert table_schema.qualified_name == "dbo.Users"
        assert table_schema.column_names == ("id", "name", "active")
        assert table_schema.primary_key_names == ("id",)
        identity = table_schema.column("id")
        assert identity.auto_increment and not identity.nullable
        assert table_schema.column("name").max_length == 50
        assert table_schema.column("active").semantic_type == SemanticType.BOOLEAN

    def test_rebases_identity(self, inspector, builder):
        executor = MagicMock()
        executor.fetch_one.return_value = {"CurrentValue": 99, "SeedValue": 1, "IncrementValue": 1}

        with patch("tablesync.metadata.reflection.inspect", return_value=inspector):
            table_schema = describe_table(MagicMock(), "Users", "dbo", executor=executor, builder=builder)

        assert table_schema.column("id").auto_increment_seed == 100

    def test_missing_table(self, inspector):
        inspector.has_table.return_value = False

        with patch("tablesync.metadata.reflection.inspect", return_value=inspector):
            with pytest.raises(MetadataError) as exc_info:
                describe_table(MagicMock(), "Ghost", "dbo")

        assert exc_info.value.error_code == ErrorCode.TABLE_NOT_FOUND

    def test_inspector_failure_is_wrapped(self):
        with patch("tablesync.metadata.reflection.inspect", side_effect=RuntimeError("no dialect")):
            with pytest.raises(MetadataError) as exc_info:
                describe_table(MagicMock(), "Users")

        assert isinstance(exc_info.value.cause, RuntimeError)

    def test_load_dataset_reads_rows(self, inspector, builder):
        df = pd.DataFrame({"id": [1, 2], "name": ["a", None], "active": [True, False]})
        executor = MagicMock()
        executor.fetch_one.return_value = {"CurrentValue": 99, "SeedValue": 1, "IncrementValue": 1}

        with patch("tablesync.metadata.reflection.inspect", return_value=inspector), \
                patch("tablesync.metadata.reflection.pd.read_sql", return_value=df) as read_sql:
            dataset = load_dataset(MagicMock(), "Users", "dbo", executor=executor, builder=builder)

        assert str(read_sql.call_args.args[0]) == "SELECT [id], [name], [active] FROM [dbo].[Users]"
        assert len(dataset) == 2
        assert dataset.rows[1]["name"] is None
        assert dataset.table_schema.column("id").auto_increment_seed == 100
        assert "IDENT_CURRENT(N'[dbo].[Users]')" in executor.fetch_one.call_args.args[1]

    def test_load_dataset_without_identity_skips_identity_read(self, inspector, builder):
        inspector.get_columns.return_value = [
            {"name": "code", "type": sqltypes.String(10), "nullable": False},
        ]
        inspector.get_pk_constraint.return_value = {"constrained_columns": ["code"]}
        executor = MagicMock()

        with patch("tablesync.metadata.reflection.inspect", return_value=inspector), \
                patch("tablesync.metadata.reflection.pd.read_sql", return_value=pd.DataFrame({"code": ["x"]})):
            dataset = load_dataset(MagicMock(), "Codes", "dbo", executor=executor, builder=builder)

        executor.fetch_one.assert_not_called()
        assert dataset.rows[0]["code"] == "x"


class TestSchemaFromDataFrame:
    """Test schema inference from DataFrames."""

    def test_infers_types(self):
        df = pd.DataFrame({
            "id": pd.Series([1, 2], dtype="int64"),
            "score": pd.Series([1.5, 2.5], dtype="float32"),
            "flag": [True, False],
            "name": ["a", "b"],
            "seen": pd.to_datetime(["2024-01-01", "2024-01-02"]),
        })

        table_schema = schema_from_dataframe(
            df, "Scores", schema_name="dbo", primary_key=["id"], auto_increment=["id"], max_lengths={"name": 20},
        )

        types = {c.name: c.semantic_type for c in table_schema.columns}
        assert types == {
            "id": SemanticType.INT64,
            "score": SemanticType.SINGLE,
            "flag": SemanticType.BOOLEAN,
            "name": SemanticType.TEXT,
            "seen": SemanticType.TIMESTAMP,
        }
        assert table_schema.column("name").max_length == 20
        assert table_schema.column("id").auto_increment
        assert not table_schema.column("id").nullable
        assert table_schema.column("score").nullable

    def test_unknown_key_column(self):
        with pytest.raises(ValueError):
            schema_from_dataframe(pd.DataFrame({"a": [1]}), "T", primary_key=["b"])

    @pytest.mark.parametrize("values, expected", [
        ([None, None], SemanticType.OBJECT),
        (["x", None], SemanticType.TEXT),
        ([{"a": 1}], SemanticType.OBJECT),
    ])
    def test_object_columns(self, values, expected):
        assert semantic_type_from_dtype(pd.Series(values, dtype=object)) == expected

    def test_unsigned_dtype(self):
        assert semantic_type_from_dtype(pd.Series([1], dtype="uint16")) == SemanticType.UINT16
