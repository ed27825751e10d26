"""Unit tests for table schema descriptors."""

import pytest
from pydantic import ValidationError

from tablesync.types import AutoIncrementState, ColumnDescriptor, SemanticType, TableSchema


class TestColumnDescriptor:
    """Test column validation."""

    def test_defaults(self):
        column = ColumnDescriptor(name="payload")

        assert column.semantic_type == SemanticType.OBJECT
        assert column.nullable is True
        assert column.primary_key is False
        assert column.auto_increment is False
        assert column.max_length is None

    def test_zero_step_is_rejected(self):
        with pytest.raises(ValidationError):
            ColumnDescriptor(name="id", auto_increment=True, auto_increment_step=0)

    def test_scale_cannot_exceed_precision(self):
        with pytest.raises(ValidationError):
            ColumnDescriptor(name="amount", semantic_type=SemanticType.DECIMAL, precision=5, scale=6)

    def test_max_length_is_bounded(self):
        with pytest.raises(ValidationError):
            ColumnDescriptor(name="text", semantic_type=SemanticType.TEXT, max_length=4001)

    def test_columns_are_immutable(self):
        column = ColumnDescriptor(name="id")
        with pytest.raises(ValidationError):
            column.name = "other"


class TestTableSchema:
    """Test schema properties."""

    def test_qualified_name(self, users_schema):
        assert users_schema.qualified_name == "dbo.Users"
        assert TableSchema(table_name="Users").qualified_name == "Users"

    def test_key_and_identity_views(self, users_schema):
        assert users_schema.column_names == ("id", "name", "active")
        assert users_schema.primary_key_names == ("id",)
        assert [c.name for c in users_schema.non_key_columns] == ["name", "active"]
        assert [c.name for c in users_schema.auto_increment_columns] == ["id"]
        assert users_schema.has_auto_increment

    def test_keyless_schema(self, keyless_schema):
        assert keyless_schema.primary_key == ()
        assert not keyless_schema.has_auto_increment

    def test_duplicate_columns_are_rejected_case_insensitively(self):
        with pytest.raises(ValidationError):
            TableSchema(table_name="T", columns=[ColumnDescriptor(name="Id"), ColumnDescriptor(name="id")])

    def test_column_lookup_is_case_insensitive(self, users_schema):
        assert users_schema.column("NAME").name == "name"
        with pytest.raises(KeyError):
            users_schema.column("missing")

    @pytest.mark.parametrize("other, expected", [
        (TableSchema(table_name="users", schema_name="DBO"), True),
        (TableSchema(table_name="Users"), True),
        (TableSchema(table_name="Users", schema_name="sales"), False),
        (TableSchema(table_name="Customers", schema_name="dbo"), False),
    ])
    def test_same_table(self, users_schema, other, expected):
        assert users_schema.same_table(other) is expected
        assert other.same_table(users_schema) is expected

    def test_with_auto_increment_rebases_identity_columns_only(self, users_schema):
        rebased = users_schema.with_auto_increment(AutoIncrementState(current=41, increment=2))

        identity = rebased.column("id")
        assert identity.auto_increment_seed == 43
        assert identity.auto_increment_step == 2
        assert rebased.column("name") == users_schema.column("name")
        assert users_schema.column("id").auto_increment_seed == 1


class TestAutoIncrementState:
    """Test identity state arithmetic."""

    def test_next_value(self):
        assert AutoIncrementState(current=10).next_value == 11
        assert AutoIncrementState(current=10, increment=5).next_value == 15
        assert AutoIncrementState(current=-3, increment=-1).next_value == -4
