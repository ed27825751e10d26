"""Unit tests for entity to table-schema registration."""

import pytest

from tablesync.common.exceptions import ErrorCode, MetadataError
from tablesync.metadata import SchemaRegistry, get_registry
from tablesync.protocols import MetadataResolver


@pytest.fixture
def registry():
    return SchemaRegistry()


class TestSchemaRegistry:
    """Test registration and resolution."""

    def test_resolve_by_class_and_instance(self, registry, users_schema):
        @registry.entity(users_schema)
        class User:
            pass

        assert registry.resolve_table(User) is users_schema
        assert registry.resolve_table(User()) is users_schema
        assert User in registry

    def test_resolve_by_name_is_case_insensitive(self, registry, users_schema):
        registry.register("User", users_schema)
        assert registry.resolve_table("user") is users_schema

    def test_register_replaces(self, registry, users_schema, keyless_schema):
        registry.register("entity", users_schema)
        registry.register("entity", keyless_schema)
        assert registry.resolve_table("entity") is keyless_schema

    def test_unknown_entity(self, registry):
        with pytest.raises(MetadataError) as exc_info:
            registry.resolve_table("Order")

        assert exc_info.value.error_code == ErrorCode.CONFIG_MISSING
        assert exc_info.value.details["entity"] == "Order"

    def test_unregister_and_clear(self, registry, users_schema):
        registry.register("a", users_schema)
        registry.register("b", users_schema)

        registry.unregister("a")
        assert "a" not in registry
        registry.unregister("never-registered")

        registry.clear()
        assert "b" not in registry

    def test_registry_is_a_metadata_resolver(self, registry):
        assert isinstance(registry, MetadataResolver)

    def test_default_registry_is_shared(self):
        assert get_registry() is get_registry()
