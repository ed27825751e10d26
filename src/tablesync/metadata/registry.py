"""Explicit entity to table-schema registration."""

import threading
from typing import Any, Callable, Dict, Optional, TypeVar

from tablesync.common.exceptions import ErrorCode, metadata_error
from tablesync.types.schema import TableSchema

T = TypeVar("T")


class SchemaRegistry:
    """Maps entities to their TableSchema.

    An entity is either a name or a class; instances resolve through their
    class. Registration happens once at startup, resolution on every sync.

    Example:
        >>> registry = SchemaRegistry()
        >>> @registry.entity(users_schema)
        ... class User:
        ...     pass
        >>> registry.resolve_table(User).table_name
        'Users'
    """

    def __init__(self):
        self._schemas: Dict[Any, TableSchema] = {}
        self._lock = threading.Lock()

    @staticmethod
    def _key(entity: Any) -> Any:
        if isinstance(entity, str):
            return entity.lower()
        if isinstance(entity, type):
            return entity
        return type(entity)

    @staticmethod
    def _describe(entity: Any) -> str:
        if isinstance(entity, str):
            return entity
        if isinstance(entity, type):
            return entity.__qualname__
        return type(entity).__qualname__

    def register(self, entity: Any, table_schema: TableSchema) -> None:
        """Register (or replace) the schema for ``entity``."""
        with self._lock:
            self._schemas[self._key(entity)] = table_schema

    def entity(self, table_schema: TableSchema) -> Callable[[T], T]:
        """Class decorator registering the decorated class."""
        def decorator(cls: T) -> T:
            self.register(cls, table_schema)
            return cls
        return decorator

    def unregister(self, entity: Any) -> None:
        with self._lock:
            self._schemas.pop(self._key(entity), None)

    def clear(self) -> None:
        with self._lock:
            self._schemas.clear()

    def __contains__(self, entity: Any) -> bool:
        return self._key(entity) in self._schemas

    def resolve_table(self, entity: Any) -> TableSchema:
        """Return the schema registered for ``entity``.

        Raises:
            MetadataError: If nothing is registered for ``entity``
        """
        table_schema = self._schemas.get(self._key(entity))
        if table_schema is None:
            raise metadata_error(
                f"No table metadata configured for entity '{self._describe(entity)}'",
                entity=self._describe(entity),
                error_code=ErrorCode.CONFIG_MISSING,
            )
        return table_schema


_registry: Optional[SchemaRegistry] = None


def get_registry() -> SchemaRegistry:
    """Process-wide default registry."""
    global _registry
    if _registry is None:
        _registry = SchemaRegistry()
    return _registry
