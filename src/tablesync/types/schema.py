"""Table schema descriptors.

A TableSchema is the resolved, immutable description of a target table: its
qualified name and its ordered columns. Builders and the orchestrator only
ever read it.
"""

from enum import Enum
from typing import Dict, Optional, Tuple

from pydantic import Field, field_validator, model_validator

from tablesync.constants.sql import MAX_NVARCHAR_LENGTH
from tablesync.types.base import FrozenModel


class SemanticType(str, Enum):
    """In-memory column types understood by the type mapper."""

    BOOLEAN = "boolean"
    CHAR = "char"
    INT8 = "int8"
    INT16 = "int16"
    INT32 = "int32"
    INT64 = "int64"
    UINT8 = "uint8"
    UINT16 = "uint16"
    UINT32 = "uint32"
    UINT64 = "uint64"
    SINGLE = "single"
    DOUBLE = "double"
    DECIMAL = "decimal"
    TIMESTAMP = "timestamp"
    UUID = "uuid"
    OBJECT = "object"
    TEXT = "text"


class AutoIncrementState(FrozenModel):
    """Identity state of a table as reported by the server.

    ``next_value`` is where client-generated identities must start so they
    never collide with values already committed server-side.
    """

    current: int
    seed: int = 1
    increment: int = 1

    @property
    def next_value(self) -> int:
        return self.current + self.increment


class ColumnDescriptor(FrozenModel):
    """One column of a table.

    Attributes:
        name: Column name, unique within its table
        semantic_type: In-memory type of the column values
        nullable: Whether NULL is allowed
        primary_key: Membership in the primary key
        auto_increment: Server-assigned identity column
        max_length: Text length; None means unbounded (nvarchar(MAX))
        precision: Decimal precision, optional
        scale: Decimal scale, optional
        auto_increment_seed: First value to hand out for identity columns
        auto_increment_step: Identity step
    """

    name: str = Field(..., min_length=1, max_length=128)
    semantic_type: SemanticType = SemanticType.OBJECT
    nullable: bool = True
    primary_key: bool = False
    auto_increment: bool = False
    max_length: Optional[int] = Field(default=None, ge=1, le=MAX_NVARCHAR_LENGTH)
    precision: Optional[int] = Field(default=None, ge=1, le=38)
    scale: Optional[int] = Field(default=None, ge=0, le=38)
    auto_increment_seed: int = 1
    auto_increment_step: int = 1

    @field_validator("auto_increment_step")
    @classmethod
    def validate_step(cls, v: int) -> int:
        if v == 0:
            raise ValueError("auto_increment_step cannot be zero")
        return v

    @model_validator(mode="after")
    def validate_decimal_scale(self):
        if self.scale is not None and self.precision is not None and self.scale > self.precision:
            raise ValueError(
                f"Column '{self.name}': scale {self.scale} exceeds precision {self.precision}"
            )
        return self


class TableSchema(FrozenModel):
    """Qualified table name plus ordered columns.

    Column order is the declaration order; it drives every generated column
    list and the primary-key order, so identical schemas always produce
    identical scripts.
    """

    table_name: str = Field(..., min_length=1, max_length=128)
    schema_name: Optional[str] = Field(default=None, max_length=128)
    columns: Tuple[ColumnDescriptor, ...] = ()

    @model_validator(mode="after")
    def validate_unique_columns(self):
        seen: Dict[str, str] = {}
        for column in self.columns:
            key = column.name.lower()
            if key in seen:
                raise ValueError(
                    f"Duplicate column '{column.name}' in table '{self.qualified_name}'"
                )
            seen[key] = column.name
        return self

    @property
    def qualified_name(self) -> str:
        if self.schema_name:
            return f"{self.schema_name}.{self.table_name}"
        return self.table_name

    @property
    def column_names(self) -> Tuple[str, ...]:
        return tuple(column.name for column in self.columns)

    @property
    def primary_key(self) -> Tuple[ColumnDescriptor, ...]:
        return tuple(column for column in self.columns if column.primary_key)

    @property
    def primary_key_names(self) -> Tuple[str, ...]:
        return tuple(column.name for column in self.primary_key)

    @property
    def non_key_columns(self) -> Tuple[ColumnDescriptor, ...]:
        return tuple(column for column in self.columns if not column.primary_key)

    @property
    def auto_increment_columns(self) -> Tuple[ColumnDescriptor, ...]:
        return tuple(column for column in self.columns if column.auto_increment)

    @property
    def has_auto_increment(self) -> bool:
        return any(column.auto_increment for column in self.columns)

    def column(self, name: str) -> ColumnDescriptor:
        """Look up a column by name (case-insensitive)."""
        wanted = name.lower()
        for column in self.columns:
            if column.name.lower() == wanted:
                return column
        raise KeyError(name)

    def same_table(self, other: "TableSchema") -> bool:
        """Whether both schemas name the same table.

        An unqualified side matches any schema qualifier on the other side.
        """
        if self.table_name.lower() != other.table_name.lower():
            return False
        if self.schema_name and other.schema_name:
            return self.schema_name.lower() == other.schema_name.lower()
        return True

    def with_auto_increment(self, state: AutoIncrementState) -> "TableSchema":
        """Return a copy whose identity columns continue after ``state``."""
        columns = tuple(
            column.model_copy(
                update={
                    "auto_increment_seed": state.next_value,
                    "auto_increment_step": state.increment,
                }
            )
            if column.auto_increment
            else column
            for column in self.columns
        )
        return self.model_copy(update={"columns": columns})
