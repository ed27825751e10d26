"""In-memory datasets and per-sync value objects."""

from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Sequence

import pandas as pd
from pydantic import Field

from tablesync.common.exceptions import ErrorCode, configuration_error
from tablesync.constants.sql import SyncState
from tablesync.types.base import SyncBaseModel
from tablesync.types.schema import AutoIncrementState, TableSchema


class Dataset:
    """A TableSchema plus ordered rows.

    Rows are stored as dictionaries keyed by the schema's column names, in
    declaration order. Unknown column names are rejected; columns missing
    from an input row are filled with ``None``. The dataset is owned by the
    caller: syncing never mutates it.

    Example:
        >>> ds = Dataset(users_schema)
        >>> ds.add_row(name="alice", active=True)
        >>> ds.add_row({"name": "bob", "active": False})
        >>> len(ds)
        2
    """

    def __init__(self, table_schema: TableSchema, rows: Optional[Iterable[Mapping[str, Any]]] = None):
        self.table_schema = table_schema
        self._rows: List[Dict[str, Any]] = []
        self._lookup = {name.lower(): name for name in table_schema.column_names}
        for row in rows or ():
            self.add_row(row)

    def __len__(self) -> int:
        return len(self._rows)

    def __iter__(self) -> Iterator[Dict[str, Any]]:
        return iter(self._rows)

    def __repr__(self) -> str:
        return f"Dataset(table={self.table_schema.qualified_name!r}, rows={len(self._rows)})"

    @property
    def rows(self) -> Sequence[Dict[str, Any]]:
        return tuple(self._rows)

    @property
    def is_empty(self) -> bool:
        return not self._rows

    def add_row(self, row: Optional[Mapping[str, Any]] = None, **values: Any) -> Dict[str, Any]:
        """Append a row given as a mapping and/or keyword arguments."""
        merged: Dict[str, Any] = dict(row or {})
        merged.update(values)

        normalized: Dict[str, Any] = {name: None for name in self.table_schema.column_names}
        for key, value in merged.items():
            name = self._lookup.get(str(key).lower())
            if name is None:
                raise configuration_error(
                    f"Column '{key}' does not exist in table '{self.table_schema.qualified_name}'",
                    config_key=str(key),
                    error_code=ErrorCode.INVALID_ARGUMENT,
                )
            normalized[name] = value

        self._rows.append(normalized)
        return normalized

    def with_auto_increment(self, state: AutoIncrementState) -> "Dataset":
        """Return a copy rebased onto the server identity ``state``.

        The copy's schema carries the rebased seed and step; rows whose
        identity value is unset are assigned sequential values starting at
        ``state.next_value``. Explicit values are kept as-is.
        """
        rebased_schema = self.table_schema.with_auto_increment(state)
        copy = Dataset(rebased_schema)
        counters = {
            column.name: column.auto_increment_seed
            for column in rebased_schema.auto_increment_columns
        }
        for row in self._rows:
            materialized = dict(row)
            for name, next_value in counters.items():
                if materialized.get(name) is None:
                    materialized[name] = next_value
                    counters[name] = next_value + state.increment
            copy._rows.append(materialized)
        return copy

    @classmethod
    def from_dataframe(cls, table_schema: TableSchema, df: pd.DataFrame) -> "Dataset":
        """Build a dataset from a pandas DataFrame; NaN/NaT become ``None``."""
        clean = df.astype(object).where(pd.notna(df), None)
        return cls(table_schema, clean.to_dict(orient="records"))

    def to_dataframe(self) -> pd.DataFrame:
        return pd.DataFrame(list(self._rows), columns=list(self.table_schema.column_names))


class MergePolicy(SyncBaseModel):
    """Which merge branches to emit; UPDATE of matched rows is always on."""

    allow_insert: bool = True
    allow_delete: bool = False


class SyncResult(SyncBaseModel):
    """Outcome of a completed sync."""

    state: SyncState
    target_table: str
    staging_table: Optional[str] = None
    rows_loaded: int = 0
    rows_merged: Optional[int] = None
    auto_increment: Optional[AutoIncrementState] = None
    table_schema: Optional[TableSchema] = Field(default=None, exclude=True)
    duration_seconds: float = 0.0
