"""Building TableSchemas from live tables and from pandas DataFrames.

``describe_table`` reflects a table through the SQLAlchemy inspector and
rebases its identity columns onto the server's current identity value, so
rows added to the resulting dataset never collide with committed ones.
``load_dataset`` additionally reads the table's current rows.
"""

import decimal
import uuid
from typing import Any, Dict, Iterable, Optional

import pandas as pd
from pandas.api import types as ptypes
from sqlalchemy import inspect, text
from sqlalchemy import types as sqltypes
from sqlalchemy.dialects import mssql

from tablesync.common.exceptions import ErrorCode, SyncError, metadata_error
from tablesync.constants.sql import MAX_NVARCHAR_LENGTH
from tablesync.logging import get_logger
from tablesync.metadata.identity import read_identity_state
from tablesync.protocols.providers import ScriptExecutor
from tablesync.query_builder.base import BaseScriptBuilder
from tablesync.query_builder.sqlserver import SqlServerScriptBuilder
from tablesync.types.dataset import Dataset
from tablesync.types.schema import ColumnDescriptor, SemanticType, TableSchema

logger = get_logger(__name__)


def semantic_type_from_sql(sql_type: sqltypes.TypeEngine) -> Dict[str, Any]:
    """Map a reflected SQLAlchemy type to ColumnDescriptor keyword arguments.

    Subclasses are checked before their bases (BIT before Boolean, TINYINT
    and BigInteger before Integer, REAL before Float before Numeric).
    """
    if isinstance(sql_type, sqltypes.Boolean):
        return {"semantic_type": SemanticType.BOOLEAN}
    if isinstance(sql_type, mssql.TINYINT):
        return {"semantic_type": SemanticType.UINT8}
    if isinstance(sql_type, sqltypes.SmallInteger):
        return {"semantic_type": SemanticType.INT16}
    if isinstance(sql_type, sqltypes.BigInteger):
        return {"semantic_type": SemanticType.INT64}
    if isinstance(sql_type, sqltypes.Integer):
        return {"semantic_type": SemanticType.INT32}
    if isinstance(sql_type, sqltypes.REAL):
        return {"semantic_type": SemanticType.SINGLE}
    if isinstance(sql_type, sqltypes.Float):
        return {"semantic_type": SemanticType.DOUBLE}
    if isinstance(sql_type, sqltypes.Numeric):
        return {
            "semantic_type": SemanticType.DECIMAL,
            "precision": sql_type.precision,
            "scale": sql_type.scale,
        }
    if isinstance(sql_type, (sqltypes.DateTime, sqltypes.Date)):
        return {"semantic_type": SemanticType.TIMESTAMP}
    if isinstance(sql_type, sqltypes.Uuid):
        return {"semantic_type": SemanticType.UUID}
    if isinstance(sql_type, (sqltypes.CHAR, sqltypes.NCHAR)) and sql_type.length == 1:
        return {"semantic_type": SemanticType.CHAR}
    if isinstance(sql_type, sqltypes.String):
        length = sql_type.length
        if length is None or length < 1 or length > MAX_NVARCHAR_LENGTH:
            length = None
        return {"semantic_type": SemanticType.TEXT, "max_length": length}
    return {"semantic_type": SemanticType.OBJECT}


def describe_table(
    connection: Any,
    table_name: str,
    schema_name: Optional[str] = None,
    *,
    executor: Optional[ScriptExecutor] = None,
    builder: Optional[BaseScriptBuilder] = None,
    apply_identity: bool = True,
) -> TableSchema:
    """Reflect a live table into a TableSchema.

    Args:
        connection: SQLAlchemy connection
        table_name: Table to reflect
        schema_name: Schema of the table (default schema when None)
        executor: Executor used for the identity read; a SQLAlchemy one by default
        builder: Builder used for the identity read
        apply_identity: Rebase identity columns onto the server's identity state

    Returns:
        TableSchema in column declaration order

    Raises:
        MetadataError: If the table does not exist or cannot be reflected
    """
    try:
        inspector = inspect(connection)
        if not inspector.has_table(table_name, schema=schema_name):
            raise metadata_error(
                f"Table '{schema_name + '.' if schema_name else ''}{table_name}' does not exist",
                entity=table_name,
                error_code=ErrorCode.TABLE_NOT_FOUND,
            )
        reflected_columns = inspector.get_columns(table_name, schema=schema_name)
        pk_columns = set(
            inspector.get_pk_constraint(table_name, schema=schema_name).get("constrained_columns") or []
        )
    except SyncError:
        raise
    except Exception as exc:
        raise metadata_error(
            f"Failed to reflect table '{table_name}'",
            entity=table_name,
            error_code=ErrorCode.TABLE_NOT_FOUND,
            cause=exc,
        ) from exc

    columns = []
    for reflected in reflected_columns:
        identity = reflected.get("identity") or {}
        auto_increment = bool(identity) or reflected.get("autoincrement") is True
        attributes = semantic_type_from_sql(reflected["type"])
        columns.append(
            ColumnDescriptor(
                name=reflected["name"],
                nullable=bool(reflected.get("nullable", True)),
                primary_key=reflected["name"] in pk_columns,
                auto_increment=auto_increment,
                auto_increment_seed=int(identity.get("start") or 1),
                auto_increment_step=int(identity.get("increment") or 1),
                **attributes,
            )
        )

    table_schema = TableSchema(table_name=table_name, schema_name=schema_name, columns=columns)
    logger.info(
        "Table reflected",
        extra={"table": table_schema.qualified_name, "columns": len(columns)},
    )

    if apply_identity and table_schema.has_auto_increment:
        if executor is None:
            from tablesync.engines.executor import SqlAlchemyScriptExecutor
            executor = SqlAlchemyScriptExecutor()
        state = read_identity_state(
            connection,
            executor,
            builder or SqlServerScriptBuilder(),
            table_schema.qualified_name,
        )
        if state is not None:
            table_schema = table_schema.with_auto_increment(state)

    return table_schema


def load_dataset(
    connection: Any,
    table_name: str,
    schema_name: Optional[str] = None,
    *,
    executor: Optional[ScriptExecutor] = None,
    builder: Optional[BaseScriptBuilder] = None,
) -> Dataset:
    """Reflect ``table_name`` and read all of its current rows.

    Identity columns of the returned schema are rebased onto the server's
    identity state, so rows added to the dataset continue after the last
    committed value.
    """
    builder = builder or SqlServerScriptBuilder()
    table_schema = describe_table(connection, table_name, schema_name, executor=executor, builder=builder)
    query = (
        f"SELECT {builder.format_column_list(list(table_schema.column_names))} "
        f"FROM {builder.qualified_name(schema_name, table_name)}"
    )
    df = pd.read_sql(text(query), connection)
    logger.info("Table rows read", extra={"table": table_schema.qualified_name, "rows": len(df)})
    return Dataset.from_dataframe(table_schema, df)


_INTEGER_DTYPES = {
    "int8": SemanticType.INT8,
    "int16": SemanticType.INT16,
    "int32": SemanticType.INT32,
    "int64": SemanticType.INT64,
    "uint8": SemanticType.UINT8,
    "uint16": SemanticType.UINT16,
    "uint32": SemanticType.UINT32,
    "uint64": SemanticType.UINT64,
}


def _infer_object_type(series: pd.Series) -> SemanticType:
    values = series.dropna()
    if values.empty:
        return SemanticType.OBJECT
    if all(isinstance(v, str) for v in values):
        return SemanticType.TEXT
    if all(isinstance(v, uuid.UUID) for v in values):
        return SemanticType.UUID
    if all(isinstance(v, decimal.Decimal) for v in values):
        return SemanticType.DECIMAL
    return SemanticType.OBJECT


def semantic_type_from_dtype(series: pd.Series) -> SemanticType:
    """Infer the semantic type of a DataFrame column."""
    dtype = series.dtype
    if ptypes.is_bool_dtype(dtype):
        return SemanticType.BOOLEAN
    if ptypes.is_integer_dtype(dtype):
        return _INTEGER_DTYPES.get(str(dtype).lower(), SemanticType.INT64)
    if ptypes.is_float_dtype(dtype):
        return SemanticType.SINGLE if str(dtype).lower() == "float32" else SemanticType.DOUBLE
    if ptypes.is_datetime64_any_dtype(dtype):
        return SemanticType.TIMESTAMP
    if ptypes.is_string_dtype(dtype) or ptypes.is_object_dtype(dtype):
        return _infer_object_type(series)
    return SemanticType.OBJECT


def schema_from_dataframe(
    df: pd.DataFrame,
    table_name: str,
    *,
    schema_name: Optional[str] = None,
    primary_key: Iterable[str] = (),
    auto_increment: Iterable[str] = (),
    max_lengths: Optional[Dict[str, int]] = None,
) -> TableSchema:
    """Infer a TableSchema from DataFrame dtypes.

    Text columns are unbounded unless listed in ``max_lengths``. Key
    columns are NOT NULL; every other column is nullable.
    """
    keys = set(primary_key)
    identities = set(auto_increment)
    lengths = max_lengths or {}

    unknown = (keys | identities | set(lengths)) - set(df.columns)
    if unknown:
        raise ValueError(f"Columns not present in DataFrame: {sorted(unknown)}")

    columns = []
    for name in df.columns:
        semantic_type = semantic_type_from_dtype(df[name])
        columns.append(
            ColumnDescriptor(
                name=str(name),
                semantic_type=semantic_type,
                nullable=name not in keys,
                primary_key=name in keys,
                auto_increment=name in identities,
                max_length=lengths.get(name) if semantic_type == SemanticType.TEXT else None,
            )
        )
    return TableSchema(table_name=table_name, schema_name=schema_name, columns=columns)
