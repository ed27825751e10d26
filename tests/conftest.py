"""Shared fixtures and in-memory collaborators for tablesync tests."""

from contextlib import contextmanager
from typing import Any, Dict, List, Mapping, Optional

import pytest

from tablesync.query_builder.sqlserver import SqlServerScriptBuilder
from tablesync.settings import SyncSettings
from tablesync.sync import BulkSynchronizer
from tablesync.types import ColumnDescriptor, Dataset, SemanticType, TableSchema


class FakeConnection:
    def __init__(self):
        self.closed = False
        self.timeout = 0


class FakeConnectionProvider:
    """Hands out FakeConnections and counts opens."""

    def __init__(self, error: Optional[BaseException] = None):
        self.error = error
        self.opened = 0
        self.connections: List[FakeConnection] = []

    @contextmanager
    def open_connection(self):
        if self.error is not None:
            raise self.error
        self.opened += 1
        conn = FakeConnection()
        self.connections.append(conn)
        try:
            yield conn
        finally:
            conn.closed = True


class RecordingExecutor:
    """Records every script; can fail on a given purpose."""

    def __init__(self, identity_row: Optional[Mapping[str, Any]] = None, merge_rowcount: int = 2):
        self.calls: List[Dict[str, Any]] = []
        self.failures: Dict[str, BaseException] = {}
        self.identity_row = identity_row
        self.merge_rowcount = merge_rowcount

    def fail_on(self, purpose: str, error: BaseException) -> None:
        self.failures[purpose] = error

    @property
    def purposes(self) -> List[str]:
        return [call["purpose"] for call in self.calls]

    def scripts_for(self, purpose: str) -> List[str]:
        return [call["script"] for call in self.calls if call["purpose"] == purpose]

    def _record(self, connection, script, timeout, purpose):
        self.calls.append({"connection": connection, "script": script, "timeout": timeout, "purpose": purpose})
        if purpose in self.failures:
            raise self.failures[purpose]

    def execute(self, connection, script, *, timeout=None, purpose="script"):
        self._record(connection, script, timeout, purpose)
        return self.merge_rowcount if purpose == "merge" else -1

    def fetch_one(self, connection, script, *, timeout=None, purpose="script"):
        self._record(connection, script, timeout, purpose)
        return self.identity_row


class RecordingLoader:
    """Bulk loader that keeps the rows it was given."""

    def __init__(self, error: Optional[BaseException] = None):
        self.error = error
        self.calls: List[Dict[str, Any]] = []

    def load(self, connection, destination_table, columns, rows, *, batch_size=0, timeout=None,
             on_progress=None, cancel_event=None):
        self.calls.append({
            "destination": destination_table,
            "columns": list(columns),
            "rows": [dict(row) for row in rows],
            "batch_size": batch_size,
            "timeout": timeout,
        })
        if self.error is not None:
            raise self.error
        loaded = 0
        step = batch_size if batch_size > 0 else len(rows)
        for start in range(0, len(rows), step):
            loaded += len(rows[start:start + step])
            if batch_size > 0 and on_progress is not None:
                on_progress(loaded)
        return loaded


@pytest.fixture
def settings():
    return SyncSettings(staging_schema="tmp", batch_size=0, timeout_seconds=30)


@pytest.fixture
def builder(settings):
    return SqlServerScriptBuilder(settings)


@pytest.fixture
def users_schema():
    return TableSchema(
        schema_name="dbo",
        table_name="Users",
        columns=[
            ColumnDescriptor(name="id", semantic_type=SemanticType.INT64, nullable=False,
                             primary_key=True, auto_increment=True),
            ColumnDescriptor(name="name", semantic_type=SemanticType.TEXT, max_length=50),
            ColumnDescriptor(name="active", semantic_type=SemanticType.BOOLEAN),
        ],
    )


@pytest.fixture
def keyless_schema():
    return TableSchema(
        schema_name="dbo",
        table_name="AuditLog",
        columns=[
            ColumnDescriptor(name="message", semantic_type=SemanticType.TEXT),
            ColumnDescriptor(name="logged_at", semantic_type=SemanticType.TIMESTAMP, nullable=False),
        ],
    )


@pytest.fixture
def composite_schema():
    return TableSchema(
        schema_name="sales",
        table_name="OrderLines",
        columns=[
            ColumnDescriptor(name="OrderId", semantic_type=SemanticType.INT32, nullable=False, primary_key=True),
            ColumnDescriptor(name="LineNo", semantic_type=SemanticType.INT16, nullable=False, primary_key=True),
            ColumnDescriptor(name="Sku", semantic_type=SemanticType.TEXT, max_length=20, nullable=False),
            ColumnDescriptor(name="Quantity", semantic_type=SemanticType.DECIMAL, precision=18, scale=4),
        ],
    )


@pytest.fixture
def users_dataset(users_schema):
    return Dataset(users_schema, [
        {"name": "alice", "active": True},
        {"name": "bob", "active": False},
    ])


@pytest.fixture
def provider():
    return FakeConnectionProvider()


@pytest.fixture
def executor():
    return RecordingExecutor(identity_row={"CurrentValue": 41, "SeedValue": 1, "IncrementValue": 1})


@pytest.fixture
def loader():
    return RecordingLoader()


@pytest.fixture
def synchronizer(provider, executor, loader, builder, settings):
    return BulkSynchronizer(
        connection_provider=provider,
        executor=executor,
        bulk_loader=loader,
        builder=builder,
        settings=settings,
    )
