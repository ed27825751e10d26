"""Collaborator protocol definitions.

The orchestrator only talks to the database through these interfaces, so
tests can substitute in-memory fakes and callers can plug in their own
transport. Default implementations live in ``tablesync.engines`` and
``tablesync.metadata``.
"""

from threading import Event
from typing import Any, Callable, ContextManager, Mapping, Optional, Protocol, Sequence, runtime_checkable

from tablesync.types.schema import TableSchema

ProgressCallback = Callable[[int], None]


@runtime_checkable
class MetadataResolver(Protocol):
    """Resolves an entity (class, name, ...) to its table schema."""

    def resolve_table(self, entity: Any) -> TableSchema:
        """Return the schema registered for ``entity``.

        Raises:
            MetadataError: If the entity has no table metadata configured
        """
        ...


@runtime_checkable
class ConnectionProvider(Protocol):
    """Hands out open database connections."""

    def open_connection(self) -> ContextManager[Any]:
        """Context manager yielding an open connection, closed on exit.

        Raises:
            MetadataError: If no connection can be obtained or opened
        """
        ...


@runtime_checkable
class ScriptExecutor(Protocol):
    """Runs generated scripts on a connection."""

    def execute(
        self,
        connection: Any,
        script: str,
        *,
        timeout: Optional[int] = None,
        purpose: str = "script",
    ) -> int:
        """Execute ``script`` and return the affected row count.

        Raises:
            ScriptExecutionError: If the server rejects or times out the script
        """
        ...

    def fetch_one(
        self,
        connection: Any,
        script: str,
        *,
        timeout: Optional[int] = None,
        purpose: str = "script",
    ) -> Optional[Mapping[str, Any]]:
        """Execute ``script`` and return its first row, or None."""
        ...


@runtime_checkable
class BulkLoader(Protocol):
    """Streams rows into a table."""

    def load(
        self,
        connection: Any,
        destination_table: str,
        columns: Sequence[str],
        rows: Sequence[Mapping[str, Any]],
        *,
        batch_size: int = 0,
        timeout: Optional[int] = None,
        on_progress: Optional[ProgressCallback] = None,
        cancel_event: Optional[Event] = None,
    ) -> int:
        """Load ``rows`` into ``destination_table`` and return the row count.

        Values are taken from each row by column name. ``on_progress`` is
        called with the running total after every batch when
        ``batch_size > 0``.

        Raises:
            TransportError: If the load fails; SyncTimeoutError on timeout
            SyncCancelledError: If ``cancel_event`` is set between batches
        """
        ...
