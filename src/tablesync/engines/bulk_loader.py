"""pyodbc bulk loader using ``fast_executemany``."""

import time
from threading import Event
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from tablesync.common.exceptions import SyncCancelledError, transport_error
from tablesync.constants.sql import ScriptPurpose
from tablesync.engines.base import apply_timeout, driver_connection, span_attributes
from tablesync.logging import get_logger
from tablesync.operations import BulkInsert
from tablesync.protocols.providers import ProgressCallback
from tablesync.query_builder.base import BaseScriptBuilder
from tablesync.query_builder.sqlserver import SqlServerScriptBuilder
from tablesync.utils.decorators import traced

logger = get_logger(__name__)


class PyodbcBulkLoader:
    """Bulk loader sending parameter arrays through pyodbc.

    Rows are sent with a single parameterised INSERT per batch and
    ``cursor.fast_executemany`` enabled, which ships the whole parameter
    array in one round trip. Values are taken from each row by column name.
    Loads are never retried: re-driving a partially committed load would
    duplicate rows.
    """

    def __init__(self, builder: Optional[BaseScriptBuilder] = None):
        self.builder = builder or SqlServerScriptBuilder()

    @staticmethod
    def _to_params(rows: Sequence[Mapping[str, Any]], columns: Sequence[str]) -> List[Tuple[Any, ...]]:
        return [tuple(row.get(column) for column in columns) for row in rows]

    @traced(
        span_name="tablesync.sql.bulk_load",
        attribute_getter=lambda self, connection, destination_table, columns, rows, **kwargs: {
            **span_attributes("", operation="bulk_load", table=destination_table),
            "db.rows": len(rows),
            "db.batch.size": kwargs.get("batch_size", 0),
        },
    )
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
        """Load ``rows`` into ``destination_table``.

        Args:
            connection: SQLAlchemy or pyodbc connection
            destination_table: Bare or schema-qualified table name
            columns: Destination columns, matched to row keys by name
            rows: Rows to send
            batch_size: Rows per batch; 0 sends everything at once
            timeout: Query timeout in seconds
            on_progress: Called with the running total after each batch
                when ``batch_size > 0``
            cancel_event: Checked before every batch

        Returns:
            Number of rows loaded

        Raises:
            TransportError: If the driver rejects a batch
            SyncCancelledError: If ``cancel_event`` is set
        """
        statement = self.builder.build_script(
            BulkInsert(table_name=destination_table, columns=list(columns))
        )
        total = len(rows)
        chunk = batch_size if batch_size > 0 else max(total, 1)
        payload: Dict[str, Any] = {"destination": destination_table, "rows": total, "batch_size": batch_size}

        start_time = time.time()
        dbapi_connection = driver_connection(connection)
        apply_timeout(connection, timeout)
        cursor = dbapi_connection.cursor()
        loaded = 0
        try:
            cursor.fast_executemany = True

            batch_start = 0
            while batch_start < total:
                if cancel_event is not None and cancel_event.is_set():
                    raise SyncCancelledError(
                        f"Bulk load into {destination_table} cancelled",
                        details={
                            "destination": destination_table,
                            "rows_loaded": loaded,
                            "purpose": ScriptPurpose.LOAD.value,
                        },
                    )

                batch = rows[batch_start:batch_start + chunk]
                try:
                    cursor.executemany(statement, self._to_params(batch, columns))
                except Exception as exc:
                    logger.error(
                        "Bulk load batch failed",
                        extra={**payload, "rows_loaded": loaded, "error": str(exc)},
                        exc_info=True,
                    )
                    raise transport_error(
                        f"Bulk load into {destination_table} failed after {loaded} rows",
                        destination=destination_table,
                        rows_loaded=loaded,
                        cause=exc,
                    ) from exc

                loaded += len(batch)
                batch_start += chunk
                logger.debug("Bulk load batch sent", extra={**payload, "rows_loaded": loaded})

                if batch_size > 0 and on_progress is not None:
                    on_progress(loaded)

            dbapi_connection.commit()
        finally:
            cursor.close()

        duration = time.time() - start_time
        logger.info(
            "Bulk load completed",
            extra={**payload, "rows_loaded": loaded, "duration.seconds": f"{duration:.6f}"},
        )
        return loaded
