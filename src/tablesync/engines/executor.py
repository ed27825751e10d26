"""Script executor running generated T-SQL on a SQLAlchemy connection."""

import time
from typing import Any, Dict, Mapping, Optional

from sqlalchemy.engine import Connection

from tablesync.common.exceptions import script_execution_error
from tablesync.engines.base import apply_timeout, span_attributes
from tablesync.logging import get_logger
from tablesync.utils.decorators import traced

logger = get_logger(__name__)


class SqlAlchemyScriptExecutor:
    """Executes scripts with ``exec_driver_sql``.

    Scripts are sent as a single batch without parameter processing, so
    multi-statement DDL scripts run exactly as generated. Failures are never
    retried; they surface as ScriptExecutionError carrying the script
    purpose.
    """

    @traced(
        span_name="tablesync.sql.execute",
        attribute_getter=lambda self, connection, script, **kwargs: span_attributes(
            script,
            operation="execute",
            purpose=kwargs.get("purpose"),
        ),
    )
    def execute(
        self,
        connection: Connection,
        script: str,
        *,
        timeout: Optional[int] = None,
        purpose: str = "script",
    ) -> int:
        """Execute ``script`` and return the affected row count (-1 if unknown)."""
        start_time = time.time()
        payload: Dict[str, Any] = {"script.purpose": purpose}
        logger.debug("Executing script", extra={**payload, "script": script})

        try:
            apply_timeout(connection, timeout)
            result = connection.exec_driver_sql(script)
            rowcount = result.rowcount
            connection.commit()
        except Exception as exc:
            duration = time.time() - start_time
            logger.error(
                "Script failed",
                extra={**payload, "duration.seconds": f"{duration:.6f}", "error": str(exc)},
                exc_info=True,
            )
            raise script_execution_error(script, purpose, exc) from exc

        duration = time.time() - start_time
        logger.info(
            "Script executed",
            extra={**payload, "duration.seconds": f"{duration:.6f}", "rowcount": rowcount},
        )
        return rowcount

    @traced(
        span_name="tablesync.sql.fetch_one",
        attribute_getter=lambda self, connection, script, **kwargs: span_attributes(
            script,
            operation="fetch_one",
            purpose=kwargs.get("purpose"),
        ),
    )
    def fetch_one(
        self,
        connection: Connection,
        script: str,
        *,
        timeout: Optional[int] = None,
        purpose: str = "script",
    ) -> Optional[Mapping[str, Any]]:
        """Execute ``script`` and return its first row as a mapping."""
        start_time = time.time()
        payload: Dict[str, Any] = {"script.purpose": purpose}

        try:
            apply_timeout(connection, timeout)
            result = connection.exec_driver_sql(script)
            row = result.mappings().first()
            connection.commit()
        except Exception as exc:
            duration = time.time() - start_time
            logger.error(
                "Query failed",
                extra={**payload, "duration.seconds": f"{duration:.6f}", "error": str(exc)},
                exc_info=True,
            )
            raise script_execution_error(script, purpose, exc) from exc

        duration = time.time() - start_time
        logger.info(
            "Row fetched",
            extra={**payload, "duration.seconds": f"{duration:.6f}", "row_is_null": str(row is None)},
        )
        return dict(row) if row is not None else None
