"""Helpers shared by the SQLAlchemy/pyodbc engines."""

from typing import Any, Dict, Optional


def driver_connection(connection: Any) -> Any:
    """Unwrap a SQLAlchemy ``Connection`` down to the DBAPI connection.

    Raw DBAPI connections are returned unchanged.
    """
    proxied = getattr(connection, "connection", None)
    if proxied is None:
        return connection
    return getattr(proxied, "driver_connection", proxied)


def apply_timeout(connection: Any, timeout: Optional[int]) -> None:
    """Set the pyodbc query timeout (seconds, 0 = none) on ``connection``."""
    if timeout is None:
        return
    driver_connection(connection).timeout = int(timeout)


def span_attributes(
    script: str,
    *,
    operation: str,
    purpose: Optional[str] = None,
    table: Optional[str] = None,
) -> Dict[str, Any]:
    """Build OpenTelemetry span attributes for a database call."""
    sanitized = (script or "").strip()
    if len(sanitized) > 4096:
        sanitized = f"{sanitized[:4093]}..."

    attributes: Dict[str, Any] = {
        "db.system": "mssql",
        "db.operation": operation,
    }
    if sanitized:
        attributes["db.statement"] = sanitized
        attributes["db.statement.length"] = len(sanitized)
    if purpose:
        attributes["tablesync.script.purpose"] = purpose
    if table:
        attributes["db.sql.table"] = table
    return attributes
