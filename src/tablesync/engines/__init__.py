"""Default collaborator implementations for SQL Server.

``SqlAlchemyConnectionProvider`` imports pyodbc, which needs the system
ODBC driver manager; import it from ``tablesync.engines.connection`` only
when a live database is used.
"""

from tablesync.engines.bulk_loader import PyodbcBulkLoader
from tablesync.engines.executor import SqlAlchemyScriptExecutor

__all__ = [
    "PyodbcBulkLoader",
    "SqlAlchemyScriptExecutor",
]
