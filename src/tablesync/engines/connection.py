"""SQLAlchemy connection provider for SQL Server over ODBC."""

from contextlib import contextmanager
from typing import Iterator, Optional
from urllib import parse

import pyodbc
from sqlalchemy import create_engine
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import DBAPIError, InterfaceError, OperationalError
from sqlalchemy.pool import QueuePool

from tablesync.common.exceptions import ErrorCode, configuration_error, metadata_error
from tablesync.logging import get_logger
from tablesync.settings import SyncSettings, get_settings
from tablesync.utils.decorators import retry

logger = get_logger(__name__)


class SqlAlchemyConnectionProvider:
    """Connection provider backed by a pooled SQLAlchemy engine.

    The engine is created lazily from ``settings.odbc_connection_string``
    unless one is injected.

    Example:
        >>> provider = SqlAlchemyConnectionProvider()
        >>> with provider.open_connection() as conn:
        ...     conn.exec_driver_sql("SELECT 1")
    """

    def __init__(self, settings: Optional[SyncSettings] = None, engine: Optional[Engine] = None):
        self.settings = settings or get_settings()
        self._engine: Optional[Engine] = engine

    @property
    def engine(self) -> Engine:
        """Get or create SQLAlchemy engine with lazy initialization."""
        if self._engine is None:
            self._engine = self._create_engine()
        return self._engine

    def _create_engine(self) -> Engine:
        """Create SQLAlchemy engine with connection pooling.

        Raises:
            ConfigurationError: If no ODBC connection string is configured
            MetadataError: If engine creation fails
        """
        odbc_str = self.settings.get_odbc_string()
        if not odbc_str:
            raise configuration_error(
                "No ODBC connection string configured",
                config_key="odbc_connection_string",
                error_code=ErrorCode.CONFIG_MISSING,
            )

        try:
            # SQLAlchemy owns pooling
            pyodbc.pooling = False

            params = parse.quote_plus(odbc_str)
            engine = create_engine(
                f"mssql+pyodbc:///?odbc_connect={params}",
                poolclass=QueuePool,
                pool_pre_ping=True,
                pool_size=self.settings.sql_pool_size,
                max_overflow=self.settings.sql_max_overflow,
                pool_timeout=self.settings.sql_pool_timeout,
                connect_args={
                    "autocommit": True,
                },
                fast_executemany=True,
            )
            logger.info("Created SQL Server engine")
            return engine

        except Exception as e:
            raise metadata_error(
                "Failed to create SQL Server engine",
                error_code=ErrorCode.CONNECTION_ERROR,
                cause=e,
            ) from e

    def _connect(self) -> Connection:
        connect = retry(
            max_retries=self.settings.connect_retries,
            initial_delay=self.settings.connect_retry_delay_seconds,
            exponential_base=2,
            retry_on=(OperationalError, InterfaceError),
        )(self.engine.connect)
        try:
            return connect()
        except DBAPIError as e:
            raise metadata_error(
                "Failed to open SQL Server connection",
                error_code=ErrorCode.CONNECTION_ERROR,
                cause=e,
            ) from e

    @contextmanager
    def open_connection(self) -> Iterator[Connection]:
        """Yield an open connection from the pool and close it afterwards.

        Raises:
            MetadataError: If the connection cannot be opened
        """
        conn = self._connect()
        try:
            yield conn
        finally:
            conn.close()

    def dispose(self) -> None:
        """Close every pooled connection."""
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None

