"""Unit tests for the SQLAlchemy connection provider."""

from unittest.mock import MagicMock, patch

import pytest

pytest.importorskip("pyodbc")

from sqlalchemy.exc import OperationalError  # noqa: E402

from tablesync.common.exceptions import ConfigurationError, ErrorCode, MetadataError  # noqa: E402
from tablesync.engines.connection import SqlAlchemyConnectionProvider  # noqa: E402
from tablesync.settings import SyncSettings  # noqa: E402


@pytest.fixture
def settings():
    return SyncSettings(connect_retries=2, connect_retry_delay_seconds=0)


def _operational_error():
    return OperationalError("SELECT 1", {}, Exception("08S01", "Communication link failure"))


class TestSqlAlchemyConnectionProvider:
    """Test engine creation and connection handling."""

    def test_missing_connection_string(self, settings):
        provider = SqlAlchemyConnectionProvider(settings)

        with pytest.raises(ConfigurationError) as exc_info:
            provider.engine

        assert exc_info.value.error_code == ErrorCode.CONFIG_MISSING
        assert exc_info.value.details["config_key"] == "odbc_connection_string"

    def test_engine_url_and_pool(self):
        settings = SyncSettings(odbc_connection_string="Driver={ODBC Driver 18 for SQL Server};Server=db", sql_pool_size=3)

        with patch("tablesync.engines.connection.create_engine") as create_engine:
            SqlAlchemyConnectionProvider(settings).engine

        url = create_engine.call_args.args[0]
        kwargs = create_engine.call_args.kwargs
        assert url.startswith("mssql+pyodbc:///?odbc_connect=Driver%3D%7BODBC+Driver+18")
        assert kwargs["pool_size"] == 3
        assert kwargs["fast_executemany"] is True
        assert kwargs["connect_args"] == {"autocommit": True}

    def test_open_connection_closes_afterwards(self, settings):
        engine = MagicMock()
        provider = SqlAlchemyConnectionProvider(settings, engine=engine)

        with provider.open_connection() as conn:
            assert conn is engine.connect.return_value

        conn.close.assert_called_once()

    def test_connection_is_closed_on_error(self, settings):
        engine = MagicMock()
        provider = SqlAlchemyConnectionProvider(settings, engine=engine)

        with pytest.raises(RuntimeError):
            with provider.open_connection():
                raise RuntimeError("boom")

        engine.connect.return_value.close.assert_called_once()

    def test_transient_failures_are_retried(self, settings):
        engine = MagicMock()
        connection = MagicMock()
        engine.connect.side_effect = [_operational_error(), connection]
        engine.connect.__name__ = "connect"

        with patch("tablesync.utils.decorators.time.sleep"):
            with SqlAlchemyConnectionProvider(settings, engine=engine).open_connection() as conn:
                assert conn is connection

        assert engine.connect.call_count == 2

    def test_persistent_failure_becomes_metadata_error(self, settings):
        engine = MagicMock()
        engine.connect.side_effect = _operational_error()
        engine.connect.__name__ = "connect"

        with patch("tablesync.utils.decorators.time.sleep"):
            with pytest.raises(MetadataError) as exc_info:
                with SqlAlchemyConnectionProvider(settings, engine=engine).open_connection():
                    pass

        assert exc_info.value.error_code == ErrorCode.CONNECTION_ERROR
        assert engine.connect.call_count == 3

    def test_dispose(self, settings):
        engine = MagicMock()
        provider = SqlAlchemyConnectionProvider(settings, engine=engine)

        provider.dispose()

        engine.dispose.assert_called_once()
        assert provider._engine is None
