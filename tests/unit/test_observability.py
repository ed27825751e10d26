"""Unit tests for sync scopes and instrumentation decorators."""

from unittest.mock import MagicMock, patch

import pytest

from tablesync.logging.filters import sync_id_var, target_table_var
from tablesync.observability import SyncContext, sync_scope
from tablesync.utils.decorators import retry_with_backoff, traced


class TestSyncScope:
    """Test logging context handling around a sync."""

    def test_context_is_set_inside_and_cleared_after(self):
        ctx = SyncContext.generate(target_table="dbo.Users", mode="merge")

        with sync_scope(ctx):
            assert sync_id_var.get() == ctx.sync_id
            assert target_table_var.get() == "dbo.Users"

        assert sync_id_var.get() is None
        assert target_table_var.get() is None

    def test_errors_propagate_and_context_is_cleared(self):
        ctx = SyncContext.generate(target_table="dbo.Users", mode="merge")

        with pytest.raises(ValueError):
            with sync_scope(ctx):
                raise ValueError("boom")

        assert sync_id_var.get() is None

    def test_telemetry_dict(self):
        ctx = SyncContext(sync_id="s-1", target_table="dbo.Users", mode="insert",
                          attributes={"rows": 3, "skipped": None})

        assert ctx.to_telemetry_dict() == {
            "sync_id": "s-1",
            "target_table": "dbo.Users",
            "mode": "insert",
            "ctx.rows": "3",
        }

    def test_generated_ids_are_unique(self):
        assert SyncContext.generate(target_table="t", mode="merge").sync_id != \
            SyncContext.generate(target_table="t", mode="merge").sync_id


class TestTraced:
    """Test the span decorator."""

    def test_return_value_and_attributes(self):
        span = MagicMock()
        tracer = MagicMock()
        tracer.start_as_current_span.return_value.__enter__.return_value = span

        @traced("unit.op", attribute_getter=lambda x: {"x": x, "skip": None})
        def double(x):
            return x * 2

        with patch("tablesync.utils.decorators.get_tracer", return_value=tracer):
            assert double(4) == 8

        assert tracer.start_as_current_span.call_args.args[0] == "unit.op"
        span.set_attribute.assert_called_once_with("x", 4)

    def test_exceptions_are_recorded_and_reraised(self):
        span = MagicMock()
        tracer = MagicMock()
        tracer.start_as_current_span.return_value.__enter__.return_value = span

        @traced()
        def fail():
            raise RuntimeError("bad")

        with patch("tablesync.utils.decorators.get_tracer", return_value=tracer):
            with pytest.raises(RuntimeError):
                fail()

        span.record_exception.assert_called_once()


class TestRetryWithBackoff:
    """Test retry behaviour."""

    def test_retries_matching_errors(self):
        func = MagicMock(side_effect=[ConnectionError("down"), "ok"])
        func.__name__ = "connect"

        with patch("tablesync.utils.decorators.time.sleep") as sleep:
            assert retry_with_backoff(max_retries=2, initial_delay=0.5, retry_on=(ConnectionError,))(func)() == "ok"

        sleep.assert_called_once_with(0.5)

    def test_gives_up_after_max_retries(self):
        func = MagicMock(side_effect=ConnectionError("down"))
        func.__name__ = "connect"

        with patch("tablesync.utils.decorators.time.sleep"):
            with pytest.raises(ConnectionError):
                retry_with_backoff(max_retries=2, retry_on=(ConnectionError,))(func)()

        assert func.call_count == 3

    def test_other_errors_are_not_retried(self):
        func = MagicMock(side_effect=ValueError("bad input"))
        func.__name__ = "connect"

        with pytest.raises(ValueError):
            retry_with_backoff(retry_on=(ConnectionError,))(func)()

        assert func.call_count == 1
