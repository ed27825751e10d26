"""Shared observability context utilities."""

from __future__ import annotations

import uuid
from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional

from opentelemetry.trace import Span, Status, StatusCode
from pydantic import Field

from tablesync.logging import get_logger
from tablesync.logging.filters import clear_sync_context, set_sync_context
from tablesync.telemetry import get_tracer
from tablesync.types.base import SyncBaseModel


class SyncContext(SyncBaseModel):
    """Observability context propagated across one sync call."""

    sync_id: str
    target_table: str
    mode: str
    attributes: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def generate(cls, **kwargs: Any) -> "SyncContext":
        """Generate a new context with a unique sync id."""
        return cls(sync_id=str(uuid.uuid4()), **kwargs)

    def to_telemetry_dict(self) -> Dict[str, str]:
        payload: Dict[str, str] = {
            "sync_id": self.sync_id,
            "target_table": self.target_table,
            "mode": self.mode,
        }
        for key, value in self.attributes.items():
            if value is not None:
                payload[f"ctx.{key}"] = str(value)
        return payload


@contextmanager
def sync_scope(ctx: SyncContext, *, operation: Optional[str] = None) -> Iterator[Span]:
    """Apply logging + tracing scope for one sync call."""
    telemetry = ctx.to_telemetry_dict()
    set_sync_context(sync_id=ctx.sync_id, target_table=ctx.target_table)

    tracer = get_tracer("tablesync")
    span_name = operation or f"tablesync.{ctx.mode}"

    with tracer.start_as_current_span(span_name) as span:
        for key, value in telemetry.items():
            span.set_attribute(f"tablesync.{key}", value)

        try:
            yield span
        except Exception as exc:
            span.record_exception(exc)
            span.set_status(Status(StatusCode.ERROR))
            get_logger(__name__).error(
                "Sync failed",
                extra={**telemetry, "operation.name": span_name},
                exc_info=True,
            )
            raise
        finally:
            clear_sync_context()
