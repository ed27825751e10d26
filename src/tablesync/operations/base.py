"""Base operation definitions.

Operations are data structures that describe which script should be
produced, independent of the SQL dialect that renders it. Builders turn
them into script text; engines execute that text.
"""

from typing import Optional

from pydantic import Field

from tablesync.constants.sql import ScriptType
from tablesync.types.base import SyncBaseModel


class BaseOperation(SyncBaseModel):
    """Base class for all script operations.

    Attributes:
        operation_type: Kind of script to build
        description: Optional label used in logs and span names
    """
    operation_type: ScriptType
    description: Optional[str] = Field(default=None, description="Optional label for logging/tracing")
