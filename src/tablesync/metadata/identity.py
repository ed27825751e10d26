"""Reading a table's identity (auto-increment) state from the server."""

from typing import Any, Optional

from tablesync.constants.sql import ScriptPurpose
from tablesync.logging import get_logger
from tablesync.operations import ReadIdentity
from tablesync.protocols.providers import ScriptExecutor
from tablesync.query_builder.base import BaseScriptBuilder
from tablesync.types.schema import AutoIncrementState

logger = get_logger(__name__)


def read_identity_state(
    connection: Any,
    executor: ScriptExecutor,
    builder: BaseScriptBuilder,
    table_name: str,
    timeout: Optional[int] = None,
) -> Optional[AutoIncrementState]:
    """Return the identity state of ``table_name``, or None without one.

    IDENT_CURRENT returns NULL for tables without an identity column and for
    tables that do not exist.
    """
    row = executor.fetch_one(
        connection,
        builder.build_script(ReadIdentity(table_name=table_name)),
        timeout=timeout,
        purpose=ScriptPurpose.IDENTITY.value,
    )
    if not row or row.get("CurrentValue") is None:
        logger.warning("No identity state reported", extra={"table": table_name})
        return None

    state = AutoIncrementState(
        current=int(row["CurrentValue"]),
        seed=int(row.get("SeedValue") or 1),
        increment=int(row.get("IncrementValue") or 1),
    )
    logger.info(
        "Identity state read",
        extra={"table": table_name, "identity.current": state.current, "identity.next": state.next_value},
    )
    return state
