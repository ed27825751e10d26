"""SQL script and sync lifecycle constants.

These enums are shared by the operations, the script builders, the engines
and the orchestrator, so they live at the bottom of the package and import
nothing else from it.
"""

from enum import Enum


class ScriptType(str, Enum):
    """Kinds of scripts the builders know how to emit.

    Each value maps to exactly one ``_build_*`` method on a script builder.
    """

    CREATE_STAGING_TABLE = "CREATE_STAGING_TABLE"
    ADD_PRIMARY_KEY = "ADD_PRIMARY_KEY"
    MERGE = "MERGE"
    DROP_TABLE = "DROP_TABLE"
    READ_IDENTITY = "READ_IDENTITY"
    BULK_INSERT = "BULK_INSERT"


class ScriptPurpose(str, Enum):
    """Why a script is being executed.

    Attached to script failures so a caller can tell a harmless cleanup
    failure apart from a data-affecting merge failure.
    """

    CREATE_STAGING = "create_staging"
    MERGE = "merge"
    CLEANUP = "cleanup"
    IDENTITY = "identity"
    LOAD = "load"


class SyncState(str, Enum):
    """Lifecycle of a single sync call.

    Transitions are linear: IDLE -> STAGING_CREATED -> LOADED -> MERGED ->
    CLEANED. FAILED is reachable from any non-terminal state.
    """

    IDLE = "IDLE"
    STAGING_CREATED = "STAGING_CREATED"
    LOADED = "LOADED"
    MERGED = "MERGED"
    CLEANED = "CLEANED"
    FAILED = "FAILED"

    @property
    def is_terminal(self) -> bool:
        return self in (SyncState.CLEANED, SyncState.FAILED)


class SyncMode(str, Enum):
    """Top-level sync flavour."""

    MERGE = "merge"
    INSERT = "insert"


DEFAULT_STAGING_SCHEMA = "tmp"
DEFAULT_TIMEOUT_SECONDS = 30
MAX_IDENTIFIER_LENGTH = 128
MAX_NVARCHAR_LENGTH = 4000
DEFAULT_DECIMAL_PRECISION = 38
DEFAULT_DECIMAL_SCALE = 18
