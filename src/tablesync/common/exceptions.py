from enum import Enum
from typing import Any, Dict, Optional

from tablesync.constants.sql import ScriptPurpose


class ErrorCode(Enum):
    """Standard error codes for tablesync operations.

    Codes are grouped by category so callers can branch on the failure
    class without matching on exception messages.

    Attributes:
        CONFIG_*: Configuration-related errors (1xxx)
        VALIDATION_*: Input validation errors (2xxx)
        CONNECTION_*: Network and connection errors (3xxx)
        EXECUTION_*: Script execution errors (4xxx)
        RESOURCE_*: Resource availability errors (5xxx)
        TRANSPORT_*: Bulk load errors (6xxx)
        OPERATION_*: High-level sync errors (8xxx)
    """
    # Configuration errors (1xxx)
    CONFIG_ERROR = "CONFIG_001"
    CONFIG_MISSING = "CONFIG_002"
    CONFIG_INVALID = "CONFIG_003"

    # Validation errors (2xxx)
    VALIDATION_ERROR = "VALIDATION_001"
    INVALID_ARGUMENT = "VALIDATION_002"
    EMPTY_DATASET = "VALIDATION_003"
    INVALID_IDENTIFIER = "VALIDATION_004"
    MISSING_PRIMARY_KEY = "VALIDATION_005"
    TABLE_MISMATCH = "VALIDATION_006"

    # Connection errors (3xxx)
    CONNECTION_ERROR = "CONNECTION_001"
    TIMEOUT_ERROR = "CONNECTION_003"

    # Execution errors (4xxx)
    EXECUTION_ERROR = "EXECUTION_001"
    QUERY_EXECUTION_ERROR = "EXECUTION_002"

    # Resource errors (5xxx)
    RESOURCE_NOT_FOUND = "RESOURCE_001"
    TABLE_NOT_FOUND = "RESOURCE_002"

    # Transport errors (6xxx)
    TRANSPORT_ERROR = "TRANSPORT_001"

    # Operation errors (8xxx)
    OPERATION_ERROR = "OPERATION_001"
    CANCELLED = "OPERATION_002"


class SyncError(Exception):
    """Base exception for all tablesync errors.

    Attributes:
        message: Error message
        error_code: Error code from ErrorCode enum
        details: Additional error details
        cause: Optional underlying exception
        is_retryable: Whether the error is transient and can be retried
    """

    default_code: ErrorCode = ErrorCode.OPERATION_ERROR

    def __init__(
        self,
        message: str,
        error_code: Optional[ErrorCode] = None,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[BaseException] = None,
        is_retryable: bool = False
    ):
        """Initialize tablesync error.

        Args:
            message: Error message
            error_code: Error code from ErrorCode enum, defaults to the class code
            details: Additional error details
            cause: Optional underlying exception
            is_retryable: Whether error is transient
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.default_code
        self.details = details or {}
        self.cause = cause
        self.is_retryable = is_retryable

        # Lazy import to avoid circular dependency
        from tablesync.logging import get_logger
        logger = get_logger(__name__)
        logger.error(
            message,
            extra={
                "error_code": self.error_code.value,
                "error_type": self.__class__.__name__,
                "details": self.details,
                "is_retryable": is_retryable,
            },
            exc_info=cause is not None and cause.__traceback__ is not None,
        )

    def __str__(self) -> str:
        """String representation of the error."""
        msg = f"[{self.error_code.value}] {self.message}"
        if self.cause:
            msg = f"{msg} (caused by: {type(self.cause).__name__}: {str(self.cause)})"
        return msg

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for serialization."""
        return {
            "type": self.__class__.__name__,
            "message": self.message,
            "error_code": self.error_code.value,
            "error_name": self.error_code.name,
            "details": self.details,
            "is_retryable": self.is_retryable
        }

    @classmethod
    def from_error_code(
        cls,
        error_code: ErrorCode,
        message: str,
        **kwargs
    ) -> "SyncError":
        """Create exception from error code.

        Args:
            error_code: Error code
            message: Error message
            **kwargs: Additional arguments for SyncError

        Returns:
            SyncError instance
        """
        if error_code == ErrorCode.TIMEOUT_ERROR:
            kwargs.setdefault('is_retryable', True)

        return cls(message=message, error_code=error_code, **kwargs)


class ConfigurationError(SyncError):
    """Invalid input detected before any server interaction."""

    default_code = ErrorCode.CONFIG_ERROR


class MetadataError(SyncError):
    """Table metadata or a connection could not be obtained."""

    default_code = ErrorCode.CONFIG_MISSING


class TransportError(SyncError):
    """Bulk load failed mid-stream.

    Never retried automatically; ``rows_loaded`` reports how far the load got
    when known.
    """

    default_code = ErrorCode.TRANSPORT_ERROR

    @property
    def rows_loaded(self) -> Optional[int]:
        return self.details.get("rows_loaded")


class SyncTimeoutError(TransportError):
    """Bulk load exceeded its timeout."""

    default_code = ErrorCode.TIMEOUT_ERROR


class SyncCancelledError(TransportError):
    """Bulk load observed a cancellation request."""

    default_code = ErrorCode.CANCELLED


class ScriptExecutionError(SyncError):
    """A generated script failed at the server.

    ``purpose`` is one of create_staging, merge, cleanup or identity.
    """

    default_code = ErrorCode.QUERY_EXECUTION_ERROR

    @property
    def purpose(self) -> Optional[str]:
        return self.details.get("purpose")


# Helper functions for common error scenarios
def configuration_error(
    message: str,
    config_key: Optional[str] = None,
    error_code: ErrorCode = ErrorCode.CONFIG_ERROR,
    **kwargs
) -> ConfigurationError:
    """Create a configuration error.

    Args:
        message: Error message
        config_key: Configuration key or field that caused the error
        error_code: Specific configuration or validation code
        **kwargs: Additional error details

    Returns:
        ConfigurationError with the given code
    """
    details = kwargs.pop('details', None) or {}
    if config_key:
        details["config_key"] = config_key

    return ConfigurationError(
        message=message,
        error_code=error_code,
        details=details,
        **kwargs
    )


def invalid_identifier_error(identifier: str, identifier_type: str, reason: str) -> ConfigurationError:
    """Create an error for an identifier that failed validation."""
    return ConfigurationError(
        message=f"{reason}: {identifier_type} name {identifier!r}",
        error_code=ErrorCode.INVALID_IDENTIFIER,
        details={"identifier": identifier, "identifier_type": identifier_type},
    )


def metadata_error(
    message: str,
    entity: Optional[str] = None,
    error_code: ErrorCode = ErrorCode.CONFIG_MISSING,
    **kwargs
) -> MetadataError:
    """Create a metadata resolution error.

    Args:
        message: Error message
        entity: Entity or table that could not be resolved
        error_code: CONFIG_MISSING, TABLE_NOT_FOUND or CONNECTION_ERROR
        **kwargs: Additional error details

    Returns:
        MetadataError with the given code
    """
    details = kwargs.pop('details', None) or {}
    if entity:
        details["entity"] = entity

    return MetadataError(
        message=message,
        error_code=error_code,
        details=details,
        **kwargs
    )


def transport_error(
    message: str,
    destination: str,
    rows_loaded: Optional[int] = None,
    cause: Optional[BaseException] = None,
) -> TransportError:
    """Create a bulk load error.

    Driver timeouts (SQLSTATE HYT00/HYT01) become SyncTimeoutError.

    Args:
        message: Error message
        destination: Table the rows were being loaded into
        rows_loaded: Rows committed before the failure, if known
        cause: Underlying driver exception

    Returns:
        TransportError or SyncTimeoutError
    """
    details: Dict[str, Any] = {"destination": destination, "purpose": ScriptPurpose.LOAD.value}
    if rows_loaded is not None:
        details["rows_loaded"] = rows_loaded

    error_cls = SyncTimeoutError if is_timeout(cause) else TransportError
    return error_cls(message=message, details=details, cause=cause)


def script_execution_error(
    script: str,
    purpose: str,
    cause: Optional[BaseException] = None,
) -> ScriptExecutionError:
    """Create a script execution error.

    Args:
        script: Script that failed (truncated to 500 chars in details)
        purpose: Why the script was run (create_staging, merge, cleanup, identity)
        cause: Underlying driver exception

    Returns:
        ScriptExecutionError with QUERY_EXECUTION_ERROR or TIMEOUT_ERROR code
    """
    timed_out = is_timeout(cause)
    return ScriptExecutionError(
        message=f"{purpose} script {'timed out' if timed_out else 'failed'}",
        error_code=ErrorCode.TIMEOUT_ERROR if timed_out else ErrorCode.QUERY_EXECUTION_ERROR,
        details={
            "purpose": purpose,
            "script": script[:500] if len(script) > 500 else script,
        },
        cause=cause,
    )


_TIMEOUT_SQLSTATES = ("HYT00", "HYT01")


def is_timeout(exc: Optional[BaseException]) -> bool:
    """Return True when a driver exception reports a query or login timeout.

    pyodbc puts the SQLSTATE in ``args[0]``; SQLAlchemy wraps the driver
    error and exposes it as ``orig``.
    """
    if exc is None:
        return False
    if isinstance(exc, TimeoutError):
        return True
    orig = getattr(exc, "orig", None)
    if orig is not None and orig is not exc:
        return is_timeout(orig)
    args = getattr(exc, "args", ())
    return bool(args) and isinstance(args[0], str) and args[0] in _TIMEOUT_SQLSTATES
