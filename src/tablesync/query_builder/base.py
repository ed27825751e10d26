import re
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, List, Optional, Tuple

from tablesync.common.exceptions import invalid_identifier_error
from tablesync.constants.sql import DEFAULT_STAGING_SCHEMA, MAX_IDENTIFIER_LENGTH, ScriptType
from tablesync.operations import (
    AddPrimaryKey,
    BaseOperation,
    BulkInsert,
    CreateStagingTable,
    DropTable,
    MergeTable,
    ReadIdentity,
)
from tablesync.types.schema import ColumnDescriptor

if TYPE_CHECKING:
    from tablesync.settings import SyncSettings


_CONTROL_CHARACTERS = re.compile(r"[\x00-\x1f\x7f]")


class BaseScriptBuilder(ABC):
    """Base interface for script builders with SQL injection protection.

    Script builders turn operations into dialect-specific script text. They
    do NOT execute anything; that belongs to the engines.

    Every identifier that reaches a script passes through
    ``quote_identifier``, which validates it and wraps it in delimiters.
    Subclasses never interpolate a raw name.

    Security Principles:
        1. **Delimiting**: every name is bracketed and `]` is escaped as `]]`
        2. **Length Limits**: identifiers are capped at 128 characters
        3. **No Control Characters**: names cannot carry line breaks or NUL
    """

    def __init__(self, settings: Optional['SyncSettings'] = None):
        """Initialize the builder.

        Args:
            settings: Optional settings; only ``staging_schema`` is read.
        """
        self.settings = settings
        self.staging_schema = settings.staging_schema if settings is not None else DEFAULT_STAGING_SCHEMA

    @abstractmethod
    def map_type(self, column: ColumnDescriptor) -> str:
        """Return the dialect column type for ``column``."""
        pass

    @abstractmethod
    def _build_create_staging_table(self, operation: CreateStagingTable) -> str:
        """Build the create-staging-table script.

        Args:
            operation: CreateStagingTable operation

        Returns:
            Script creating the staging schema and table plus its key
        """
        pass

    @abstractmethod
    def _build_add_primary_key(self, operation: AddPrimaryKey) -> str:
        """Build ALTER TABLE ... ADD PRIMARY KEY.

        Args:
            operation: AddPrimaryKey operation

        Returns:
            Script, or an empty string when the schema has no key
        """
        pass

    @abstractmethod
    def _build_merge(self, operation: MergeTable) -> str:
        """Build MERGE statement.

        Args:
            operation: MergeTable operation

        Returns:
            Single MERGE statement
        """
        pass

    @abstractmethod
    def _build_drop_table(self, operation: DropTable) -> str:
        """Build DROP TABLE statement."""
        pass

    @abstractmethod
    def _build_read_identity(self, operation: ReadIdentity) -> str:
        """Build the identity-state query."""
        pass

    @abstractmethod
    def _build_bulk_insert(self, operation: BulkInsert) -> str:
        """Build the parameterised INSERT used by the bulk loader."""
        pass

    def build_script(self, operation: BaseOperation) -> str:
        """Build script text from operation.

        Args:
            operation: Operation to render

        Returns:
            Dialect-specific script

        Raises:
            NotImplementedError: If the operation type is not supported
            ConfigurationError: If an identifier or the schema is invalid
        """
        operation_mapping = {
            ScriptType.CREATE_STAGING_TABLE: self._build_create_staging_table,
            ScriptType.ADD_PRIMARY_KEY: self._build_add_primary_key,
            ScriptType.MERGE: self._build_merge,
            ScriptType.DROP_TABLE: self._build_drop_table,
            ScriptType.READ_IDENTITY: self._build_read_identity,
            ScriptType.BULK_INSERT: self._build_bulk_insert,
        }

        builder_method = operation_mapping.get(operation.operation_type)
        if builder_method:
            return builder_method(operation)

        raise NotImplementedError(
            f"Operation type {operation.operation_type} not supported by {self.__class__.__name__}"
        )

    def quote_identifier(self, identifier: str, identifier_type: str = "identifier") -> str:
        """Quote an identifier as a SQL Server delimited name.

        Any name SQL Server accepts between brackets is allowed, including
        spaces and non-ASCII letters. An already-delimited name such as
        ``[Order Date]`` is unwrapped first so that it is not quoted twice,
        and an embedded ``]`` is escaped as ``]]``.

        Args:
            identifier: Identifier to quote
            identifier_type: Type of identifier for error messages

        Returns:
            Quoted identifier
        """
        identifier = self.unquote_identifier(identifier)
        self._validate_identifier(identifier, identifier_type)
        escaped = identifier.replace("]", "]]")
        return f"[{escaped}]"

    @staticmethod
    def unquote_identifier(identifier: str) -> str:
        """Remove surrounding brackets and unescape ``]]``, if delimited."""
        if len(identifier) >= 2 and identifier.startswith("[") and identifier.endswith("]"):
            return identifier[1:-1].replace("]]", "]")
        return identifier

    def quote_string(self, value: str) -> str:
        """Quote a string value as an N'' literal."""
        escaped = value.replace("'", "''")
        return f"N'{escaped}'"

    def qualified_name(self, schema_name: Optional[str], table_name: str) -> str:
        """Build ``[schema].[table]``, or ``[table]`` without a schema."""
        quoted_table = self.quote_identifier(table_name, "table")
        if schema_name:
            return f"{self.quote_identifier(schema_name, 'schema')}.{quoted_table}"
        return quoted_table

    def table_reference(self, name: str) -> str:
        """Quote a bare or dotted table name such as ``tmp.Users``."""
        schema_name, table_name = self.split_table_name(name)
        return self.qualified_name(schema_name, table_name)

    @staticmethod
    def split_table_name(name: str) -> Tuple[Optional[str], str]:
        """Split ``schema.table`` into unescaped parts.

        Dots inside brackets belong to the name, so ``[my.schema].[Users]``
        splits into ``my.schema`` and ``Users``.

        Raises:
            ConfigurationError: If the name has more than two parts or an
                unterminated bracket
        """
        parts = []
        current = []
        delimited = False
        i = 0
        while i < len(name):
            char = name[i]
            if delimited:
                if char == "]":
                    if name[i + 1:i + 2] == "]":
                        current.append("]")
                        i += 2
                        continue
                    delimited = False
                else:
                    current.append(char)
            elif char == "[":
                delimited = True
            elif char == ".":
                parts.append("".join(current).strip())
                current = []
            else:
                current.append(char)
            i += 1

        if delimited:
            raise invalid_identifier_error(name, "table", "Unterminated bracket")
        parts.append("".join(current).strip())

        if len(parts) == 1:
            return None, parts[0]
        if len(parts) > 2:
            raise invalid_identifier_error(name, "table", "Too many name parts")
        return parts[0], parts[1]

    def format_column_list(self, columns: List[str], prefix: Optional[str] = None) -> str:
        """Format a list of columns for SQL.

        Args:
            columns: List of column names
            prefix: Optional table alias prepended to every column

        Returns:
            Comma-separated list of quoted columns
        """
        if prefix:
            return ", ".join(f"{prefix}.{self.quote_identifier(col, 'column')}" for col in columns)
        return ", ".join(self.quote_identifier(col, 'column') for col in columns)

    def _validate_identifier(self, identifier: str, identifier_type: str = "identifier") -> None:
        """Validate an unescaped identifier before it is delimited.

        Args:
            identifier: The identifier to validate
            identifier_type: Type of identifier for error messages

        Raises:
            ConfigurationError: If identifier is invalid
        """
        if not identifier or not identifier.strip():
            raise invalid_identifier_error(identifier, identifier_type, "Empty name")

        if len(identifier) > MAX_IDENTIFIER_LENGTH:
            raise invalid_identifier_error(identifier, identifier_type, "Name too long")

        if _CONTROL_CHARACTERS.search(identifier):
            raise invalid_identifier_error(identifier, identifier_type, "Control character in name")
