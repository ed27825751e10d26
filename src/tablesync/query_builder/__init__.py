"""Script builders for staging, merge and key scripts.

Builders translate operations into dialect-specific SQL but never execute
it; that is handled by ``tablesync.engines``.

Example:
    >>> from tablesync.query_builder import build_merge_script
    >>> print(build_merge_script(users_schema, "tmp.Users"))
    MERGE [dbo].[Users] AS [Target]
    USING [tmp].[Users] AS [Source]
    ON ([Source].[id] = [Target].[id])
    WHEN NOT MATCHED BY TARGET THEN
        INSERT ([name], [active])
        VALUES ([Source].[name], [Source].[active])
    WHEN MATCHED THEN UPDATE SET
        [Target].[name] = [Source].[name],
        [Target].[active] = [Source].[active];

Security:
    All builders inherit from BaseScriptBuilder, which validates and
    bracket-quotes every schema, table, column and constraint name.
"""

from tablesync.query_builder.base import BaseScriptBuilder
from tablesync.query_builder.factory import get_script_builder
from tablesync.query_builder.scripts import (
    build_create_staging_script,
    build_drop_script,
    build_identity_query,
    build_key_script,
    build_merge_script,
)
from tablesync.query_builder.sqlserver import SqlServerScriptBuilder
from tablesync.query_builder.type_mapper import map_type

__all__ = [
    "BaseScriptBuilder",
    "SqlServerScriptBuilder",
    "get_script_builder",
    "map_type",
    "build_create_staging_script",
    "build_merge_script",
    "build_key_script",
    "build_drop_script",
    "build_identity_query",
]
