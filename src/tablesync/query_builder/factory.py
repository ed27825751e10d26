"""Script builder factory.

Creates a dialect builder configured from settings.
"""

from typing import TYPE_CHECKING, Dict, Optional, Type

from tablesync.common.exceptions import ErrorCode, configuration_error
from tablesync.query_builder.base import BaseScriptBuilder
from tablesync.query_builder.sqlserver import SqlServerScriptBuilder

if TYPE_CHECKING:
    from tablesync.settings import SyncSettings


_BUILDERS: Dict[str, Type[BaseScriptBuilder]] = {
    "mssql": SqlServerScriptBuilder,
    "sqlserver": SqlServerScriptBuilder,
}


def get_script_builder(
    settings: Optional['SyncSettings'] = None,
    dialect: Optional[str] = None,
) -> BaseScriptBuilder:
    """Create a script builder for ``dialect``.

    Args:
        settings: Settings to configure the builder with; global settings when None
        dialect: Dialect name, defaults to ``settings.dialect``

    Returns:
        Configured builder

    Raises:
        ConfigurationError: If the dialect is unknown
    """
    if settings is None:
        from tablesync.settings import get_settings
        settings = get_settings()

    name = (dialect or settings.dialect).lower()
    builder_cls = _BUILDERS.get(name)
    if builder_cls is None:
        raise configuration_error(
            f"Unsupported SQL dialect '{name}'. Supported: {', '.join(sorted(_BUILDERS))}",
            config_key="dialect",
            error_code=ErrorCode.CONFIG_INVALID,
        )
    return builder_cls(settings)
