from typing import Optional

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from tablesync.constants.sql import DEFAULT_STAGING_SCHEMA, DEFAULT_TIMEOUT_SECONDS


class SyncSettings(BaseSettings):
    """Runtime configuration for tablesync.

    Values come from ``TABLESYNC_*`` environment variables or a ``.env``
    file, e.g. ``TABLESYNC_STAGING_SCHEMA=etl_tmp``.
    """

    model_config = SettingsConfigDict(
        env_prefix="TABLESYNC_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        env_nested_delimiter="__"
    )

    odbc_connection_string: Optional[SecretStr] = Field(
        default=None,
        description="ODBC connection string for the target SQL Server database"
    )
    dialect: str = Field(
        default="mssql",
        description="SQL dialect used to render scripts"
    )
    staging_schema: str = Field(
        default=DEFAULT_STAGING_SCHEMA,
        min_length=1,
        max_length=128,
        description="Schema that holds staging tables"
    )
    batch_size: int = Field(
        default=0,
        ge=0,
        description="Rows per bulk-load batch; 0 sends everything in a single batch"
    )
    timeout_seconds: int = Field(
        default=DEFAULT_TIMEOUT_SECONDS,
        ge=0,
        description="Timeout for scripts and bulk loads; 0 disables the timeout"
    )

    sql_pool_size: int = Field(default=5, ge=1, le=100)
    sql_max_overflow: int = Field(default=10, ge=0, le=100)
    sql_pool_timeout: int = Field(default=30, ge=1)

    connect_retries: int = Field(
        default=3,
        ge=0,
        le=10,
        description="Retry attempts when opening a connection fails"
    )
    connect_retry_delay_seconds: float = Field(
        default=1.0,
        ge=0.0,
        le=60.0,
        description="Initial delay between connection attempts"
    )

    log_level: str = Field(default="INFO")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Invalid log level '{v}'")
        return level

    def get_odbc_string(self) -> Optional[str]:
        if self.odbc_connection_string is None:
            return None
        return self.odbc_connection_string.get_secret_value()
