"""Stage / merge / cleanup orchestration.

``BulkSynchronizer`` moves a Dataset into its target table:

1. validate the dataset and render every script (no server contact yet)
2. read the target's identity state and rebase generated identity values
3. create the staging table
4. bulk load the rows into it
5. merge staging into the target
6. drop the staging table

Once staging creation has been attempted, any failure still drops the
staging table before the original error is re-raised. Insert-only syncs
skip 3, 5 and 6 and load straight into the target.
"""

import time
from contextlib import ExitStack
from dataclasses import dataclass
from threading import Event
from typing import Any, List, Optional, Sequence, Tuple

from tablesync.common.exceptions import (
    ErrorCode,
    SyncError,
    configuration_error,
    metadata_error,
    script_execution_error,
    transport_error,
)
from tablesync.constants.sql import ScriptPurpose, SyncMode, SyncState
from tablesync.logging import get_logger
from tablesync.metadata.identity import read_identity_state
from tablesync.metadata.registry import get_registry
from tablesync.observability.context import SyncContext, sync_scope
from tablesync.operations import BulkInsert, CreateStagingTable, DropTable, MergeTable
from tablesync.protocols.providers import (
    BulkLoader,
    ConnectionProvider,
    MetadataResolver,
    ProgressCallback,
    ScriptExecutor,
)
from tablesync.query_builder.base import BaseScriptBuilder
from tablesync.query_builder.factory import get_script_builder
from tablesync.settings import SyncSettings, get_settings
from tablesync.types.dataset import Dataset, MergePolicy, SyncResult
from tablesync.types.schema import AutoIncrementState, TableSchema

logger = get_logger(__name__)


class SyncRun:
    """State of one sync call; transitions are linear and logged."""

    _ORDER = [SyncState.IDLE, SyncState.STAGING_CREATED, SyncState.LOADED, SyncState.MERGED, SyncState.CLEANED]

    def __init__(self, target_table: str, mode: SyncMode):
        self.target_table = target_table
        self.mode = mode
        self.state = SyncState.IDLE
        self.history: List[SyncState] = [SyncState.IDLE]

    def advance(self, new_state: SyncState) -> None:
        if self.state.is_terminal:
            raise RuntimeError(f"Sync already finished in state {self.state.value}")
        if self._ORDER.index(new_state) <= self._ORDER.index(self.state):
            raise RuntimeError(f"Illegal transition {self.state.value} -> {new_state.value}")
        self._set(new_state)

    def fail(self, error: BaseException) -> None:
        if self.state.is_terminal:
            return
        self._set(SyncState.FAILED, error_type=type(error).__name__)

    def _set(self, new_state: SyncState, **extra: Any) -> None:
        logger.info(
            "Sync state changed",
            extra={
                **extra,
                "sync.previous_state": self.state.value,
                "sync.state": new_state.value,
                "sync.mode": self.mode.value,
                "target": self.target_table,
            },
        )
        self.state = new_state
        self.history.append(new_state)


@dataclass(frozen=True)
class _SyncPlan:
    """Everything rendered during validation."""

    table_schema: TableSchema
    target: str
    load_columns: Tuple[str, ...]
    staging: Optional[str] = None
    create_script: Optional[str] = None
    merge_script: Optional[str] = None
    drop_script: Optional[str] = None
    cleanup_script: Optional[str] = None


class BulkSynchronizer:
    """Synchronizes datasets into SQL Server tables.

    Collaborators default to the SQLAlchemy/pyodbc implementations built
    from settings; pass your own to change transport or for testing.

    Example:
        >>> synchronizer = BulkSynchronizer()
        >>> result = synchronizer.bulk_merge(dataset, allow_delete=True)
        >>> result.state
        <SyncState.CLEANED: 'CLEANED'>
    """

    def __init__(
        self,
        connection_provider: Optional[ConnectionProvider] = None,
        executor: Optional[ScriptExecutor] = None,
        bulk_loader: Optional[BulkLoader] = None,
        builder: Optional[BaseScriptBuilder] = None,
        settings: Optional[SyncSettings] = None,
        resolver: Optional[MetadataResolver] = None,
    ):
        self.settings = settings or get_settings()
        self.builder = builder or get_script_builder(self.settings)

        if connection_provider is None:
            from tablesync.engines.connection import SqlAlchemyConnectionProvider
            connection_provider = SqlAlchemyConnectionProvider(self.settings)
        if executor is None:
            from tablesync.engines.executor import SqlAlchemyScriptExecutor
            executor = SqlAlchemyScriptExecutor()
        if bulk_loader is None:
            from tablesync.engines.bulk_loader import PyodbcBulkLoader
            bulk_loader = PyodbcBulkLoader(self.builder)

        self.connection_provider = connection_provider
        self.executor = executor
        self.bulk_loader = bulk_loader
        self.resolver = resolver

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    def bulk_merge(
        self,
        dataset: Dataset,
        *,
        entity: Any = None,
        resolver: Optional[MetadataResolver] = None,
        allow_insert: bool = True,
        allow_delete: bool = False,
        batch_size: Optional[int] = None,
        timeout: Optional[int] = None,
        on_progress: Optional[ProgressCallback] = None,
        cancel_event: Optional[Event] = None,
        staging_table_name: Optional[str] = None,
    ) -> SyncResult:
        """Stage ``dataset`` and merge it into its target table.

        Args:
            dataset: Rows to synchronize; must not be empty
            entity: Optional entity whose registered table must match the dataset
            resolver: Resolver for ``entity``; the default registry when None
            allow_insert: Insert source rows missing from the target
            allow_delete: Delete target rows missing from the source
            batch_size: Rows per bulk-load batch (0 = single batch)
            timeout: Seconds allowed per script and per load
            on_progress: Called with the running row count after each batch
            cancel_event: Set it to cancel the load at the next batch boundary
            staging_table_name: Override for the staging table name

        Returns:
            SyncResult in state CLEANED

        Raises:
            ConfigurationError: Invalid input, raised before any server contact
            MetadataError: Entity or connection could not be resolved
            TransportError: Bulk load failed, timed out or was cancelled
            ScriptExecutionError: A create, merge or cleanup script failed
        """
        policy = MergePolicy(allow_insert=allow_insert, allow_delete=allow_delete)
        plan = self._plan(dataset, SyncMode.MERGE, entity, resolver, policy, staging_table_name)
        return self._run(
            SyncMode.MERGE, dataset, plan,
            batch_size=batch_size, timeout=timeout,
            on_progress=on_progress, cancel_event=cancel_event,
        )

    def bulk_insert(
        self,
        dataset: Dataset,
        *,
        entity: Any = None,
        resolver: Optional[MetadataResolver] = None,
        batch_size: Optional[int] = None,
        timeout: Optional[int] = None,
        on_progress: Optional[ProgressCallback] = None,
        cancel_event: Optional[Event] = None,
    ) -> SyncResult:
        """Load ``dataset`` straight into its target table.

        Identity columns are left to the server. Works for keyless tables.
        """
        plan = self._plan(dataset, SyncMode.INSERT, entity, resolver, None, None)
        return self._run(
            SyncMode.INSERT, dataset, plan,
            batch_size=batch_size, timeout=timeout,
            on_progress=on_progress, cancel_event=cancel_event,
        )

    def refresh_auto_increment(self, table_schema: TableSchema, timeout: Optional[int] = None) -> TableSchema:
        """Return ``table_schema`` with identity columns rebased onto the server state.

        Schemas without identity columns, or whose table reports no
        identity state, are returned unchanged.
        """
        if not table_schema.has_auto_increment:
            return table_schema
        with ExitStack() as stack:
            connection = self._open_connection(stack)
            state = read_identity_state(
                connection, self.executor, self.builder, table_schema.qualified_name,
                timeout=self._timeout(timeout),
            )
        return table_schema.with_auto_increment(state) if state is not None else table_schema

    # ------------------------------------------------------------------
    # Validation and planning
    # ------------------------------------------------------------------

    def _plan(
        self,
        dataset: Dataset,
        mode: SyncMode,
        entity: Any,
        resolver: Optional[MetadataResolver],
        policy: Optional[MergePolicy],
        staging_table_name: Optional[str],
    ) -> _SyncPlan:
        """Validate input and render every script before touching the server."""
        if dataset is None or dataset.is_empty:
            raise configuration_error(
                "Cannot sync an empty dataset",
                error_code=ErrorCode.EMPTY_DATASET,
            )

        table_schema = dataset.table_schema
        if not table_schema.columns:
            raise configuration_error(
                f"Table '{table_schema.qualified_name}' has no columns",
                error_code=ErrorCode.CONFIG_INVALID,
            )

        if mode == SyncMode.MERGE and not table_schema.primary_key:
            raise configuration_error(
                f"Cannot merge into '{table_schema.qualified_name}': table has no primary key",
                error_code=ErrorCode.MISSING_PRIMARY_KEY,
            )

        if entity is not None:
            self._check_entity(table_schema, entity, resolver)

        target = self.builder.qualified_name(table_schema.schema_name, table_schema.table_name)
        if mode == SyncMode.INSERT:
            # Identity values are left to the server on a direct insert.
            load_columns = tuple(c.name for c in table_schema.columns if not c.auto_increment)
            if not load_columns:
                raise configuration_error(
                    f"Table '{table_schema.qualified_name}' has only identity columns to insert",
                    error_code=ErrorCode.CONFIG_INVALID,
                )
            self._render_load(target, load_columns)
            return _SyncPlan(table_schema=table_schema, target=target, load_columns=load_columns)

        staging_table = staging_table_name or table_schema.table_name
        staging_schema = self.settings.staging_schema
        staging = self.builder.qualified_name(staging_schema, staging_table)
        load_columns = table_schema.column_names
        self._render_load(staging, load_columns)
        return _SyncPlan(
            table_schema=table_schema,
            target=target,
            load_columns=load_columns,
            staging=staging,
            create_script=self.builder.build_script(
                CreateStagingTable(
                    table_schema=table_schema,
                    staging_schema=staging_schema,
                    staging_table=staging_table,
                )
            ),
            merge_script=self.builder.build_script(
                MergeTable(
                    table_schema=table_schema,
                    source_table=staging,
                    allow_insert=policy.allow_insert,
                    allow_delete=policy.allow_delete,
                )
            ),
            drop_script=self.builder.build_script(
                DropTable(table_name=staging_table, schema_name=staging_schema)
            ),
            cleanup_script=self.builder.build_script(
                DropTable(table_name=staging_table, schema_name=staging_schema, if_exists=True)
            ),
        )

    def _render_load(self, destination: str, columns: Sequence[str]) -> str:
        """Render the bulk INSERT up front so bad column names fail before any connection."""
        return self.builder.build_script(BulkInsert(table_name=destination, columns=list(columns)))

    def _check_entity(self, table_schema: TableSchema, entity: Any, resolver: Optional[MetadataResolver]) -> None:
        resolver = resolver or self.resolver or get_registry()
        try:
            declared = resolver.resolve_table(entity)
        except SyncError:
            raise
        except Exception as exc:
            raise metadata_error(
                "Failed to resolve table metadata",
                entity=str(entity),
                cause=exc,
            ) from exc

        if not declared.same_table(table_schema):
            raise configuration_error(
                f"Dataset table '{table_schema.qualified_name}' does not match "
                f"entity table '{declared.qualified_name}'",
                error_code=ErrorCode.TABLE_MISMATCH,
                details={"dataset_table": table_schema.qualified_name, "entity_table": declared.qualified_name},
            )

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def _timeout(self, timeout: Optional[int]) -> int:
        return self.settings.timeout_seconds if timeout is None else timeout

    def _open_connection(self, stack: ExitStack) -> Any:
        try:
            return stack.enter_context(self.connection_provider.open_connection())
        except SyncError:
            raise
        except Exception as exc:
            raise metadata_error(
                "Failed to open a database connection",
                error_code=ErrorCode.CONNECTION_ERROR,
                cause=exc,
            ) from exc

    def _execute(self, connection: Any, script: str, purpose: ScriptPurpose, timeout: int) -> int:
        try:
            return self.executor.execute(connection, script, timeout=timeout, purpose=purpose.value)
        except SyncError:
            raise
        except Exception as exc:
            raise script_execution_error(script, purpose.value, exc) from exc

    def _load(
        self,
        connection: Any,
        destination: str,
        columns: Sequence[str],
        rows: Sequence[Any],
        batch_size: int,
        timeout: int,
        on_progress: Optional[ProgressCallback],
        cancel_event: Optional[Event],
    ) -> int:
        try:
            return self.bulk_loader.load(
                connection, destination, columns, rows,
                batch_size=batch_size, timeout=timeout,
                on_progress=on_progress, cancel_event=cancel_event,
            )
        except SyncError:
            raise
        except Exception as exc:
            raise transport_error(
                f"Bulk load into {destination} failed",
                destination=destination,
                cause=exc,
            ) from exc

    def _rebase_identity(
        self, connection: Any, table_schema: TableSchema, timeout: int
    ) -> Optional[AutoIncrementState]:
        if not table_schema.has_auto_increment:
            return None
        return read_identity_state(
            connection, self.executor, self.builder, table_schema.qualified_name, timeout=timeout
        )

    def _cleanup_after_failure(self, connection: Any, plan: _SyncPlan, timeout: int, error: BaseException) -> None:
        """Drop the staging table while unwinding; never replaces ``error``."""
        try:
            self._execute(connection, plan.cleanup_script, ScriptPurpose.CLEANUP, timeout)
            logger.info("Staging table dropped after failure", extra={"staging": plan.staging})
        except Exception as cleanup_exc:
            logger.error(
                "Staging cleanup failed while handling an earlier error",
                extra={"staging": plan.staging, "error": str(cleanup_exc), "original_error": str(error)},
            )
            if isinstance(error, SyncError):
                error.details["cleanup_error"] = str(cleanup_exc)

    def _run(
        self,
        mode: SyncMode,
        dataset: Dataset,
        plan: _SyncPlan,
        *,
        batch_size: Optional[int],
        timeout: Optional[int],
        on_progress: Optional[ProgressCallback],
        cancel_event: Optional[Event],
    ) -> SyncResult:
        batch_size = self.settings.batch_size if batch_size is None else batch_size
        if batch_size < 0:
            raise configuration_error("batch_size cannot be negative", config_key="batch_size")
        timeout = self._timeout(timeout)

        table_schema = plan.table_schema
        run = SyncRun(table_schema.qualified_name, mode)
        ctx = SyncContext.generate(
            target_table=table_schema.qualified_name,
            mode=mode.value,
            attributes={"rows": len(dataset), "batch_size": batch_size},
        )
        start_time = time.time()

        with sync_scope(ctx) as span:
            try:
                with ExitStack() as stack:
                    connection = self._open_connection(stack)

                    identity = self._rebase_identity(connection, table_schema, timeout)
                    load_source = dataset.with_auto_increment(identity) if identity else dataset
                    rows = load_source.rows

                    if mode == SyncMode.INSERT:
                        rows_loaded = self._load(
                            connection, table_schema.qualified_name, plan.load_columns, rows,
                            batch_size, timeout, on_progress, cancel_event,
                        )
                        run.advance(SyncState.LOADED)
                        rows_merged = None
                    else:
                        rows_loaded, rows_merged = self._stage_and_merge(
                            connection, plan, run, rows, batch_size, timeout, on_progress, cancel_event,
                        )

                    run.advance(SyncState.CLEANED)
            except BaseException as exc:
                run.fail(exc)
                raise

            duration = time.time() - start_time
            span.set_attribute("tablesync.rows_loaded", rows_loaded)
            if rows_merged is not None:
                span.set_attribute("tablesync.rows_merged", rows_merged)

        logger.info(
            "Sync completed",
            extra={
                "target": table_schema.qualified_name,
                "sync.mode": mode.value,
                "rows_loaded": rows_loaded,
                "rows_merged": rows_merged,
                "duration.seconds": f"{duration:.6f}",
            },
        )
        return SyncResult(
            state=run.state,
            target_table=table_schema.qualified_name,
            staging_table=plan.staging,
            rows_loaded=rows_loaded,
            rows_merged=rows_merged,
            auto_increment=identity,
            table_schema=load_source.table_schema,
            duration_seconds=duration,
        )

    def _stage_and_merge(
        self,
        connection: Any,
        plan: _SyncPlan,
        run: SyncRun,
        rows: Sequence[Any],
        batch_size: int,
        timeout: int,
        on_progress: Optional[ProgressCallback],
        cancel_event: Optional[Event],
    ):
        try:
            self._execute(connection, plan.create_script, ScriptPurpose.CREATE_STAGING, timeout)
            run.advance(SyncState.STAGING_CREATED)

            rows_loaded = self._load(
                connection, plan.staging, plan.load_columns, rows,
                batch_size, timeout, on_progress, cancel_event,
            )
            run.advance(SyncState.LOADED)

            rows_merged = self._execute(connection, plan.merge_script, ScriptPurpose.MERGE, timeout)
            run.advance(SyncState.MERGED)
        except BaseException as exc:
            run.fail(exc)
            self._cleanup_after_failure(connection, plan, timeout, exc)
            raise

        self._execute(connection, plan.drop_script, ScriptPurpose.CLEANUP, timeout)
        return rows_loaded, rows_merged
