from tablesync.observability.context import SyncContext, sync_scope

__all__ = ["SyncContext", "sync_scope"]
