from tablesync.sync.orchestrator import BulkSynchronizer, SyncRun

__all__ = ["BulkSynchronizer", "SyncRun"]
