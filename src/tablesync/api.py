"""Module-level convenience API.

Uses one lazily built ``BulkSynchronizer`` configured from settings:

    >>> from tablesync import api
    >>> api.bulk_merge(dataset, allow_delete=True)
"""

from typing import Any, Optional

from tablesync.sync.orchestrator import BulkSynchronizer
from tablesync.types.dataset import Dataset, SyncResult

_synchronizer: Optional[BulkSynchronizer] = None


def get_synchronizer() -> BulkSynchronizer:
    global _synchronizer
    if _synchronizer is None:
        _synchronizer = BulkSynchronizer()
    return _synchronizer


def set_synchronizer(synchronizer: Optional[BulkSynchronizer]) -> None:
    """Replace (or with None, reset) the default synchronizer."""
    global _synchronizer
    _synchronizer = synchronizer


def bulk_merge(dataset: Dataset, **kwargs: Any) -> SyncResult:
    """Stage and merge ``dataset``; see ``BulkSynchronizer.bulk_merge``."""
    return get_synchronizer().bulk_merge(dataset, **kwargs)


def bulk_insert(dataset: Dataset, **kwargs: Any) -> SyncResult:
    """Load ``dataset`` straight into its table; see ``BulkSynchronizer.bulk_insert``."""
    return get_synchronizer().bulk_insert(dataset, **kwargs)
