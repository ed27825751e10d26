from tablesync.settings.base import SyncSettings
from tablesync.settings.main import _reload_settings, get_settings

__all__ = ["SyncSettings", "get_settings", "_reload_settings"]
