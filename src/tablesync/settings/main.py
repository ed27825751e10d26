from typing import Optional

from tablesync.settings.base import SyncSettings

# Global settings instance
_settings: Optional[SyncSettings] = None


def get_settings(force_reload: bool = False) -> SyncSettings:
    """Get the process-wide settings instance.

    Settings are loaded from the environment on first access and cached.

    Args:
        force_reload: Re-read the environment even if settings are cached

    Returns:
        SyncSettings instance
    """
    global _settings
    if _settings is None or force_reload:
        _settings = SyncSettings()
    return _settings


def _reload_settings() -> SyncSettings:
    """Drop the cached settings and load them again (for tests)."""
    global _settings
    _settings = None
    return get_settings()
