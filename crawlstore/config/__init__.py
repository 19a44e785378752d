from .settings import StorageSettings, get_cached_settings, load_settings, reset_settings_cache

__all__ = ["StorageSettings", "get_cached_settings", "load_settings", "reset_settings_cache"]
