"""Configuration: environment-backed settings and shared constants."""

from invport.core.config.settings import Settings, get_settings, reload_settings

__all__ = ["Settings", "get_settings", "reload_settings"]
