"""Configuration management for Thermweb Monitor."""

from thermweb_monitor.config.loader import SettingsError, load_config
from thermweb_monitor.config.settings import MonitorSettings

__all__ = [
    "MonitorSettings",
    "SettingsError",
    "load_config",
]
