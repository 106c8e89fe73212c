"""Settings and default values."""

from .manager import SettingsManager
from .loader import load_settings, save_settings, load_legacy_settings
from .defaults import get_default_settings, get_default_configs, get_known_names

__all__ = [
    "SettingsManager",
    "load_settings",
    "save_settings",
    "load_legacy_settings",
    "get_default_settings",
    "get_default_configs",
    "get_known_names",
]
