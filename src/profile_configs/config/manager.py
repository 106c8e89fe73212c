"""Settings manager."""

from pathlib import Path
from typing import Any, Dict, Optional

from ..models.settings import StoreSettings
from .defaults import get_default_settings
from .loader import load_settings_with_fallback, merge_settings, save_settings


class SettingsManager:
    """Settings manager for the configuration store."""

    def __init__(self, settings_path: Optional[Path] = None):
        """Initialize settings manager.

        Args:
            settings_path: Optional path to settings file
        """
        self.settings_path = settings_path
        self._settings: Optional[StoreSettings] = None

    @property
    def settings(self) -> StoreSettings:
        """Get current settings."""
        if self._settings is None:
            self._settings = self.load()
        return self._settings

    def load(self, settings_path: Optional[Path] = None) -> StoreSettings:
        """Load settings.

        Args:
            settings_path: Optional path to settings file

        Returns:
            Loaded settings
        """
        path = settings_path or self.settings_path
        self._settings = load_settings_with_fallback(path)
        return self._settings

    def save(self, settings_path: Optional[Path] = None) -> None:
        """Save current settings.

        Args:
            settings_path: Optional path to save settings

        Raises:
            ValueError: If no settings are loaded or no path is known
        """
        if self._settings is None:
            raise ValueError("No settings loaded")

        path = settings_path or self.settings_path
        if path is None:
            raise ValueError("No settings path specified")

        save_settings(self._settings, path)

    def update(self, **kwargs: Any) -> None:
        """Update settings.

        Args:
            **kwargs: Settings to update
        """
        if self._settings is None:
            self._settings = get_default_settings()

        self._settings = merge_settings(self._settings, kwargs)

    def reset(self) -> None:
        """Reset settings to defaults."""
        self._settings = get_default_settings()

    def get_settings_dict(self) -> Dict[str, Any]:
        """Get settings as dictionary."""
        return self.settings.model_dump()
