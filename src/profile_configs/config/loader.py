"""Settings loading and saving."""

import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

from ..models.settings import StoreSettings
from .defaults import get_default_settings

logger = logging.getLogger(__name__)

SETTINGS_ENV_VAR = "PROFILE_CONFIGS_SETTINGS"


def _deep_update(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge dictionaries, values in override win.

    Args:
        base: Base dictionary
        override: Override dictionary

    Returns:
        Merged dictionary
    """
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_update(result[key], value)
        else:
            result[key] = value
    return result


def load_settings(settings_path: Union[str, Path]) -> StoreSettings:
    """Load store settings from a YAML file.

    Args:
        settings_path: Path to settings file

    Returns:
        Loaded settings

    Raises:
        FileNotFoundError: If settings file doesn't exist
        ValueError: If settings file is invalid
    """
    settings_path = Path(settings_path)

    if not settings_path.exists():
        raise FileNotFoundError(f"Settings file not found: {settings_path}")

    try:
        with open(settings_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML settings: {e}")

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ValueError(f"Settings file {settings_path} must contain a mapping")

    try:
        return StoreSettings(**data)
    except Exception as e:
        raise ValueError(f"Failed to load settings: {e}")


def save_settings(settings: StoreSettings, settings_path: Union[str, Path]) -> None:
    """Save settings to file.

    Args:
        settings: Settings to save
        settings_path: Path to save settings

    Raises:
        OSError: If unable to write file
    """
    settings_path = Path(settings_path)
    settings_path.parent.mkdir(parents=True, exist_ok=True)

    try:
        with open(settings_path, "w", encoding="utf-8") as f:
            yaml.dump(
                settings.model_dump(),
                f,
                default_flow_style=False,
                allow_unicode=True,
                sort_keys=True
            )
    except Exception as e:
        raise OSError(f"Failed to save settings: {e}")


def find_settings_path(settings_path: Union[str, Path, None] = None) -> Optional[Path]:
    """Find the settings file to use.

    An explicit path wins, then the ``PROFILE_CONFIGS_SETTINGS`` environment
    variable, then ``profile-configs.yaml`` in the working directory.
    """
    if settings_path is not None:
        return Path(settings_path)

    env_path = os.environ.get(SETTINGS_ENV_VAR)
    if env_path:
        return Path(env_path)

    candidate = Path.cwd() / "profile-configs.yaml"
    if candidate.exists():
        return candidate

    return None


def load_settings_with_fallback(settings_path: Union[str, Path, None]) -> StoreSettings:
    """Load settings with fallback to defaults.

    Args:
        settings_path: Path to settings file (optional)

    Returns:
        Loaded or default settings
    """
    if settings_path is None:
        return get_default_settings()

    try:
        return load_settings(settings_path)
    except (FileNotFoundError, ValueError) as e:
        logger.warning(f"Using default settings: {e}")
        return get_default_settings()


def merge_settings(base_settings: StoreSettings, override_data: Dict[str, Any]) -> StoreSettings:
    """Merge settings with override data.

    Args:
        base_settings: Base settings
        override_data: Override data

    Returns:
        Merged settings
    """
    data = _deep_update(base_settings.model_dump(), override_data)
    return StoreSettings(**data)


def load_legacy_settings(legacy_path: Union[str, Path]) -> Dict[str, Any]:
    """Load settings saved before profiles existed.

    The file is a flat ``name: value`` YAML mapping. A missing file means
    there is nothing to import.

    Raises:
        ValueError: If the file is not a valid mapping
    """
    legacy_path = Path(legacy_path)
    if not legacy_path.exists():
        return {}

    try:
        with open(legacy_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid legacy settings: {e}")

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"Legacy settings file {legacy_path} must contain a mapping")

    logger.debug(f"Loaded {len(data)} legacy settings from {legacy_path}")
    return data
