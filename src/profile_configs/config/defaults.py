"""Default configuration values."""

import copy
from typing import Any, Dict, List

from ..models.config import APP_PROFILES, USE_DEFAULT_CONFIGS
from ..models.settings import StoreSettings


# Built-in values of every known entry. ``appProfiles`` is filled in per
# default profile by get_default_configs().
DEFAULT_CONFIGS: Dict[str, Any] = {
    "appVersion": "0.1.0",
    "appLang": "en",
    "firstStart": 1,
    "theme": "default",
    "pagination": 10,
    "sortnotes": "created",
    "editMode": "preview",
    "cloudStorage": "0",
    "appProfiles": [],
    "useDefaultConfigs": 1,

    # Encryption
    "encrypt": 0,
    "encryptPass": "",
    "encryptSalt": "",
    "encryptIter": 1000,
    "encryptTag": 64,
    "encryptKeySize": 128,
    "encryptBackup": {},
}


def get_default_settings() -> StoreSettings:
    """Get default store settings."""
    return StoreSettings()


def get_default_configs(default_profile: str) -> Dict[str, Any]:
    """Get a fresh copy of the built-in entry values.

    Args:
        default_profile: Name of the default profile

    Returns:
        Mapping of entry name to default value
    """
    configs = copy.deepcopy(DEFAULT_CONFIGS)
    configs[APP_PROFILES] = [default_profile]
    return configs


def get_known_names(profile: str, default_profile: str) -> List[str]:
    """Get names of the entries a profile is bootstrapped with.

    ``appProfiles`` only lives in the default profile and
    ``useDefaultConfigs`` only in the other ones.
    """
    names = []
    for name in DEFAULT_CONFIGS:
        if name == APP_PROFILES and profile != default_profile:
            continue
        if name == USE_DEFAULT_CONFIGS and profile == default_profile:
            continue
        names.append(name)
    return names
