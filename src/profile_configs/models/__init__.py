"""Data models for profile configs."""

from .config import (
    APP_PROFILES,
    ENCRYPT_BACKUP,
    ENCRYPT_PASS,
    ENCRYPTION_NAMES,
    USE_DEFAULT_CONFIGS,
    ConfigEntry,
    ConfigSet,
)
from .settings import StoreSettings

__all__ = [
    "ConfigEntry",
    "ConfigSet",
    "StoreSettings",

    "ENCRYPTION_NAMES",
    "USE_DEFAULT_CONFIGS",
    "APP_PROFILES",
    "ENCRYPT_BACKUP",
    "ENCRYPT_PASS",
]
