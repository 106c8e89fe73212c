"""Profile-aware configuration store."""

from .configs import ConfigStore, create_store, merge_backup, normalize_objects
from .errors import ConfigStoreError, ProfileError, StorageError
from .events import CHANGED, COLLECTION_EMPTY, REMOVED_PROFILE, EventBus
from .hashing import Sha256Hasher
from .storage import ConfigStorage, JsonFileStorage, MemoryStorage

__all__ = [
    "ConfigStore",
    "create_store",
    "merge_backup",
    "normalize_objects",

    "ConfigStoreError",
    "ProfileError",
    "StorageError",

    "EventBus",
    "CHANGED",
    "COLLECTION_EMPTY",
    "REMOVED_PROFILE",

    "Sha256Hasher",
    "ConfigStorage",
    "JsonFileStorage",
    "MemoryStorage",
]
