"""Profile-aware configuration store.

Entries are partitioned by profile. A profile whose ``useDefaultConfigs`` flag
is set reads and writes the default profile's entries, except for the flag
itself and ``encryptBackup``. Changes to the encryption entries are backed up
into ``encryptBackup`` first so content encrypted with older parameters can
still be decrypted.

Events triggered on ``events``:
1. ``collection:empty`` - a profile was bootstrapped from nothing.
2. ``removed:profile``  - a profile was removed.
3. ``changed``          - a batch of configs was saved.
"""

import asyncio
import copy
import logging
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Mapping, Optional, Union

from ..config.defaults import get_known_names
from ..config.loader import load_legacy_settings
from ..models.config import (
    APP_PROFILES,
    ENCRYPT_BACKUP,
    ENCRYPT_PASS,
    ENCRYPTION_NAMES,
    USE_DEFAULT_CONFIGS,
    ConfigEntry,
    ConfigSet,
    is_truthy,
)
from ..models.settings import StoreSettings
from .errors import ConfigStoreError
from .events import CHANGED, COLLECTION_EMPTY, REMOVED_PROFILE, EventBus
from .hashing import Sha256Hasher
from .storage import ConfigStorage, JsonFileStorage, MemoryStorage

logger = logging.getLogger(__name__)

Objects = Union[Mapping[str, Any], Iterable[Mapping[str, Any]]]


def normalize_objects(objects: Objects) -> Dict[str, Dict[str, Any]]:
    """Convert a batch of configs to a name-keyed mapping.

    Accepts a sequence of ``{"name": ..., "value": ...}`` or a mapping keyed
    by name whose values are either such dicts or plain values.

    Raises:
        ConfigStoreError: If an item has no name
    """
    if isinstance(objects, Mapping):
        items = []
        for name, obj in objects.items():
            if isinstance(obj, Mapping) and "value" in obj:
                items.append({"name": obj.get("name") or name, "value": obj["value"]})
            else:
                items.append({"name": name, "value": obj})
    else:
        items = [dict(obj) for obj in objects]

    result: Dict[str, Dict[str, Any]] = {}
    for item in items:
        name = item.get("name")
        if not name:
            raise ConfigStoreError(f"Config without a name: {item!r}")
        result[name] = {"name": name, "value": item.get("value")}
    return result


def merge_backup(snapshot: Mapping[str, Any], existing: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    """Fold a fresh snapshot into an existing encryption backup.

    Fields already captured in ``existing`` win, so the backup keeps the
    oldest known value of every field.
    """
    merged = dict(snapshot)
    for name, value in (existing or {}).items():
        if value is not None:
            merged[name] = value
    return merged


class ConfigStore:
    """Configuration store shared by every consumer of the application.

    Construct one at startup and pass it to whoever needs configs.
    """

    def __init__(
        self,
        storage: ConfigStorage,
        hasher: Optional[Sha256Hasher] = None,
        events: Optional[EventBus] = None,
        legacy_path=None,
    ):
        """Initialize the store.

        Args:
            storage: Storage collaborator
            hasher: Password hash collaborator
            events: Event bus changes are announced on
            legacy_path: Optional YAML file with pre-profile settings
        """
        self.storage = storage
        self.hasher = hasher or Sha256Hasher()
        self.events = events or EventBus()
        self.default_profile = storage.default_profile
        self.legacy_path = legacy_path

        self.current_profile = self.default_profile
        self.collection: Optional[ConfigSet] = None
        self._write_locks: Dict[str, asyncio.Lock] = {}

    def replies(self) -> Dict[str, Callable[..., Awaitable[Any]]]:
        """Get request handlers keyed by request name."""
        return {
            "save:objects": self.save_objects,
            "create:profile": self.create_profile,
            "remove:profile": self.remove_profile,
            "get:config": self.get_config,
            "get:object": self.get_object,
            "get:profiles": self.get_profiles,
            "reset:encrypt": self.reset_encrypt,
        }

    async def request(self, name: str, *args: Any, **kwargs: Any) -> Any:
        """Dispatch a request by name.

        Raises:
            ConfigStoreError: If nothing replies to ``name``
        """
        handler = self.replies().get(name)
        if handler is None:
            raise ConfigStoreError(f"Unknown request: {name}")
        return await handler(*args, **kwargs)

    # Queries

    async def get_config(self, name: str, fallback: Any = None) -> Any:
        """Get the resolved value of a config.

        Args:
            name: Config name
            fallback: Returned when the config has no value

        Returns:
            Config value or ``fallback``
        """
        value = (await self.get_object()).get(name)
        return fallback if value is None else value

    async def get_object(self) -> Dict[str, Any]:
        """Get the resolved configs as name=value."""
        collection = await self.get_all()
        return collection.to_dict()

    async def get_model(self, name: str, profile: Optional[str] = None) -> Optional[ConfigEntry]:
        """Find an entry, falling back to its default value.

        Without ``profile`` the loaded collection is searched first, whatever
        profile the entry belongs to.

        Args:
            name: Config name
            profile: Profile to look in

        Returns:
            Stored or default entry, None if the name is unknown
        """
        if self.collection is not None:
            cached = self.collection.get(name)
            if cached is not None and (profile is None or cached.profile_id == profile):
                return cached
            profile = profile or self.collection.profile_id

        profile = profile or self.current_profile
        entry = await self.storage.get(profile, name)
        if entry is not None:
            return entry
        return self.storage.default_entry(name, profile)

    async def get_profiles(self) -> List[str]:
        """Get the profiles sharing configs with the current one.

        An isolated profile only gets itself. The default profile gets every
        listed profile that uses its configs.
        """
        collection = await self.get_all()
        current = collection.profile_id
        backup = collection.get(ENCRYPT_BACKUP) or self.storage.default_entry(ENCRYPT_BACKUP, current)

        if current != self.default_profile or backup.profile_id != self.default_profile:
            return [backup.profile_id]

        model = await self.get_model(APP_PROFILES, self.default_profile)
        profiles = list(model.value or []) if model else []

        flags = await asyncio.gather(*(
            self.get_model(USE_DEFAULT_CONFIGS, profile) for profile in profiles
        ))
        return [
            flag.profile_id for flag in flags
            if flag is not None and (flag.is_enabled() or flag.profile_id == self.default_profile)
        ]

    # Loading

    async def resolve_profile(self, requested: str) -> str:
        """Get the profile whose store serves reads of ``requested``."""
        if requested == self.default_profile:
            return requested

        flag = await self.get_model(USE_DEFAULT_CONFIGS, requested)
        if flag is None or not flag.is_enabled():
            return requested
        return self.default_profile

    async def _load(self, requested: str) -> ConfigSet:
        effective = await self.resolve_profile(requested)
        entries = await self.storage.get_all(effective)
        collection = ConfigSet(effective, entries, requested_profile=requested)

        # The flag always stays with the requested profile
        if collection.is_redirected:
            flag = await self.storage.get(requested, USE_DEFAULT_CONFIGS)
            collection.put(flag or self.storage.default_entry(USE_DEFAULT_CONFIGS, requested))

        logger.debug(f"Loaded {len(collection)} configs of {requested} from {effective}")
        return collection

    def _fallback_set(self, requested: str) -> ConfigSet:
        names = get_known_names(requested, self.default_profile)
        return ConfigSet(
            requested,
            (self.storage.default_entry(name, requested) for name in names),
        )

    async def get_all(self, profile: Optional[str] = None) -> ConfigSet:
        """Load the configs of a profile.

        Resolves inheritance, checks the encryption backup and bootstraps
        missing configs. Never raises: if loading fails, unsaved default
        values are returned.

        Args:
            profile: Requested profile, the current one by default

        Returns:
            Loaded configs
        """
        requested = profile or self.current_profile
        if (self.collection is not None and len(self.collection)
                and self.collection.requested_profile == requested):
            return self.collection

        self.current_profile = requested
        try:
            self.collection = await self._load(requested)
            await self.check_backup(requested)
        except Exception:
            logger.exception(f"Failed to load configs of {requested}")
            self.collection = None
            return self._fallback_set(requested)

        return await self.ensure_defaults(requested)

    async def ensure_defaults(self, profile: str) -> ConfigSet:
        """Create missing configs with their default values.

        Idempotent. Failures are logged, never raised.

        Args:
            profile: Requested profile

        Returns:
            Loaded configs
        """
        if self.collection is None or self.collection.requested_profile != profile:
            try:
                self.collection = await self._load(profile)
            except Exception:
                logger.exception(f"Failed to load configs of {profile}")
                return self._fallback_set(profile)

        collection = self.collection
        known = get_known_names(collection.profile_id, self.default_profile)
        if not collection.has_new_configs(known):
            return collection

        effective = collection.profile_id
        try:
            if effective == self.default_profile:
                await self.migrate_from_legacy(effective)

            stored = await self.storage.get_all(effective)
            if not stored:
                self.events.trigger(COLLECTION_EMPTY)

            stored_names = {entry.name for entry in stored}
            missing = [
                self.storage.default_entry(name, effective)
                for name in known if name not in stored_names
            ]
            await asyncio.gather(*(self.storage.save(entry) for entry in missing))
            logger.info(f"Created {len(missing)} default configs in {effective}")

            self.collection = await self._load(profile)
            await self.check_backup(profile)
        except Exception:
            logger.exception(f"Failed to create default configs in {effective}")
            # Serve unsaved defaults for whatever could not be created
            for name in known:
                if name not in self.collection:
                    self.collection.put(self.storage.default_entry(name, effective))

        return self.collection

    async def migrate_from_legacy(self, profile: str) -> int:
        """Import settings saved before profiles existed.

        Only names with a built-in value that are not stored yet are
        imported. Failures are logged and ignored.

        Returns:
            Number of imported configs
        """
        if not self.legacy_path:
            return 0

        try:
            loop = asyncio.get_running_loop()
            legacy = await loop.run_in_executor(None, load_legacy_settings, self.legacy_path)
            if not legacy:
                return 0

            stored = {entry.name for entry in await self.storage.get_all(profile)}
            entries = [
                ConfigEntry(name=name, value=value, profile_id=profile)
                for name, value in legacy.items()
                if name not in stored and self.storage.default_entry(name, profile) is not None
            ]
            await asyncio.gather(*(self.storage.save(entry) for entry in entries))
        except Exception as e:
            logger.warning(f"Legacy settings import failed: {e}")
            return 0

        logger.info(f"Imported {len(entries)} legacy settings into {profile}")
        return len(entries)

    # Encryption backup

    async def check_backup(self, profile: str) -> None:
        """Let ``profile`` keep custody of its own encryption backup.

        When the loaded backup is empty and the profile has a backup of its
        own, the loaded backup takes its value and is reassigned to it.
        """
        collection = self.collection
        backup = collection.get(ENCRYPT_BACKUP)
        if profile == self.default_profile or backup is None or backup.value:
            return

        own = await self.get_model(ENCRYPT_BACKUP, profile)
        if own is not None and own.value:
            claimed = backup.with_value(copy.deepcopy(own.value))
            collection.put(self.storage.reassign_owner(claimed, profile))
            logger.debug(f"Encryption backup claimed by {profile}")

    async def _same_password(self, incoming: Any, stored: Any) -> bool:
        if str(incoming) == str(stored):
            return True
        if not incoming:
            return False
        return await self.hasher.digest(incoming) == stored

    async def backup_on_save(self, objects: Dict[str, Dict[str, Any]]) -> Optional[Dict[str, Any]]:
        """Back up encryption configs the batch is about to change.

        Injects the merged ``encryptBackup`` into ``objects``.

        Args:
            objects: Normalized batch

        Returns:
            The merged backup, None if the batch has no encryption configs
        """
        changed = [name for name in objects if name in ENCRYPTION_NAMES]
        if not changed:
            return None

        snapshot = {}
        for name in changed:
            entry = await self.get_model(name)
            snapshot[name] = entry.value if entry is not None else None

        # Password hasn't changed
        if ENCRYPT_PASS in objects and await self._same_password(
                objects[ENCRYPT_PASS]["value"], snapshot.get(ENCRYPT_PASS)):
            snapshot.pop(ENCRYPT_PASS, None)

        backup = await self.get_model(ENCRYPT_BACKUP)
        merged = merge_backup(snapshot, backup.value if backup is not None else None)
        objects[ENCRYPT_BACKUP] = {"name": ENCRYPT_BACKUP, "value": merged}
        return merged

    async def _backup_encrypt(self, profile: str) -> ConfigEntry:
        """Back up the current encryption configs into ``profile``."""
        collection = await self.get_all()
        current = collection.to_dict()
        snapshot = {name: current[name] for name in collection.names() if name in ENCRYPTION_NAMES}

        own = await self.storage.get(profile, ENCRYPT_BACKUP)
        merged = merge_backup(snapshot, own.value if own is not None else None)

        backup = collection.get(ENCRYPT_BACKUP) or self.storage.default_entry(ENCRYPT_BACKUP, profile)
        backup = self.storage.reassign_owner(backup, profile)
        collection.put(backup)
        return await self.save_model(backup, merged)

    async def reset_encrypt(self) -> ConfigEntry:
        """Discard the current encryption backup."""
        collection = await self.get_all()
        model = collection.get(ENCRYPT_BACKUP) or self.storage.default_entry(
            ENCRYPT_BACKUP, collection.profile_id)
        logger.info(f"Resetting encryption backup of {model.profile_id}")
        return await self.save_model(model, {})

    # Saving

    def _write_lock(self, profile: str) -> asyncio.Lock:
        if profile not in self._write_locks:
            self._write_locks[profile] = asyncio.Lock()
        return self._write_locks[profile]

    def _sync_collection(self, entry: ConfigEntry) -> None:
        if self.collection is None:
            return
        cached = self.collection.get(entry.name)
        if entry.profile_id == self.collection.profile_id or (
                cached is not None and cached.profile_id == entry.profile_id):
            self.collection.put(entry)

    async def save_model(self, model: ConfigEntry, value: Any) -> ConfigEntry:
        """Save a new value into an entry.

        Passwords are always stored as digests.

        Args:
            model: Entry to save into
            value: New value

        Returns:
            The saved entry
        """
        if model.is_password(value):
            value = await self.hasher.digest(value)

        entry = model.with_value(value)
        await self.storage.save(entry)
        self._sync_collection(entry)
        return entry

    async def save_object(self, obj: Dict[str, Any], flag_profile: str) -> Optional[ConfigEntry]:
        """Save one normalized config.

        ``useDefaultConfigs`` is always written to ``flag_profile``. Names
        without a stored or default value are skipped.
        """
        name = obj["name"]
        if name == USE_DEFAULT_CONFIGS:
            model = await self.get_model(name, flag_profile)
        else:
            model = await self.get_model(name)

        if model is None:
            logger.warning(f"Unknown config '{name}' skipped")
            return None

        entry = await self.save_model(model, obj["value"])
        obj["value"] = entry.value
        return entry

    async def save_objects(self, objects: Objects, flag_profile: Optional[str] = None) -> None:
        """Save several configs at once.

        Args:
            objects: Sequence of ``{name, value}`` or a name-keyed mapping
            flag_profile: Profile the ``useDefaultConfigs`` flag is written
                to, the current profile by default

        Raises:
            ConfigStoreError: If the batch is malformed
            StorageError: If any config fails to save
        """
        objects = normalize_objects(objects)
        collection = await self.get_all()
        flag_profile = flag_profile or self.current_profile
        flag = objects.get(USE_DEFAULT_CONFIGS)

        async with self._write_lock(collection.profile_id):
            # Opting out of default configs: keep the encryption configs in use
            if flag is not None and not is_truthy(flag["value"]):
                await self._backup_encrypt(flag_profile)

            await self.backup_on_save(objects)
            saved = await asyncio.gather(*(
                self.save_object(obj, flag_profile) for obj in objects.values()
            ))

        # Skipped configs are not announced
        for name, entry in zip(list(objects), saved):
            if entry is None:
                del objects[name]

        if flag is not None:
            # Resolve inheritance again on the next read
            self.collection = None

        logger.info(f"Saved {len(objects)} configs")
        self.events.trigger(CHANGED, objects)

    # Profiles

    async def create_profile(self, name: str) -> str:
        """Create a new profile.

        Raises:
            ProfileError: If the name is invalid or taken
        """
        profile = await self.storage.create_namespace(name)
        await self._refresh_profiles()
        return profile

    async def _refresh_profiles(self) -> None:
        entry = await self.storage.get(self.default_profile, APP_PROFILES)
        if entry is not None:
            self._sync_collection(entry)

    async def remove_profile(self, name: str) -> None:
        """Remove a profile, announcing it once removal succeeded.

        Raises:
            ProfileError: If the profile cannot be removed
        """
        await self.storage.remove_namespace(name)

        if self.current_profile == name:
            self.current_profile = self.default_profile
            self.collection = None

        self.events.trigger(REMOVED_PROFILE, name)
        await self._refresh_profiles()


def create_store(settings: StoreSettings, events: Optional[EventBus] = None) -> ConfigStore:
    """Build a store from settings.

    Args:
        settings: Store settings
        events: Optional event bus to announce changes on

    Returns:
        Configured store
    """
    if settings.storage == "memory":
        storage: ConfigStorage = MemoryStorage(settings.default_profile)
    else:
        storage = JsonFileStorage(settings.get_data_dir(), settings.default_profile)

    return ConfigStore(
        storage,
        hasher=Sha256Hasher(),
        events=events,
        legacy_path=settings.get_legacy_path(),
    )
