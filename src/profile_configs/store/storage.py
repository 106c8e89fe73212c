"""Storage collaborators.

A storage keeps one namespace of entries per profile. The default profile's
``appProfiles`` entry lists every namespace and is kept up to date when
namespaces are created or removed.
"""

import asyncio
import copy
import json
import logging
import os
import shutil
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from ..config.defaults import get_default_configs
from ..models.config import APP_PROFILES, PROFILE_NAME_RE, ConfigEntry
from .errors import ProfileError, StorageError

logger = logging.getLogger(__name__)


class ConfigStorage(ABC):
    """Base storage collaborator.

    Subclasses implement raw namespace access; entry lookup, defaults and
    ``appProfiles`` bookkeeping live here.
    """

    def __init__(self, default_profile: str):
        self.default_profile = default_profile
        self._defaults = get_default_configs(default_profile)
        self._locks: Dict[str, asyncio.Lock] = {}

    @abstractmethod
    async def _read(self, profile: str) -> Optional[Dict[str, Any]]:
        """Read a namespace, None if it does not exist."""

    @abstractmethod
    async def _write(self, profile: str, data: Dict[str, Any]) -> None:
        """Replace a namespace's contents, creating it if needed."""

    @abstractmethod
    async def _delete(self, profile: str) -> None:
        """Delete a namespace."""

    def _lock(self, profile: str) -> asyncio.Lock:
        if profile not in self._locks:
            self._locks[profile] = asyncio.Lock()
        return self._locks[profile]

    async def get(self, profile: str, name: str) -> Optional[ConfigEntry]:
        """Get a stored entry, None if it was never saved."""
        data = await self._read(profile) or {}
        if name not in data:
            return None
        return ConfigEntry(name=name, value=data[name], profile_id=profile)

    async def get_all(self, profile: str) -> List[ConfigEntry]:
        """Get every stored entry of a profile."""
        data = await self._read(profile) or {}
        return [
            ConfigEntry(name=name, value=value, profile_id=profile)
            for name, value in data.items()
        ]

    def default_entry(self, name: str, profile: str) -> Optional[ConfigEntry]:
        """Build an unsaved entry holding the built-in value of ``name``.

        Returns None for names without a built-in value.
        """
        if name not in self._defaults:
            return None
        return ConfigEntry(
            name=name,
            value=copy.deepcopy(self._defaults[name]),
            profile_id=profile,
        )

    async def save(self, entry: ConfigEntry) -> None:
        """Persist an entry into its owning profile."""
        async with self._lock(entry.profile_id):
            data = await self._read(entry.profile_id) or {}
            data[entry.name] = copy.deepcopy(entry.value)
            await self._write(entry.profile_id, data)
        logger.debug(f"Saved {entry.name} in {entry.profile_id}")

    def reassign_owner(self, entry: ConfigEntry, profile: str) -> ConfigEntry:
        """Return a copy of ``entry`` owned by ``profile``."""
        return entry.model_copy(update={"profile_id": profile})

    async def list_profiles(self) -> List[str]:
        """Get the default profile's ``appProfiles`` list."""
        entry = await self.get(self.default_profile, APP_PROFILES)
        if entry is None:
            entry = self.default_entry(APP_PROFILES, self.default_profile)
        return list(entry.value or [])

    async def create_namespace(self, name: str) -> str:
        """Provision a new profile.

        Args:
            name: Profile name

        Returns:
            The new profile's handle

        Raises:
            ProfileError: If the name is invalid or already taken
        """
        name = (name or "").strip()
        if not PROFILE_NAME_RE.fullmatch(name):
            raise ProfileError(f"Invalid profile name: '{name}'")

        profiles = await self.list_profiles()
        if name == self.default_profile or name in profiles:
            raise ProfileError(f"Profile '{name}' already exists")

        async with self._lock(name):
            if await self._read(name) is None:
                await self._write(name, {})

        profiles.append(name)
        await self.save(ConfigEntry(name=APP_PROFILES, value=profiles, profile_id=self.default_profile))
        logger.info(f"Created profile {name}")
        return name

    async def remove_namespace(self, name: str) -> None:
        """Remove a profile and all of its entries.

        Raises:
            ProfileError: If the profile is the default one or does not exist
        """
        if name == self.default_profile:
            raise ProfileError("The default profile cannot be removed")

        profiles = await self.list_profiles()
        exists = await self._read(name) is not None
        if name not in profiles and not exists:
            raise ProfileError(f"Profile '{name}' does not exist")

        async with self._lock(name):
            await self._delete(name)

        if name in profiles:
            profiles.remove(name)
            await self.save(ConfigEntry(name=APP_PROFILES, value=profiles, profile_id=self.default_profile))
        logger.info(f"Removed profile {name}")


class MemoryStorage(ConfigStorage):
    """Storage keeping every namespace in process memory."""

    def __init__(self, default_profile: str):
        super().__init__(default_profile)
        self._namespaces: Dict[str, Dict[str, Any]] = {}

    async def _read(self, profile: str) -> Optional[Dict[str, Any]]:
        if profile not in self._namespaces:
            return None
        return copy.deepcopy(self._namespaces[profile])

    async def _write(self, profile: str, data: Dict[str, Any]) -> None:
        self._namespaces[profile] = copy.deepcopy(data)

    async def _delete(self, profile: str) -> None:
        self._namespaces.pop(profile, None)


class JsonFileStorage(ConfigStorage):
    """Storage writing one JSON file per profile.

    Layout: ``<base_dir>/<profile>/configs.json``. Blocking file access runs
    in a worker thread.
    """

    FILE_NAME = "configs.json"

    def __init__(self, base_dir: Union[str, Path], default_profile: str):
        super().__init__(default_profile)
        self.base_dir = Path(base_dir)

    def _profile_dir(self, profile: str) -> Path:
        if not PROFILE_NAME_RE.fullmatch(profile or ""):
            raise ProfileError(f"Invalid profile name: '{profile}'")
        return self.base_dir / profile

    def _profile_file(self, profile: str) -> Path:
        return self._profile_dir(profile) / self.FILE_NAME

    async def _run(self, func, *args):
        """Run a blocking file operation in a thread."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, func, *args)

    def _read_file(self, profile: str) -> Optional[Dict[str, Any]]:
        path = self._profile_file(profile)
        if not path.exists():
            return None
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            raise StorageError(f"Failed to read {path}: {e}") from e
        if not isinstance(data, dict):
            raise StorageError(f"{path} must contain a JSON object")
        return data

    def _write_file(self, profile: str, data: Dict[str, Any]) -> None:
        path = self._profile_file(profile)
        tmp_path = path.with_suffix(".json.tmp")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(data, f, ensure_ascii=False, indent=2, sort_keys=True)
            os.replace(tmp_path, path)
        except (OSError, TypeError, ValueError) as e:
            raise StorageError(f"Failed to write {path}: {e}") from e

    def _delete_dir(self, profile: str) -> None:
        path = self._profile_dir(profile)
        try:
            if path.exists():
                shutil.rmtree(path)
        except OSError as e:
            raise StorageError(f"Failed to remove {path}: {e}") from e

    async def _read(self, profile: str) -> Optional[Dict[str, Any]]:
        return await self._run(self._read_file, profile)

    async def _write(self, profile: str, data: Dict[str, Any]) -> None:
        await self._run(self._write_file, profile, data)

    async def _delete(self, profile: str) -> None:
        await self._run(self._delete_dir, profile)
