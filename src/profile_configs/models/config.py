"""Configuration entry models."""

import re
from typing import Any, Dict, Iterable, Iterator, List, Optional

from pydantic import BaseModel, Field, field_validator


# Entries that control how content is encrypted
ENCRYPTION_NAMES = (
    "encrypt",
    "encryptPass",
    "encryptSalt",
    "encryptIter",
    "encryptTag",
    "encryptKeySize",
)

USE_DEFAULT_CONFIGS = "useDefaultConfigs"
APP_PROFILES = "appProfiles"
ENCRYPT_BACKUP = "encryptBackup"
ENCRYPT_PASS = "encryptPass"

# Profile names double as directory names
PROFILE_NAME_RE = re.compile(r"[A-Za-z0-9_-][A-Za-z0-9_.-]*")


def is_truthy(value: Any) -> bool:
    """Interpret a boolean-as-number value."""
    try:
        return bool(int(value))
    except (TypeError, ValueError):
        return bool(value)


class ConfigEntry(BaseModel):
    """A single named configuration value owned by one profile."""

    name: str = Field(description="Entry name, unique within a profile")
    value: Any = Field(default=None, description="Entry value")
    profile_id: str = Field(description="Owning profile")

    @field_validator("name", "profile_id")
    @classmethod
    def validate_not_empty(cls, v: str) -> str:
        """Validate identifiers are not blank."""
        if not v or not v.strip():
            raise ValueError("Identifier must not be empty")
        return v

    def with_value(self, value: Any) -> "ConfigEntry":
        """Return a copy of the entry holding ``value``."""
        return self.model_copy(update={"value": value})

    def is_password(self, value: Any) -> bool:
        """Check whether saving ``value`` into this entry stores a new password.

        A value equal to the stored one is already a digest.
        """
        if self.name != ENCRYPT_PASS or not isinstance(value, str) or not value:
            return False
        return value != self.value

    def is_enabled(self) -> bool:
        """Interpret the value as a boolean-as-number flag."""
        return is_truthy(self.value)


class ConfigSet:
    """Loaded entries of one profile, keyed by name.

    ``profile_id`` is the profile the entries were read from. When a profile
    inherits settings this is the default profile, while ``requested_profile``
    keeps the profile the caller asked for.
    """

    def __init__(
        self,
        profile_id: str,
        entries: Iterable[ConfigEntry] = (),
        requested_profile: Optional[str] = None,
    ):
        self.profile_id = profile_id
        self.requested_profile = requested_profile or profile_id
        self._entries: Dict[str, ConfigEntry] = {}
        for entry in entries:
            self._entries[entry.name] = entry

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, name: object) -> bool:
        return name in self._entries

    def __iter__(self) -> Iterator[ConfigEntry]:
        return iter(self._entries.values())

    @property
    def is_redirected(self) -> bool:
        """Whether reads were redirected to another profile."""
        return self.profile_id != self.requested_profile

    def get(self, name: str) -> Optional[ConfigEntry]:
        """Get an entry by name."""
        return self._entries.get(name)

    def put(self, entry: ConfigEntry) -> None:
        """Add or replace an entry."""
        self._entries[entry.name] = entry

    def names(self) -> List[str]:
        """Get entry names in load order."""
        return list(self._entries)

    def has_new_configs(self, known_names: Iterable[str]) -> bool:
        """Check whether any known entry has not been created yet."""
        return any(name not in self._entries for name in known_names)

    def to_dict(self) -> Dict[str, Any]:
        """Get entries as a name=value mapping."""
        return {name: entry.value for name, entry in self._entries.items()}
