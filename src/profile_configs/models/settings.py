"""Store settings model."""

from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from .config import PROFILE_NAME_RE


class StoreSettings(BaseModel):
    """Process-level settings of the configuration store."""

    default_profile: str = Field(default="notes-db", description="Profile other profiles may inherit from")
    data_dir: str = Field(default="~/.profile-configs", description="Directory holding profile data")
    storage: str = Field(default="json", description="Storage backend: 'json' or 'memory'")
    legacy_file: Optional[str] = Field(default=None, description="YAML file with pre-profile settings to import")
    log_level: str = Field(default="INFO", description="Logging level")

    @field_validator("default_profile")
    @classmethod
    def validate_default_profile(cls, v: str) -> str:
        """Validate the default profile name."""
        if not v or not v.strip():
            raise ValueError("Default profile must not be empty")
        v = v.strip()
        if not PROFILE_NAME_RE.fullmatch(v):
            raise ValueError(f"Invalid default profile name: '{v}'")
        return v

    @field_validator("storage")
    @classmethod
    def validate_storage(cls, v: str) -> str:
        """Validate the storage backend name."""
        if v not in ("json", "memory"):
            raise ValueError("Storage must be 'json' or 'memory'")
        return v

    def get_data_dir(self) -> Path:
        """Get the expanded data directory."""
        return Path(self.data_dir).expanduser()

    def get_legacy_path(self) -> Optional[Path]:
        """Get the legacy settings file path, if configured."""
        if not self.legacy_file:
            return None
        return Path(self.legacy_file).expanduser()
