"""Configuration store errors."""


class ConfigStoreError(Exception):
    """Base error of the configuration store."""


class StorageError(ConfigStoreError):
    """A storage collaborator call failed."""


class ProfileError(ConfigStoreError):
    """Invalid profile management request."""
