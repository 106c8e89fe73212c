"""Multi-profile configuration store with encryption backups."""

__version__ = "0.1.0"
