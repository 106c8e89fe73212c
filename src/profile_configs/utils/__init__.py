"""Utility functions for profile configs."""

from .logging import setup_logging

__all__ = [
    "setup_logging",
]
