"""Profile module."""

from .store import IProfileStore, ProfileStore

__all__ = ["IProfileStore", "ProfileStore"]
