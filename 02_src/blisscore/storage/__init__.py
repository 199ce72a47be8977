"""Storage module."""

from .storage import IStorage, SessionTypeConflictError, Storage

__all__ = ["IStorage", "SessionTypeConflictError", "Storage"]
