"""Durable per-user profile store."""

from dataclasses import fields, replace
from typing import Protocol

from ..locks import KeyedLock
from ..logging_config import get_logger
from ..models import Preferences, UserProfile
from ..storage import IStorage

logger = get_logger(__name__)

UPDATABLE_FIELDS = ("name", "preferences", "conversation_history")
PREFERENCE_FIELDS = frozenset(f.name for f in fields(Preferences))


class IProfileStore(Protocol):
    """Owns user profiles: preferences and conversation history."""

    async def get(self, user_id: str) -> UserProfile:
        """Return the profile, creating a default one on first access."""
        ...

    async def update(self, user_id: str, changes: dict) -> UserProfile:
        """Merge partial fields into the profile and persist."""
        ...

    async def append_history(self, user_id: str, *entries: str) -> UserProfile:
        """Append entries to conversation_history in one critical section."""
        ...


class ProfileStore:
    """Profile store backed by Storage, serialized per user id."""

    def __init__(
        self,
        storage: IStorage,
        default_language: str = "en-US",
        default_tts_enabled: bool = True,
    ):
        self._storage = storage
        self._default_language = default_language
        self._default_tts_enabled = default_tts_enabled
        self._locks = KeyedLock()

    def _default_profile(self, user_id: str) -> UserProfile:
        return UserProfile(
            user_id=user_id,
            name="User",
            preferences=Preferences(
                tts_enabled=self._default_tts_enabled,
                language=self._default_language,
            ),
            conversation_history=[],
        )

    async def _load_or_create(self, user_id: str) -> UserProfile:
        profile = await self._storage.get_profile(user_id)
        if profile is None:
            profile = self._default_profile(user_id)
            await self._storage.save_profile(profile)
            logger.info(f"Created default profile for {user_id}")
        return profile

    async def get(self, user_id: str) -> UserProfile:
        async with self._locks.hold(user_id):
            return await self._load_or_create(user_id)

    async def update(self, user_id: str, changes: dict) -> UserProfile:
        unknown = set(changes) - set(UPDATABLE_FIELDS)
        if unknown:
            raise ValueError(f"Cannot update profile fields: {sorted(unknown)}")

        prefs = changes.get("preferences")
        if prefs is not None and not isinstance(prefs, Preferences):
            unknown_prefs = set(prefs) - PREFERENCE_FIELDS
            if unknown_prefs:
                raise ValueError(
                    f"Cannot update preference fields: {sorted(unknown_prefs)}"
                )

        async with self._locks.hold(user_id):
            current = await self._load_or_create(user_id)
            merged = replace(current)

            if "name" in changes:
                merged.name = changes["name"]
            if "preferences" in changes:
                prefs = changes["preferences"]
                if isinstance(prefs, Preferences):
                    merged.preferences = prefs
                else:
                    merged.preferences = replace(current.preferences, **prefs)
            if "conversation_history" in changes:
                merged.conversation_history = list(changes["conversation_history"])

            await self._storage.save_profile(merged)
            return merged

    async def append_history(self, user_id: str, *entries: str) -> UserProfile:
        async with self._locks.hold(user_id):
            profile = await self._load_or_create(user_id)
            profile.conversation_history.extend(entries)
            await self._storage.save_profile(profile)
            return profile
