"""User profile models."""

from dataclasses import asdict, dataclass, field


@dataclass
class Preferences:
    """Per-user delivery preferences."""

    tts_enabled: bool = True
    language: str = "en-US"


@dataclass
class UserProfile:
    """Durable user profile with chronological conversation history."""

    user_id: str
    name: str = "User"
    preferences: Preferences = field(default_factory=Preferences)
    conversation_history: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "UserProfile":
        prefs = data.get("preferences") or {}
        return cls(
            user_id=data["user_id"],
            name=data.get("name", "User"),
            preferences=Preferences(
                tts_enabled=bool(prefs.get("tts_enabled", True)),
                language=prefs.get("language", "en-US"),
            ),
            conversation_history=list(data.get("conversation_history", [])),
        )
