"""Local conversation history models."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class SessionType(str, Enum):
    """Conversation domains. Each keeps its own rolling summary policy."""

    CHAT = "chat"
    JOURNAL = "journal"


@dataclass
class ConversationSession:
    """One persona conversation (or journal) with its rolling summary."""

    id: int
    persona_id: str  # external session key, unique
    system_instructions: str
    title: str
    summary: str
    created_at: datetime
    session_type: SessionType = SessionType.CHAT
    is_pinned: bool = False


@dataclass(frozen=True)
class Exchange:
    """A single user prompt / bot response pair. Append-only."""

    id: int
    session_id: int
    user_prompt: str
    bot_response: str
    created_at: datetime
