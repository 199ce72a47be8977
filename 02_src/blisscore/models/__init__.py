"""Core data models for the Bliss conversation core."""

from .conversation import (
    ActionResult,
    AudioInput,
    ComposedReply,
    ContextDocument,
    Sentiment,
    SentimentResult,
    SpeechResult,
    Transcript,
    Utterance,
)
from .profile import Preferences, UserProfile
from .results import ErrorKind, StageError, StageResult, TurnResult, TurnStage
from .sessions import ConversationSession, Exchange, SessionType
from .tracing import TraceEvent

__all__ = [
    # Conversation
    "AudioInput",
    "Transcript",
    "Utterance",
    "Sentiment",
    "SentimentResult",
    "ContextDocument",
    "ComposedReply",
    "SpeechResult",
    "ActionResult",
    # Profile
    "Preferences",
    "UserProfile",
    # Sessions
    "SessionType",
    "ConversationSession",
    "Exchange",
    # Results
    "ErrorKind",
    "StageError",
    "StageResult",
    "TurnStage",
    "TurnResult",
    # Tracing
    "TraceEvent",
]
