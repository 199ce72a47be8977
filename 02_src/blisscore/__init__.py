"""Bliss conversation core: the turn orchestration pipeline."""

from .app import Application
from .agents import (
    ActionDispatcher,
    ContextRetriever,
    ConversationSummarizer,
    InputNormalizer,
    ResponseComposer,
    SentimentAnalyzer,
    UnderstandingAgent,
)
from .config import Settings, load_settings
from .llm import ILLMProvider, LLMProvider
from .models import (
    AudioInput,
    ComposedReply,
    ContextDocument,
    ConversationSession,
    ErrorKind,
    Exchange,
    SentimentResult,
    SessionType,
    SpeechResult,
    StageResult,
    TurnResult,
    UserProfile,
    Utterance,
)
from .orchestrator import IOrchestrator, Orchestrator, SessionNotFoundError
from .profile import IProfileStore, ProfileStore
from .speech import ITextToSpeech, ITranscriber, SpeechSynthesizer
from .storage import IStorage, Storage
from .tracker import ITracker, Tracker

__all__ = [
    # Application
    "Application",
    "Settings",
    "load_settings",
    # Models
    "AudioInput",
    "Utterance",
    "SentimentResult",
    "ContextDocument",
    "ComposedReply",
    "SpeechResult",
    "UserProfile",
    "ConversationSession",
    "Exchange",
    "SessionType",
    "ErrorKind",
    "StageResult",
    "TurnResult",
    # Components
    "IStorage",
    "Storage",
    "ITracker",
    "Tracker",
    "ILLMProvider",
    "LLMProvider",
    "ITranscriber",
    "ITextToSpeech",
    "IProfileStore",
    "ProfileStore",
    "UnderstandingAgent",
    "InputNormalizer",
    "SentimentAnalyzer",
    "ContextRetriever",
    "ResponseComposer",
    "ConversationSummarizer",
    "SpeechSynthesizer",
    "ActionDispatcher",
    "IOrchestrator",
    "Orchestrator",
    "SessionNotFoundError",
]
