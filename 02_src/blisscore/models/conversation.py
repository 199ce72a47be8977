"""Per-turn conversation data models."""

from dataclasses import dataclass, field
from enum import Enum


class Sentiment(str, Enum):
    """Sentiment polarity of an utterance."""

    POSITIVE = "positive"
    NEGATIVE = "negative"
    NEUTRAL = "neutral"


@dataclass(frozen=True)
class AudioInput:
    """Recorded audio handed to the pipeline instead of text."""

    data: bytes
    encoding: str = "LINEAR16"  # "LINEAR16", "AMR_WB", ...
    sample_rate_hertz: int = 16000
    language_code: str = "en-US"


@dataclass(frozen=True)
class Transcript:
    """Output of the transcription capability."""

    text: str
    confidence: float


@dataclass(frozen=True)
class Utterance:
    """Normalized user turn: text plus detected language, intent and entities."""

    raw_text: str
    language_code: str = "en-US"
    intent: str = "unknown"
    entities: dict[str, str] = field(default_factory=dict)
    transcription_confidence: float | None = None  # set for audio input only

    @classmethod
    def unknown(cls, text: str) -> "Utterance":
        """Safe default when understanding fails."""
        return cls(raw_text=text, language_code="en-US", intent="unknown", entities={})


@dataclass(frozen=True)
class SentimentResult:
    """Affect of an utterance."""

    sentiment: Sentiment
    emotion: str

    @classmethod
    def neutral(cls) -> "SentimentResult":
        """Safe default when sentiment analysis fails."""
        return cls(sentiment=Sentiment.NEUTRAL, emotion="neutral")


@dataclass(frozen=True)
class ContextDocument:
    """A knowledge snippet used to ground one turn's reply."""

    content: str
    source: str


@dataclass(frozen=True)
class ComposedReply:
    """Generated reply plus an optional detected action trigger."""

    response_text: str
    action: str | None = None


@dataclass(frozen=True)
class SpeechResult:
    """Synthesized audio (base64) or a text-only fallback."""

    audio_content: str | None
    fallback: bool

    @classmethod
    def text_only(cls) -> "SpeechResult":
        return cls(audio_content=None, fallback=True)


@dataclass
class ActionResult:
    """Outcome of executing a detected action."""

    success: bool
    result: dict | None = None
    error: str | None = None
