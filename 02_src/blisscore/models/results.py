"""Stage and turn result models."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Generic, TypeVar

from .conversation import (
    ActionResult,
    SentimentResult,
    SpeechResult,
    Utterance,
)

T = TypeVar("T")


class ErrorKind(str, Enum):
    """Why a stage fell back to its safe default."""

    TIMEOUT = "timeout"
    UNAVAILABLE = "unavailable"  # capability call raised
    MALFORMED = "malformed"  # output could not be parsed or validated
    EMPTY = "empty"  # capability returned nothing usable
    STORAGE = "storage"


class TurnStage(str, Enum):
    """Orchestrator states for a single turn."""

    RECEIVED = "received"
    NORMALIZING = "normalizing"
    ENRICHING = "enriching"
    COMPOSING = "composing"
    PERSISTING = "persisting"
    SYNTHESIZING = "synthesizing"
    COMPLETE = "complete"


class StageError(Exception):
    """Raised inside a stage; converted to a failed StageResult."""

    def __init__(self, kind: ErrorKind, detail: str = ""):
        super().__init__(detail or kind.value)
        self.kind = kind
        self.detail = detail


@dataclass(frozen=True)
class StageResult(Generic[T]):
    """Value produced by a stage. On failure, value holds the stage's safe default."""

    value: T
    error: ErrorKind | None = None
    detail: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T) -> "StageResult[T]":
        return cls(value=value)

    @classmethod
    def failure(
        cls, fallback: T, kind: ErrorKind, detail: str | None = None
    ) -> "StageResult[T]":
        return cls(value=fallback, error=kind, detail=detail)


@dataclass
class TurnResult:
    """Everything the caller gets back from one turn."""

    turn_id: str
    session_id: int
    response_text: str
    utterance: Utterance
    sentiment: SentimentResult
    speech: SpeechResult
    action: str | None = None
    action_result: ActionResult | None = None
    summary: str = ""
    persisted: bool = False
    degraded: dict[str, ErrorKind] = field(default_factory=dict)
