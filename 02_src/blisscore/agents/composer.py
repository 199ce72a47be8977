"""Response composition: grounding prompt, generation and action detection."""

from typing import Protocol

from ..llm import ILLMProvider
from ..logging_config import get_logger
from ..models import (
    ComposedReply,
    ContextDocument,
    ConversationSession,
    ErrorKind,
    Exchange,
    SentimentResult,
    StageError,
    StageResult,
    UserProfile,
    Utterance,
)
from ..resilience import call_capability

logger = get_logger(__name__)

APOLOGY_TEXT = "I'm having trouble responding right now. Please try again later."

DEFAULT_INSTRUCTIONS = "You are a helpful assistant."


class IActionDetector(Protocol):
    """Finds an action trigger in generated text."""

    def detect(self, response_text: str) -> str | None:
        ...


class MarkerActionDetector:
    """Maps marker substrings in the completion to action identifiers.

    Text sniffing is a stopgap until the generation capability can return
    structured tool calls; swap the detector, not the composer.
    """

    def __init__(self, markers: dict[str, str] | None = None):
        self._markers = markers or {"BOOK_APPOINTMENT": "book_appointment"}

    def detect(self, response_text: str) -> str | None:
        for marker, action in self._markers.items():
            if marker in response_text:
                return action
        return None


class ResponseComposer:
    """Builds the grounding prompt and generates the reply."""

    def __init__(
        self,
        llm_provider: ILLMProvider,
        action_detector: IActionDetector | None = None,
        timeout: float | None = 30.0,
        max_tokens: int = 1024,
        profile_history_window: int = 10,
    ):
        self._llm = llm_provider
        self._action_detector = action_detector or MarkerActionDetector()
        self._timeout = timeout
        self._max_tokens = max_tokens
        self._profile_history_window = profile_history_window

    def build_system_prompt(
        self,
        sentiment: SentimentResult,
        context_docs: list[ContextDocument],
        profile: UserProfile,
        recent_history: list[Exchange],
        session: ConversationSession | None = None,
    ) -> str:
        instructions = (
            session.system_instructions if session and session.system_instructions
            else DEFAULT_INSTRUCTIONS
        )
        sections = [
            instructions.strip(),
            f"Respond in {profile.preferences.language}.",
        ]

        if context_docs:
            context = "\n".join(doc.content for doc in context_docs)
            sections.append(f"[Context]:\n{context}")

        summary = session.summary if session else ""
        if summary:
            sections.append(f"[Conversation summary]:\n{summary}")
        elif not recent_history and profile.conversation_history:
            # No rolling summary yet: fall back to the bounded profile history
            window = profile.conversation_history[-self._profile_history_window:]
            sections.append("[Conversation history]:\n" + "\n".join(window))

        sections.append(
            f"User sentiment: {sentiment.sentiment.value} ({sentiment.emotion})"
        )
        return "\n\n".join(sections)

    @staticmethod
    def build_messages(utterance: Utterance, recent_history: list[Exchange]) -> list[dict]:
        messages: list[dict] = []
        for exchange in recent_history:
            messages.append({"role": "user", "content": exchange.user_prompt})
            messages.append({"role": "assistant", "content": exchange.bot_response})
        messages.append({"role": "user", "content": utterance.raw_text})
        return messages

    async def compose(
        self,
        utterance: Utterance,
        sentiment: SentimentResult,
        context_docs: list[ContextDocument],
        profile: UserProfile,
        recent_history: list[Exchange],
        session: ConversationSession | None = None,
    ) -> StageResult[ComposedReply]:
        system = self.build_system_prompt(
            sentiment, context_docs, profile, recent_history, session
        )
        messages = self.build_messages(utterance, recent_history)

        try:
            completion = await call_capability(
                self._llm.complete(
                    messages=messages, system=system, max_tokens=self._max_tokens
                ),
                self._timeout,
            )
            response_text = (completion or "").strip()
            if not response_text:
                raise StageError(ErrorKind.EMPTY, "empty completion")
        except StageError as e:
            logger.error(f"Reply generation failed ({e.kind.value}): {e}")
            return StageResult.failure(
                ComposedReply(response_text=APOLOGY_TEXT, action=None), e.kind, str(e)
            )

        action = self._action_detector.detect(response_text)
        return StageResult.success(ComposedReply(response_text=response_text, action=action))
