"""Input normalization: transcription plus language/intent understanding."""

import re

from ..llm import ILLMProvider, parse_json_object
from ..logging_config import get_logger
from ..models import (
    AudioInput,
    ErrorKind,
    StageError,
    StageResult,
    Utterance,
)
from ..resilience import call_capability
from ..speech import ITranscriber

logger = get_logger(__name__)

GREETING_PATTERN = re.compile(r"\b(hello|hi|hey)\b", re.IGNORECASE)

UNDERSTANDING_INSTRUCTIONS = (
    "Parse user input: detect the language (BCP-47 code), the intent and the "
    "named entities. Reply with JSON only, no prose, in the form "
    '{"languageCode": string, "intent": string, "entities": {string: string}}.'
)


class UnderstandingAgent:
    """Text to {language, intent, entities}. Best effort, never raises."""

    def __init__(
        self,
        llm_provider: ILLMProvider,
        timeout: float | None = 8.0,
        max_tokens: int = 256,
    ):
        self._llm = llm_provider
        self._timeout = timeout
        self._max_tokens = max_tokens

    async def parse(self, text: str) -> StageResult[Utterance]:
        if GREETING_PATTERN.search(text):
            return StageResult.success(
                Utterance(
                    raw_text=text, language_code="en-US", intent="greeting", entities={}
                )
            )

        try:
            completion = await call_capability(
                self._llm.complete(
                    messages=[{"role": "user", "content": text}],
                    system=UNDERSTANDING_INSTRUCTIONS,
                    max_tokens=self._max_tokens,
                ),
                self._timeout,
            )
            utterance = self._to_utterance(text, parse_json_object(completion))
        except StageError as e:
            logger.warning(f"Understanding fell back to unknown intent ({e.kind.value}): {e}")
            return StageResult.failure(Utterance.unknown(text), e.kind, str(e))

        return StageResult.success(utterance)

    @staticmethod
    def _to_utterance(text: str, data: dict) -> Utterance:
        language_code = data.get("languageCode")
        intent = data.get("intent")
        entities = data.get("entities", {})

        if not isinstance(language_code, str) or not language_code:
            raise StageError(ErrorKind.MALFORMED, "missing languageCode")
        if not isinstance(intent, str) or not intent:
            raise StageError(ErrorKind.MALFORMED, "missing intent")
        if entities is None:
            entities = {}
        if not isinstance(entities, dict):
            raise StageError(ErrorKind.MALFORMED, "entities is not an object")

        return Utterance(
            raw_text=text,
            language_code=language_code,
            intent=intent,
            entities={str(k): str(v) for k, v in entities.items()},
        )


class InputNormalizer:
    """Raw text or audio in, canonical Utterance out."""

    def __init__(
        self,
        understanding: UnderstandingAgent,
        transcriber: ITranscriber | None = None,
        transcription_timeout: float | None = 20.0,
    ):
        self._understanding = understanding
        self._transcriber = transcriber
        self._transcription_timeout = transcription_timeout

    async def normalize(self, user_input: str | AudioInput) -> StageResult[Utterance]:
        if isinstance(user_input, str):
            return await self._understanding.parse(user_input)

        try:
            if self._transcriber is None:
                raise StageError(ErrorKind.UNAVAILABLE, "no transcriber configured")
            transcript = await call_capability(
                self._transcriber.transcribe(user_input), self._transcription_timeout
            )
        except StageError as e:
            logger.warning(f"Transcription failed ({e.kind.value}): {e}")
            return StageResult.failure(
                Utterance.unknown(""), e.kind, f"transcription: {e}"
            )

        # Low confidence is not a gate here; the orchestrator applies its threshold.
        logger.debug(
            f"Transcribed audio with confidence {transcript.confidence:.2f}: "
            f"{transcript.text[:50]}"
        )

        if not transcript.text:
            return StageResult.failure(
                Utterance(raw_text="", transcription_confidence=transcript.confidence),
                ErrorKind.EMPTY,
                "transcription: no speech recognized",
            )

        parsed = await self._understanding.parse(transcript.text)
        utterance = Utterance(
            raw_text=parsed.value.raw_text,
            language_code=parsed.value.language_code,
            intent=parsed.value.intent,
            entities=parsed.value.entities,
            transcription_confidence=transcript.confidence,
        )
        return StageResult(value=utterance, error=parsed.error, detail=parsed.detail)
