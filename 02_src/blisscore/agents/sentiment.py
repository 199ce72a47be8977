"""Sentiment analysis stage."""

from ..llm import ILLMProvider, parse_json_object
from ..logging_config import get_logger
from ..models import ErrorKind, Sentiment, SentimentResult, StageError, StageResult
from ..resilience import call_capability

logger = get_logger(__name__)

SENTIMENT_INSTRUCTIONS = (
    "Analyze the sentiment and emotion of the user's message. Reply with JSON "
    'only: {"sentiment": "positive" | "negative" | "neutral", "emotion": string}.'
)


class SentimentAnalyzer:
    """Scores affect of an utterance. Falls back to neutral/neutral."""

    def __init__(
        self,
        llm_provider: ILLMProvider,
        timeout: float | None = 8.0,
        max_tokens: int = 64,
    ):
        self._llm = llm_provider
        self._timeout = timeout
        self._max_tokens = max_tokens

    async def analyze(self, text: str) -> StageResult[SentimentResult]:
        try:
            completion = await call_capability(
                self._llm.complete(
                    messages=[{"role": "user", "content": text}],
                    system=SENTIMENT_INSTRUCTIONS,
                    max_tokens=self._max_tokens,
                ),
                self._timeout,
            )
            data = parse_json_object(completion)

            try:
                sentiment = Sentiment(str(data.get("sentiment", "")).lower())
            except ValueError as e:
                raise StageError(
                    ErrorKind.MALFORMED, f"unknown sentiment {data.get('sentiment')!r}"
                ) from e

            emotion = data.get("emotion")
            if not isinstance(emotion, str) or not emotion:
                raise StageError(ErrorKind.MALFORMED, "missing emotion")
        except StageError as e:
            logger.warning(f"Sentiment fell back to neutral ({e.kind.value}): {e}")
            return StageResult.failure(SentimentResult.neutral(), e.kind, str(e))

        return StageResult.success(SentimentResult(sentiment=sentiment, emotion=emotion))
