"""Speech synthesis: capability client and the best-effort pipeline stage."""

import os
from typing import Protocol

import httpx

from ..logging_config import get_logger
from ..models import ErrorKind, SpeechResult, StageError, StageResult
from ..resilience import call_capability

logger = get_logger(__name__)

TTS_API_URL = "https://texttospeech.googleapis.com/v1/text:synthesize"


class ITextToSpeech(Protocol):
    """Abstraction for text-to-speech."""

    async def synthesize(self, text: str, language_code: str) -> str | None:
        """Return base64-encoded audio, or None when nothing was produced."""
        ...


class GoogleTextToSpeech:
    """Google Cloud Text-to-Speech REST client (MP3 output)."""

    def __init__(
        self,
        api_key: str | None = None,
        client: httpx.AsyncClient | None = None,
        timeout: float = 15.0,
        speaking_rate: float = 1.0,
        pitch: float = 0.0,
    ):
        self._api_key = api_key or os.getenv("GOOGLE_API_KEY")
        if not self._api_key:
            raise ValueError("GOOGLE_API_KEY environment variable not set")

        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._speaking_rate = speaking_rate
        self._pitch = pitch

    async def synthesize(self, text: str, language_code: str) -> str | None:
        payload = {
            "input": {"text": text},
            "voice": {"languageCode": language_code},
            "audioConfig": {
                "audioEncoding": "MP3",
                "speakingRate": self._speaking_rate,
                "pitch": self._pitch,
            },
        }

        response = await self._client.post(
            TTS_API_URL, params={"key": self._api_key}, json=payload
        )
        response.raise_for_status()
        return response.json().get("audioContent") or None

    async def close(self) -> None:
        await self._client.aclose()


class SpeechSynthesizer:
    """Turns a composed reply into audio. Failure means text-only delivery."""

    def __init__(self, tts: ITextToSpeech, timeout: float | None = 15.0):
        self._tts = tts
        self._timeout = timeout

    async def synthesize(self, text: str, language_code: str) -> StageResult[SpeechResult]:
        try:
            audio = await call_capability(
                self._tts.synthesize(text, language_code), self._timeout
            )
            if not audio:
                raise StageError(ErrorKind.EMPTY, "no audio content returned")
        except StageError as e:
            logger.warning(f"Speech synthesis fell back to text ({e.kind.value}): {e}")
            return StageResult.failure(SpeechResult.text_only(), e.kind, str(e))

        return StageResult.success(SpeechResult(audio_content=audio, fallback=False))
