"""Transcription capability: recorded audio to text."""

import base64
import os
from typing import Protocol

import httpx

from ..logging_config import get_logger
from ..models import AudioInput, Transcript

logger = get_logger(__name__)

SPEECH_API_URL = "https://speech.googleapis.com/v1/speech:recognize"

# Recordings below this size carry no usable speech.
MIN_AUDIO_BYTES = 1024


class ITranscriber(Protocol):
    """Abstraction for speech-to-text."""

    async def transcribe(self, audio: AudioInput) -> Transcript:
        """Convert recorded audio to text with a confidence score."""
        ...


class GoogleSpeechTranscriber:
    """Google Cloud Speech-to-Text REST client."""

    def __init__(
        self,
        api_key: str | None = None,
        client: httpx.AsyncClient | None = None,
        timeout: float = 20.0,
    ):
        self._api_key = api_key or os.getenv("GOOGLE_API_KEY")
        if not self._api_key:
            raise ValueError("GOOGLE_API_KEY environment variable not set")

        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def transcribe(self, audio: AudioInput) -> Transcript:
        """Recognize speech in a single short recording."""
        if len(audio.data) < MIN_AUDIO_BYTES:
            raise ValueError("Recording was too short.")

        payload = {
            "config": {
                "encoding": audio.encoding,
                "sampleRateHertz": audio.sample_rate_hertz,
                "languageCode": audio.language_code,
            },
            "audio": {"content": base64.b64encode(audio.data).decode("ascii")},
        }

        response = await self._client.post(
            SPEECH_API_URL, params={"key": self._api_key}, json=payload
        )
        response.raise_for_status()
        data = response.json()

        alternatives = [
            result["alternatives"][0]
            for result in data.get("results", [])
            if result.get("alternatives")
        ]
        if not alternatives:
            logger.info("Speech API returned no transcription results")
            return Transcript(text="", confidence=0.0)

        text = " ".join(alt.get("transcript", "").strip() for alt in alternatives)
        confidence = sum(alt.get("confidence", 0.0) for alt in alternatives) / len(
            alternatives
        )
        return Transcript(text=text.strip(), confidence=confidence)

    async def close(self) -> None:
        await self._client.aclose()
