"""Speech capabilities: transcription and synthesis."""

from .synthesis import GoogleTextToSpeech, ITextToSpeech, SpeechSynthesizer
from .transcription import GoogleSpeechTranscriber, ITranscriber

__all__ = [
    "ITranscriber",
    "GoogleSpeechTranscriber",
    "ITextToSpeech",
    "GoogleTextToSpeech",
    "SpeechSynthesizer",
]
