"""Project-level configuration and path helpers."""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Union

PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
DATA_DIR = PROJECT_ROOT / "03_data"
LOGS_DIR = PROJECT_ROOT / "04_logs"
DEFAULT_DB_PATH = DATA_DIR / "bliss_history.db"
DEFAULT_LOG_PATH = LOGS_DIR / "app.log"

DATA_DIR.mkdir(parents=True, exist_ok=True)
LOGS_DIR.mkdir(parents=True, exist_ok=True)


PathLike = Union[str, Path]


def resolve_db_path(env_value: PathLike | None = None) -> PathLike:
    """Resolve DATABASE_URL to an absolute path."""
    if not env_value:
        return DEFAULT_DB_PATH

    if str(env_value) == ":memory:":
        return ":memory:"

    candidate = Path(env_value)
    return candidate if candidate.is_absolute() else PROJECT_ROOT / candidate


@dataclass
class Settings:
    """Pipeline tuning knobs. Timeouts are in seconds."""

    chat_model: str = "claude-3-5-sonnet-20241022"
    fast_model: str = "claude-3-5-haiku-20241022"

    understanding_timeout: float = 8.0
    sentiment_timeout: float = 8.0
    retrieval_timeout: float = 2.0
    generation_timeout: float = 30.0
    summary_timeout: float = 20.0
    transcription_timeout: float = 20.0
    synthesis_timeout: float = 15.0
    storage_timeout: float = 5.0

    history_window: int = 2
    profile_history_window: int = 10
    retrieval_top_k: int = 3
    reply_max_tokens: int = 1024
    min_transcription_confidence: float = 0.0

    persistence_retry_attempts: int = 3
    persistence_retry_delay: float = 0.2

    api_host: str = "localhost"
    api_port: int = 8000


def load_settings() -> Settings:
    """Load settings from environment variables with defaults."""
    defaults = Settings()
    return Settings(
        chat_model=os.getenv("BLISS_CHAT_MODEL", defaults.chat_model),
        fast_model=os.getenv("BLISS_FAST_MODEL", defaults.fast_model),
        understanding_timeout=float(
            os.getenv("BLISS_UNDERSTANDING_TIMEOUT", defaults.understanding_timeout)
        ),
        sentiment_timeout=float(
            os.getenv("BLISS_SENTIMENT_TIMEOUT", defaults.sentiment_timeout)
        ),
        retrieval_timeout=float(
            os.getenv("BLISS_RETRIEVAL_TIMEOUT", defaults.retrieval_timeout)
        ),
        generation_timeout=float(
            os.getenv("BLISS_GENERATION_TIMEOUT", defaults.generation_timeout)
        ),
        summary_timeout=float(
            os.getenv("BLISS_SUMMARY_TIMEOUT", defaults.summary_timeout)
        ),
        transcription_timeout=float(
            os.getenv("BLISS_TRANSCRIPTION_TIMEOUT", defaults.transcription_timeout)
        ),
        synthesis_timeout=float(
            os.getenv("BLISS_SYNTHESIS_TIMEOUT", defaults.synthesis_timeout)
        ),
        storage_timeout=float(
            os.getenv("BLISS_STORAGE_TIMEOUT", defaults.storage_timeout)
        ),
        history_window=int(os.getenv("BLISS_HISTORY_WINDOW", defaults.history_window)),
        profile_history_window=int(
            os.getenv("BLISS_PROFILE_HISTORY_WINDOW", defaults.profile_history_window)
        ),
        retrieval_top_k=int(os.getenv("BLISS_RETRIEVAL_TOP_K", defaults.retrieval_top_k)),
        reply_max_tokens=int(
            os.getenv("BLISS_REPLY_MAX_TOKENS", defaults.reply_max_tokens)
        ),
        min_transcription_confidence=float(
            os.getenv(
                "BLISS_MIN_TRANSCRIPTION_CONFIDENCE",
                defaults.min_transcription_confidence,
            )
        ),
        persistence_retry_attempts=int(
            os.getenv(
                "BLISS_PERSISTENCE_RETRY_ATTEMPTS", defaults.persistence_retry_attempts
            )
        ),
        persistence_retry_delay=float(
            os.getenv("BLISS_PERSISTENCE_RETRY_DELAY", defaults.persistence_retry_delay)
        ),
        api_host=os.getenv("API_HOST", defaults.api_host),
        api_port=int(os.getenv("API_PORT", defaults.api_port)),
    )
