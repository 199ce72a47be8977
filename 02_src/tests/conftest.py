"""Pytest configuration and fixtures."""

import json
import sys
from pathlib import Path
from unittest.mock import AsyncMock, Mock

import pytest
import pytest_asyncio

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from blisscore.agents.normalizer import UNDERSTANDING_INSTRUCTIONS
from blisscore.agents.sentiment import SENTIMENT_INSTRUCTIONS
from blisscore.agents.summarizer import (
    CHAT_SUMMARY_INSTRUCTIONS,
    JOURNAL_SUMMARY_INSTRUCTIONS,
)


@pytest_asyncio.fixture
async def storage():
    """Create in-memory storage for testing."""
    from blisscore.storage import Storage

    st = Storage(":memory:")
    await st.init()
    yield st
    await st.close()


@pytest.fixture
def tracker(storage):
    """Create Tracker with storage."""
    from blisscore.tracker import Tracker

    return Tracker(storage=storage)


@pytest.fixture
def profile_store(storage):
    """Create ProfileStore with storage."""
    from blisscore.profile import ProfileStore

    return ProfileStore(storage)


@pytest.fixture
def mock_llm():
    """Create mock LLM provider."""
    llm = Mock()
    llm.complete = AsyncMock(return_value="Test response")
    return llm


def make_routed_llm(responses: dict):
    """Mock LLM answering by system prompt. Values may be strings or exceptions."""
    llm = Mock()
    llm.responses = responses

    async def complete(messages, system=None, max_tokens=1024):
        answer = llm.responses.get(system, "Test response")
        if isinstance(answer, Exception):
            raise answer
        return answer

    llm.complete = AsyncMock(side_effect=complete)
    return llm


@pytest.fixture
def fast_llm():
    """Mock for understanding, sentiment and summaries."""
    return make_routed_llm(
        {
            UNDERSTANDING_INSTRUCTIONS: json.dumps(
                {"languageCode": "en-US", "intent": "question", "entities": {}}
            ),
            SENTIMENT_INSTRUCTIONS: json.dumps(
                {"sentiment": "positive", "emotion": "joy"}
            ),
            CHAT_SUMMARY_INSTRUCTIONS: "User is chatting about their day.",
            JOURNAL_SUMMARY_INSTRUCTIONS: json.dumps(
                {
                    "emotions": ["calm"],
                    "majorEvents": [],
                    "keyDiscussions": ["sleep"],
                    "cbtExercises": [],
                    "followUps": [],
                    "userObjectives": ["sleep earlier"],
                }
            ),
        }
    )


@pytest.fixture
def chat_llm():
    """Mock for reply generation."""
    llm = Mock()
    llm.complete = AsyncMock(return_value="Happy to help with that.")
    return llm


@pytest.fixture
def mock_tts():
    """Mock text-to-speech capability."""
    tts = Mock()
    tts.synthesize = AsyncMock(return_value="UklGRg==")
    return tts


@pytest.fixture
def fast_settings():
    """Settings without retry backoff delays."""
    from blisscore.config import Settings

    return Settings(persistence_retry_delay=0.0)


@pytest.fixture
def build_orchestrator(storage, tracker, profile_store, fast_llm, chat_llm, fast_settings):
    """Factory for an Orchestrator wired to in-memory storage and mocks."""
    from blisscore.agents import (
        POLICIES_BY_SESSION_TYPE,
        ContextRetriever,
        ConversationSummarizer,
        InputNormalizer,
        ResponseComposer,
        SentimentAnalyzer,
        UnderstandingAgent,
    )
    from blisscore.orchestrator import Orchestrator
    from blisscore.speech import SpeechSynthesizer

    def build(tts=None, transcriber=None, action_dispatcher=None, settings=None):
        return Orchestrator(
            storage=storage,
            profile_store=profile_store,
            normalizer=InputNormalizer(
                UnderstandingAgent(fast_llm), transcriber=transcriber
            ),
            sentiment_analyzer=SentimentAnalyzer(fast_llm),
            context_retriever=ContextRetriever(storage),
            composer=ResponseComposer(chat_llm),
            summarizers={
                session_type: ConversationSummarizer(fast_llm, policy=policy)
                for session_type, policy in POLICIES_BY_SESSION_TYPE.items()
            },
            tracker=tracker,
            synthesizer=SpeechSynthesizer(tts) if tts else None,
            action_dispatcher=action_dispatcher,
            settings=settings or fast_settings,
        )

    return build
