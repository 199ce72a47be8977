"""Application bootstrap and lifecycle management."""

import os

from .agents import (
    DEFAULT_KNOWLEDGE,
    POLICIES_BY_SESSION_TYPE,
    ActionDispatcher,
    ContextRetriever,
    ConversationSummarizer,
    InputNormalizer,
    ResponseComposer,
    SentimentAnalyzer,
    UnderstandingAgent,
)
from .config import Settings, load_settings, resolve_db_path
from .llm import ILLMProvider, LLMProvider
from .logging_config import get_logger
from .orchestrator import Orchestrator
from .profile import ProfileStore
from .speech import (
    GoogleSpeechTranscriber,
    GoogleTextToSpeech,
    ITextToSpeech,
    ITranscriber,
    SpeechSynthesizer,
)
from .storage import IStorage, Storage
from .tracker import ITracker, Tracker

logger = get_logger(__name__)


class Application:
    """Builds the pipeline with explicitly injected capability handles."""

    def __init__(
        self,
        db_path: str | None = None,
        settings: Settings | None = None,
        llm_provider: ILLMProvider | None = None,
        fast_llm_provider: ILLMProvider | None = None,
        transcriber: ITranscriber | None = None,
        tts: ITextToSpeech | None = None,
        action_dispatcher: ActionDispatcher | None = None,
    ):
        env_db_path = os.getenv("DATABASE_URL") if db_path is None else db_path
        self._db_path = resolve_db_path(env_db_path)
        self._settings = settings or load_settings()

        # Injected capabilities; missing ones are created in start()
        self._llm = llm_provider
        self._fast_llm = fast_llm_provider
        self._transcriber = transcriber
        self._tts = tts
        self._actions = action_dispatcher or ActionDispatcher()
        self._owned_clients: list = []

        # Components (will be initialized in start())
        self._storage: IStorage | None = None
        self._tracker: ITracker | None = None
        self._profile_store: ProfileStore | None = None
        self._retriever: ContextRetriever | None = None
        self._orchestrator: Orchestrator | None = None

    async def start(self) -> None:
        """Initialize components in dependency order."""
        logger.info("Starting application")
        settings = self._settings

        # 1. Storage (no dependencies)
        self._storage = Storage(self._db_path)
        await self._storage.init()
        await self._seed_knowledge()
        logger.info("Storage initialized")

        # 2. Tracker (depends on Storage)
        self._tracker = Tracker(self._storage)

        # 3. External capabilities
        if self._llm is None:
            self._llm = LLMProvider(model=settings.chat_model)
            self._owned_clients.append(self._llm)
        if self._fast_llm is None:
            self._fast_llm = LLMProvider(model=settings.fast_model)
            self._owned_clients.append(self._fast_llm)
        if self._transcriber is None and os.getenv("GOOGLE_API_KEY"):
            self._transcriber = GoogleSpeechTranscriber(timeout=settings.transcription_timeout)
            self._owned_clients.append(self._transcriber)
        if self._tts is None and os.getenv("GOOGLE_API_KEY"):
            self._tts = GoogleTextToSpeech(timeout=settings.synthesis_timeout)
            self._owned_clients.append(self._tts)
        if self._transcriber is None:
            logger.warning("No transcriber configured; audio turns will be re-prompted")
        if self._tts is None:
            logger.warning("No text-to-speech configured; replies are text only")
        logger.info("Capability clients initialized")

        # 4. Stages (depend on capabilities and Storage)
        self._profile_store = ProfileStore(self._storage)
        self._retriever = ContextRetriever(
            self._storage,
            top_k=settings.retrieval_top_k,
            timeout=settings.retrieval_timeout,
        )
        normalizer = InputNormalizer(
            UnderstandingAgent(self._fast_llm, timeout=settings.understanding_timeout),
            transcriber=self._transcriber,
            transcription_timeout=settings.transcription_timeout,
        )
        summarizers = {
            session_type: ConversationSummarizer(
                self._fast_llm, policy=policy, timeout=settings.summary_timeout
            )
            for session_type, policy in POLICIES_BY_SESSION_TYPE.items()
        }

        # 5. Orchestrator (depends on everything above)
        self._orchestrator = Orchestrator(
            storage=self._storage,
            profile_store=self._profile_store,
            normalizer=normalizer,
            sentiment_analyzer=SentimentAnalyzer(
                self._fast_llm, timeout=settings.sentiment_timeout
            ),
            context_retriever=self._retriever,
            composer=ResponseComposer(
                self._llm,
                timeout=settings.generation_timeout,
                max_tokens=settings.reply_max_tokens,
                profile_history_window=settings.profile_history_window,
            ),
            summarizers=summarizers,
            tracker=self._tracker,
            synthesizer=(
                SpeechSynthesizer(self._tts, timeout=settings.synthesis_timeout)
                if self._tts
                else None
            ),
            action_dispatcher=self._actions,
            settings=settings,
        )
        logger.info("All components initialized successfully")

    async def _seed_knowledge(self) -> None:
        if await self._storage.get_knowledge_documents():
            return
        for document in DEFAULT_KNOWLEDGE:
            await self._storage.add_knowledge_document(document)
        logger.info(f"Seeded {len(DEFAULT_KNOWLEDGE)} default knowledge documents")

    async def stop(self) -> None:
        """Shutdown in reverse order."""
        for client in reversed(self._owned_clients):
            await client.close()
        self._owned_clients.clear()
        self._orchestrator = None
        if self._storage:
            await self._storage.close()
            logger.info("Storage closed")

    async def reset(self) -> None:
        """Clear local history, profiles and traces; restore default knowledge."""
        if self._storage:
            await self._storage.clear()
            await self._seed_knowledge()
            logger.info("Storage cleared")
        if self._retriever:
            await self._retriever.refresh()
            logger.info("Reset complete")

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def storage(self) -> IStorage:
        """Get storage instance."""
        if not self._storage:
            raise RuntimeError("Application not started")
        return self._storage

    @property
    def orchestrator(self) -> Orchestrator:
        """Get orchestrator instance."""
        if not self._orchestrator:
            raise RuntimeError("Application not started")
        return self._orchestrator

    @property
    def profile_store(self) -> ProfileStore:
        """Get profile store instance."""
        if not self._profile_store:
            raise RuntimeError("Application not started")
        return self._profile_store

    @property
    def actions(self) -> ActionDispatcher:
        return self._actions
