"""Turn orchestration: normalize, enrich, compose, persist, synthesize."""

import asyncio
import uuid
from typing import Awaitable, Protocol, TypeVar

from ..agents import (
    ActionDispatcher,
    ContextRetriever,
    ConversationSummarizer,
    InputNormalizer,
    ResponseComposer,
    SentimentAnalyzer,
)
from ..config import Settings
from ..locks import KeyedLock
from ..logging_config import get_logger
from ..models import (
    ActionResult,
    AudioInput,
    ConversationSession,
    ErrorKind,
    SentimentResult,
    SessionType,
    SpeechResult,
    StageError,
    StageResult,
    TurnResult,
    TurnStage,
    UserProfile,
    Utterance,
)
from ..profile import IProfileStore
from ..resilience import retry_storage
from ..speech import SpeechSynthesizer
from ..storage import IStorage
from ..tracker import ITracker

logger = get_logger(__name__)

T = TypeVar("T")

REPROMPT_TEXT = "I didn't quite catch that. Could you say it again?"


class SessionNotFoundError(LookupError):
    """The caller referenced a session that does not exist."""


class IOrchestrator(Protocol):
    """Runs conversation turns end to end."""

    async def open_session(
        self,
        persona_id: str,
        system_instructions: str,
        title: str,
        session_type: SessionType = SessionType.CHAT,
    ) -> ConversationSession:
        """Create or reuse the session for a persona key."""
        ...

    async def handle_turn(
        self, user_id: str, session_id: int, user_input: str | AudioInput
    ) -> TurnResult:
        """Process one user turn. Always produces a reply."""
        ...


class Orchestrator:
    """Coordinates the pipeline stages for each turn.

    Every stage degrades to a safe default, so a turn always reaches
    COMPLETE. Turns of one session run one at a time; profile writes are
    serialized per user by the profile store.
    """

    def __init__(
        self,
        storage: IStorage,
        profile_store: IProfileStore,
        normalizer: InputNormalizer,
        sentiment_analyzer: SentimentAnalyzer,
        context_retriever: ContextRetriever,
        composer: ResponseComposer,
        summarizers: dict[SessionType, ConversationSummarizer],
        tracker: ITracker,
        synthesizer: SpeechSynthesizer | None = None,
        action_dispatcher: ActionDispatcher | None = None,
        settings: Settings | None = None,
    ):
        self._storage = storage
        self._profiles = profile_store
        self._normalizer = normalizer
        self._sentiment = sentiment_analyzer
        self._retriever = context_retriever
        self._composer = composer
        self._summarizers = summarizers
        self._tracker = tracker
        self._synthesizer = synthesizer
        self._actions = action_dispatcher
        self._settings = settings or Settings()
        self._session_locks = KeyedLock()

    async def open_session(
        self,
        persona_id: str,
        system_instructions: str,
        title: str,
        session_type: SessionType = SessionType.CHAT,
    ) -> ConversationSession:
        session = await self._storage.create_session(
            persona_id=persona_id,
            system_instructions=system_instructions,
            title=title,
            session_type=session_type,
        )
        logger.info(f"Session {session.id} ready for persona {persona_id}")
        return session

    async def handle_turn(
        self, user_id: str, session_id: int, user_input: str | AudioInput
    ) -> TurnResult:
        async with self._session_locks.hold(session_id):
            session = await self._storage.get_session_by_id(session_id)
            if session is None:
                raise SessionNotFoundError(f"Session {session_id} not found")
            return await self._run_turn(user_id, session, user_input)

    async def _run_turn(
        self,
        user_id: str,
        session: ConversationSession,
        user_input: str | AudioInput,
    ) -> TurnResult:
        turn = {
            "turn_id": str(uuid.uuid4()),
            "session_id": session.id,
            "user_id": user_id,
        }
        degraded: dict[str, ErrorKind] = {}

        await self._enter(TurnStage.RECEIVED, turn)

        # Normalizing: everything downstream needs the utterance
        await self._enter(TurnStage.NORMALIZING, turn)
        normalized = await self._normalizer.normalize(user_input)
        await self._note("normalizing", normalized, degraded, turn)
        utterance = normalized.value

        if self._needs_reprompt(utterance):
            logger.info("Turn asks user to repeat", extra={"context": turn})
            await self._enter(TurnStage.COMPLETE, turn, persisted=False)
            return TurnResult(
                turn_id=turn["turn_id"],
                session_id=session.id,
                response_text=REPROMPT_TEXT,
                utterance=utterance,
                sentiment=SentimentResult.neutral(),
                speech=SpeechResult.text_only(),
                summary=session.summary,
                persisted=False,
                degraded=degraded,
            )

        # Enriching: independent lookups joined before composing
        await self._enter(TurnStage.ENRICHING, turn)
        sentiment_r, profile_r, context_r, history_r = await asyncio.gather(
            self._sentiment.analyze(utterance.raw_text),
            self._guarded_read(
                self._profiles.get(user_id), UserProfile(user_id=user_id), "profile read"
            ),
            self._retriever.retrieve(utterance.raw_text, user_id),
            self._guarded_read(
                self._storage.get_recent_exchanges(
                    session.id, self._settings.history_window
                ),
                [],
                "recent history read",
            ),
        )
        await self._note("sentiment", sentiment_r, degraded, turn)
        await self._note("profile", profile_r, degraded, turn)
        await self._note("retrieval", context_r, degraded, turn)
        await self._note("history", history_r, degraded, turn)
        profile = profile_r.value

        await self._enter(TurnStage.COMPOSING, turn)
        reply_r = await self._composer.compose(
            utterance,
            sentiment_r.value,
            context_r.value,
            profile,
            history_r.value,
            session,
        )
        await self._note("composing", reply_r, degraded, turn)
        reply = reply_r.value

        # Persisting and synthesizing are independent; text never waits on audio
        await self._enter(TurnStage.PERSISTING, turn)
        speak = self._synthesizer is not None and profile.preferences.tts_enabled
        if speak:
            await self._enter(TurnStage.SYNTHESIZING, turn)
        (persisted, summary), speech_r = await asyncio.gather(
            self._persist(user_id, session, utterance.raw_text, reply.response_text, degraded, turn),
            self._synthesize(reply.response_text, profile) if speak
            else self._no_speech(),
        )
        await self._note("synthesizing", speech_r, degraded, turn)

        action_result = await self._dispatch_action(reply.action, user_id, session, utterance)

        await self._enter(
            TurnStage.COMPLETE,
            turn,
            persisted=persisted,
            degraded={stage: kind.value for stage, kind in degraded.items()},
        )
        logger.info(
            f"Turn complete (persisted={persisted}, degraded={sorted(degraded)})",
            extra={"context": turn},
        )

        return TurnResult(
            turn_id=turn["turn_id"],
            session_id=session.id,
            response_text=reply.response_text,
            utterance=utterance,
            sentiment=sentiment_r.value,
            speech=speech_r.value,
            action=reply.action,
            action_result=action_result,
            summary=summary,
            persisted=persisted,
            degraded=degraded,
        )

    def _needs_reprompt(self, utterance: Utterance) -> bool:
        if not utterance.raw_text.strip():
            return True
        confidence = utterance.transcription_confidence
        return (
            confidence is not None
            and confidence < self._settings.min_transcription_confidence
        )

    async def _guarded_read(
        self, read: Awaitable[T], fallback: T, description: str
    ) -> StageResult[T]:
        try:
            value = await asyncio.wait_for(read, self._settings.storage_timeout)
        except asyncio.TimeoutError:
            logger.error(f"{description} timed out")
            return StageResult.failure(fallback, ErrorKind.TIMEOUT, f"{description} timed out")
        except Exception as e:
            logger.error(f"{description} failed: {e}", exc_info=True)
            return StageResult.failure(fallback, ErrorKind.STORAGE, str(e))
        return StageResult.success(value)

    async def _persist(
        self,
        user_id: str,
        session: ConversationSession,
        user_text: str,
        response_text: str,
        degraded: dict[str, ErrorKind],
        turn: dict,
    ) -> tuple[bool, str]:
        """Write exchange, rolling summary and profile history. Returns (persisted, summary)."""
        persisted = True
        summary = session.summary
        retry = {
            "attempts": self._settings.persistence_retry_attempts,
            "delay": self._settings.persistence_retry_delay,
            "timeout": self._settings.storage_timeout,
        }

        try:
            await retry_storage(
                lambda: self._storage.append_exchange(session.id, user_text, response_text),
                "append exchange",
                **retry,
            )
        except StageError as e:
            persisted = False
            await self._note("persist_exchange", StageResult.failure(None, e.kind, str(e)), degraded, turn)

        summarizer = self._summarizers.get(session.session_type)
        if summarizer is not None:
            summary_r = await summarizer.summarize(user_text, response_text, session.summary)
            await self._note("summarizing", summary_r, degraded, turn)
            if summary_r.ok and summary_r.value != session.summary:
                try:
                    await retry_storage(
                        lambda: self._storage.update_summary(session.id, summary_r.value),
                        "update summary",
                        **retry,
                    )
                    summary = summary_r.value
                except StageError as e:
                    persisted = False
                    await self._note("persist_summary", StageResult.failure(None, e.kind, str(e)), degraded, turn)

        try:
            await retry_storage(
                lambda: self._profiles.append_history(user_id, user_text, response_text),
                "append profile history",
                **retry,
            )
        except StageError as e:
            persisted = False
            await self._note("persist_profile", StageResult.failure(None, e.kind, str(e)), degraded, turn)

        return persisted, summary

    async def _synthesize(self, text: str, profile: UserProfile) -> StageResult[SpeechResult]:
        return await self._synthesizer.synthesize(text, profile.preferences.language)

    @staticmethod
    async def _no_speech() -> StageResult[SpeechResult]:
        return StageResult.success(SpeechResult.text_only())

    async def _dispatch_action(
        self,
        action: str | None,
        user_id: str,
        session: ConversationSession,
        utterance: Utterance,
    ) -> ActionResult | None:
        if not action or self._actions is None or not self._actions.handles(action):
            return None
        return await self._actions.dispatch(
            action,
            {
                "user_id": user_id,
                "session_id": session.id,
                "text": utterance.raw_text,
                "entities": dict(utterance.entities),
            },
        )

    async def _note(
        self,
        stage: str,
        result: StageResult,
        degraded: dict[str, ErrorKind],
        turn: dict,
    ) -> None:
        """Record a stage that fell back to its default."""
        if result.ok:
            return
        degraded[stage] = result.error
        logger.warning(
            f"Stage {stage} degraded ({result.error.value}): {result.detail}",
            extra={"context": turn},
        )
        await self._safe_track(
            "stage_degraded",
            {**turn, "stage": stage, "error": result.error.value, "detail": result.detail},
        )

    async def _enter(self, stage: TurnStage, turn: dict, **data) -> None:
        await self._safe_track("turn_stage", {**turn, "stage": stage.value, **data})

    async def _safe_track(self, event_type: str, data: dict) -> None:
        try:
            await self._tracker.track(event_type=event_type, actor="orchestrator", data=data)
        except Exception as e:
            logger.warning(f"Could not record {event_type}: {e}")
