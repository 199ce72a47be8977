"""Tests for Storage."""

from datetime import datetime, timedelta, timezone

import pytest

from blisscore.models import (
    ContextDocument,
    Preferences,
    SessionType,
    TraceEvent,
    UserProfile,
)
from blisscore.storage import SessionTypeConflictError, Storage


class TestStorageInit:
    """Tests for Storage initialization."""

    async def test_init_creates_tables(self, storage):
        """Test that init creates all tables."""
        async with storage._conn.execute(
            "SELECT name FROM sqlite_master WHERE type='table'"
        ) as cursor:
            tables = [row[0] for row in await cursor.fetchall()]
            assert "sessions" in tables
            assert "exchanges" in tables
            assert "user_profiles" in tables
            assert "knowledge_documents" in tables
            assert "trace_events" in tables

    async def test_uninitialized_storage_raises(self):
        """Test that using storage before init raises."""
        st = Storage(":memory:")
        with pytest.raises(RuntimeError, match="not initialized"):
            await st.get_session_by_id(1)


class TestStorageSessions:
    """Tests for session storage."""

    async def test_create_session(self, storage):
        """Test creating a session."""
        session = await storage.create_session("persona-1", "Be kind.", "Coach")

        assert session.id is not None
        assert session.persona_id == "persona-1"
        assert session.system_instructions == "Be kind."
        assert session.title == "Coach"
        assert session.summary == ""
        assert session.session_type == SessionType.CHAT
        assert session.is_pinned is False

    async def test_create_session_is_idempotent_per_persona(self, storage):
        """Test that the same persona key reuses the existing session."""
        first = await storage.create_session("persona-1", "Be kind.", "Coach")
        second = await storage.create_session("persona-1", "Other", "Other title")

        assert second.id == first.id
        assert second.title == "Coach"
        assert len(await storage.list_sessions()) == 1

    async def test_create_session_rejects_other_type_for_persona(self, storage):
        """Test that a persona key cannot be reopened as another session type."""
        await storage.create_session("persona-1", "", "Coach")

        with pytest.raises(SessionTypeConflictError):
            await storage.create_session("persona-1", "", "Journal", SessionType.JOURNAL)

        assert len(await storage.list_sessions()) == 1

    async def test_get_session_by_id(self, storage):
        """Test retrieving a session by id."""
        created = await storage.create_session("persona-1", "", "Coach")

        session = await storage.get_session_by_id(created.id)
        assert session is not None
        assert session.persona_id == "persona-1"

    async def test_get_nonexistent_session(self, storage):
        """Test retrieving nonexistent session returns None."""
        assert await storage.get_session_by_id(999) is None

    async def test_update_summary(self, storage):
        """Test replacing the rolling summary."""
        session = await storage.create_session("persona-1", "", "Coach")

        await storage.update_summary(session.id, "User likes tea.")

        updated = await storage.get_session_by_id(session.id)
        assert updated.summary == "User likes tea."

    async def test_list_sessions_pinned_first(self, storage):
        """Test that pinned sessions are listed before newer ones."""
        a = await storage.create_session("a", "", "A")
        b = await storage.create_session("b", "", "B")
        await storage.set_pinned(a.id, True)

        sessions = await storage.list_sessions()
        assert [s.id for s in sessions] == [a.id, b.id]

    async def test_list_sessions_by_type(self, storage):
        """Test filtering sessions by type."""
        await storage.create_session("chat-1", "", "Chat")
        await storage.create_session("journal-1", "", "Journal", SessionType.JOURNAL)

        journals = await storage.list_sessions(SessionType.JOURNAL)
        assert [s.persona_id for s in journals] == ["journal-1"]

    async def test_delete_session_cascades_exchanges(self, storage):
        """Test that deleting a session removes its exchanges."""
        session = await storage.create_session("persona-1", "", "Coach")
        await storage.append_exchange(session.id, "hi", "hello")

        assert await storage.delete_session(session.id) is True
        assert await storage.get_session_by_id(session.id) is None
        assert await storage.get_exchanges(session.id) == []

    async def test_delete_missing_session(self, storage):
        """Test deleting a nonexistent session returns False."""
        assert await storage.delete_session(42) is False

    async def test_delete_all_sessions_of_type(self, storage):
        """Test deleting every session of one type."""
        await storage.create_session("chat-1", "", "Chat")
        await storage.create_session("journal-1", "", "J1", SessionType.JOURNAL)
        await storage.create_session("journal-2", "", "J2", SessionType.JOURNAL)

        deleted = await storage.delete_all_sessions_of_type(SessionType.JOURNAL)

        assert deleted == 2
        remaining = await storage.list_sessions()
        assert [s.persona_id for s in remaining] == ["chat-1"]


class TestStorageExchanges:
    """Tests for exchange storage."""

    async def test_append_exchange(self, storage):
        """Test appending an exchange."""
        session = await storage.create_session("persona-1", "", "Coach")

        exchange = await storage.append_exchange(session.id, "hi", "hello")

        assert exchange.id is not None
        assert exchange.session_id == session.id
        assert exchange.user_prompt == "hi"
        assert exchange.bot_response == "hello"

    async def test_recent_exchanges_are_last_n_in_order(self, storage):
        """Test that the window holds the last N exchanges, oldest first."""
        session = await storage.create_session("persona-1", "", "Coach")
        for i in range(5):
            await storage.append_exchange(session.id, f"user {i}", f"bot {i}")

        recent = await storage.get_recent_exchanges(session.id, 2)

        assert [e.user_prompt for e in recent] == ["user 3", "user 4"]
        assert recent[0].id < recent[1].id

    async def test_recent_exchanges_fewer_than_n(self, storage):
        """Test window larger than the history."""
        session = await storage.create_session("persona-1", "", "Coach")
        await storage.append_exchange(session.id, "only", "one")

        recent = await storage.get_recent_exchanges(session.id, 10)
        assert [e.user_prompt for e in recent] == ["only"]

    async def test_recent_exchanges_zero_window(self, storage):
        """Test that a non-positive window returns nothing."""
        session = await storage.create_session("persona-1", "", "Coach")
        await storage.append_exchange(session.id, "hi", "hello")

        assert await storage.get_recent_exchanges(session.id, 0) == []

    async def test_exchanges_are_scoped_to_session(self, storage):
        """Test that exchanges of other sessions are not returned."""
        a = await storage.create_session("a", "", "A")
        b = await storage.create_session("b", "", "B")
        await storage.append_exchange(a.id, "for a", "ok")
        await storage.append_exchange(b.id, "for b", "ok")

        exchanges = await storage.get_exchanges(a.id)
        assert [e.user_prompt for e in exchanges] == ["for a"]

    async def test_append_exchange_unknown_session_fails(self, storage):
        """Test that exchanges require an existing session."""
        with pytest.raises(Exception):
            await storage.append_exchange(999, "hi", "hello")


class TestStorageProfiles:
    """Tests for profile storage."""

    async def test_get_missing_profile(self, storage):
        """Test that an unknown profile returns None."""
        assert await storage.get_profile("nobody") is None

    async def test_save_and_get_profile(self, storage):
        """Test saving and loading a profile."""
        profile = UserProfile(
            user_id="user1",
            name="Ana",
            preferences=Preferences(tts_enabled=False, language="es-ES"),
            conversation_history=["hola", "hola!"],
        )
        await storage.save_profile(profile)

        loaded = await storage.get_profile("user1")
        assert loaded == profile

    async def test_save_profile_replaces(self, storage):
        """Test that saving again overwrites the profile."""
        await storage.save_profile(UserProfile(user_id="user1", name="Ana"))
        await storage.save_profile(UserProfile(user_id="user1", name="Bea"))

        loaded = await storage.get_profile("user1")
        assert loaded.name == "Bea"


class TestStorageKnowledge:
    """Tests for the knowledge corpus."""

    async def test_add_and_list_documents(self, storage):
        """Test documents come back in insertion order."""
        await storage.add_knowledge_document(ContextDocument("first", "A"))
        await storage.add_knowledge_document(ContextDocument("second", "B"))

        docs = await storage.get_knowledge_documents()
        assert [d.content for d in docs] == ["first", "second"]
        assert docs[1].source == "B"


class TestStorageTraceEvents:
    """Tests for TraceEvent storage."""

    async def test_save_and_filter_trace_events(self, storage):
        """Test filtering trace events by type and actor."""
        now = datetime.now(timezone.utc)
        await storage.save_trace_event(
            TraceEvent(id="e1", event_type="turn_stage", actor="orchestrator", data={}, timestamp=now)
        )
        await storage.save_trace_event(
            TraceEvent(id="e2", event_type="stage_degraded", actor="orchestrator", data={"stage": "sentiment"}, timestamp=now + timedelta(seconds=1))
        )
        await storage.save_trace_event(
            TraceEvent(id="e3", event_type="turn_stage", actor="other", data={}, timestamp=now + timedelta(seconds=2))
        )

        degraded = await storage.get_trace_events(event_types=["stage_degraded"])
        assert [e.id for e in degraded] == ["e2"]
        assert degraded[0].data == {"stage": "sentiment"}

        by_actor = await storage.get_trace_events(actor="orchestrator")
        assert [e.id for e in by_actor] == ["e2", "e1"]

        after = await storage.get_trace_events(after=now)
        assert [e.id for e in after] == ["e3", "e2"]

    async def test_filter_by_turn_before_limit(self, storage):
        """Test that the turn filter is applied before the row limit."""
        now = datetime.now(timezone.utc)
        await storage.save_trace_event(
            TraceEvent(id="old", event_type="turn_stage", actor="orchestrator", data={"turn_id": "t1"}, timestamp=now)
        )
        for i in range(5):
            await storage.save_trace_event(
                TraceEvent(id=f"new{i}", event_type="turn_stage", actor="orchestrator", data={"turn_id": "t2"}, timestamp=now + timedelta(seconds=i + 1))
            )

        events = await storage.get_trace_events(turn_id="t1", limit=3)

        assert [e.id for e in events] == ["old"]


class TestStorageClear:
    """Tests for Storage.clear()."""

    async def test_clear_removes_everything(self, storage):
        """Test that clear empties all tables."""
        session = await storage.create_session("persona-1", "", "Coach")
        await storage.append_exchange(session.id, "hi", "hello")
        await storage.save_profile(UserProfile(user_id="user1"))
        await storage.add_knowledge_document(ContextDocument("doc", "src"))

        await storage.clear()

        assert await storage.list_sessions() == []
        assert await storage.get_profile("user1") is None
        assert await storage.get_knowledge_documents() == []
