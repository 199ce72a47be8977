"""SQLite storage implementation for local conversation history."""

import json
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Protocol

import aiosqlite

from ..config import resolve_db_path
from ..models import (
    ContextDocument,
    ConversationSession,
    Exchange,
    SessionType,
    TraceEvent,
    UserProfile,
)

_SESSION_COLUMNS = (
    "id, persona_id, system_instructions, title, summary, "
    "session_type, created_at, is_pinned"
)


class SessionTypeConflictError(ValueError):
    """A persona key is already bound to a session of another type."""


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _parse_ts(value: str) -> datetime:
    ts = datetime.fromisoformat(value)
    return ts if ts.tzinfo else ts.replace(tzinfo=timezone.utc)


class IStorage(Protocol):
    """Embedded persistence for sessions, exchanges, profiles and traces."""

    async def init(self) -> None:
        """Initialize database and create tables."""
        ...

    async def close(self) -> None:
        """Close database connection."""
        ...

    # Sessions
    async def create_session(
        self,
        persona_id: str,
        system_instructions: str,
        title: str,
        session_type: SessionType = SessionType.CHAT,
    ) -> ConversationSession:
        """Create a session, or return the existing one for persona_id."""
        ...

    async def get_session_by_id(self, session_id: int) -> ConversationSession | None:
        """Get a session by its local id."""
        ...

    async def get_session_by_persona(self, persona_id: str) -> ConversationSession | None:
        """Get a session by its external persona key."""
        ...

    async def list_sessions(
        self, session_type: SessionType | None = None
    ) -> list[ConversationSession]:
        """List sessions, pinned first then newest first."""
        ...

    async def update_summary(self, session_id: int, summary: str) -> None:
        """Replace the rolling summary of a session."""
        ...

    async def set_pinned(self, session_id: int, pinned: bool) -> None:
        """Pin or unpin a session."""
        ...

    async def delete_session(self, session_id: int) -> bool:
        """Delete a session and its exchanges. Returns False if absent."""
        ...

    async def delete_all_sessions_of_type(self, session_type: SessionType) -> int:
        """Delete every session of a type. Returns the number deleted."""
        ...

    # Exchanges
    async def append_exchange(
        self, session_id: int, user_prompt: str, bot_response: str
    ) -> Exchange:
        """Append one exchange to a session."""
        ...

    async def get_recent_exchanges(self, session_id: int, n: int) -> list[Exchange]:
        """Last n exchanges of a session in chronological order."""
        ...

    async def get_exchanges(self, session_id: int) -> list[Exchange]:
        """All exchanges of a session in chronological order."""
        ...

    # Profiles
    async def get_profile(self, user_id: str) -> UserProfile | None:
        """Get a stored user profile."""
        ...

    async def save_profile(self, profile: UserProfile) -> None:
        """Insert or replace a user profile."""
        ...

    # Knowledge corpus
    async def add_knowledge_document(self, document: ContextDocument) -> None:
        """Add a document to the retrieval corpus."""
        ...

    async def get_knowledge_documents(self) -> list[ContextDocument]:
        """All documents of the retrieval corpus."""
        ...

    # TraceEvents
    async def save_trace_event(self, event: TraceEvent) -> None:
        """Save a trace event."""
        ...

    async def get_trace_events(
        self,
        after: datetime | None = None,
        event_types: list[str] | None = None,
        actor: str | None = None,
        limit: int = 100,
        turn_id: str | None = None,
    ) -> list[TraceEvent]:
        """Get trace events with optional filters."""
        ...

    # Lifecycle
    async def clear(self) -> None:
        """Clear all data."""
        ...


class Storage:
    """SQLite storage implementation."""

    def __init__(self, db_path: str | Path | None = None):
        if db_path is None:
            self._db_path = resolve_db_path()
        else:
            self._db_path = resolve_db_path(db_path)
        self._conn: aiosqlite.Connection | None = None

    async def init(self) -> None:
        """Initialize database and create tables."""
        self._conn = await aiosqlite.connect(self._db_path)

        schema_path = Path(__file__).parent / "schema.sql"
        with open(schema_path, "r", encoding="utf-8") as f:
            schema_sql = f.read()
        await self._conn.executescript(schema_sql)
        await self._conn.execute("PRAGMA foreign_keys = ON")
        await self._conn.commit()

    async def close(self) -> None:
        """Close database connection."""
        if self._conn:
            await self._conn.close()
            self._conn = None

    def _require_conn(self) -> aiosqlite.Connection:
        if not self._conn:
            raise RuntimeError("Storage not initialized")
        return self._conn

    @staticmethod
    def _row_to_session(row) -> ConversationSession:
        return ConversationSession(
            id=row[0],
            persona_id=row[1],
            system_instructions=row[2],
            title=row[3],
            summary=row[4] or "",
            session_type=SessionType(row[5]),
            created_at=_parse_ts(row[6]),
            is_pinned=bool(row[7]),
        )

    @staticmethod
    def _row_to_exchange(row) -> Exchange:
        return Exchange(
            id=row[0],
            session_id=row[1],
            user_prompt=row[2],
            bot_response=row[3],
            created_at=_parse_ts(row[4]),
        )

    # Sessions
    async def create_session(
        self,
        persona_id: str,
        system_instructions: str,
        title: str,
        session_type: SessionType = SessionType.CHAT,
    ) -> ConversationSession:
        """Create a session, or return the existing one for persona_id.

        Persona keys are unique across session types; reusing one with a
        different type raises SessionTypeConflictError.
        """
        conn = self._require_conn()

        await conn.execute(
            """
            INSERT OR IGNORE INTO sessions
            (persona_id, system_instructions, title, summary, session_type, created_at)
            VALUES (?, ?, ?, '', ?, ?)
            """,
            (persona_id, system_instructions, title, session_type.value, _now()),
        )
        await conn.commit()

        session = await self.get_session_by_persona(persona_id)
        if session is None:
            raise RuntimeError(f"Session for persona {persona_id} was not created")
        if session.session_type != session_type:
            raise SessionTypeConflictError(
                f"Persona {persona_id} already has a {session.session_type.value} session"
            )
        return session

    async def get_session_by_id(self, session_id: int) -> ConversationSession | None:
        """Get a session by its local id."""
        conn = self._require_conn()

        cursor = await conn.execute(
            f"SELECT {_SESSION_COLUMNS} FROM sessions WHERE id = ?",
            (session_id,),
        )
        row = await cursor.fetchone()
        return self._row_to_session(row) if row else None

    async def get_session_by_persona(self, persona_id: str) -> ConversationSession | None:
        """Get a session by its external persona key."""
        conn = self._require_conn()

        cursor = await conn.execute(
            f"SELECT {_SESSION_COLUMNS} FROM sessions WHERE persona_id = ?",
            (persona_id,),
        )
        row = await cursor.fetchone()
        return self._row_to_session(row) if row else None

    async def list_sessions(
        self, session_type: SessionType | None = None
    ) -> list[ConversationSession]:
        """List sessions, pinned first then newest first."""
        conn = self._require_conn()

        if session_type:
            cursor = await conn.execute(
                f"""
                SELECT {_SESSION_COLUMNS} FROM sessions
                WHERE session_type = ?
                ORDER BY is_pinned DESC, id DESC
                """,
                (session_type.value,),
            )
        else:
            cursor = await conn.execute(
                f"""
                SELECT {_SESSION_COLUMNS} FROM sessions
                ORDER BY is_pinned DESC, id DESC
                """
            )
        rows = await cursor.fetchall()
        return [self._row_to_session(row) for row in rows]

    async def update_summary(self, session_id: int, summary: str) -> None:
        """Replace the rolling summary of a session."""
        conn = self._require_conn()

        await conn.execute(
            "UPDATE sessions SET summary = ? WHERE id = ?",
            (summary, session_id),
        )
        await conn.commit()

    async def set_pinned(self, session_id: int, pinned: bool) -> None:
        """Pin or unpin a session."""
        conn = self._require_conn()

        await conn.execute(
            "UPDATE sessions SET is_pinned = ? WHERE id = ?",
            (1 if pinned else 0, session_id),
        )
        await conn.commit()

    async def delete_session(self, session_id: int) -> bool:
        """Delete a session and its exchanges. Returns False if absent."""
        conn = self._require_conn()

        cursor = await conn.execute("DELETE FROM sessions WHERE id = ?", (session_id,))
        await conn.commit()
        return cursor.rowcount > 0

    async def delete_all_sessions_of_type(self, session_type: SessionType) -> int:
        """Delete every session of a type. Returns the number deleted."""
        conn = self._require_conn()

        cursor = await conn.execute(
            "DELETE FROM sessions WHERE session_type = ?", (session_type.value,)
        )
        await conn.commit()
        return cursor.rowcount

    # Exchanges
    async def append_exchange(
        self, session_id: int, user_prompt: str, bot_response: str
    ) -> Exchange:
        """Append one exchange to a session."""
        conn = self._require_conn()

        created_at = _now()
        cursor = await conn.execute(
            """
            INSERT INTO exchanges (session_id, user_prompt, bot_response, created_at)
            VALUES (?, ?, ?, ?)
            """,
            (session_id, user_prompt, bot_response, created_at),
        )
        await conn.commit()

        return Exchange(
            id=cursor.lastrowid,
            session_id=session_id,
            user_prompt=user_prompt,
            bot_response=bot_response,
            created_at=_parse_ts(created_at),
        )

    async def get_recent_exchanges(self, session_id: int, n: int) -> list[Exchange]:
        """Last n exchanges of a session in chronological order."""
        conn = self._require_conn()

        if n <= 0:
            return []

        # Newest first by identity, then flipped back to chronological order
        cursor = await conn.execute(
            """
            SELECT id, session_id, user_prompt, bot_response, created_at
            FROM exchanges
            WHERE session_id = ?
            ORDER BY id DESC
            LIMIT ?
            """,
            (session_id, n),
        )
        rows = await cursor.fetchall()
        return [self._row_to_exchange(row) for row in reversed(rows)]

    async def get_exchanges(self, session_id: int) -> list[Exchange]:
        """All exchanges of a session in chronological order."""
        conn = self._require_conn()

        cursor = await conn.execute(
            """
            SELECT id, session_id, user_prompt, bot_response, created_at
            FROM exchanges
            WHERE session_id = ?
            ORDER BY id ASC
            """,
            (session_id,),
        )
        rows = await cursor.fetchall()
        return [self._row_to_exchange(row) for row in rows]

    # Profiles
    async def get_profile(self, user_id: str) -> UserProfile | None:
        """Get a stored user profile."""
        conn = self._require_conn()

        cursor = await conn.execute(
            "SELECT data FROM user_profiles WHERE user_id = ?",
            (user_id,),
        )
        row = await cursor.fetchone()

        if not row:
            return None

        return UserProfile.from_dict(json.loads(row[0]))

    async def save_profile(self, profile: UserProfile) -> None:
        """Insert or replace a user profile."""
        conn = self._require_conn()

        await conn.execute(
            """
            INSERT OR REPLACE INTO user_profiles (user_id, data, updated_at)
            VALUES (?, ?, ?)
            """,
            (profile.user_id, json.dumps(profile.to_dict()), _now()),
        )
        await conn.commit()

    # Knowledge corpus
    async def add_knowledge_document(self, document: ContextDocument) -> None:
        """Add a document to the retrieval corpus."""
        conn = self._require_conn()

        await conn.execute(
            "INSERT INTO knowledge_documents (content, source) VALUES (?, ?)",
            (document.content, document.source),
        )
        await conn.commit()

    async def get_knowledge_documents(self) -> list[ContextDocument]:
        """All documents of the retrieval corpus."""
        conn = self._require_conn()

        cursor = await conn.execute(
            "SELECT content, source FROM knowledge_documents ORDER BY id ASC"
        )
        rows = await cursor.fetchall()
        return [ContextDocument(content=row[0], source=row[1]) for row in rows]

    # TraceEvents
    async def save_trace_event(self, event: TraceEvent) -> None:
        """Save a trace event."""
        conn = self._require_conn()

        await conn.execute(
            """
            INSERT INTO trace_events (id, event_type, actor, data, timestamp)
            VALUES (?, ?, ?, ?, ?)
            """,
            (
                event.id or str(uuid.uuid4()),
                event.event_type,
                event.actor,
                json.dumps(event.data, default=str),
                event.timestamp.isoformat(),
            ),
        )
        await conn.commit()

    async def get_trace_events(
        self,
        after: datetime | None = None,
        event_types: list[str] | None = None,
        actor: str | None = None,
        limit: int = 100,
        turn_id: str | None = None,
    ) -> list[TraceEvent]:
        """Get trace events with optional filters (newest first)."""
        conn = self._require_conn()

        conditions = []
        params: list = []

        if after:
            conditions.append("timestamp > ?")
            params.append(after.isoformat())
        if event_types:
            placeholders = ",".join("?" * len(event_types))
            conditions.append(f"event_type IN ({placeholders})")
            params.extend(event_types)
        if actor:
            conditions.append("actor = ?")
            params.append(actor)
        if turn_id:
            conditions.append("json_extract(data, '$.turn_id') = ?")
            params.append(turn_id)

        where_clause = f"WHERE {' AND '.join(conditions)}" if conditions else ""

        query = f"""
            SELECT id, event_type, actor, data, timestamp
            FROM trace_events
            {where_clause}
            ORDER BY timestamp DESC, rowid DESC
            LIMIT ?
        """
        params.append(limit)

        cursor = await conn.execute(query, params)
        rows = await cursor.fetchall()

        return [
            TraceEvent(
                id=row[0],
                event_type=row[1],
                actor=row[2],
                data=json.loads(row[3]),
                timestamp=_parse_ts(row[4]),
            )
            for row in rows
        ]

    # Lifecycle
    async def clear(self) -> None:
        """Clear all data and reset autoincrement counters."""
        conn = self._require_conn()

        tables = [
            "exchanges",
            "sessions",
            "user_profiles",
            "knowledge_documents",
            "trace_events",
        ]

        for table in tables:
            await conn.execute(f"DELETE FROM {table}")
        await conn.execute("DELETE FROM sqlite_sequence")

        await conn.commit()
