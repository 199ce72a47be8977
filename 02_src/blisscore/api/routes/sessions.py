"""Session API routes."""

from datetime import datetime

from pydantic import BaseModel
from fastapi import APIRouter, HTTPException, Query

from ...app import Application
from ...models import ConversationSession, SessionType
from ...storage import SessionTypeConflictError


class SessionRequest(BaseModel):
    """Request model for opening a session."""

    persona_id: str
    title: str
    system_instructions: str = ""
    session_type: SessionType = SessionType.CHAT


class PinRequest(BaseModel):
    """Request model for pinning a session."""

    pinned: bool


class SessionResponse(BaseModel):
    """Response model for a session."""

    id: int
    persona_id: str
    title: str
    summary: str
    session_type: SessionType
    is_pinned: bool
    created_at: datetime


class ExchangeResponse(BaseModel):
    """Response model for an exchange."""

    id: int
    user_prompt: str
    bot_response: str
    created_at: datetime


class DeletedResponse(BaseModel):
    """Response model for deletions."""

    deleted: int


def _session_response(session: ConversationSession) -> dict:
    return {
        "id": session.id,
        "persona_id": session.persona_id,
        "title": session.title,
        "summary": session.summary,
        "session_type": session.session_type,
        "is_pinned": session.is_pinned,
        "created_at": session.created_at,
    }


def create_sessions_router(app: Application) -> APIRouter:
    """Create sessions router."""
    router = APIRouter(prefix="/api/sessions", tags=["sessions"])

    @router.post("", response_model=SessionResponse)
    async def open_session(request: SessionRequest) -> dict:
        """Create a session, or reuse the one for this persona."""
        try:
            session = await app.orchestrator.open_session(
                persona_id=request.persona_id,
                system_instructions=request.system_instructions,
                title=request.title,
                session_type=request.session_type,
            )
        except SessionTypeConflictError as e:
            raise HTTPException(status_code=409, detail=str(e))
        return _session_response(session)

    @router.get("", response_model=list[SessionResponse])
    async def list_sessions(
        session_type: SessionType | None = Query(None, description="Filter by type"),
    ) -> list[dict]:
        """List sessions, pinned first."""
        sessions = await app.storage.list_sessions(session_type)
        return [_session_response(s) for s in sessions]

    @router.get("/{session_id}/exchanges", response_model=list[ExchangeResponse])
    async def get_exchanges(
        session_id: int,
        limit: int | None = Query(None, ge=1, le=1000, description="Most recent N"),
    ) -> list[dict]:
        """Get exchanges of a session in chronological order."""
        if await app.storage.get_session_by_id(session_id) is None:
            raise HTTPException(status_code=404, detail="Session not found")

        if limit:
            exchanges = await app.storage.get_recent_exchanges(session_id, limit)
        else:
            exchanges = await app.storage.get_exchanges(session_id)

        return [
            {
                "id": e.id,
                "user_prompt": e.user_prompt,
                "bot_response": e.bot_response,
                "created_at": e.created_at,
            }
            for e in exchanges
        ]

    @router.put("/{session_id}/pin", response_model=SessionResponse)
    async def pin_session(session_id: int, request: PinRequest) -> dict:
        """Pin or unpin a session."""
        if await app.storage.get_session_by_id(session_id) is None:
            raise HTTPException(status_code=404, detail="Session not found")

        await app.storage.set_pinned(session_id, request.pinned)
        return _session_response(await app.storage.get_session_by_id(session_id))

    @router.delete("/{session_id}", response_model=DeletedResponse)
    async def delete_session(session_id: int) -> dict:
        """Delete a session and its history."""
        if not await app.storage.delete_session(session_id):
            raise HTTPException(status_code=404, detail="Session not found")
        return {"deleted": 1}

    @router.delete("", response_model=DeletedResponse)
    async def delete_sessions_of_type(
        session_type: SessionType = Query(..., description="Type to delete"),
    ) -> dict:
        """Delete every session of a type."""
        deleted = await app.storage.delete_all_sessions_of_type(session_type)
        return {"deleted": deleted}

    return router
