"""Turn API routes."""

import base64
import binascii

from pydantic import BaseModel
from fastapi import APIRouter, HTTPException

from ...app import Application
from ...models import AudioInput
from ...orchestrator import SessionNotFoundError


class TurnRequest(BaseModel):
    """Request model for a turn. Exactly one of text or audio_base64."""

    user_id: str
    text: str | None = None
    audio_base64: str | None = None
    audio_encoding: str = "LINEAR16"
    sample_rate_hertz: int = 16000
    language_code: str = "en-US"


class TurnResponse(BaseModel):
    """Response model for a turn."""

    turn_id: str
    response: str
    action: str | None
    audio_content: str | None
    fallback: bool
    intent: str
    language_code: str
    sentiment: str
    emotion: str
    persisted: bool
    degraded: dict[str, str]


def _to_input(request: TurnRequest) -> str | AudioInput:
    if (request.text is None) == (request.audio_base64 is None):
        raise HTTPException(
            status_code=422, detail="Provide exactly one of text or audio_base64"
        )
    if request.text is not None:
        return request.text

    try:
        data = base64.b64decode(request.audio_base64, validate=True)
    except (binascii.Error, ValueError):
        raise HTTPException(status_code=422, detail="audio_base64 is not valid base64")

    return AudioInput(
        data=data,
        encoding=request.audio_encoding,
        sample_rate_hertz=request.sample_rate_hertz,
        language_code=request.language_code,
    )


def create_turns_router(app: Application) -> APIRouter:
    """Create turns router."""
    router = APIRouter(prefix="/api/sessions", tags=["turns"])

    @router.post("/{session_id}/turns", response_model=TurnResponse)
    async def handle_turn(session_id: int, request: TurnRequest) -> dict:
        """Run one conversation turn."""
        user_input = _to_input(request)

        try:
            result = await app.orchestrator.handle_turn(
                user_id=request.user_id, session_id=session_id, user_input=user_input
            )
        except SessionNotFoundError as e:
            raise HTTPException(status_code=404, detail=str(e))
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

        return {
            "turn_id": result.turn_id,
            "response": result.response_text,
            "action": result.action,
            "audio_content": result.speech.audio_content,
            "fallback": result.speech.fallback,
            "intent": result.utterance.intent,
            "language_code": result.utterance.language_code,
            "sentiment": result.sentiment.sentiment.value,
            "emotion": result.sentiment.emotion,
            "persisted": result.persisted,
            "degraded": {stage: kind.value for stage, kind in result.degraded.items()},
        }

    return router
