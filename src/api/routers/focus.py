import asyncio
import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, WebSocket
from pydantic import BaseModel, Field

from api import state
from api.dependencies import get_focus, get_user_id
from storage.focus_repository import DEFAULT_FOCUS_SECONDS, FocusRepository
from taskwise.models import FocusSession, SessionType

router = APIRouter(prefix="/focus")
logger = logging.getLogger(__name__)


class StartIn(BaseModel):
    duration: int = Field(DEFAULT_FOCUS_SECONDS, gt=0)
    session_type: SessionType = "focus"


class PauseIn(BaseModel):
    remaining_seconds: Optional[int] = Field(default=None, ge=0)


class AdvanceIn(BaseModel):
    focus_seconds: int = Field(DEFAULT_FOCUS_SECONDS, gt=0)


def _serialize(session: Optional[FocusSession]) -> dict:
    if session is None:
        return {"session": None, "remaining_seconds": None}
    return {
        "session": session.model_dump(mode="json"),
        "remaining_seconds": session.remaining_seconds(datetime.now(timezone.utc)),
    }


@router.get("")
async def get_session(
    user_id: str = Depends(get_user_id),
    focus: FocusRepository = Depends(get_focus),
) -> dict:
    return _serialize(await focus.get(user_id))


@router.post("/start")
async def start_session(
    payload: StartIn,
    user_id: str = Depends(get_user_id),
    focus: FocusRepository = Depends(get_focus),
) -> dict:
    return _serialize(await focus.start(user_id, payload.duration, payload.session_type))


@router.post("/pause")
async def pause_session(
    payload: Optional[PauseIn] = None,
    user_id: str = Depends(get_user_id),
    focus: FocusRepository = Depends(get_focus),
) -> dict:
    remaining = payload.remaining_seconds if payload is not None else None
    return _serialize(await focus.pause(user_id, remaining))


@router.post("/resume")
async def resume_session(
    user_id: str = Depends(get_user_id),
    focus: FocusRepository = Depends(get_focus),
) -> dict:
    return _serialize(await focus.resume(user_id))


@router.post("/reset")
async def reset_session(
    user_id: str = Depends(get_user_id),
    focus: FocusRepository = Depends(get_focus),
) -> dict:
    return _serialize(await focus.reset(user_id))


@router.post("/advance")
async def advance_session(
    payload: Optional[AdvanceIn] = None,
    user_id: str = Depends(get_user_id),
    focus: FocusRepository = Depends(get_focus),
) -> dict:
    """Finish or skip the current phase: focus goes to a break, a break to focus."""
    focus_seconds = payload.focus_seconds if payload is not None else DEFAULT_FOCUS_SECONDS
    return _serialize(await focus.advance(user_id, focus_seconds))


@router.websocket("/stream")
async def stream_session(websocket: WebSocket) -> None:
    """Push the caller's focus session on connect and after every change."""
    user_id = (websocket.headers.get("x-user-id") or "").strip() or state.settings.default_user_id
    focus = state.focus
    await websocket.accept()

    async def _pump() -> None:
        async for session in focus.stream(user_id):
            await websocket.send_json(_serialize(session))

    pump = asyncio.create_task(_pump())
    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                break
    finally:
        pump.cancel()
        await asyncio.gather(pump, return_exceptions=True)
        logger.info(f"Focus stream closed for user {user_id}")
