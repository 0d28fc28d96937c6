"""
Focus timer repository.

Each user has exactly one focus-session document, stored under an id derived
from the user id so that every device reads and writes the same timer.
Timestamps are UTC epoch seconds.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, AsyncIterator, Callable, Dict, List, Optional

from storage.documents import Document, DocumentStore
from storage.records import Subscription, from_epoch, queue_stream, store_errors, to_epoch
from taskwise.errors import FocusSessionStateError
from taskwise.metrics import RECORD_WRITES_TOTAL
from taskwise.models import FocusSession, SessionType

logger = logging.getLogger(__name__)

DEFAULT_FOCUS_SECONDS = 25 * 60
BREAK_SECONDS = 5 * 60

_SESSION_NAMESPACE = uuid.UUID("5b0f3c1e-8a47-4d55-9a63-2f1c7e0d4b9a")
_TIME_FIELDS = ("start_time", "end_time", "paused_time")

SessionCallback = Callable[[Optional[FocusSession]], None]
ErrorCallback = Callable[[Exception], None]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def session_id(user_id: str) -> str:
    return str(uuid.uuid5(_SESSION_NAMESPACE, user_id))


def to_document(session: FocusSession) -> Dict[str, Any]:
    data = session.model_dump(exclude_none=True)
    for name in _TIME_FIELDS:
        if name in data:
            data[name] = to_epoch(data[name])
    return data


def from_document(doc: Document) -> FocusSession:
    data = dict(doc.data)
    for name in _TIME_FIELDS:
        data[name] = from_epoch(data.get(name))
    return FocusSession.model_validate(data)


class FocusRepository:
    def __init__(self, store: DocumentStore, clock: Callable[[], datetime] = _utcnow):
        self.store = store
        self.clock = clock

    async def get(self, user_id: str) -> Optional[FocusSession]:
        with store_errors("focus session", "get"):
            doc = await self.store.get(user_id, session_id(user_id))
        return None if doc is None else from_document(doc)

    async def _replace(self, user_id: str, session: FocusSession, kind: str) -> FocusSession:
        with store_errors("focus session", kind):
            await self.store.set(user_id, session_id(user_id), to_document(session))
        RECORD_WRITES_TOTAL.labels(collection="focus", kind=kind).inc()
        logger.info(f"Focus session {kind} for user {user_id}")
        return session

    async def start(self, user_id: str, duration_seconds: int, session_type: SessionType = "focus") -> FocusSession:
        """Start a fresh timer, replacing whatever session was there."""
        if duration_seconds <= 0:
            raise ValueError("duration must be positive")
        now = self.clock()
        session = FocusSession(
            is_active=True,
            session_type=session_type,
            duration=duration_seconds,
            start_time=now,
            end_time=now + timedelta(seconds=duration_seconds),
        )
        return await self._replace(user_id, session, "start")

    async def pause(self, user_id: str, remaining_seconds: Optional[int] = None) -> FocusSession:
        """
        Stop the running timer and remember how much was left. When the caller
        does not say, the remainder is computed from the stored end time.
        """
        current = await self.get(user_id)
        if current is None or not current.is_active:
            raise FocusSessionStateError("no running focus session to pause")
        now = self.clock()
        if remaining_seconds is None:
            remaining_seconds = current.remaining_seconds(now)
        session = current.model_copy(
            update={"is_active": False, "paused_time": now, "remaining_on_pause": max(0, remaining_seconds)}
        )
        return await self._replace(user_id, session, "pause")

    async def resume(self, user_id: str) -> FocusSession:
        """Continue a paused timer for the seconds it had left."""
        current = await self.get(user_id)
        if current is None or not current.is_paused:
            raise FocusSessionStateError("no paused focus session to resume")
        now = self.clock()
        session = current.model_copy(
            update={
                "is_active": True,
                "end_time": now + timedelta(seconds=current.remaining_on_pause),
                "paused_time": None,
                "remaining_on_pause": None,
            }
        )
        return await self._replace(user_id, session, "resume")

    async def reset(self, user_id: str) -> FocusSession:
        return await self._replace(user_id, FocusSession(is_active=False), "reset")

    async def advance(self, user_id: str, focus_seconds: int = DEFAULT_FOCUS_SECONDS) -> FocusSession:
        """
        Move to the next phase: a finished (or skipped) focus session becomes a
        break, and a break becomes a new focus session of ``focus_seconds``.
        """
        current = await self.get(user_id)
        if current is not None and current.session_type == "focus" and current.start_time is not None:
            return await self.start(user_id, BREAK_SECONDS, "break")
        return await self.start(user_id, focus_seconds, "focus")

    async def subscribe(
        self,
        user_id: str,
        on_change: SessionCallback,
        on_error: Optional[ErrorCallback] = None,
    ) -> Subscription:
        """Deliver the session (or None) before returning, then after every change."""
        key = session_id(user_id)

        def _on_snapshot(docs: List[Document]) -> None:
            doc = next((d for d in docs if d.id == key), None)
            on_change(None if doc is None else from_document(doc))

        with store_errors("focus session", "subscribe"):
            watch = await self.store.watch(user_id, _on_snapshot, on_error)
        return Subscription(watch)

    def stream(self, user_id: str) -> AsyncIterator[Optional[FocusSession]]:
        return queue_stream(
            lambda on_change, on_error: self.subscribe(user_id, on_change, on_error), "focus session"
        )
