"""
Countdown repository: a user's named target dates ("Exam", "Trip").

Stored as ``{"title", "date", "color"}`` documents with ``date`` encoded as
UTC epoch seconds, like task deadlines.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Union

from storage.documents import Document, DocumentStore
from storage.records import from_epoch, store_errors, to_epoch
from taskwise.metrics import RECORD_WRITES_TOTAL
from taskwise.models import Countdown, CountdownDraft

logger = logging.getLogger(__name__)


def from_document(doc: Document) -> Countdown:
    data = dict(doc.data)
    data["date"] = from_epoch(data.get("date"))
    data["id"] = doc.id
    return Countdown.model_validate(data)


class CountdownRepository:
    def __init__(self, store: DocumentStore):
        self.store = store

    async def add(self, user_id: str, draft: Union[CountdownDraft, Dict[str, Any]]) -> Countdown:
        if not isinstance(draft, CountdownDraft):
            draft = CountdownDraft.model_validate(draft)
        data = draft.model_dump()
        data["date"] = to_epoch(draft.date)
        with store_errors("countdown", "create"):
            doc = await self.store.add(user_id, data)
        RECORD_WRITES_TOTAL.labels(collection="countdowns", kind="create").inc()
        logger.info(f"Created countdown {doc.id} for user {user_id}")
        return from_document(doc)

    async def get(self, user_id: str, countdown_id: str) -> Optional[Countdown]:
        with store_errors("countdown", "get", countdown_id):
            doc = await self.store.get(user_id, countdown_id)
        return None if doc is None else from_document(doc)

    async def list(self, user_id: str) -> List[Countdown]:
        """Soonest target date first."""
        with store_errors("countdown", "list"):
            docs = await self.store.list(user_id)
        return sorted((from_document(d) for d in docs), key=lambda c: c.date)

    async def delete(self, user_id: str, countdown_id: str) -> None:
        with store_errors("countdown", "delete", countdown_id):
            await self.store.delete(user_id, countdown_id)
        RECORD_WRITES_TOTAL.labels(collection="countdowns", kind="delete").inc()
