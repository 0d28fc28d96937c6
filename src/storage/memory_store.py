from __future__ import annotations

import copy
import itertools
import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from storage.documents import (
    Document,
    DocumentNotFoundError,
    DocumentStore,
    ErrorCallback,
    SnapshotCallback,
    Watch,
)

logger = logging.getLogger(__name__)


class _MemoryWatch(Watch):
    def __init__(self, store: "InMemoryDocumentStore", user_id: str, on_snapshot: SnapshotCallback):
        self._store = store
        self.user_id = user_id
        self.on_snapshot = on_snapshot
        self.closed = False

    async def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        self._store._watches[self.user_id].remove(self)


class InMemoryDocumentStore(DocumentStore):
    """
    Process-local store for development and tests.

    Snapshots are delivered synchronously right after each mutation, so a
    watcher sees every intermediate state.
    """

    def __init__(self, collection: str = "tasks") -> None:
        self.collection = collection
        self._docs: Dict[str, Dict[str, Document]] = {}
        # insertion counter breaks created_at ties within one clock tick
        self._order: Dict[Tuple[str, str], int] = {}
        self._counter = itertools.count()
        self._watches: Dict[str, List[_MemoryWatch]] = {}

    @staticmethod
    def _copy(doc: Document) -> Document:
        return Document(doc.id, copy.deepcopy(doc.data), doc.created_at)

    def _snapshot(self, user_id: str) -> List[Document]:
        docs = sorted(
            self._docs.get(user_id, {}).values(),
            key=lambda d: (d.created_at, self._order[(user_id, d.id)]),
            reverse=True,
        )
        return [self._copy(d) for d in docs]

    def _notify(self, user_id: str) -> None:
        for w in list(self._watches.get(user_id, [])):
            try:
                w.on_snapshot(self._snapshot(user_id))
            except Exception:
                logger.exception(f"Snapshot callback failed for {self.collection} of user {user_id}")

    async def add(self, user_id: str, data: Dict[str, Any]) -> Document:
        doc = Document(
            id=uuid.uuid4().hex,
            data=copy.deepcopy(data),
            created_at=datetime.now(timezone.utc),
        )
        self._docs.setdefault(user_id, {})[doc.id] = doc
        self._order[(user_id, doc.id)] = next(self._counter)
        logger.debug(f"Added {self.collection} document {doc.id} for user {user_id}")
        self._notify(user_id)
        return self._copy(doc)

    async def get(self, user_id: str, doc_id: str) -> Optional[Document]:
        doc = self._docs.get(user_id, {}).get(doc_id)
        return None if doc is None else self._copy(doc)

    async def set(self, user_id: str, doc_id: str, data: Dict[str, Any]) -> Document:
        docs = self._docs.setdefault(user_id, {})
        current = docs.get(doc_id)
        created_at = current.created_at if current is not None else datetime.now(timezone.utc)
        docs[doc_id] = Document(doc_id, copy.deepcopy(data), created_at)
        self._order.setdefault((user_id, doc_id), next(self._counter))
        self._notify(user_id)
        return self._copy(docs[doc_id])

    async def update(self, user_id: str, doc_id: str, fields: Dict[str, Any]) -> None:
        docs = self._docs.get(user_id, {})
        doc = docs.get(doc_id)
        if doc is None:
            raise DocumentNotFoundError(doc_id)
        docs[doc_id] = Document(doc.id, {**doc.data, **copy.deepcopy(fields)}, doc.created_at)
        self._notify(user_id)

    async def delete(self, user_id: str, doc_id: str) -> None:
        if self._docs.get(user_id, {}).pop(doc_id, None) is None:
            return
        self._order.pop((user_id, doc_id), None)
        logger.debug(f"Deleted {self.collection} document {doc_id} for user {user_id}")
        self._notify(user_id)

    async def list(self, user_id: str) -> List[Document]:
        return self._snapshot(user_id)

    async def watch(
        self,
        user_id: str,
        on_snapshot: SnapshotCallback,
        on_error: Optional[ErrorCallback] = None,
    ) -> Watch:
        # a first callback that raises leaves nothing registered
        on_snapshot(self._snapshot(user_id))
        w = _MemoryWatch(self, user_id, on_snapshot)
        self._watches.setdefault(user_id, []).append(w)
        return w
