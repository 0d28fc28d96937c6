"""
PostgreSQL-backed document store.

Each record is a JSONB row in the ``documents`` table, keyed by collection
and user. Updates use JSONB
concatenation (``data || patch``), which merges top-level keys in a single
statement, so writers touching disjoint fields never clobber each other.
Live snapshots are driven by LISTEN/NOTIFY (see schema.sql).
"""

import asyncio
import json
import logging
import uuid
from typing import Any, Dict, List, Optional

import asyncpg

from storage import db
from storage.documents import (
    Document,
    DocumentNotFoundError,
    DocumentStore,
    ErrorCallback,
    SnapshotCallback,
    StoreError,
    Watch,
)

logger = logging.getLogger(__name__)

CHANNEL = "document_changes"


def _as_uuid(doc_id: str) -> Optional[uuid.UUID]:
    try:
        return uuid.UUID(doc_id)
    except (ValueError, TypeError):
        return None


def document_from_record(record) -> Document:
    """Create a Document from a ``documents`` row."""
    data = record["data"]
    if isinstance(data, str):
        data = json.loads(data)
    return Document(id=str(record["id"]), data=data or {}, created_at=record["created_at"])


class _PostgresWatch(Watch):
    def __init__(
        self,
        store: "PostgresDocumentStore",
        user_id: str,
        on_snapshot: SnapshotCallback,
        on_error: Optional[ErrorCallback],
    ):
        self._store = store
        self.user_id = user_id
        self._on_snapshot = on_snapshot
        self._on_error = on_error
        self._conn: Optional[asyncpg.Connection] = None
        self._lock = asyncio.Lock()
        self._pending: set = set()
        self.closed = False

    async def start(self) -> None:
        self._conn = await db.get_pool().acquire()
        await self._conn.add_listener(CHANNEL, self._on_notify)
        await self.refresh()

    def _on_notify(self, connection, pid, channel, payload) -> None:
        if self.closed or payload != self._store.channel_key(self.user_id):
            return
        task = asyncio.get_running_loop().create_task(self.refresh())
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def refresh(self) -> None:
        # serialized so snapshots are delivered in the order they were read
        async with self._lock:
            if self.closed:
                return
            try:
                snapshot = await self._store.list(self.user_id)
            except StoreError as e:
                logger.error(f"Snapshot refresh failed for {self._store.collection} of user {self.user_id}: {e}")
                if self._on_error is not None:
                    self._on_error(e)
                return
            try:
                self._on_snapshot(snapshot)
            except Exception:
                logger.exception(f"Snapshot callback failed for {self._store.collection} of user {self.user_id}")

    async def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        for task in list(self._pending):
            task.cancel()
        if self._conn is not None:
            try:
                await self._conn.remove_listener(CHANNEL, self._on_notify)
            finally:
                await db.get_pool().release(self._conn)
                self._conn = None


class PostgresDocumentStore(DocumentStore):
    """Requires ``storage.db.init_db_pool()`` and ``init_schema()`` at startup."""

    def __init__(self, collection: str = "tasks"):
        self.collection = collection

    def channel_key(self, user_id: str) -> str:
        return f"{self.collection}:{user_id}"

    async def add(self, user_id: str, data: Dict[str, Any]) -> Document:
        query = """
            INSERT INTO documents (collection, user_id, data)
            VALUES ($1, $2, $3::jsonb)
            RETURNING id, data, created_at
        """
        try:
            record = await db.fetchrow(query, self.collection, user_id, json.dumps(data))
        except asyncpg.PostgresError as e:
            raise StoreError(f"insert failed: {e}") from e
        logger.info(f"Inserted {self.collection} document {record['id']} for user {user_id}")
        return document_from_record(record)

    async def get(self, user_id: str, doc_id: str) -> Optional[Document]:
        key = _as_uuid(doc_id)
        if key is None:
            return None
        query = """
            SELECT id, data, created_at FROM documents
            WHERE collection = $1 AND user_id = $2 AND id = $3
        """
        try:
            record = await db.fetchrow(query, self.collection, user_id, key)
        except asyncpg.PostgresError as e:
            raise StoreError(f"select failed: {e}") from e
        return None if record is None else document_from_record(record)

    async def set(self, user_id: str, doc_id: str, data: Dict[str, Any]) -> Document:
        key = _as_uuid(doc_id)
        if key is None:
            raise StoreError(f"document ids must be UUIDs: {doc_id!r}")
        # the WHERE keeps an id owned by another user or collection untouched
        query = """
            INSERT INTO documents (id, collection, user_id, data)
            VALUES ($1, $2, $3, $4::jsonb)
            ON CONFLICT (id) DO UPDATE SET data = EXCLUDED.data
            WHERE documents.collection = EXCLUDED.collection AND documents.user_id = EXCLUDED.user_id
            RETURNING id, data, created_at
        """
        try:
            record = await db.fetchrow(query, key, self.collection, user_id, json.dumps(data))
        except asyncpg.PostgresError as e:
            raise StoreError(f"upsert failed: {e}") from e
        if record is None:
            raise StoreError(f"document {doc_id} belongs to another owner")
        return document_from_record(record)

    async def update(self, user_id: str, doc_id: str, fields: Dict[str, Any]) -> None:
        key = _as_uuid(doc_id)
        if key is None:
            raise DocumentNotFoundError(doc_id)
        query = """
            UPDATE documents SET data = data || $4::jsonb
            WHERE collection = $1 AND user_id = $2 AND id = $3
        """
        try:
            result = await db.execute(query, self.collection, user_id, key, json.dumps(fields))
        except asyncpg.PostgresError as e:
            raise StoreError(f"update failed: {e}") from e
        if result != "UPDATE 1":
            raise DocumentNotFoundError(doc_id)

    async def delete(self, user_id: str, doc_id: str) -> None:
        key = _as_uuid(doc_id)
        if key is None:
            return
        query = "DELETE FROM documents WHERE collection = $1 AND user_id = $2 AND id = $3"
        try:
            await db.execute(query, self.collection, user_id, key)
        except asyncpg.PostgresError as e:
            raise StoreError(f"delete failed: {e}") from e

    async def list(self, user_id: str) -> List[Document]:
        query = """
            SELECT id, data, created_at FROM documents
            WHERE collection = $1 AND user_id = $2
            ORDER BY created_at DESC
        """
        try:
            records = await db.fetch(query, self.collection, user_id)
        except asyncpg.PostgresError as e:
            raise StoreError(f"select failed: {e}") from e
        return [document_from_record(r) for r in records]

    async def watch(
        self,
        user_id: str,
        on_snapshot: SnapshotCallback,
        on_error: Optional[ErrorCallback] = None,
    ) -> Watch:
        w = _PostgresWatch(self, user_id, on_snapshot, on_error)
        try:
            await w.start()
        except asyncpg.PostgresError as e:
            await w.close()
            raise StoreError(f"listen failed: {e}") from e
        return w
