"""
Task Record Repository.

CRUD and live subscription over a user's tasks. Translates between
``taskwise.models.Task`` and the document encoding used by the store:

- ``deadline`` is a UTC epoch-seconds float, ``None`` when absent
- ``subtasks`` is a list of plain dicts (missing means empty)
- ``eisenhower_quadrant`` is the quadrant's string value
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, AsyncIterator, Callable, Dict, List, Optional, Union

from storage.documents import Document, DocumentStore
from storage.records import Subscription, from_epoch, queue_stream, store_errors, to_epoch
from taskwise.errors import PersistenceError, TaskNotFoundError
from taskwise.metrics import TASK_WRITES_TOTAL
from taskwise.models import Quadrant, Task, TaskDraft, TaskPatch

logger = logging.getLogger(__name__)

TaskListCallback = Callable[[List[Task]], None]
ErrorCallback = Callable[[Exception], None]

# fields a new task never starts with
_CREATE_EXCLUDED = {"priority_score", "reason"}


def to_document(fields: Dict[str, Any]) -> Dict[str, Any]:
    doc = dict(fields)
    if "deadline" in doc:
        doc["deadline"] = to_epoch(doc["deadline"])
    if "subtasks" in doc and doc["subtasks"] is not None:
        doc["subtasks"] = [
            s.model_dump() if hasattr(s, "model_dump") else dict(s) for s in doc["subtasks"]
        ]
    if isinstance(doc.get("eisenhower_quadrant"), Quadrant):
        doc["eisenhower_quadrant"] = doc["eisenhower_quadrant"].value
    return doc


def from_document(doc: Document) -> Task:
    data = dict(doc.data)
    data["deadline"] = from_epoch(data.get("deadline"))
    data["subtasks"] = data.get("subtasks") or []
    data["id"] = doc.id
    data["created_at"] = doc.created_at
    return Task.model_validate(data)


def _store_errors(action: str, task_id: Optional[str] = None):
    return store_errors("task", action, task_id, not_found=TaskNotFoundError)


class TaskRepository:
    def __init__(self, store: DocumentStore):
        self.store = store

    async def create(self, user_id: str, draft: Union[TaskDraft, Dict[str, Any]]) -> str:
        if not isinstance(draft, TaskDraft):
            draft = TaskDraft.model_validate(draft)
        data = to_document(draft.model_dump(exclude=_CREATE_EXCLUDED))
        data["completed"] = False
        with _store_errors("create"):
            doc = await self.store.add(user_id, data)
        TASK_WRITES_TOTAL.labels(kind="create").inc()
        logger.info(f"Created task {doc.id} for user {user_id}")
        return doc.id

    async def get(self, user_id: str, task_id: str) -> Optional[Task]:
        with _store_errors("get", task_id):
            doc = await self.store.get(user_id, task_id)
        return None if doc is None else from_document(doc)

    async def list(self, user_id: str) -> List[Task]:
        with _store_errors("list"):
            docs = await self.store.list(user_id)
        return [from_document(d) for d in docs]

    async def update(self, user_id: str, task_id: str, patch: Union[TaskPatch, Dict[str, Any]]) -> None:
        """Merge-patch: fields not present in ``patch`` are left untouched."""
        if not isinstance(patch, TaskPatch):
            patch = TaskPatch.model_validate(patch)
        changes = patch.changes()
        if not changes:
            return
        with _store_errors("update", task_id):
            await self.store.update(user_id, task_id, to_document(changes))
        TASK_WRITES_TOTAL.labels(kind="update").inc()
        logger.debug(f"Updated task {task_id} fields {sorted(changes)}")

    async def delete(self, user_id: str, task_id: str) -> None:
        with _store_errors("delete", task_id):
            await self.store.delete(user_id, task_id)
        TASK_WRITES_TOTAL.labels(kind="delete").inc()

    async def _delete_many(self, user_id: str, tasks: List[Task]) -> int:
        if not tasks:
            return 0
        results = await asyncio.gather(
            *(self.delete(user_id, t.id) for t in tasks), return_exceptions=True
        )
        errors = [r for r in results if isinstance(r, Exception)]
        if errors:
            raise PersistenceError(f"persistence failed: {len(errors)} of {len(tasks)} deletes") from errors[0]
        logger.info(f"Deleted {len(tasks)} task(s) for user {user_id}")
        return len(tasks)

    async def delete_completed(self, user_id: str) -> int:
        tasks = await self.list(user_id)
        return await self._delete_many(user_id, [t for t in tasks if t.completed])

    async def delete_all(self, user_id: str) -> int:
        return await self._delete_many(user_id, await self.list(user_id))

    async def subscribe(
        self,
        user_id: str,
        on_change: TaskListCallback,
        on_error: Optional[ErrorCallback] = None,
    ) -> Subscription:
        """
        Deliver the user's full task list (newest first) before returning,
        then again after every change by any writer.
        """

        def _on_snapshot(docs: List[Document]) -> None:
            on_change([from_document(d) for d in docs])

        with _store_errors("subscribe"):
            watch = await self.store.watch(user_id, _on_snapshot, on_error)
        return Subscription(watch)

    def stream(self, user_id: str) -> AsyncIterator[List[Task]]:
        return queue_stream(
            lambda on_change, on_error: self.subscribe(user_id, on_change, on_error), "task"
        )
