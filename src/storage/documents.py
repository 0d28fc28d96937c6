"""
Document store contract used by the record repositories.

Documents are plain JSON-compatible dicts scoped to a user; each store
instance holds one collection (tasks, countdowns, ...). The store owns
id and creation-time assignment, applies top-level merge updates atomically
per document, and pushes full snapshots to watchers on every change.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

SnapshotCallback = Callable[[List["Document"]], None]
ErrorCallback = Callable[[Exception], None]


class StoreError(Exception):
    """Raised by a store for any failed read, write or watch."""


class DocumentNotFoundError(StoreError):
    def __init__(self, doc_id: str):
        super().__init__(f"document not found: {doc_id}")
        self.doc_id = doc_id


@dataclass(frozen=True)
class Document:
    id: str
    data: Dict[str, Any]
    created_at: datetime


class Watch(ABC):
    """Handle for a live snapshot subscription."""

    @abstractmethod
    async def close(self) -> None:
        raise NotImplementedError


class DocumentStore(ABC):
    @abstractmethod
    async def add(self, user_id: str, data: Dict[str, Any]) -> Document:
        raise NotImplementedError

    @abstractmethod
    async def get(self, user_id: str, doc_id: str) -> Optional[Document]:
        raise NotImplementedError

    @abstractmethod
    async def set(self, user_id: str, doc_id: str, data: Dict[str, Any]) -> Document:
        """Create or wholly replace the document stored under a caller-chosen id."""
        raise NotImplementedError

    @abstractmethod
    async def update(self, user_id: str, doc_id: str, fields: Dict[str, Any]) -> None:
        """Merge ``fields`` into the document; raise DocumentNotFoundError if absent."""
        raise NotImplementedError

    @abstractmethod
    async def delete(self, user_id: str, doc_id: str) -> None:
        """Remove the document; deleting a missing id is not an error."""
        raise NotImplementedError

    @abstractmethod
    async def list(self, user_id: str) -> List[Document]:
        """All of the user's documents, newest first."""
        raise NotImplementedError

    @abstractmethod
    async def watch(
        self,
        user_id: str,
        on_snapshot: SnapshotCallback,
        on_error: Optional[ErrorCallback] = None,
    ) -> Watch:
        """
        Deliver the current snapshot before returning, then a fresh snapshot
        after every change to the user's documents.
        """
        raise NotImplementedError
