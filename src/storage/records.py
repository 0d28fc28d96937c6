"""
Plumbing shared by the record repositories: timestamp encoding, store error
translation and the subscription handle returned by ``subscribe``.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import AsyncIterator, Awaitable, Callable, Optional, Type

from storage.documents import DocumentNotFoundError, StoreError, Watch
from taskwise.errors import PersistenceError, RecordNotFoundError

logger = logging.getLogger(__name__)


def to_epoch(value: Optional[datetime]) -> Optional[float]:
    return None if value is None else value.timestamp()


def from_epoch(value: Optional[float]) -> Optional[datetime]:
    return None if value is None else datetime.fromtimestamp(value, tz=timezone.utc)


@contextmanager
def store_errors(
    kind: str,
    action: str,
    record_id: Optional[str] = None,
    not_found: Optional[Type[RecordNotFoundError]] = None,
):
    """Re-raise store failures as PersistenceError (RecordNotFoundError for a missing document)."""
    try:
        yield
    except DocumentNotFoundError as e:
        missing = record_id or e.doc_id
        if not_found is not None:
            raise not_found(missing) from e
        raise RecordNotFoundError(kind, missing) from e
    except StoreError as e:
        logger.error(f"{kind.capitalize()} store {action} failed: {e}")
        raise PersistenceError(f"persistence failed: {kind} {action}") from e


class Subscription:
    """Live subscription; close it (or use ``async with``) to stop delivery."""

    def __init__(self, watch: Watch):
        self._watch = watch
        self.closed = False

    async def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        await self._watch.close()

    async def __aenter__(self) -> "Subscription":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()


async def queue_stream(
    subscribe: Callable[[Callable, Callable], Awaitable[Subscription]], kind: str
) -> AsyncIterator:
    """Turn a callback subscription into an async iterator of snapshots."""
    queue: asyncio.Queue = asyncio.Queue()
    subscription = await subscribe(queue.put_nowait, queue.put_nowait)
    try:
        while True:
            item = await queue.get()
            if isinstance(item, Exception):
                raise PersistenceError(f"persistence failed: {kind} subscription") from item
            yield item
    finally:
        await subscription.close()
