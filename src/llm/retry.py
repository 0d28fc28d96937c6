"""Retry-with-backoff combinator for gateway calls."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Tuple, Type, TypeVar

from taskwise.errors import AIOperationError
from taskwise.metrics import AI_RETRIES_TOTAL

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """
    ``max_attempts`` total attempts; before attempt ``n + 1`` wait
    ``backoff_seconds * n`` (1s then 2s with the defaults).
    """

    max_attempts: int = 3
    backoff_seconds: float = 1.0
    retry_on: Tuple[Type[BaseException], ...] = (AIOperationError,)
    sleep: Callable[[float], Awaitable[None]] = field(default=asyncio.sleep, compare=False)

    def delay(self, attempt: int) -> float:
        return self.backoff_seconds * attempt


NO_RETRY = RetryPolicy(max_attempts=1)


async def retry(policy: RetryPolicy, func: Callable[[], Awaitable[T]], *, operation: str = "call") -> T:
    attempt = 0
    while True:
        attempt += 1
        try:
            return await func()
        except policy.retry_on as e:
            if attempt >= policy.max_attempts:
                logger.error(f"{operation}: attempt {attempt}/{policy.max_attempts} failed, giving up: {e}")
                raise
            delay = policy.delay(attempt)
            logger.warning(
                f"{operation}: attempt {attempt}/{policy.max_attempts} failed ({e}), retrying in {delay:g}s"
            )
            AI_RETRIES_TOTAL.labels(operation=operation).inc()
            await policy.sleep(delay)
