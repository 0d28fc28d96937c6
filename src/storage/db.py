"""
asyncpg pool for the PostgreSQL document store.

One pool per process, opened by the API on startup when
``TASKWISE_STORE=postgres`` and closed on shutdown. Store queries go through
``execute``/``fetch``/``fetchrow``; watchers hold a connection of their own
(``get_pool().acquire()``) for LISTEN.
"""

import logging
import pathlib
from typing import Any, Dict, List, Optional

import asyncpg

logger = logging.getLogger(__name__)

_pool: Optional[asyncpg.Pool] = None


async def init_db_pool(database_url: str, min_size: int = 1, max_size: int = 10) -> asyncpg.Pool:
    global _pool
    if _pool is None:
        _pool = await asyncpg.create_pool(database_url, min_size=min_size, max_size=max_size)
        logger.info(f"Opened PostgreSQL pool ({min_size}-{max_size} connections)")
    return _pool


async def close_db_pool() -> None:
    global _pool
    pool, _pool = _pool, None
    if pool is not None:
        await pool.close()
        logger.info("Closed PostgreSQL pool")


def get_pool() -> asyncpg.Pool:
    if _pool is None:
        raise RuntimeError("PostgreSQL pool is not open; call init_db_pool() on startup")
    return _pool


async def execute(query: str, *args) -> str:
    """Run a statement; returns the status tag (e.g. ``"UPDATE 1"``)."""
    return await get_pool().execute(query, *args)


async def fetch(query: str, *args) -> List[asyncpg.Record]:
    return await get_pool().fetch(query, *args)


async def fetchrow(query: str, *args) -> Optional[asyncpg.Record]:
    return await get_pool().fetchrow(query, *args)


async def init_schema() -> None:
    """Apply schema.sql; every statement in it is idempotent."""
    ddl = pathlib.Path(__file__).with_name("schema.sql").read_text()
    await execute(ddl)
    logger.info("Document schema is up to date")


async def health_check() -> Dict[str, Any]:
    try:
        await get_pool().fetchval("SELECT 1")
    except (asyncpg.PostgresError, OSError, RuntimeError) as e:
        logger.error(f"PostgreSQL health check failed: {e}")
        return {"status": "unhealthy", "error": str(e)}
    return {"status": "healthy", "pool_size": _pool.get_size(), "pool_idle": _pool.get_idle_size()}
