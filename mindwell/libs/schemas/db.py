"""Async database helpers backed by asyncpg connection pooling."""

from __future__ import annotations

import asyncio
import json
from typing import Any

import asyncpg

from .settings import get_settings

_POOL: asyncpg.Pool | None = None
_POOL_LOCK: asyncio.Lock | None = None


async def _init_connection(connection: asyncpg.Connection) -> None:
    for type_name in ("json", "jsonb"):
        await connection.set_type_codec(
            type_name,
            encoder=lambda value: json.dumps(value, ensure_ascii=False, default=str),
            decoder=json.loads,
            schema="pg_catalog",
        )


async def get_async_pool() -> asyncpg.Pool:
    """Return a shared asyncpg connection pool, creating it on demand."""

    global _POOL, _POOL_LOCK
    if _POOL_LOCK is None:
        _POOL_LOCK = asyncio.Lock()
    if _POOL is None:
        async with _POOL_LOCK:
            if _POOL is None:
                settings = get_settings()
                _POOL = await asyncpg.create_pool(
                    dsn=settings.database_url,
                    min_size=1,
                    max_size=10,
                    command_timeout=60,
                    statement_cache_size=0,
                    max_inactive_connection_lifetime=300,
                    init=_init_connection,
                )
    return _POOL


async def close_async_pool() -> None:
    """Close the shared pool; worker jobs call this before their event loop ends."""

    global _POOL, _POOL_LOCK
    pool, _POOL = _POOL, None
    _POOL_LOCK = None
    if pool is not None:
        await pool.close()


__all__ = ["close_async_pool", "get_async_pool"]
