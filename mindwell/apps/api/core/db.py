from __future__ import annotations

import uuid
from typing import Any, Sequence

import asyncpg

from mindwell.libs.schemas.db import get_async_pool


def _normalize_arg(val: Any) -> Any:
    if isinstance(val, uuid.UUID):
        return str(val)
    return val


async def q(sql: str, *args: Any, one: bool = False) -> Any:
    pool = await get_async_pool()
    normalized_args = tuple(_normalize_arg(arg) for arg in args)
    async with pool.acquire() as connection:
        rows: Sequence[asyncpg.Record] = await connection.fetch(sql, *normalized_args)
    if one:
        record = rows[0] if rows else None
        return dict(record) if isinstance(record, asyncpg.Record) else record
    return [dict(record) if isinstance(record, asyncpg.Record) else record for record in rows]


async def exec(sql: str, *args: Any) -> str:
    pool = await get_async_pool()
    normalized_args = tuple(_normalize_arg(arg) for arg in args)
    async with pool.acquire() as connection:
        return await connection.execute(sql, *normalized_args)


async def scalar(sql: str, *args: Any) -> Any:
    """Return the first column of the first row, or None."""

    pool = await get_async_pool()
    normalized_args = tuple(_normalize_arg(arg) for arg in args)
    async with pool.acquire() as connection:
        return await connection.fetchval(sql, *normalized_args)
