"""Per-delivery checkpoint stores for completed step results and dead letters."""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from typing import Any, Dict, List

from redis import asyncio as aioredis

# Returned by ``load_step`` when a step has not completed for a delivery.
MISSING = object()

DEAD_LETTER_KEY = "workflow:dead_letters"
DEAD_LETTER_MAX = 1000
MEMORY_DELIVERY_MAX = 1000


def _encode(value: Any) -> str:
    # Wrapped so a step that legitimately returned None is still a hit.
    return json.dumps({"value": value}, ensure_ascii=False)


def _decode(raw: str | bytes) -> Any:
    return json.loads(raw)["value"]


class CheckpointStore(ABC):
    """Key-value store: delivery id -> step name -> completed result."""

    @abstractmethod
    async def load_step(self, delivery_id: str, step: str) -> Any:
        """Return the cached result or ``MISSING``."""

    @abstractmethod
    async def save_step(self, delivery_id: str, step: str, value: Any) -> None:
        ...

    @abstractmethod
    async def completed_steps(self, delivery_id: str) -> Dict[str, Any]:
        ...

    @abstractmethod
    async def forget(self, delivery_id: str) -> None:
        """Drop every checkpoint of a finished delivery."""

    @abstractmethod
    async def dead_letter(self, record: Dict[str, Any]) -> None:
        ...

    @abstractmethod
    async def dead_letters(self, limit: int = 100) -> List[Dict[str, Any]]:
        """Most recent dead letters first."""


class MemoryCheckpointStore(CheckpointStore):
    """Process-local store for the inline transport and tests.

    Values are kept JSON-encoded so a cache hit hands back a fresh copy,
    the same as the Redis store does. At most ``max_deliveries`` deliveries
    are held; the oldest is evicted first.
    """

    def __init__(self, *, max_deliveries: int = MEMORY_DELIVERY_MAX) -> None:
        self._steps: Dict[str, Dict[str, str]] = {}
        self._dead: List[str] = []
        self._max_deliveries = max_deliveries

    def __len__(self) -> int:
        return len(self._steps)

    async def load_step(self, delivery_id: str, step: str) -> Any:
        raw = self._steps.get(delivery_id, {}).get(step)
        return MISSING if raw is None else _decode(raw)

    async def save_step(self, delivery_id: str, step: str, value: Any) -> None:
        if delivery_id not in self._steps:
            while len(self._steps) >= self._max_deliveries:
                del self._steps[next(iter(self._steps))]
            self._steps[delivery_id] = {}
        self._steps[delivery_id][step] = _encode(value)

    async def completed_steps(self, delivery_id: str) -> Dict[str, Any]:
        return {step: _decode(raw) for step, raw in self._steps.get(delivery_id, {}).items()}

    async def forget(self, delivery_id: str) -> None:
        self._steps.pop(delivery_id, None)

    async def dead_letter(self, record: Dict[str, Any]) -> None:
        self._dead.insert(0, json.dumps(record, ensure_ascii=False, default=str))
        del self._dead[DEAD_LETTER_MAX:]

    async def dead_letters(self, limit: int = 100) -> List[Dict[str, Any]]:
        return [json.loads(raw) for raw in self._dead[:limit]]


class RedisCheckpointStore(CheckpointStore):
    """Durable store: one Redis hash per delivery, expiring after ``ttl`` seconds."""

    def __init__(self, client: aioredis.Redis, *, ttl: int = 7 * 24 * 3600, prefix: str = "workflow:steps") -> None:
        self._client = client
        self._ttl = ttl
        self._prefix = prefix

    def _key(self, delivery_id: str) -> str:
        return f"{self._prefix}:{delivery_id}"

    async def load_step(self, delivery_id: str, step: str) -> Any:
        raw = await self._client.hget(self._key(delivery_id), step)
        return MISSING if raw is None else _decode(raw)

    async def save_step(self, delivery_id: str, step: str, value: Any) -> None:
        key = self._key(delivery_id)
        async with self._client.pipeline(transaction=True) as pipe:
            pipe.hset(key, step, _encode(value))
            pipe.expire(key, self._ttl)
            await pipe.execute()

    async def completed_steps(self, delivery_id: str) -> Dict[str, Any]:
        raw = await self._client.hgetall(self._key(delivery_id))
        return {
            (step.decode() if isinstance(step, bytes) else step): _decode(value)
            for step, value in raw.items()
        }

    async def forget(self, delivery_id: str) -> None:
        await self._client.delete(self._key(delivery_id))

    async def dead_letter(self, record: Dict[str, Any]) -> None:
        async with self._client.pipeline(transaction=True) as pipe:
            pipe.lpush(DEAD_LETTER_KEY, json.dumps(record, ensure_ascii=False, default=str))
            pipe.ltrim(DEAD_LETTER_KEY, 0, DEAD_LETTER_MAX - 1)
            await pipe.execute()

    async def dead_letters(self, limit: int = 100) -> List[Dict[str, Any]]:
        rows = await self._client.lrange(DEAD_LETTER_KEY, 0, max(limit, 1) - 1)
        return [json.loads(row) for row in rows]


__all__ = [
    "CheckpointStore",
    "DEAD_LETTER_KEY",
    "MISSING",
    "MemoryCheckpointStore",
    "RedisCheckpointStore",
]
