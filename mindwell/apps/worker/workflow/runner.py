"""RQ entry point for workflow deliveries."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict

from redis import asyncio as aioredis
from rq import get_current_job

from mindwell.libs.schemas.db import close_async_pool
from mindwell.libs.schemas.events import load_event
from mindwell.libs.schemas.settings import get_settings

from .checkpoints import RedisCheckpointStore
from .executor import execute_delivery
from .outcomes import FatalStepError
from .registry import get_handler, retry_budget

LOGGER = logging.getLogger(__name__)


def process_delivery(*, envelope: Dict[str, Any], handler: str) -> Dict[str, Any]:
    return asyncio.run(_process(envelope, handler))


async def _process(envelope: Dict[str, Any], handler: str) -> Dict[str, Any]:
    settings = get_settings()
    event = load_event(envelope)
    spec = get_handler(handler)

    budget = retry_budget(spec, settings)
    job = get_current_job()
    retries_left = job.retries_left if job is not None and job.retries_left is not None else 0
    attempt = max(1, budget - retries_left + 1)

    client = aioredis.from_url(settings.redis_url, decode_responses=True)
    store = RedisCheckpointStore(client, ttl=settings.workflow_checkpoint_ttl)
    try:
        return await execute_delivery(
            event,
            spec,
            store=store,
            attempt=attempt,
            final=retries_left <= 0,
            step_timeout=settings.workflow_step_timeout,
        )
    except FatalStepError as exc:
        # Finishing normally keeps RQ from scheduling a retry; the dead letter is already written.
        return {"status": "dead_lettered", "reason": exc.reason, "step": exc.step}
    finally:
        await client.aclose()
        # The pool is bound to this job's event loop.
        await close_async_pool()


__all__ = ["process_delivery"]
