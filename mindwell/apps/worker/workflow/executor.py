"""Run one handler delivery and apply the retry and dead-letter policy."""

from __future__ import annotations

import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import Any, Dict

from mindwell.apps.api.core.metrics import (
    workflow_dead_letters,
    workflow_deliveries,
    workflow_delivery_latency,
)
from mindwell.libs.json_utils import json_safe
from mindwell.libs.logging_utils import colorize
from mindwell.libs.schemas.events import WorkflowEvent, dump_event

from .checkpoints import CheckpointStore
from .outcomes import FatalStepError
from .registry import HandlerSpec
from .steps import StepRunner, delivery_key

LOGGER = logging.getLogger(__name__)


async def execute_delivery(
    event: WorkflowEvent,
    spec: HandlerSpec,
    *,
    store: CheckpointStore,
    attempt: int = 1,
    final: bool = True,
    step_timeout: float | None = None,
) -> Dict[str, Any]:
    """Run ``spec`` against ``event`` once.

    ``FatalStepError`` is dead-lettered immediately. Any other exception is
    dead-lettered only when ``final`` is set; either way it propagates so
    the transport can decide whether to retry.
    """

    delivery_id = delivery_key(event.id, spec.name)
    step = StepRunner(delivery_id, handler=spec.name, store=store, timeout=step_timeout)
    extra = {
        "event": "workflow_delivery",
        "event_name": event.name,
        "handler": spec.name,
        "delivery_id": delivery_id,
        "attempt": attempt,
    }
    LOGGER.info("delivery start handler=%s attempt=%s", spec.name, attempt, extra=extra)

    started = time.perf_counter()
    try:
        output = await spec.fn(event, step)
    except FatalStepError as exc:
        workflow_deliveries.labels(spec.name, "fatal").inc()
        await _dead_letter(store, event, spec, attempt=attempt, reason=str(exc), fatal=True)
        raise
    except Exception as exc:
        if final:
            workflow_deliveries.labels(spec.name, "exhausted").inc()
            await _dead_letter(store, event, spec, attempt=attempt, reason=repr(exc), fatal=False)
        else:
            workflow_deliveries.labels(spec.name, "retrying").inc()
            LOGGER.warning(
                "delivery failed handler=%s attempt=%s, will retry: %s",
                spec.name,
                attempt,
                exc,
                extra=extra,
            )
        raise
    finally:
        workflow_delivery_latency.labels(spec.name).observe(time.perf_counter() - started)

    workflow_deliveries.labels(spec.name, "completed").inc()
    LOGGER.info(
        "delivery done handler=%s executed=%s replayed=%s",
        spec.name,
        step.executed,
        step.replayed,
        extra=extra,
    )
    return json_safe(output)


async def run_with_retries(
    event: WorkflowEvent,
    spec: HandlerSpec,
    *,
    store: CheckpointStore,
    retries: int,
    retry_delay: float = 0.0,
    step_timeout: float | None = None,
) -> Dict[str, Any]:
    """In-process retry loop: ``retries`` extra attempts after the first."""

    total = retries + 1
    for attempt in range(1, total + 1):
        final = attempt == total
        try:
            return await execute_delivery(
                event,
                spec,
                store=store,
                attempt=attempt,
                final=final,
                step_timeout=step_timeout,
            )
        except FatalStepError:
            raise
        except Exception:
            if final:
                raise
        if retry_delay:
            await asyncio.sleep(retry_delay * attempt)
    raise AssertionError("unreachable")


async def _dead_letter(
    store: CheckpointStore,
    event: WorkflowEvent,
    spec: HandlerSpec,
    *,
    attempt: int,
    reason: str,
    fatal: bool,
) -> None:
    delivery_id = delivery_key(event.id, spec.name)
    record = {
        "deliveryId": delivery_id,
        "handler": spec.name,
        "event": dump_event(event),
        "attempt": attempt,
        "fatal": fatal,
        "reason": reason,
        "completedSteps": sorted(await store.completed_steps(delivery_id)),
        "failedAt": datetime.now(timezone.utc).isoformat(),
    }
    await store.dead_letter(record)
    workflow_dead_letters.labels(spec.name).inc()
    LOGGER.error(
        colorize(f"dead-lettered {delivery_id}: {reason}", "red"),
        extra={"event": "workflow_dead_letter", "handler": spec.name, "delivery_id": delivery_id, "fatal": fatal},
    )


__all__ = ["execute_delivery", "run_with_retries"]
