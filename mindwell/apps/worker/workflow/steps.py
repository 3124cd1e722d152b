from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any, Awaitable, Callable, List, Union

from mindwell.apps.api.core.metrics import workflow_steps
from mindwell.libs.json_utils import json_safe

from .checkpoints import MISSING, CheckpointStore
from .outcomes import Fatal, FatalStepError, Recovered, StepTimeoutError

LOGGER = logging.getLogger(__name__)

StepBody = Callable[[], Union[Awaitable[Any], Any]]


def delivery_key(event_id: str, handler: str) -> str:
    return f"{event_id}:{handler}"


class StepRunner:
    """Runs the named steps of one delivery, at most once each.

    A completed step's result is written to the checkpoint store and read
    back on replay, so a retried delivery resumes after its last completed
    step. Results are normalized to JSON-compatible values before caching;
    the first run and a replay therefore return the same shape.
    """

    def __init__(
        self,
        delivery_id: str,
        *,
        handler: str,
        store: CheckpointStore,
        timeout: float | None = None,
    ) -> None:
        self.delivery_id = delivery_id
        self.handler = handler
        self._store = store
        self._timeout = timeout
        self._seen: set[str] = set()
        self.executed: List[str] = []
        self.replayed: List[str] = []

    async def run(self, name: str, body: StepBody) -> Any:
        if name in self._seen:
            raise ValueError(f"duplicate step name '{name}' in handler {self.handler}")
        self._seen.add(name)

        cached = await self._store.load_step(self.delivery_id, name)
        if cached is not MISSING:
            self.replayed.append(name)
            workflow_steps.labels(self.handler, name, "cached").inc()
            LOGGER.debug("step %s replayed from checkpoint", name, extra=self._extra(name))
            return cached

        try:
            result = await self._invoke(body)
        except Exception:
            workflow_steps.labels(self.handler, name, "failed").inc()
            raise

        status = "completed"
        if isinstance(result, Fatal):
            workflow_steps.labels(self.handler, name, "fatal").inc()
            raise FatalStepError(name, result.reason)
        if isinstance(result, Recovered):
            status = "recovered"
            LOGGER.warning(
                "step %s recovered with fallback: %s",
                name,
                result.reason,
                extra=self._extra(name),
            )
            result = result.value

        value = json_safe(result)
        await self._store.save_step(self.delivery_id, name, value)
        self.executed.append(name)
        workflow_steps.labels(self.handler, name, status).inc()
        return value

    async def _invoke(self, body: StepBody) -> Any:
        outcome = body()
        if not inspect.isawaitable(outcome):
            return outcome
        if self._timeout is None:
            return await outcome
        try:
            return await asyncio.wait_for(outcome, timeout=self._timeout)
        except asyncio.TimeoutError as exc:
            raise StepTimeoutError(f"step exceeded {self._timeout:.1f}s") from exc

    def _extra(self, name: str) -> dict[str, Any]:
        return {"event": "workflow_step", "handler": self.handler, "delivery_id": self.delivery_id, "step": name}


__all__ = ["StepRunner", "delivery_key"]
