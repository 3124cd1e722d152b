"""Event bus: validate, wrap and hand events to every registered handler."""

from __future__ import annotations

import asyncio
import logging
from collections import OrderedDict
from typing import Any, Dict, Mapping, Protocol

from redis import Redis
from rq import Queue, Retry

from mindwell.apps.api.core.metrics import events_published
from mindwell.libs.schemas.events import WorkflowEvent, dump_event, parse_event
from mindwell.libs.schemas.settings import AppSettings, get_settings

from .checkpoints import CheckpointStore, MemoryCheckpointStore
from .executor import run_with_retries
from .outcomes import FatalStepError
from .registry import HandlerSpec, get_handler, handlers_for, retry_budget
from .steps import delivery_key

LOGGER = logging.getLogger(__name__)

PROCESS_DELIVERY = "mindwell.apps.worker.workflow.runner.process_delivery"
RESULTS_MAX = 1000

# Events are their own envelopes: id, name, ts and a typed data payload.
EventEnvelope = WorkflowEvent


def job_id_for(event_id: str, handler: str) -> str:
    """RQ job id for one delivery. RQ accepts only letters, digits, ``_`` and ``-``."""

    return f"{event_id}-{handler}"


class Transport(Protocol):
    async def deliver(self, event: WorkflowEvent, spec: HandlerSpec) -> Any:
        ...


class RQTransport:
    """One RQ job per delivery; RQ owns retry scheduling and the failed registry."""

    def __init__(self, queue: Queue, settings: AppSettings) -> None:
        self._queue = queue
        self._settings = settings

    @classmethod
    def from_settings(cls, settings: AppSettings) -> "RQTransport":
        connection = Redis.from_url(settings.redis_url)
        return cls(Queue(settings.workflow_queue, connection=connection), settings)

    async def deliver(self, event: WorkflowEvent, spec: HandlerSpec) -> str:
        retries = retry_budget(spec, self._settings)
        job_id = job_id_for(event.id, spec.name)
        retry = Retry(max=retries, interval=list(self._settings.workflow_retry_intervals)) if retries else None
        job = await asyncio.to_thread(
            self._queue.enqueue,
            PROCESS_DELIVERY,
            kwargs={"envelope": dump_event(event), "handler": spec.name},
            job_id=job_id,
            retry=retry,
            job_timeout=self._settings.workflow_job_timeout,
        )
        return job.id


class InlineTransport:
    """Runs deliveries in-process with the same step cache and retry loop.

    Failures are dead-lettered by the executor and do not reach the
    publisher; the latest ``max_results`` results are kept in ``results``
    keyed by delivery id.
    """

    def __init__(
        self,
        store: CheckpointStore | None = None,
        *,
        settings: AppSettings | None = None,
        retry_delay: float = 0.0,
        max_results: int = RESULTS_MAX,
    ) -> None:
        self.store = store or MemoryCheckpointStore()
        self._settings = settings
        self._retry_delay = retry_delay
        self._max_results = max_results
        self.results: "OrderedDict[str, Dict[str, Any]]" = OrderedDict()

    async def deliver(self, event: WorkflowEvent, spec: HandlerSpec) -> Dict[str, Any] | None:
        try:
            output = await self.run(event, spec)
        except FatalStepError:
            return None
        except Exception as exc:
            LOGGER.warning("inline delivery %s exhausted retries: %s", spec.name, exc)
            return None
        self.results[delivery_key(event.id, spec.name)] = output
        while len(self.results) > self._max_results:
            self.results.popitem(last=False)
        return output

    async def run(self, event: WorkflowEvent, spec: HandlerSpec) -> Dict[str, Any]:
        timeout = self._settings.workflow_step_timeout if self._settings else None
        return await run_with_retries(
            event,
            spec,
            store=self.store,
            retries=retry_budget(spec, self._settings),
            retry_delay=self._retry_delay,
            step_timeout=timeout,
        )


class EventBus:
    def __init__(self, transport: Transport, *, request_transport: InlineTransport | None = None) -> None:
        self.transport = transport
        if request_transport is None:
            request_transport = transport if isinstance(transport, InlineTransport) else InlineTransport()
        self._request_transport = request_transport

    async def publish(self, name: str, payload: Mapping[str, Any]) -> EventEnvelope:
        """Validate ``payload`` and deliver it to every handler bound to ``name``.

        Raises ``InvalidEventError`` before anything is delivered when the
        name is unknown or the payload does not match its event type.
        """

        event = parse_event(name, payload)
        specs = handlers_for(event.name)
        for spec in specs:
            await self.transport.deliver(event, spec)
        events_published.labels(event.name).inc()
        LOGGER.info(
            "published %s to %d handler(s)",
            event.name,
            len(specs),
            extra={"event": "workflow_publish", "event_name": event.name, "event_id": event.id},
        )
        return event

    async def request(self, name: str, payload: Mapping[str, Any], *, handler: str) -> Dict[str, Any]:
        """Run one handler in-process and return its result.

        Used where the caller needs the output synchronously. Failures
        propagate to the caller after being dead-lettered.
        """

        event = parse_event(name, payload)
        spec = get_handler(handler)
        if spec.event != event.name:
            raise ValueError(f"Handler '{handler}' does not consume '{event.name}'")
        result = await self._request_transport.run(event, spec)
        await self._request_transport.store.forget(delivery_key(event.id, spec.name))
        return result


_BUS: EventBus | None = None


def set_event_bus(bus: EventBus | None) -> None:
    global _BUS
    _BUS = bus


def get_event_bus() -> EventBus:
    global _BUS
    if _BUS is None:
        settings = get_settings()
        if settings.workflow_transport.lower() == "inline":
            transport: Transport = InlineTransport(settings=settings)
        else:
            transport = RQTransport.from_settings(settings)
        _BUS = EventBus(transport, request_transport=InlineTransport(settings=settings))
    return _BUS


__all__ = [
    "EventBus",
    "EventEnvelope",
    "InlineTransport",
    "RQTransport",
    "Transport",
    "get_event_bus",
    "job_id_for",
    "set_event_bus",
]
