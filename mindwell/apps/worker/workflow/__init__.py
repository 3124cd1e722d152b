"""Durable, step-based workflow engine on top of RQ."""

from .bus import EventBus, EventEnvelope, InlineTransport, RQTransport, get_event_bus, job_id_for, set_event_bus
from .checkpoints import CheckpointStore, MemoryCheckpointStore, RedisCheckpointStore
from .executor import execute_delivery, run_with_retries
from .outcomes import Fatal, FatalStepError, Recovered, StepTimeoutError
from .registry import HandlerSpec, get_handler, handlers_for, retry_budget, workflow
from .steps import StepRunner, delivery_key

__all__ = [
    "CheckpointStore",
    "EventBus",
    "EventEnvelope",
    "Fatal",
    "FatalStepError",
    "HandlerSpec",
    "InlineTransport",
    "MemoryCheckpointStore",
    "RQTransport",
    "Recovered",
    "RedisCheckpointStore",
    "StepRunner",
    "StepTimeoutError",
    "delivery_key",
    "execute_delivery",
    "get_event_bus",
    "get_handler",
    "handlers_for",
    "job_id_for",
    "retry_budget",
    "run_with_retries",
    "set_event_bus",
    "workflow",
]
