from typing import Any, Dict, Mapping

import pytest

from mindwell.apps.worker.workflow import (
    EventBus,
    InlineTransport,
    MemoryCheckpointStore,
    get_handler,
    run_with_retries,
    set_event_bus,
)
from mindwell.libs.schemas.events import parse_event


@pytest.fixture
def store() -> MemoryCheckpointStore:
    return MemoryCheckpointStore()


@pytest.fixture
def inline_bus(store):
    transport = InlineTransport(store)
    bus = EventBus(transport)
    set_event_bus(bus)
    yield bus
    set_event_bus(None)


@pytest.fixture
def run_handler(store):
    """Run one registered handler in-process against a payload."""

    async def _run(handler: str, payload: Mapping[str, Any], *, retries: int | None = None) -> Dict[str, Any]:
        spec = get_handler(handler)
        event = parse_event(spec.event, payload)
        return await run_with_retries(
            event,
            spec,
            store=store,
            retries=spec.retries if retries is None else retries,
        )

    return _run
