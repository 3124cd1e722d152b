import fakeredis
import pytest
from rq import Queue

from mindwell.apps.worker.tasks import activity_completion, chat_message, mood_update, recommendation_generation
from mindwell.apps.worker.workflow import (
    EventBus,
    HandlerSpec,
    InlineTransport,
    MemoryCheckpointStore,
    RQTransport,
    delivery_key,
    get_handler,
    handlers_for,
    job_id_for,
)
from mindwell.libs.schemas.events import InvalidEventError, dump_event, load_event, parse_event
from mindwell.libs.schemas.settings import AppSettings


def test_handlers_registered_per_event():
    assert {spec.name for spec in handlers_for("mood/updated")} == {
        "mood-tracking-handler",
        "generate-activity-recommendations",
    }
    assert [spec.name for spec in handlers_for("therapy/session.message")] == ["process-chat-message"]
    assert [spec.name for spec in handlers_for("therapy/session.created")] == ["analyze-therapy-session"]
    assert [spec.name for spec in handlers_for("activity/completed")] == ["activity-completion-handler"]


def test_chat_handler_retry_budget():
    (spec,) = handlers_for("therapy/session.message")
    assert spec.retries == 2


def test_parse_event_rejects_unknown_name():
    with pytest.raises(InvalidEventError):
        parse_event("mood/deleted", {"userId": "u1"})


def test_parse_event_rejects_non_numeric_score():
    with pytest.raises(InvalidEventError):
        parse_event("mood/updated", {"userId": "u1", "score": "low"})


def test_parse_event_rejects_unknown_activity_type():
    with pytest.raises(InvalidEventError):
        parse_event("activity/completed", {"userId": "u1", "id": "a1", "type": "skydiving", "name": "Jump"})


def test_session_created_requires_notes_or_transcript():
    with pytest.raises(InvalidEventError):
        parse_event("therapy/session.created", {"sessionId": "s1"})
    event = parse_event("therapy/session.created", {"sessionId": "s1", "transcript": "user: hi"})
    assert event.data.transcript == "user: hi"


def test_envelope_round_trip_keeps_identity():
    event = parse_event("mood/updated", {"userId": "u1", "score": 2, "note": "rough day"})
    restored = load_event(dump_event(event))
    assert restored.id == event.id
    assert restored.data.score == 2
    assert restored.data.note == "rough day"


@pytest.mark.asyncio
async def test_publish_invalid_payload_delivers_nothing(inline_bus):
    with pytest.raises(InvalidEventError):
        await inline_bus.publish("mood/updated", {"score": 3})
    assert inline_bus.transport.results == {}


@pytest.mark.asyncio
async def test_publish_fans_out_to_every_handler(inline_bus, monkeypatch):
    async def fake_average(user_id, *, days):
        return 5.0

    async def fake_low(user_id, *, below=3, days=7):
        return 0

    async def fake_recent(user_id, *, days=7):
        return []

    async def fake_name(user_id):
        return None

    async def fake_generate(prompt, **kwargs):
        raise RuntimeError("model offline")

    async def fake_insert(user_id, candidates, **kwargs):
        return [f"r{i}" for i, _ in enumerate(candidates)]

    monkeypatch.setattr(mood_update, "mood_average", fake_average)
    monkeypatch.setattr(mood_update, "count_low_moods", fake_low)
    monkeypatch.setattr(recommendation_generation, "recent_moods", fake_recent)
    monkeypatch.setattr(recommendation_generation, "recent_activities", fake_recent)
    monkeypatch.setattr(recommendation_generation, "get_display_name", fake_name)
    monkeypatch.setattr(recommendation_generation, "generate_text", fake_generate)
    monkeypatch.setattr(recommendation_generation, "insert_recommendations", fake_insert)

    event = await inline_bus.publish("mood/updated", {"userId": "u1", "score": 60})

    results = inline_bus.transport.results
    assert set(results) == {
        delivery_key(event.id, "mood-tracking-handler"),
        delivery_key(event.id, "generate-activity-recommendations"),
    }
    assert results[delivery_key(event.id, "mood-tracking-handler")]["alert"]["shouldAlert"] is False


@pytest.mark.asyncio
async def test_failing_handler_is_dead_lettered_without_failing_publish(inline_bus, store, monkeypatch):
    async def broken_totals(user_id):
        raise ConnectionError("db down")

    monkeypatch.setattr(activity_completion, "activity_totals", broken_totals)

    event = await inline_bus.publish(
        "activity/completed",
        {"userId": "u1", "id": "a1", "type": "walking", "name": "Evening walk"},
    )

    letters = await store.dead_letters()
    assert len(letters) == 1
    assert letters[0]["deliveryId"] == delivery_key(event.id, "activity-completion-handler")
    assert letters[0]["completedSteps"] == ["validate-activity"]


class FakeJob:
    def __init__(self, job_id):
        self.id = job_id


class FakeQueue:
    def __init__(self):
        self.calls = []

    def enqueue(self, func, **kwargs):
        self.calls.append((func, kwargs))
        return FakeJob(kwargs["job_id"])


@pytest.mark.asyncio
async def test_rq_transport_enqueues_one_job_per_delivery():
    queue = FakeQueue()
    settings = AppSettings(WORKFLOW_RETRIES={"mood-tracking-handler": 5})
    transport = RQTransport(queue, settings)

    async def noop(event, step):
        return {}

    event = parse_event("mood/updated", {"userId": "u1", "score": 4})
    job_id = await transport.deliver(event, HandlerSpec("mood-tracking-handler", "mood/updated", noop, retries=3))

    func, kwargs = queue.calls[0]
    assert func == "mindwell.apps.worker.workflow.runner.process_delivery"
    assert job_id == f"{event.id}-mood-tracking-handler"
    assert kwargs["kwargs"]["handler"] == "mood-tracking-handler"
    assert kwargs["kwargs"]["envelope"]["id"] == event.id
    assert kwargs["retry"].max == 5


@pytest.mark.asyncio
async def test_rq_transport_job_id_is_accepted_by_rq():
    queue = Queue("workflows", connection=fakeredis.FakeStrictRedis())
    transport = RQTransport(queue, AppSettings())
    event = parse_event("activity/completed", {"userId": "u1", "id": "a1", "type": "walking", "name": "Walk"})

    job_id = await transport.deliver(event, get_handler("activity-completion-handler"))

    assert job_id == job_id_for(event.id, "activity-completion-handler")
    assert ":" not in job_id
    job = queue.fetch_job(job_id)
    assert job is not None
    assert job.kwargs["handler"] == "activity-completion-handler"
    assert job.kwargs["envelope"]["id"] == event.id
    assert queue.count == 1


@pytest.mark.asyncio
async def test_request_drops_checkpoints_once_it_returns(monkeypatch):
    async def offline(prompt, **kwargs):
        raise RuntimeError("model offline")

    monkeypatch.setattr(chat_message, "generate_text", offline)
    store = MemoryCheckpointStore()
    bus = EventBus(InlineTransport(store))

    for n in range(200):
        result = await bus.request(
            "therapy/session.message",
            {"message": f"message {n}", "sessionId": "s1"},
            handler="process-chat-message",
        )
        assert result["response"]

    assert len(store) == 0


@pytest.mark.asyncio
async def test_inline_results_keep_only_the_latest(monkeypatch):
    async def fake_totals(user_id):
        return {"completed": 1, "minutes": 0.0}

    async def fake_type_count(user_id, activity_type):
        return 1

    monkeypatch.setattr(activity_completion, "activity_totals", fake_totals)
    monkeypatch.setattr(activity_completion, "count_activities_of_type", fake_type_count)
    transport = InlineTransport(max_results=3)
    bus = EventBus(transport)

    events = []
    for n in range(5):
        events.append(
            await bus.publish(
                "activity/completed",
                {"userId": "u1", "id": f"a{n}", "type": "walking", "name": "Walk"},
            )
        )

    assert list(transport.results) == [
        delivery_key(event.id, "activity-completion-handler") for event in events[2:]
    ]


@pytest.mark.asyncio
async def test_memory_store_evicts_oldest_delivery():
    store = MemoryCheckpointStore(max_deliveries=2)
    for delivery in ("d1", "d2", "d3"):
        await store.save_step(delivery, "step", {"delivery": delivery})

    assert len(store) == 2
    assert await store.completed_steps("d1") == {}
    assert await store.completed_steps("d3") == {"step": {"delivery": "d3"}}
