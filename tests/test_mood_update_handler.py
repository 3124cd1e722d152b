import pytest

from mindwell.apps.worker.tasks import mood_update, recommendation_generation
from mindwell.apps.worker.workflow import delivery_key, get_handler, run_with_retries
from mindwell.libs.schemas.events import parse_event


def _patch_history(monkeypatch, *, weekly, monthly, lows):
    async def fake_average(user_id, *, days):
        return weekly if days == 7 else monthly

    async def fake_low(user_id, *, below, days):
        return lows

    monkeypatch.setattr(mood_update, "mood_average", fake_average)
    monkeypatch.setattr(mood_update, "count_low_moods", fake_low)


@pytest.mark.asyncio
@pytest.mark.parametrize("trend_history", [(80.0, 40.0), (40.0, 80.0), (None, None)])
async def test_low_score_alerts_high_regardless_of_trend(run_handler, monkeypatch, trend_history):
    weekly, monthly = trend_history
    _patch_history(monkeypatch, weekly=weekly, monthly=monthly, lows=0)

    result = await run_handler("mood-tracking-handler", {"userId": "u1", "score": 2})

    assert result["alert"]["shouldAlert"] is True
    assert result["alert"]["level"] == "high"
    assert "Low mood score of 2" in result["alert"]["reason"]


@pytest.mark.asyncio
async def test_declining_trend_alerts_medium(run_handler, monkeypatch):
    _patch_history(monkeypatch, weekly=55.0, monthly=72.0, lows=0)

    result = await run_handler("mood-tracking-handler", {"userId": "u1", "score": 80})

    assert result["analysis"]["trend"] == "declining"
    assert result["alert"] == {
        "shouldAlert": True,
        "level": "medium",
        "reason": "Mood trend is declining compared to the 30-day average",
    }
    assert result["analysis"]["recommendations"][-1].startswith("Consider reaching out")


@pytest.mark.asyncio
async def test_stable_good_mood_does_not_alert(run_handler, monkeypatch):
    _patch_history(monkeypatch, weekly=70.0, monthly=70.1, lows=0)

    result = await run_handler("mood-tracking-handler", {"userId": "u1", "score": 75})

    assert result["analysis"]["trend"] == "stable"
    assert result["alert"]["shouldAlert"] is False
    assert result["analysis"]["recommendations"] == []


@pytest.mark.asyncio
async def test_repeated_low_moods_alert_medium(run_handler, monkeypatch):
    _patch_history(monkeypatch, weekly=60.0, monthly=60.0, lows=2)

    result = await run_handler("mood-tracking-handler", {"userId": "u1", "score": 50})

    assert result["alert"]["level"] == "medium"
    assert "2 low mood entries" in result["alert"]["reason"]


@pytest.mark.asyncio
async def test_replayed_delivery_skips_history_queries(monkeypatch, store):
    _patch_history(monkeypatch, weekly=60.0, monthly=60.0, lows=0)
    event_payload = {"userId": "u1", "score": 60}

    spec = get_handler("mood-tracking-handler")
    event = parse_event(spec.event, event_payload)
    first = await run_with_retries(event, spec, store=store, retries=0)

    async def exploding_average(user_id, *, days):
        raise AssertionError("history must come from the checkpoint")

    monkeypatch.setattr(mood_update, "mood_average", exploding_average)
    second = await run_with_retries(event, spec, store=store, retries=0)

    assert second == first


@pytest.mark.asyncio
async def test_publish_low_mood_end_to_end(inline_bus, monkeypatch):
    _patch_history(monkeypatch, weekly=None, monthly=None, lows=0)

    async def empty(user_id, *, days):
        return []

    async def no_name(user_id):
        return None

    async def offline(prompt, **kwargs):
        raise RuntimeError("model offline")

    async def fake_insert(user_id, candidates, **kwargs):
        return ["r1", "r2"]

    monkeypatch.setattr(recommendation_generation, "recent_moods", empty)
    monkeypatch.setattr(recommendation_generation, "recent_activities", empty)
    monkeypatch.setattr(recommendation_generation, "get_display_name", no_name)
    monkeypatch.setattr(recommendation_generation, "generate_text", offline)
    monkeypatch.setattr(recommendation_generation, "insert_recommendations", fake_insert)

    event = await inline_bus.publish("mood/updated", {"userId": "u1", "score": 1})

    result = inline_bus.transport.results[delivery_key(event.id, "mood-tracking-handler")]
    assert result["alert"]["shouldAlert"] is True
    assert result["alert"]["level"] == "high"
    assert "Low mood score" in result["alert"]["reason"]
