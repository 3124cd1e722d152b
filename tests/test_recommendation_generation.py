import json

import pytest

from mindwell.apps.engine.recommendations import DEFAULT_RECOMMENDATIONS
from mindwell.apps.worker.tasks import recommendation_generation


@pytest.fixture
def captured(monkeypatch):
    stored: dict = {}

    async def fake_moods(user_id, *, days):
        return [{"score": 40, "note": "tired", "timestamp": "2026-10-15T08:00:00+00:00"}, {"score": 60}]

    async def fake_activities(user_id, *, days):
        return [{"type": "walking", "name": "Evening walk", "duration": 20, "timestamp": "2026-10-14T18:00:00+00:00"}]

    async def fake_name(user_id):
        return "Asha"

    async def fake_insert(user_id, candidates, *, delivery_id, based_on_mood_score, context_snapshot):
        stored.update(
            user_id=user_id,
            candidates=candidates,
            delivery_id=delivery_id,
            score=based_on_mood_score,
            snapshot=context_snapshot,
        )
        return [f"rec-{i}" for i in range(len(candidates))]

    monkeypatch.setattr(recommendation_generation, "recent_moods", fake_moods)
    monkeypatch.setattr(recommendation_generation, "recent_activities", fake_activities)
    monkeypatch.setattr(recommendation_generation, "get_display_name", fake_name)
    monkeypatch.setattr(recommendation_generation, "insert_recommendations", fake_insert)
    return stored


@pytest.mark.asyncio
async def test_candidates_are_normalized_before_storage(run_handler, monkeypatch, captured):
    model_output = {
        "recommendations": [
            {
                "activityType": "walking",
                "title": "Long hike",
                "difficultyLevel": "extreme",
                "estimatedDuration": 500,
                "expectedBenefits": ["Fresh air"],
            },
            {"activityType": "stargazing", "title": "Look up", "estimatedDuration": "soon"},
            {"activityType": "reading", "description": "untitled, dropped"},
        ]
    }

    async def fake_generate(prompt, **kwargs):
        return json.dumps(model_output)

    monkeypatch.setattr(recommendation_generation, "generate_text", fake_generate)

    result = await run_handler("generate-activity-recommendations", {"userId": "u1", "score": 45})

    hike, look_up = captured["candidates"]
    assert hike["estimatedDuration"] == 120
    assert hike["difficultyLevel"] == "easy"
    assert look_up["activityType"] == "meditation"
    assert look_up["estimatedDuration"] == 15
    assert result["storedIds"] == ["rec-0", "rec-1"]
    assert captured["score"] == 45
    assert captured["snapshot"]["moodAverage"] == 50.0
    assert captured["snapshot"]["recentActivityCount"] == 1
    assert captured["delivery_id"].endswith(":generate-activity-recommendations")


@pytest.mark.asyncio
async def test_at_most_five_candidates_stored(run_handler, monkeypatch, captured):
    async def fake_generate(prompt, **kwargs):
        return json.dumps([{"title": f"Idea {i}", "activityType": "reading"} for i in range(8)])

    monkeypatch.setattr(recommendation_generation, "generate_text", fake_generate)

    await run_handler("generate-activity-recommendations", {"userId": "u1", "score": 70})

    assert len(captured["candidates"]) == 5


@pytest.mark.asyncio
async def test_model_failure_stores_default_recommendations(run_handler, monkeypatch, captured):
    async def fake_generate(prompt, **kwargs):
        raise RuntimeError("rate limited")

    monkeypatch.setattr(recommendation_generation, "generate_text", fake_generate)

    result = await run_handler("generate-activity-recommendations", {"userId": "u1", "score": 30})

    assert [item["title"] for item in captured["candidates"]] == [item["title"] for item in DEFAULT_RECOMMENDATIONS]
    assert result["recommendations"] == captured["candidates"]


@pytest.mark.asyncio
async def test_unparseable_model_output_falls_back(run_handler, monkeypatch, captured):
    async def fake_generate(prompt, **kwargs):
        return "Here are some ideas: go outside!"

    monkeypatch.setattr(recommendation_generation, "generate_text", fake_generate)

    await run_handler("generate-activity-recommendations", {"userId": "u1", "score": 30})

    assert captured["candidates"][0]["title"] == DEFAULT_RECOMMENDATIONS[0]["title"]


@pytest.mark.asyncio
async def test_context_failure_still_generates(run_handler, monkeypatch, captured):
    async def broken_moods(user_id, *, days):
        raise ConnectionError("db down")

    prompts = []

    async def fake_generate(prompt, **kwargs):
        prompts.append(prompt)
        return json.dumps([{"title": "Breathe", "activityType": "meditation", "estimatedDuration": 5}])

    monkeypatch.setattr(recommendation_generation, "recent_moods", broken_moods)
    monkeypatch.setattr(recommendation_generation, "generate_text", fake_generate)

    result = await run_handler("generate-activity-recommendations", {"userId": "u1", "score": 30})

    assert result["storedIds"] == ["rec-0"]
    assert captured["snapshot"]["moodAverage"] is None
    assert captured["snapshot"]["recentActivityCount"] == 0
    assert len(prompts) == 1
