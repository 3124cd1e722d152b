import json

import pytest

from mindwell.apps.worker.tasks import session_analysis
from mindwell.apps.worker.workflow import FatalStepError


@pytest.fixture
def stored(monkeypatch):
    rows: list = []

    async def fake_owner(session_id):
        return "u1"

    async def fake_store(session_id, user_id, analysis, *, delivery_id, payload=None):
        rows.append(
            {
                "session_id": session_id,
                "user_id": user_id,
                "analysis": analysis,
                "delivery_id": delivery_id,
                "payload": payload,
            }
        )
        return "analysis-1"

    monkeypatch.setattr(session_analysis, "session_owner", fake_owner)
    monkeypatch.setattr(session_analysis, "store_session_analysis", fake_store)
    return rows


@pytest.mark.asyncio
async def test_risk_level_clamped_before_storage(run_handler, monkeypatch, stored):
    async def fake_generate(prompt, **kwargs):
        return json.dumps(
            {
                "keyThemes": ["grief"],
                "emotionalState": "sad",
                "areasOfConcern": ["isolation"],
                "recommendations": ["schedule follow-up"],
                "progressIndicators": [],
                "riskLevel": 15,
            }
        )

    monkeypatch.setattr(session_analysis, "generate_text", fake_generate)

    result = await run_handler(
        "analyze-therapy-session",
        {"sessionId": "s1", "transcript": "user: I miss her\nassistant: Tell me more."},
    )

    (row,) = stored
    assert row["analysis"].risk_level == 10
    assert result["analysis"]["riskLevel"] == 10
    assert result["analysisId"] == "analysis-1"
    assert row["user_id"] == "u1"


@pytest.mark.asyncio
async def test_negative_risk_clamped_to_zero(run_handler, monkeypatch, stored):
    async def fake_generate(prompt, **kwargs):
        return '{"riskLevel": -3}'

    monkeypatch.setattr(session_analysis, "generate_text", fake_generate)

    result = await run_handler("analyze-therapy-session", {"sessionId": "s1", "notes": "quiet session"})

    assert result["analysis"]["riskLevel"] == 0
    assert result["analysis"]["emotionalState"] == "neutral"


@pytest.mark.asyncio
async def test_model_failure_stores_default_analysis(run_handler, monkeypatch, stored):
    async def fake_generate(prompt, **kwargs):
        raise RuntimeError("model offline")

    monkeypatch.setattr(session_analysis, "generate_text", fake_generate)

    result = await run_handler("analyze-therapy-session", {"sessionId": "s1", "notes": "talked about work"})

    assert result["analysis"] == {
        "keyThemes": [],
        "emotionalState": "neutral",
        "areasOfConcern": [],
        "recommendations": [],
        "progressIndicators": [],
        "riskLevel": 0.0,
    }
    assert len(stored) == 1


@pytest.mark.asyncio
async def test_empty_session_content_is_fatal(run_handler, store, monkeypatch, stored):
    async def fake_generate(prompt, **kwargs):
        raise AssertionError("model must not be called")

    monkeypatch.setattr(session_analysis, "generate_text", fake_generate)

    with pytest.raises(FatalStepError):
        await run_handler("analyze-therapy-session", {"sessionId": "s1", "notes": "   "})

    assert stored == []
    (letter,) = await store.dead_letters()
    assert letter["fatal"] is True
    assert letter["handler"] == "analyze-therapy-session"


@pytest.mark.asyncio
async def test_blank_notes_fall_back_to_transcript(run_handler, store, monkeypatch, stored):
    prompts = []

    async def fake_generate(prompt, **kwargs):
        prompts.append(prompt)
        return '{"keyThemes": ["sleep"], "riskLevel": 2}'

    monkeypatch.setattr(session_analysis, "generate_text", fake_generate)

    result = await run_handler(
        "analyze-therapy-session",
        {"sessionId": "s1", "notes": "   ", "transcript": "user: I can't sleep"},
    )

    assert "user: I can't sleep" in prompts[0]
    assert result["analysis"]["keyThemes"] == ["sleep"]
    assert len(stored) == 1
    assert await store.dead_letters() == []


@pytest.mark.asyncio
async def test_extra_model_keys_reach_stored_payload(run_handler, monkeypatch, stored):
    async def fake_generate(prompt, **kwargs):
        return json.dumps({"riskLevel": 12, "copingStrategies": ["breathing"]})

    monkeypatch.setattr(session_analysis, "generate_text", fake_generate)

    await run_handler("analyze-therapy-session", {"sessionId": "s1", "notes": "panic at work"})

    (row,) = stored
    assert row["payload"]["copingStrategies"] == ["breathing"]
    assert row["analysis"].risk_level == 10


@pytest.mark.asyncio
async def test_default_analysis_stores_without_model_payload(run_handler, monkeypatch, stored):
    async def fake_generate(prompt, **kwargs):
        return "not json at all"

    monkeypatch.setattr(session_analysis, "generate_text", fake_generate)

    await run_handler("analyze-therapy-session", {"sessionId": "s1", "notes": "talked about work"})

    (row,) = stored
    assert row["payload"] is None
