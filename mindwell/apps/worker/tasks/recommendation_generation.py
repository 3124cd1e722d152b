"""Recommendation workflow: gather context, ask the model, normalize, store."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List

from mindwell.apps.api.core.llm import generate_text
from mindwell.apps.api.services.activities import recent_activities
from mindwell.apps.api.services.moods import recent_moods
from mindwell.apps.api.services.recommendations import insert_recommendations
from mindwell.apps.api.services.users import get_display_name
from mindwell.apps.engine.recommendations import DEFAULT_RECOMMENDATIONS, extract_candidates, normalize_candidates
from mindwell.apps.worker.workflow import Fatal, Recovered, StepRunner, workflow
from mindwell.libs.json_utils import loads_llm_json
from mindwell.libs.schemas.events import MOOD_UPDATED, MoodUpdatedEvent
from mindwell.prompts.recommendations import build_recommendation_prompt

LOGGER = logging.getLogger(__name__)

MOOD_WINDOW_DAYS = 7
ACTIVITY_WINDOW_DAYS = 14


def _empty_context(score: float, generated_at: str) -> Dict[str, Any]:
    return {
        "userName": None,
        "currentMoodScore": score,
        "recentMoods": [],
        "recentActivities": [],
        "moodAverage": None,
        "recentActivityCount": 0,
        "generatedAt": generated_at,
    }


@workflow("generate-activity-recommendations", event=MOOD_UPDATED, retries=2)
async def generate_recommendations(event: MoodUpdatedEvent, step: StepRunner) -> Dict[str, Any]:
    data = event.data

    async def validate() -> Any:
        if not data.user_id.strip():
            return Fatal("userId is required")
        return {"userId": data.user_id}

    await step.run("validate-request", validate)

    async def gather_context() -> Any:
        generated_at = datetime.now(timezone.utc).isoformat()
        try:
            moods = await recent_moods(data.user_id, days=MOOD_WINDOW_DAYS)
            activities = await recent_activities(data.user_id, days=ACTIVITY_WINDOW_DAYS)
            name = await get_display_name(data.user_id)
        except Exception as exc:
            return Recovered(_empty_context(data.score, generated_at), f"user context unavailable: {exc}")

        scores = [float(mood["score"]) for mood in moods]
        return {
            "userName": name,
            "currentMoodScore": data.score,
            "recentMoods": [
                {"score": mood["score"], "note": mood.get("note"), "timestamp": mood.get("timestamp")} for mood in moods
            ],
            "recentActivities": [
                {
                    "type": activity.get("type"),
                    "name": activity.get("name"),
                    "duration": activity.get("duration"),
                    "timestamp": activity.get("timestamp"),
                }
                for activity in activities
            ],
            "moodAverage": round(sum(scores) / len(scores), 2) if scores else None,
            "recentActivityCount": len(activities),
            "generatedAt": generated_at,
        }

    context = await step.run("get-user-context", gather_context)

    async def generate() -> Any:
        prompt_context = {key: value for key, value in context.items() if key != "generatedAt"}
        try:
            raw = await generate_text(build_recommendation_prompt(prompt_context))
            candidates = normalize_candidates(extract_candidates(loads_llm_json(raw)))
        except Exception as exc:
            return Recovered(normalize_candidates(list(DEFAULT_RECOMMENDATIONS)), f"generation failed: {exc}")
        if not candidates:
            return Recovered(normalize_candidates(list(DEFAULT_RECOMMENDATIONS)), "no usable candidates")
        return candidates

    recommendations: List[Dict[str, Any]] = await step.run("generate-recommendations", generate)

    async def store() -> Dict[str, Any]:
        snapshot = {
            "moodAverage": context["moodAverage"],
            "recentActivityCount": context["recentActivityCount"],
            "generatedAt": context["generatedAt"],
        }
        ids = await insert_recommendations(
            data.user_id,
            recommendations,
            delivery_id=step.delivery_id,
            based_on_mood_score=data.score,
            context_snapshot=snapshot,
        )
        LOGGER.info(
            "Activity recommendations stored",
            extra={"event": "recommendations_stored", "user_id": data.user_id, "count": len(ids)},
        )
        return {"ids": ids, "contextSnapshot": snapshot}

    stored = await step.run("store-recommendations", store)

    return {
        "message": "Activity recommendations generated",
        "recommendations": recommendations,
        "storedIds": stored["ids"],
    }


__all__ = ["generate_recommendations"]
