from __future__ import annotations

import logging
import math
from typing import Any, Dict

from mindwell.apps.api.services.moods import count_low_moods, mood_average
from mindwell.apps.engine.mood_trend import analyze_mood_patterns, build_alert_decision
from mindwell.apps.engine.mood_trend.engine import LOW_MOOD_THRESHOLD
from mindwell.apps.worker.workflow import Fatal, StepRunner, workflow
from mindwell.libs.logging_utils import colorize
from mindwell.libs.schemas.events import MOOD_UPDATED, MoodUpdatedEvent

LOGGER = logging.getLogger(__name__)


@workflow("mood-tracking-handler", event=MOOD_UPDATED, retries=3)
async def track_mood(event: MoodUpdatedEvent, step: StepRunner) -> Dict[str, Any]:
    data = event.data

    async def validate() -> Any:
        if not data.user_id.strip():
            return Fatal("userId is required")
        if not math.isfinite(data.score):
            return Fatal("score must be a finite number")
        LOGGER.info("Mood update received", extra={"event": "mood_update", "user_id": data.user_id, "score": data.score})
        return {"userId": data.user_id, "score": data.score}

    await step.run("validate-mood", validate)

    async def analyze() -> Dict[str, Any]:
        return analyze_mood_patterns(
            data.score,
            weekly_average=await mood_average(data.user_id, days=7),
            monthly_average=await mood_average(data.user_id, days=30),
            recent_low_moods=await count_low_moods(data.user_id, below=LOW_MOOD_THRESHOLD, days=7),
        )

    analysis = await step.run("analyze-mood-patterns", analyze)

    async def decide_alert() -> Any:
        decision = build_alert_decision(
            data.score,
            trend=analysis["trend"],
            recent_low_moods=analysis["recentLowMoods"],
        )
        if decision.should_alert:
            LOGGER.warning(
                colorize(f"Mood alert ({decision.level}): {decision.reason}", "yellow"),
                extra={"event": "mood_alert", "user_id": data.user_id, "level": decision.level},
            )
        return decision

    alert = await step.run("evaluate-alert", decide_alert)

    return {"message": "Mood update processed", "analysis": analysis, "alert": alert}


__all__ = ["track_mood"]
