from __future__ import annotations

import logging
from typing import Any, Dict

from mindwell.apps.api.services.activities import activity_totals, count_activities_of_type
from mindwell.apps.engine.achievements import compute_progress, determine_achievements
from mindwell.apps.worker.workflow import Fatal, StepRunner, workflow
from mindwell.libs.schemas.events import ACTIVITY_COMPLETED, ActivityCompletedEvent

LOGGER = logging.getLogger(__name__)


@workflow("activity-completion-handler", event=ACTIVITY_COMPLETED, retries=3)
async def complete_activity(event: ActivityCompletedEvent, step: StepRunner) -> Dict[str, Any]:
    data = event.data

    async def validate() -> Any:
        missing = [field for field in ("user_id", "id", "name") if not str(getattr(data, field) or "").strip()]
        if missing:
            return Fatal(f"missing required fields: {', '.join(missing)}")
        LOGGER.info(
            "Activity completed",
            extra={"event": "activity_completed", "user_id": data.user_id, "activity_id": data.id, "type": data.type.value},
        )
        return {"activityId": data.id, "type": data.type.value}

    await step.run("validate-activity", validate)

    async def update_progress() -> Dict[str, Any]:
        totals = await activity_totals(data.user_id)
        return compute_progress(totals["completed"], totals["minutes"])

    progress = await step.run("update-progress", update_progress)

    async def check_achievements() -> Dict[str, Any]:
        earned = determine_achievements(
            completed_activities=progress["completedActivities"],
            total_minutes=progress["totalMinutes"],
            activity_minutes=data.duration or 0,
            activity_type=data.type.value,
            type_count=await count_activities_of_type(data.user_id, data.type.value),
        )
        if earned:
            LOGGER.info("New achievements: %s", ", ".join(earned), extra={"event": "achievements", "user_id": data.user_id})
        return {"newAchievements": earned}

    achievements = await step.run("check-achievements", check_achievements)

    return {"message": "Activity completion processed", "progress": progress, "achievements": achievements}


__all__ = ["complete_activity"]
