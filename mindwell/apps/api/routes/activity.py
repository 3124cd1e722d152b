from __future__ import annotations

import logging
from datetime import datetime

from fastapi import APIRouter, Depends, status
from pydantic import Field

from mindwell.apps.api.core.events import send_activity_completion_event
from mindwell.apps.api.deps.auth import get_current_user_id
from mindwell.apps.api.services.activities import log_activity
from mindwell.libs.schemas.records import ActivityType, CamelModel

router = APIRouter(prefix="/activity", tags=["activity"])
logger = logging.getLogger(__name__)


class ActivityCreate(CamelModel):
    type: ActivityType
    name: str = Field(min_length=1)
    description: str | None = None
    duration: float | None = Field(default=None, ge=0)
    timestamp: datetime | None = None


@router.post("/log-activity", status_code=status.HTTP_201_CREATED)
async def log_activity_entry(body: ActivityCreate, user_id: str = Depends(get_current_user_id)):
    activity = await log_activity(
        user_id,
        activity_type=body.type.value,
        name=body.name,
        description=body.description,
        duration=body.duration,
        timestamp=body.timestamp,
    )
    logger.info("Activity logged", extra={"activity_id": activity["id"]})
    await send_activity_completion_event(activity)
    return activity
