from __future__ import annotations

import logging
from datetime import datetime

from fastapi import APIRouter, Depends, status
from pydantic import Field

from mindwell.apps.api.core.events import send_mood_update_event
from mindwell.apps.api.deps.auth import get_current_user_id
from mindwell.apps.api.services.moods import create_mood
from mindwell.libs.schemas.records import CamelModel

router = APIRouter(prefix="/mood", tags=["mood"])
logger = logging.getLogger(__name__)


class MoodCreate(CamelModel):
    score: float = Field(ge=0, le=100)
    note: str | None = None
    timestamp: datetime | None = None


@router.post("/create-mood", status_code=status.HTTP_201_CREATED)
async def create_mood_entry(body: MoodCreate, user_id: str = Depends(get_current_user_id)):
    mood = await create_mood(user_id, body.score, note=body.note, timestamp=body.timestamp)
    logger.info("Mood entry created", extra={"user_id": user_id})
    await send_mood_update_event(
        user_id=user_id,
        score=body.score,
        note=body.note,
        timestamp=mood.get("timestamp") or body.timestamp,
    )
    return {"success": True, "data": mood}
