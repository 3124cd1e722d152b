"""Publishing helpers used by the API routes."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, Mapping

from mindwell.apps.worker.workflow import EventEnvelope, get_event_bus
from mindwell.libs.json_utils import json_safe
from mindwell.libs.schemas.events import ACTIVITY_COMPLETED, MOOD_UPDATED, SESSION_CREATED

LOGGER = logging.getLogger(__name__)


def _clean(payload: Mapping[str, Any]) -> Dict[str, Any]:
    return {key: json_safe(value) for key, value in payload.items() if value is not None}


async def send_session_created_event(
    *,
    session_id: str,
    user_id: str | None,
    notes: str | None = None,
    transcript: str | None = None,
    requires_follow_up: bool = False,
    session_type: str | None = None,
) -> EventEnvelope:
    event = await get_event_bus().publish(
        SESSION_CREATED,
        _clean(
            {
                "sessionId": session_id,
                "userId": user_id,
                "notes": notes,
                "transcript": transcript,
                "requiresFollowUp": requires_follow_up,
                "sessionType": session_type,
            }
        ),
    )
    LOGGER.info("Therapy session event sent", extra={"event": "event_sent", "event_id": event.id, "session_id": session_id})
    return event


async def send_mood_update_event(
    *,
    user_id: str,
    score: float,
    note: str | None = None,
    timestamp: datetime | None = None,
) -> EventEnvelope:
    event = await get_event_bus().publish(
        MOOD_UPDATED,
        _clean({"userId": user_id, "score": score, "note": note, "timestamp": timestamp}),
    )
    LOGGER.info("Mood update event sent", extra={"event": "event_sent", "event_id": event.id, "user_id": user_id})
    return event


async def send_activity_completion_event(activity: Mapping[str, Any]) -> EventEnvelope:
    """Publish a stored activity row as ``activity/completed``."""

    event = await get_event_bus().publish(
        ACTIVITY_COMPLETED,
        _clean(
            {
                "userId": activity["user_id"],
                "id": activity["id"],
                "type": activity["type"],
                "name": activity["name"],
                "duration": activity.get("duration"),
                "description": activity.get("description"),
                "timestamp": activity.get("timestamp"),
            }
        ),
    )
    LOGGER.info("Activity completion event sent", extra={"event": "event_sent", "event_id": event.id})
    return event


__all__ = ["send_activity_completion_event", "send_mood_update_event", "send_session_created_event"]
