"""Recommendation query surface. Rows are produced by the recommendation workflow."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import JSONResponse
from pydantic import Field

from mindwell.apps.api.core.events import send_mood_update_event
from mindwell.apps.api.deps.auth import get_current_user_id
from mindwell.apps.api.services.recommendations import (
    active_recommendations,
    complete_recommendation,
    pagination,
    recent_uncompleted,
    recommendation_history,
    recommendation_stats,
)
from mindwell.libs.schemas.records import CamelModel

router = APIRouter(prefix="/recommendations", tags=["recommendations"])
logger = logging.getLogger(__name__)

DEFAULT_MOOD_SCORE = 50
MAX_PAGE_SIZE = 50
REGENERATE_WINDOW_HOURS = 24


class CompleteRequest(CamelModel):
    recommendation_id: UUID


class GenerateRequest(CamelModel):
    mood_score: float | None = Field(default=None, ge=0, le=100)
    force_regenerate: bool = False


@router.get("/active")
async def get_active_recommendations(user_id: str = Depends(get_current_user_id)):
    rows = await active_recommendations(user_id)
    logger.info("Active recommendations fetched", extra={"user_id": user_id, "count": len(rows)})
    return {"success": True, "data": rows}


@router.get("/history")
async def get_recommendation_history(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1),
    user_id: str = Depends(get_current_user_id),
):
    limit = min(limit, MAX_PAGE_SIZE)
    rows, total = await recommendation_history(user_id, page=page, limit=limit)
    return {
        "success": True,
        "data": {"recommendations": rows, "pagination": pagination(page, limit, total)},
    }


@router.patch("/complete")
async def mark_recommendation_completed(body: CompleteRequest, user_id: str = Depends(get_current_user_id)):
    row = await complete_recommendation(user_id, str(body.recommendation_id))
    if row is None:
        raise HTTPException(status_code=404, detail="Recommendation not found or access denied")
    logger.info(
        "Recommendation marked as completed",
        extra={"user_id": user_id, "recommendation_id": row["id"], "activity_type": row["activityType"]},
    )
    return {"success": True, "data": row}


@router.post("/generate")
async def request_new_recommendations(
    body: GenerateRequest | None = None,
    user_id: str = Depends(get_current_user_id),
):
    body = body or GenerateRequest()
    if not body.force_regenerate:
        recent = await recent_uncompleted(user_id, hours=REGENERATE_WINDOW_HOURS)
        if recent:
            return {"success": True, "message": "Recent recommendations already available", "data": recent}

    score = DEFAULT_MOOD_SCORE if body.mood_score is None else body.mood_score
    await send_mood_update_event(user_id=user_id, score=score, timestamp=datetime.now(timezone.utc))
    logger.info(
        "New recommendation generation triggered",
        extra={"user_id": user_id, "mood_score": body.mood_score, "force_regenerate": body.force_regenerate},
    )
    return JSONResponse(
        status_code=status.HTTP_202_ACCEPTED,
        content={
            "success": True,
            "message": "New recommendations are being generated. Check back in a moment.",
        },
    )


@router.get("/stats")
async def get_recommendation_stats(user_id: str = Depends(get_current_user_id)):
    return {"success": True, "data": await recommendation_stats(user_id)}
