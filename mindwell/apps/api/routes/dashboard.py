from __future__ import annotations

from fastapi import APIRouter, Depends

from mindwell.apps.api.deps.auth import get_current_user_id
from mindwell.apps.api.services.dashboard import activity_history, dashboard_stats, mood_trends

router = APIRouter(prefix="/dashboard", tags=["dashboard"])


@router.get("/stats")
async def get_dashboard_stats(user_id: str = Depends(get_current_user_id)):
    return {"success": True, "data": await dashboard_stats(user_id)}


@router.get("/activity-history")
async def get_activity_history(user_id: str = Depends(get_current_user_id)):
    return {"success": True, "data": await activity_history(user_id)}


@router.get("/mood-trends")
async def get_mood_trends(user_id: str = Depends(get_current_user_id)):
    return {"success": True, "data": await mood_trends(user_id)}
