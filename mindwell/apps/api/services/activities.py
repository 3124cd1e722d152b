from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List

from mindwell.apps.api.core.db import q, scalar

_ACTIVITY_COLUMNS = (
    "id::text AS id, user_id::text AS user_id, type, name, description, duration, timestamp, is_completed"
)


async def log_activity(
    user_id: str,
    *,
    activity_type: str,
    name: str,
    description: str | None = None,
    duration: float | None = None,
    timestamp: datetime | None = None,
) -> Dict[str, Any]:
    """Logged activities are completed ones."""

    return await q(
        f"""
        INSERT INTO activities (user_id, type, name, description, duration, timestamp, is_completed)
        VALUES ($1, $2, $3, $4, $5, COALESCE($6, NOW()), TRUE)
        RETURNING {_ACTIVITY_COLUMNS}
        """,
        user_id,
        activity_type,
        name,
        description,
        duration,
        timestamp,
        one=True,
    )


async def activity_totals(user_id: str) -> Dict[str, Any]:
    row = await q(
        """
        SELECT COUNT(*) AS completed, COALESCE(SUM(duration), 0)::float AS minutes
        FROM activities
        WHERE user_id::text = $1 AND is_completed
        """,
        user_id,
        one=True,
    ) or {}
    return {"completed": int(row.get("completed") or 0), "minutes": float(row.get("minutes") or 0)}


async def count_activities_of_type(user_id: str, activity_type: str) -> int:
    value = await scalar(
        "SELECT COUNT(*) FROM activities WHERE user_id::text = $1 AND type = $2 AND is_completed",
        user_id,
        activity_type,
    )
    return int(value or 0)


async def recent_activities(user_id: str, *, days: int = 14) -> List[Dict[str, Any]]:
    return await q(
        f"""
        SELECT {_ACTIVITY_COLUMNS} FROM activities
        WHERE user_id::text = $1 AND timestamp >= NOW() - make_interval(days => $2)
        ORDER BY timestamp DESC
        """,
        user_id,
        days,
    )


async def activities_today(user_id: str) -> List[Dict[str, Any]]:
    return await q(
        f"""
        SELECT {_ACTIVITY_COLUMNS} FROM activities
        WHERE user_id::text = $1 AND timestamp >= date_trunc('day', NOW())
        ORDER BY timestamp DESC
        """,
        user_id,
    )


__all__ = [
    "activities_today",
    "activity_totals",
    "count_activities_of_type",
    "log_activity",
    "recent_activities",
]
