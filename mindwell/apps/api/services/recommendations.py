"""Activity recommendation storage and queries."""

from __future__ import annotations

import math
import uuid
from typing import Any, Dict, List, Mapping, Sequence, Tuple

from mindwell.apps.api.core.db import exec as dbexec
from mindwell.apps.api.core.db import q, scalar
from mindwell.libs.json_utils import json_safe
from mindwell.libs.schemas.records import ActivityRecommendation

_RECOMMENDATION_NAMESPACE = uuid.UUID("5b0f7c5e-2a9d-4f0e-9d41-6f1f3c8a1e27")

_COLUMNS = """
    id::text AS id, user_id::text AS user_id, activity_type, title, description, reasoning,
    expected_benefits, difficulty_level, estimated_duration, based_on_mood_score,
    is_completed, completed_at, created_at, context_snapshot
"""


def recommendation_id(delivery_id: str, index: int) -> str:
    """Stable row id, so re-running a persist step inserts nothing new."""

    return str(uuid.uuid5(_RECOMMENDATION_NAMESPACE, f"{delivery_id}:{index}"))


def to_wire(row: Mapping[str, Any]) -> Dict[str, Any]:
    return ActivityRecommendation.model_validate(json_safe(dict(row))).to_wire()


async def insert_recommendations(
    user_id: str,
    candidates: Sequence[Mapping[str, Any]],
    *,
    delivery_id: str,
    based_on_mood_score: float | None,
    context_snapshot: Mapping[str, Any],
) -> List[str]:
    ids: List[str] = []
    for index, candidate in enumerate(candidates):
        rec_id = recommendation_id(delivery_id, index)
        await dbexec(
            """
            INSERT INTO activity_recommendations (
                id, user_id, activity_type, title, description, reasoning, expected_benefits,
                difficulty_level, estimated_duration, based_on_mood_score, is_completed,
                created_at, context_snapshot
            )
            VALUES ($1::uuid, $2, $3, $4, $5, $6, $7::jsonb, $8, $9, $10, FALSE, NOW(), $11::jsonb)
            ON CONFLICT (id) DO NOTHING
            """,
            rec_id,
            user_id,
            candidate["activityType"],
            candidate["title"],
            candidate.get("description") or "",
            candidate.get("reasoning") or "",
            list(candidate.get("expectedBenefits") or []),
            candidate["difficultyLevel"],
            int(candidate["estimatedDuration"]),
            based_on_mood_score,
            dict(context_snapshot),
        )
        ids.append(rec_id)
    return ids


async def active_recommendations(user_id: str, *, days: int = 7, limit: int = 10) -> List[Dict[str, Any]]:
    rows = await q(
        f"""
        SELECT {_COLUMNS} FROM activity_recommendations
        WHERE user_id::text = $1 AND NOT is_completed AND created_at >= NOW() - make_interval(days => $2)
        ORDER BY created_at DESC
        LIMIT $3
        """,
        user_id,
        days,
        limit,
    )
    return [to_wire(row) for row in rows]


async def recent_uncompleted(user_id: str, *, hours: int = 24) -> List[Dict[str, Any]]:
    rows = await q(
        f"""
        SELECT {_COLUMNS} FROM activity_recommendations
        WHERE user_id::text = $1 AND NOT is_completed AND created_at >= NOW() - make_interval(hours => $2)
        ORDER BY created_at DESC
        """,
        user_id,
        hours,
    )
    return [to_wire(row) for row in rows]


async def recommendation_history(user_id: str, *, page: int, limit: int) -> Tuple[List[Dict[str, Any]], int]:
    rows = await q(
        f"""
        SELECT {_COLUMNS} FROM activity_recommendations
        WHERE user_id::text = $1
        ORDER BY created_at DESC
        OFFSET $2 LIMIT $3
        """,
        user_id,
        (page - 1) * limit,
        limit,
    )
    total = await scalar("SELECT COUNT(*) FROM activity_recommendations WHERE user_id::text = $1", user_id)
    return [to_wire(row) for row in rows], int(total or 0)


def pagination(page: int, limit: int, total: int) -> Dict[str, Any]:
    total_pages = math.ceil(total / limit) if limit else 0
    return {
        "page": page,
        "limit": limit,
        "totalCount": total,
        "totalPages": total_pages,
        "hasNextPage": page < total_pages,
        "hasPrevPage": page > 1,
    }


async def complete_recommendation(user_id: str, recommendation_id: str) -> Dict[str, Any] | None:
    """Mark completed. Completion never moves back and keeps its first timestamp."""

    row = await q(
        f"""
        UPDATE activity_recommendations
        SET is_completed = TRUE, completed_at = COALESCE(completed_at, NOW())
        WHERE id::text = $1 AND user_id::text = $2
        RETURNING {_COLUMNS}
        """,
        recommendation_id,
        user_id,
        one=True,
    )
    return to_wire(row) if row else None


async def completion_counts(user_id: str) -> Tuple[int, int]:
    row = await q(
        """
        SELECT COUNT(*) AS total, COUNT(*) FILTER (WHERE is_completed) AS completed
        FROM activity_recommendations WHERE user_id::text = $1
        """,
        user_id,
        one=True,
    ) or {}
    return int(row.get("total") or 0), int(row.get("completed") or 0)


def round_half_up(value: float) -> int:
    """Round .5 away from zero for the non-negative averages and rates shown to users."""

    return math.floor(value + 0.5)


def completion_rate(total: int, completed: int) -> int:
    return round_half_up(completed / total * 100) if total else 0


async def recommendation_stats(user_id: str) -> Dict[str, Any]:
    total, completed = await completion_counts(user_id)
    recent = await scalar(
        """
        SELECT COUNT(*) FROM activity_recommendations
        WHERE user_id::text = $1 AND created_at >= NOW() - INTERVAL '30 days'
        """,
        user_id,
    )
    breakdown = await q(
        """
        SELECT activity_type AS type, COUNT(*) AS count FROM activity_recommendations
        WHERE user_id::text = $1 GROUP BY activity_type ORDER BY count DESC
        """,
        user_id,
    )
    return {
        "totalRecommendations": total,
        "completedRecommendations": completed,
        "recentRecommendations": int(recent or 0),
        "completionRate": completion_rate(total, completed),
        "activityTypeBreakdown": [{"type": row["type"], "count": int(row["count"])} for row in breakdown],
    }


__all__ = [
    "active_recommendations",
    "complete_recommendation",
    "completion_counts",
    "completion_rate",
    "insert_recommendations",
    "pagination",
    "recent_uncompleted",
    "recommendation_history",
    "recommendation_id",
    "recommendation_stats",
    "round_half_up",
]
