from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List

from mindwell.apps.api.core.db import q, scalar

_MOOD_COLUMNS = "id::text AS id, user_id::text AS user_id, score, note, timestamp"


async def create_mood(
    user_id: str,
    score: float,
    *,
    note: str | None = None,
    timestamp: datetime | None = None,
) -> Dict[str, Any]:
    return await q(
        f"""
        INSERT INTO moods (user_id, score, note, timestamp)
        VALUES ($1, $2, $3, COALESCE($4, NOW()))
        RETURNING {_MOOD_COLUMNS}
        """,
        user_id,
        score,
        note,
        timestamp,
        one=True,
    )


async def mood_average(user_id: str, *, days: int) -> float | None:
    value = await scalar(
        """
        SELECT AVG(score)::float FROM moods
        WHERE user_id::text = $1 AND timestamp >= NOW() - make_interval(days => $2)
        """,
        user_id,
        days,
    )
    return None if value is None else float(value)


async def count_low_moods(user_id: str, *, below: float = 3, days: int = 7) -> int:
    value = await scalar(
        """
        SELECT COUNT(*) FROM moods
        WHERE user_id::text = $1 AND score < $2 AND timestamp >= NOW() - make_interval(days => $3)
        """,
        user_id,
        below,
        days,
    )
    return int(value or 0)


async def recent_moods(user_id: str, *, days: int = 7) -> List[Dict[str, Any]]:
    return await q(
        f"""
        SELECT {_MOOD_COLUMNS} FROM moods
        WHERE user_id::text = $1 AND timestamp >= NOW() - make_interval(days => $2)
        ORDER BY timestamp ASC
        """,
        user_id,
        days,
    )


async def moods_today(user_id: str) -> List[Dict[str, Any]]:
    return await q(
        f"""
        SELECT {_MOOD_COLUMNS} FROM moods
        WHERE user_id::text = $1 AND timestamp >= date_trunc('day', NOW())
        ORDER BY timestamp DESC
        """,
        user_id,
    )


__all__ = ["count_low_moods", "create_mood", "mood_average", "moods_today", "recent_moods"]
