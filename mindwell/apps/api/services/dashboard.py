from __future__ import annotations

from collections import Counter
from datetime import datetime, timezone
from typing import Any, Dict, List

from mindwell.apps.api.core.db import q, scalar
from mindwell.apps.api.services.activities import activities_today
from mindwell.apps.api.services.moods import moods_today, recent_moods
from mindwell.apps.api.services.recommendations import completion_counts, completion_rate, round_half_up


async def dashboard_stats(user_id: str) -> Dict[str, Any]:
    todays_moods = await moods_today(user_id)
    todays_activities = await activities_today(user_id)
    therapy_sessions = await scalar(
        "SELECT COUNT(*) FROM activities WHERE user_id::text = $1 AND type = 'therapy'",
        user_id,
    )
    history = await recent_moods(user_id, days=7)
    total, completed = await completion_counts(user_id)

    mood_score = None
    if todays_moods:
        mood_score = round_half_up(sum(float(m["score"]) for m in todays_moods) / len(todays_moods))

    breakdown = Counter(activity["type"] for activity in todays_activities)
    return {
        "moodScore": mood_score,
        "completionRate": completion_rate(total, completed),
        "totalActivities": len(todays_activities),
        "therapySessions": int(therapy_sessions or 0),
        "lastUpdated": datetime.now(timezone.utc).isoformat(),
        "moodHistory": [{"score": m["score"], "timestamp": m["timestamp"]} for m in history],
        "activityBreakdown": [{"type": kind, "count": count} for kind, count in breakdown.items()],
    }


async def activity_history(user_id: str, *, days: int = 30) -> List[Dict[str, Any]]:
    return await q(
        """
        SELECT id::text AS id, type, name, duration, timestamp FROM activities
        WHERE user_id::text = $1 AND timestamp >= NOW() - make_interval(days => $2)
        ORDER BY timestamp DESC
        """,
        user_id,
        days,
    )


async def mood_trends(user_id: str, *, days: int = 30) -> Dict[str, Any]:
    moods = await q(
        """
        SELECT score, timestamp, note FROM moods
        WHERE user_id::text = $1 AND timestamp >= NOW() - make_interval(days => $2)
        ORDER BY timestamp ASC
        """,
        user_id,
        days,
    )
    average = sum(float(m["score"]) for m in moods) / len(moods) if moods else 0
    return {"moods": moods, "averageScore": round_half_up(average), "totalEntries": len(moods)}


__all__ = ["activity_history", "dashboard_stats", "mood_trends"]
