from __future__ import annotations

from typing import Any, Dict, List

POINTS_PER_ACTIVITY = 10
MINUTES_PER_POINT = 5

FIRST_ACTIVITY = "First Activity Completed"
TEN_ACTIVITIES = "10 Activities Milestone"
THIRTY_MINUTES = "30 Minutes Club"
TYPE_NOVICE_COUNT = 5


def compute_progress(completed_activities: int, total_minutes: float) -> Dict[str, Any]:
    minutes = int(total_minutes or 0)
    return {
        "completedActivities": completed_activities,
        "totalMinutes": minutes,
        "totalPoints": completed_activities * POINTS_PER_ACTIVITY + minutes // MINUTES_PER_POINT,
    }


def determine_achievements(
    *,
    completed_activities: int,
    total_minutes: float,
    activity_minutes: float,
    activity_type: str,
    type_count: int,
) -> List[str]:
    """Milestones earned by the activity that brought the totals to these values.

    Count milestones fire on exact equality, so each is awarded once, on the
    delivery that reaches it.
    """

    earned: List[str] = []
    if completed_activities == 1:
        earned.append(FIRST_ACTIVITY)
    if completed_activities == 10:
        earned.append(TEN_ACTIVITIES)
    previous_minutes = (total_minutes or 0) - (activity_minutes or 0)
    if (total_minutes or 0) >= 30 and previous_minutes < 30:
        earned.append(THIRTY_MINUTES)
    if type_count == TYPE_NOVICE_COUNT:
        earned.append(f"{activity_type.capitalize()} Novice")
    return earned


__all__ = ["compute_progress", "determine_achievements"]
