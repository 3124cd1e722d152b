from __future__ import annotations

from typing import Any, Dict, List

from mindwell.libs.schemas.records import AlertDecision

LOW_MOOD_THRESHOLD = 3
TREND_THRESHOLD = 0.3
LOW_MOOD_ALERT_COUNT = 2

MINDFULNESS_RECOMMENDATION = "Try a short mindfulness exercise to ground yourself"
OUTREACH_RECOMMENDATION = "Consider reaching out to a mental health professional or scheduling a therapy session"


def is_low_mood(score: float) -> bool:
    return score < LOW_MOOD_THRESHOLD


def classify_trend(weekly_average: float | None, monthly_average: float | None) -> str:
    """Compare the 7-day average to the 30-day baseline."""

    if weekly_average is None or monthly_average is None:
        return "stable"
    delta = float(weekly_average) - float(monthly_average)
    if delta > TREND_THRESHOLD:
        return "improving"
    if -delta > TREND_THRESHOLD:
        return "declining"
    return "stable"


def pattern_recommendations(score: float, recent_low_moods: int, trend: str) -> List[str]:
    recommendations: List[str] = []
    if is_low_mood(score) or recent_low_moods >= LOW_MOOD_ALERT_COUNT:
        recommendations.append(MINDFULNESS_RECOMMENDATION)
    if trend == "declining":
        recommendations.append(OUTREACH_RECOMMENDATION)
    return recommendations


def analyze_mood_patterns(
    score: float,
    *,
    weekly_average: float | None,
    monthly_average: float | None,
    recent_low_moods: int,
) -> Dict[str, Any]:
    trend = classify_trend(weekly_average, monthly_average)
    return {
        "trend": trend,
        "weeklyAverage": weekly_average,
        "monthlyAverage": monthly_average,
        "recentLowMoods": recent_low_moods,
        "recommendations": pattern_recommendations(score, recent_low_moods, trend),
    }


def build_alert_decision(score: float, *, trend: str, recent_low_moods: int) -> AlertDecision:
    """A low current score always wins over the trend signals."""

    if is_low_mood(score):
        return AlertDecision(
            should_alert=True,
            level="high",
            reason=f"Low mood score of {score} reported",
        )
    if trend == "declining":
        return AlertDecision(
            should_alert=True,
            level="medium",
            reason="Mood trend is declining compared to the 30-day average",
        )
    if recent_low_moods >= LOW_MOOD_ALERT_COUNT:
        return AlertDecision(
            should_alert=True,
            level="medium",
            reason=f"{recent_low_moods} low mood entries in the last 7 days",
        )
    return AlertDecision(should_alert=False)


__all__ = [
    "analyze_mood_patterns",
    "build_alert_decision",
    "classify_trend",
    "is_low_mood",
    "pattern_recommendations",
]
