"""Coerce model-generated recommendation candidates into storable rows."""

from __future__ import annotations

import math
from typing import Any, Dict, List, Mapping

from mindwell.libs.schemas.records import ActivityType, DifficultyLevel

MIN_DURATION = 5
MAX_DURATION = 120
DEFAULT_DURATION = 15
MAX_RECOMMENDATIONS = 5

_ACTIVITY_TYPES = {item.value for item in ActivityType}
_DIFFICULTIES = {item.value for item in DifficultyLevel}

DEFAULT_RECOMMENDATIONS: tuple[Dict[str, Any], ...] = (
    {
        "activityType": "meditation",
        "title": "Mindful Breathing Exercise",
        "description": "Sit comfortably and breathe in for four counts, hold for four, and breathe out for six.",
        "reasoning": "Slow breathing calms the nervous system and is a safe start on any day.",
        "expectedBenefits": ["Reduced stress", "Improved focus"],
        "difficultyLevel": "easy",
        "estimatedDuration": 5,
    },
    {
        "activityType": "walking",
        "title": "Short Walk Outside",
        "description": "Take a gentle walk and notice five things you can see around you.",
        "reasoning": "Light movement and fresh air reliably lift mood.",
        "expectedBenefits": ["Better mood", "Gentle physical activity"],
        "difficultyLevel": "easy",
        "estimatedDuration": 15,
    },
)


def extract_candidates(payload: Any) -> List[Any]:
    """Find the candidate list in a parsed model response."""

    if isinstance(payload, list):
        return payload
    if isinstance(payload, Mapping):
        for key in ("recommendations", "activities", "items"):
            value = payload.get(key)
            if isinstance(value, list):
                return value
    raise ValueError("model response holds no recommendation list")


def _duration(value: Any) -> int:
    try:
        minutes = float(value)
    except (TypeError, ValueError):
        return DEFAULT_DURATION
    if math.isnan(minutes):
        return DEFAULT_DURATION
    return int(round(min(MAX_DURATION, max(MIN_DURATION, minutes))))


def _text(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


def _benefits(value: Any) -> List[str]:
    if isinstance(value, str):
        return [value.strip()] if value.strip() else []
    if isinstance(value, (list, tuple)):
        return [str(item).strip() for item in value if str(item).strip()]
    return []


def normalize_candidate(raw: Any) -> Dict[str, Any] | None:
    if not isinstance(raw, Mapping):
        return None
    title = _text(raw.get("title")) or _text(raw.get("name"))
    if not title:
        return None

    activity_type = _text(raw.get("activityType") or raw.get("type")).lower()
    difficulty = _text(raw.get("difficultyLevel") or raw.get("difficulty")).lower()
    return {
        "activityType": activity_type if activity_type in _ACTIVITY_TYPES else ActivityType.MEDITATION.value,
        "title": title,
        "description": _text(raw.get("description")),
        "reasoning": _text(raw.get("reasoning")),
        "expectedBenefits": _benefits(raw.get("expectedBenefits") or raw.get("benefits")),
        "difficultyLevel": difficulty if difficulty in _DIFFICULTIES else DifficultyLevel.EASY.value,
        "estimatedDuration": _duration(raw.get("estimatedDuration", raw.get("duration"))),
    }


def normalize_candidates(raws: List[Any]) -> List[Dict[str, Any]]:
    normalized: List[Dict[str, Any]] = []
    for raw in raws:
        candidate = normalize_candidate(raw)
        if candidate is not None:
            normalized.append(candidate)
        if len(normalized) == MAX_RECOMMENDATIONS:
            break
    return normalized


__all__ = ["DEFAULT_RECOMMENDATIONS", "extract_candidates", "normalize_candidate", "normalize_candidates"]
