"""Default-filling for model-produced chat and session analyses.

Chat analyses keep the model's risk level as-is; session analyses clamp it
to the 0-10 scale before storage.
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping

from mindwell.libs.schemas.records import SessionAnalysis

CHAT_ANALYSIS_DEFAULTS: Dict[str, Any] = {
    "emotionalState": "neutral",
    "themes": [],
    "riskLevel": 0,
    "recommendedApproach": "supportive",
    "progressIndicators": [],
}

RISK_MIN = 0
RISK_MAX = 10


def default_chat_analysis() -> Dict[str, Any]:
    return {key: (list(value) if isinstance(value, list) else value) for key, value in CHAT_ANALYSIS_DEFAULTS.items()}


def _number(value: Any, default: int | float = 0) -> int | float:
    if isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        return value
    try:
        parsed = float(str(value).strip())
    except (TypeError, ValueError):
        return default
    if parsed != parsed:  # NaN
        return default
    return int(parsed) if parsed.is_integer() else parsed


def _string_list(value: Any) -> List[str]:
    if isinstance(value, str):
        return [value] if value.strip() else []
    if isinstance(value, (list, tuple)):
        return [str(item) for item in value if item is not None]
    return []


def _string(value: Any, default: str) -> str:
    return value.strip() if isinstance(value, str) and value.strip() else default


def coerce_chat_analysis(payload: Any) -> Dict[str, Any]:
    """Fill missing keys from the defaults. Raises ``ValueError`` for non-objects."""

    if not isinstance(payload, Mapping):
        raise ValueError("analysis must be a JSON object")
    analysis = dict(payload)
    analysis["emotionalState"] = _string(payload.get("emotionalState"), CHAT_ANALYSIS_DEFAULTS["emotionalState"])
    analysis["themes"] = _string_list(payload.get("themes"))
    analysis["riskLevel"] = _number(payload.get("riskLevel"), CHAT_ANALYSIS_DEFAULTS["riskLevel"])
    analysis["recommendedApproach"] = _string(
        payload.get("recommendedApproach"), CHAT_ANALYSIS_DEFAULTS["recommendedApproach"]
    )
    analysis["progressIndicators"] = _string_list(payload.get("progressIndicators"))
    return analysis


def clamp_risk(value: Any) -> float:
    return float(min(RISK_MAX, max(RISK_MIN, _number(value, 0))))


def default_session_analysis() -> SessionAnalysis:
    return SessionAnalysis()


def coerce_session_analysis(payload: Any) -> SessionAnalysis:
    if not isinstance(payload, Mapping):
        raise ValueError("session analysis must be a JSON object")
    return SessionAnalysis(
        key_themes=_string_list(payload.get("keyThemes")),
        emotional_state=_string(payload.get("emotionalState"), "neutral"),
        areas_of_concern=_string_list(payload.get("areasOfConcern")),
        recommendations=_string_list(payload.get("recommendations")),
        progress_indicators=_string_list(payload.get("progressIndicators")),
        risk_level=clamp_risk(payload.get("riskLevel")),
    )


__all__ = [
    "CHAT_ANALYSIS_DEFAULTS",
    "clamp_risk",
    "coerce_chat_analysis",
    "coerce_session_analysis",
    "default_chat_analysis",
    "default_session_analysis",
]
