from .engine import (
    CHAT_ANALYSIS_DEFAULTS,
    clamp_risk,
    coerce_chat_analysis,
    coerce_session_analysis,
    default_chat_analysis,
    default_session_analysis,
)

__all__ = [
    "CHAT_ANALYSIS_DEFAULTS",
    "clamp_risk",
    "coerce_chat_analysis",
    "coerce_session_analysis",
    "default_chat_analysis",
    "default_session_analysis",
]
