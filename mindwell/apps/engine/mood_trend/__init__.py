from .engine import analyze_mood_patterns, build_alert_decision, classify_trend

__all__ = ["analyze_mood_patterns", "build_alert_decision", "classify_trend"]
