"""Importing this module registers every workflow handler."""

from __future__ import annotations

from mindwell.apps.worker.tasks.activity_completion import complete_activity
from mindwell.apps.worker.tasks.chat_message import process_chat_message
from mindwell.apps.worker.tasks.mood_update import track_mood
from mindwell.apps.worker.tasks.recommendation_generation import generate_recommendations
from mindwell.apps.worker.tasks.session_analysis import analyze_session

functions = [
    process_chat_message,
    analyze_session,
    generate_recommendations,
    track_mood,
    complete_activity,
]

__all__ = ["functions"]
