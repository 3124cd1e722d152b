"""Domain records shared by the API, the services and the workflow handlers."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model that speaks camelCase on the wire and snake_case in Python."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class ActivityType(str, Enum):
    """Closed set of loggable and recommendable activities."""

    MEDITATION = "meditation"
    EXERCISE = "exercise"
    WALKING = "walking"
    READING = "reading"
    JOURNALING = "journaling"
    THERAPY = "therapy"


class DifficultyLevel(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class ChatRole(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


class ContextSnapshot(CamelModel):
    """Inputs that produced a recommendation, kept for audit."""

    mood_average: float | None = None
    recent_activity_count: int = 0
    generated_at: datetime


class ActivityRecommendation(CamelModel):
    """A normalized recommendation ready to be stored."""

    id: str | None = None
    user_id: str
    activity_type: ActivityType = ActivityType.MEDITATION
    title: str
    description: str = ""
    reasoning: str = ""
    expected_benefits: list[str] = Field(default_factory=list)
    difficulty_level: DifficultyLevel = DifficultyLevel.EASY
    estimated_duration: int = Field(default=15, ge=5, le=120)
    based_on_mood_score: float | None = None
    is_completed: bool = False
    completed_at: datetime | None = None
    created_at: datetime | None = None
    context_snapshot: ContextSnapshot | None = None


class SessionAnalysis(CamelModel):
    """Derived, immutable analysis of one therapy chat session."""

    key_themes: list[str] = Field(default_factory=list)
    emotional_state: str = "neutral"
    areas_of_concern: list[str] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)
    progress_indicators: list[str] = Field(default_factory=list)
    risk_level: float = Field(default=0, ge=0, le=10)


class AlertDecision(CamelModel):
    """Outcome of the mood alert heuristic. Returned as data, never dispatched."""

    should_alert: bool = False
    level: str | None = None
    reason: str | None = None


__all__ = [
    "ActivityRecommendation",
    "ActivityType",
    "AlertDecision",
    "CamelModel",
    "ChatRole",
    "ContextSnapshot",
    "DifficultyLevel",
    "SessionAnalysis",
]
