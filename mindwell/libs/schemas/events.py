"""Workflow event payloads as a discriminated union keyed by event name.

Payloads are validated here, at the bus boundary, before anything is
enqueued, and again when a worker decodes a delivery. Handlers therefore
receive a typed ``event.data`` instead of a free-form mapping.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Annotated, Any, Literal, Mapping, Union

from pydantic import ConfigDict, Field, StrictFloat, StrictInt, TypeAdapter, ValidationError, model_validator
from pydantic.alias_generators import to_camel

from mindwell.prompts.therapy import DEFAULT_SYSTEM_PROMPT

from .records import ActivityType, CamelModel

CHAT_MESSAGE = "therapy/session.message"
SESSION_CREATED = "therapy/session.created"
MOOD_UPDATED = "mood/updated"
ACTIVITY_COMPLETED = "activity/completed"

EVENT_NAMES = frozenset({CHAT_MESSAGE, SESSION_CREATED, MOOD_UPDATED, ACTIVITY_COMPLETED})


class InvalidEventError(ValueError):
    """Raised when an event name is unknown or its payload fails validation."""


class _FrozenModel(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


class UserProfile(_FrozenModel):
    emotional_state: tuple[str, ...] = ()
    risk_level: int | float = 0
    preferences: dict[str, Any] = Field(default_factory=dict)


class SessionContext(_FrozenModel):
    conversation_themes: tuple[str, ...] = ()
    current_technique: str | None = None


class ChatMemory(_FrozenModel):
    """Conversation memory threaded through the chat workflow as an immutable value."""

    user_profile: UserProfile = Field(default_factory=UserProfile)
    session_context: SessionContext = Field(default_factory=SessionContext)

    def remember(
        self,
        *,
        emotional_state: str | None,
        themes: list[str] | tuple[str, ...],
        risk_level: int | float | None,
    ) -> "ChatMemory":
        """Return a new memory with the latest analysis folded in.

        Emotional states and themes accumulate; the risk level is the latest
        observed value, not a maximum or an average.
        """

        profile = self.user_profile
        states = profile.emotional_state + ((emotional_state,) if emotional_state else ())
        profile = profile.model_copy(
            update={
                "emotional_state": states,
                "risk_level": profile.risk_level if risk_level is None else risk_level,
            }
        )
        context = self.session_context.model_copy(
            update={"conversation_themes": self.session_context.conversation_themes + tuple(themes)}
        )
        return self.model_copy(update={"user_profile": profile, "session_context": context})


class EventData(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")


class ChatMessageData(EventData):
    message: str
    session_id: str | None = None
    user_id: str | None = None
    history: list[dict[str, Any]] = Field(default_factory=list)
    memory: ChatMemory = Field(default_factory=ChatMemory)
    goals: list[str] = Field(default_factory=list)
    system_prompt: str = DEFAULT_SYSTEM_PROMPT


class SessionCreatedData(EventData):
    session_id: str
    user_id: str | None = None
    notes: str | None = None
    transcript: str | None = None
    requires_follow_up: bool = False
    session_type: str | None = None
    duration: float | None = None

    @model_validator(mode="after")
    def _require_content_field(self) -> "SessionCreatedData":
        if self.notes is None and self.transcript is None:
            raise ValueError("either 'notes' or 'transcript' is required")
        return self


class MoodUpdatedData(EventData):
    user_id: str
    score: StrictInt | StrictFloat
    note: str | None = None
    timestamp: datetime | None = None


class ActivityCompletedData(EventData):
    user_id: str
    id: str
    type: ActivityType
    name: str
    duration: float | None = None
    description: str | None = None
    timestamp: datetime | None = None


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class _Envelope(CamelModel):
    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    ts: datetime = Field(default_factory=_utcnow)


class ChatMessageEvent(_Envelope):
    name: Literal["therapy/session.message"]
    data: ChatMessageData


class SessionCreatedEvent(_Envelope):
    name: Literal["therapy/session.created"]
    data: SessionCreatedData


class MoodUpdatedEvent(_Envelope):
    name: Literal["mood/updated"]
    data: MoodUpdatedData


class ActivityCompletedEvent(_Envelope):
    name: Literal["activity/completed"]
    data: ActivityCompletedData


WorkflowEvent = Annotated[
    Union[ChatMessageEvent, SessionCreatedEvent, MoodUpdatedEvent, ActivityCompletedEvent],
    Field(discriminator="name"),
]
_EVENT_ADAPTER: TypeAdapter[Any] = TypeAdapter(WorkflowEvent)


def parse_event(
    name: str,
    data: Mapping[str, Any],
    *,
    event_id: str | None = None,
    ts: datetime | str | None = None,
) -> WorkflowEvent:
    """Validate a named payload and wrap it in its typed envelope."""

    if name not in EVENT_NAMES:
        raise InvalidEventError(f"Unknown event '{name}'")
    if not isinstance(data, Mapping):
        raise InvalidEventError(f"Payload for '{name}' must be an object")

    envelope: dict[str, Any] = {"name": name, "data": dict(data)}
    if event_id:
        envelope["id"] = event_id
    if ts:
        envelope["ts"] = ts
    try:
        return _EVENT_ADAPTER.validate_python(envelope)
    except ValidationError as exc:
        raise InvalidEventError(f"Invalid payload for '{name}': {exc.errors(include_url=False)}") from exc


def load_event(raw: Mapping[str, Any]) -> WorkflowEvent:
    """Decode an envelope previously produced by :func:`dump_event`."""

    return parse_event(
        str(raw.get("name") or ""),
        raw.get("data") or {},
        event_id=raw.get("id"),
        ts=raw.get("ts"),
    )


def dump_event(event: WorkflowEvent) -> dict[str, Any]:
    return event.model_dump(mode="json", by_alias=True)


__all__ = [
    "ACTIVITY_COMPLETED",
    "ActivityCompletedEvent",
    "CHAT_MESSAGE",
    "ChatMemory",
    "ChatMessageEvent",
    "EVENT_NAMES",
    "InvalidEventError",
    "MOOD_UPDATED",
    "MoodUpdatedEvent",
    "SESSION_CREATED",
    "SessionCreatedEvent",
    "WorkflowEvent",
    "dump_event",
    "load_event",
    "parse_event",
]
