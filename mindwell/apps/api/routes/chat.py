"""Chat session endpoints. Messages are answered synchronously by the chat workflow."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import Field

from mindwell.apps.api.core.events import send_session_created_event
from mindwell.apps.api.deps.auth import get_current_user_id
from mindwell.apps.api.services.chat_sessions import (
    append_message,
    build_transcript,
    create_session,
    delete_session,
    ensure_session,
    get_session,
    list_sessions,
    session_messages,
)
from mindwell.apps.api.services.session_analyses import latest_session_analysis
from mindwell.apps.worker.workflow import FatalStepError, get_event_bus
from mindwell.libs.json_utils import json_safe
from mindwell.libs.schemas.events import CHAT_MESSAGE
from mindwell.libs.schemas.records import CamelModel, ChatRole

router = APIRouter(prefix="/chat", tags=["chat"])
logger = logging.getLogger(__name__)

CHAT_HANDLER = "process-chat-message"
HISTORY_LIMIT = 20


class MessageRequest(CamelModel):
    message: str = Field(min_length=1)


class AnalyzeRequest(CamelModel):
    notes: str | None = None
    requires_follow_up: bool = False
    session_type: str | None = None


async def _owned_session(session_id: str, user_id: str) -> Dict[str, Any]:
    session = await get_session(session_id)
    if not session:
        raise HTTPException(status_code=404, detail="Chat session not found")
    if session["user_id"] != user_id:
        logger.warning("Unauthorized access attempt", extra={"session_id": session_id, "user_id": user_id})
        raise HTTPException(status_code=403, detail="Unauthorized")
    return session


def _history_item(message: Mapping[str, Any]) -> Dict[str, Any]:
    return {"role": message["role"], "content": message["content"], "timestamp": json_safe(message.get("timestamp"))}


@router.post("/sessions", status_code=status.HTTP_201_CREATED)
async def create_chat_session(user_id: str = Depends(get_current_user_id)):
    session = await create_session(user_id)
    return {
        "message": "Chat session created successfully",
        "sessionId": session["id"],
        "status": session["status"],
        "startTime": session["started_at"],
    }


@router.get("/sessions")
async def get_all_chat_sessions(user_id: str = Depends(get_current_user_id)):
    return await list_sessions(user_id)


@router.get("/sessions/{session_id}")
async def get_chat_session(session_id: str, user_id: str = Depends(get_current_user_id)):
    session = await _owned_session(session_id, user_id)
    return {**session, "messages": await session_messages(session_id)}


@router.delete("/sessions/{session_id}")
async def delete_chat_session(session_id: str, user_id: str = Depends(get_current_user_id)):
    await _owned_session(session_id, user_id)
    await delete_session(session_id, user_id)
    logger.info("Chat session deleted", extra={"session_id": session_id, "user_id": user_id})
    return {"message": "Chat session deleted successfully"}


@router.get("/sessions/{session_id}/history")
async def get_chat_history(session_id: str, user_id: str = Depends(get_current_user_id)) -> List[Dict[str, Any]]:
    await _owned_session(session_id, user_id)
    return await session_messages(session_id)


@router.post("/sessions/{session_id}/messages")
async def send_message(
    session_id: str,
    body: MessageRequest,
    user_id: str = Depends(get_current_user_id),
):
    # Client-generated session ids are created on first message.
    session = await ensure_session(session_id, user_id)
    if not session:
        raise HTTPException(status_code=500, detail="Failed to create or find session")
    if session["user_id"] != user_id:
        logger.warning("Unauthorized access attempt", extra={"session_id": session_id, "user_id": user_id})
        raise HTTPException(status_code=403, detail="Unauthorized")

    history = await session_messages(session_id, limit=HISTORY_LIMIT)
    payload = {
        "message": body.message,
        "sessionId": session_id,
        "userId": user_id,
        "history": [_history_item(message) for message in history],
        "goals": [],
    }
    try:
        result = await get_event_bus().request(CHAT_MESSAGE, payload, handler=CHAT_HANDLER)
    except FatalStepError as exc:
        raise HTTPException(status_code=422, detail=exc.reason) from exc

    analysis = result["analysis"]
    response = result["response"]
    progress = {"emotionalState": analysis.get("emotionalState"), "riskLevel": analysis.get("riskLevel")}

    await append_message(session_id, role=ChatRole.USER.value, content=body.message)
    await append_message(
        session_id,
        role=ChatRole.ASSISTANT.value,
        content=response,
        metadata={"analysis": analysis, "progress": progress},
    )
    logger.info("Session updated", extra={"session_id": session_id})

    return {
        "response": response,
        "message": response,
        "analysis": analysis,
        "metadata": {"progress": progress},
    }


@router.post("/sessions/{session_id}/analyze", status_code=status.HTTP_202_ACCEPTED)
async def analyze_chat_session(
    session_id: str,
    body: AnalyzeRequest | None = None,
    user_id: str = Depends(get_current_user_id),
):
    await _owned_session(session_id, user_id)
    body = body or AnalyzeRequest()

    notes = body.notes if body.notes and body.notes.strip() else None
    transcript = None
    if notes is None:
        transcript = build_transcript(await session_messages(session_id))
        if not transcript:
            raise HTTPException(status_code=400, detail="Session has no messages to analyze")

    event = await send_session_created_event(
        session_id=session_id,
        user_id=user_id,
        notes=notes,
        transcript=transcript,
        requires_follow_up=body.requires_follow_up,
        session_type=body.session_type,
    )
    return {"message": "Session analysis scheduled", "eventId": event.id}


@router.get("/sessions/{session_id}/analysis")
async def get_session_analysis(session_id: str, user_id: str = Depends(get_current_user_id)):
    await _owned_session(session_id, user_id)
    analysis = await latest_session_analysis(session_id)
    if not analysis:
        raise HTTPException(status_code=404, detail="No analysis for this session yet")
    return analysis
