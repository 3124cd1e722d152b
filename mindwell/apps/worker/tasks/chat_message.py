"""Chat-message workflow: analyze the message, fold it into memory, reply."""

from __future__ import annotations

import logging
from typing import Any, Dict

from mindwell.apps.api.core.llm import generate_text
from mindwell.apps.engine.analysis import coerce_chat_analysis, default_chat_analysis
from mindwell.apps.worker.workflow import Fatal, Recovered, StepRunner, workflow
from mindwell.libs.json_utils import loads_llm_json
from mindwell.libs.logging_utils import colorize
from mindwell.libs.schemas.events import CHAT_MESSAGE, ChatMemory, ChatMessageEvent
from mindwell.prompts.therapy import build_message_analysis_prompt, build_response_prompt

LOGGER = logging.getLogger(__name__)

FALLBACK_RESPONSE = "I'm here to support you. Could you tell me more about what's on your mind?"
RISK_ALERT_THRESHOLD = 4


@workflow("process-chat-message", event=CHAT_MESSAGE, retries=2)
async def process_chat_message(event: ChatMessageEvent, step: StepRunner) -> Dict[str, Any]:
    data = event.data
    memory_wire = data.memory.to_wire()

    async def validate() -> Any:
        if not data.message.strip():
            return Fatal("message must be a non-empty string")
        return {"message": data.message, "sessionId": data.session_id}

    await step.run("validate-input", validate)

    async def analyze() -> Any:
        prompt = build_message_analysis_prompt(data.message, memory_wire, data.goals)
        try:
            raw = await generate_text(prompt)
            return coerce_chat_analysis(loads_llm_json(raw))
        except Exception as exc:
            return Recovered(default_chat_analysis(), f"message analysis unavailable: {exc}")

    analysis = await step.run("analyze-message", analyze)

    async def update_memory() -> ChatMemory:
        return data.memory.remember(
            emotional_state=analysis.get("emotionalState"),
            themes=analysis.get("themes") or [],
            risk_level=analysis.get("riskLevel"),
        )

    updated_memory = await step.run("update-memory", update_memory)

    if analysis["riskLevel"] > RISK_ALERT_THRESHOLD:

        async def risk_alert() -> Dict[str, Any]:
            LOGGER.warning(
                colorize("High risk level detected in chat message", "red"),
                extra={
                    "event": "chat_risk_alert",
                    "session_id": data.session_id,
                    "user_id": data.user_id,
                    "risk_level": analysis["riskLevel"],
                },
            )
            return {"alerted": True, "riskLevel": analysis["riskLevel"]}

        await step.run("trigger-risk-alert", risk_alert)

    async def respond() -> Any:
        prompt = build_response_prompt(data.system_prompt, data.message, analysis, updated_memory, data.goals)
        try:
            text = (await generate_text(prompt)).strip()
        except Exception as exc:
            return Recovered(FALLBACK_RESPONSE, f"response generation unavailable: {exc}")
        return text or Recovered(FALLBACK_RESPONSE, "empty response")

    response = await step.run("generate-response", respond)

    return {"response": response, "analysis": analysis, "updatedMemory": updated_memory}


__all__ = ["FALLBACK_RESPONSE", "process_chat_message"]
