from __future__ import annotations

import logging
from typing import Any, Dict

from mindwell.apps.api.core.llm import generate_text
from mindwell.apps.api.services.session_analyses import session_owner, store_session_analysis
from mindwell.apps.engine.analysis import coerce_session_analysis, default_session_analysis
from mindwell.apps.worker.workflow import Fatal, Recovered, StepRunner, workflow
from mindwell.libs.json_utils import loads_llm_json
from mindwell.libs.logging_utils import colorize
from mindwell.libs.schemas.events import SESSION_CREATED, SessionCreatedEvent
from mindwell.libs.schemas.records import SessionAnalysis
from mindwell.prompts.therapy import build_session_analysis_prompt

LOGGER = logging.getLogger(__name__)

CONCERN_RISK_THRESHOLD = 5


@workflow("analyze-therapy-session", event=SESSION_CREATED, retries=3)
async def analyze_session(event: SessionCreatedEvent, step: StepRunner) -> Dict[str, Any]:
    data = event.data

    async def get_content() -> Any:
        content = next((text.strip() for text in (data.notes, data.transcript) if text and text.strip()), "")
        if not content:
            return Fatal("session has no notes or transcript to analyze")
        return content

    content = await step.run("get-session-content", get_content)

    # "model" keeps the parsed reply, extra keys included, for the payload column.
    async def analyze() -> Any:
        try:
            parsed = loads_llm_json(await generate_text(build_session_analysis_prompt(content)))
            return {
                "analysis": coerce_session_analysis(parsed),
                "model": parsed if isinstance(parsed, dict) else None,
            }
        except Exception as exc:
            return Recovered(
                {"analysis": default_session_analysis(), "model": None},
                f"session analysis unavailable: {exc}",
            )

    analyzed = await step.run("analyze-session", analyze)
    analysis = analyzed["analysis"]

    async def store() -> Dict[str, Any]:
        owner = await session_owner(data.session_id)
        analysis_id = await store_session_analysis(
            data.session_id,
            owner,
            SessionAnalysis.model_validate(analysis),
            delivery_id=step.delivery_id,
            payload=analyzed["model"],
        )
        return {"analysisId": analysis_id, "userId": owner}

    stored = await step.run("store-analysis", store)

    if analysis["areasOfConcern"] or analysis["riskLevel"] > CONCERN_RISK_THRESHOLD:

        async def concern_alert() -> Dict[str, Any]:
            LOGGER.warning(
                colorize("Concerning indicators detected in session analysis", "red"),
                extra={
                    "event": "session_concern_alert",
                    "session_id": data.session_id,
                    "concerns": analysis["areasOfConcern"],
                    "risk_level": analysis["riskLevel"],
                },
            )
            return {"alerted": True}

        await step.run("trigger-concern-alert", concern_alert)

    if data.requires_follow_up:

        async def follow_up() -> Dict[str, Any]:
            LOGGER.info(
                "Follow-up requested for session",
                extra={"event": "session_follow_up", "session_id": data.session_id, "user_id": stored["userId"]},
            )
            return {"scheduled": True}

        await step.run("send-follow-up", follow_up)

    return {
        "message": "Session analysis completed",
        "sessionId": data.session_id,
        "analysisId": stored["analysisId"],
        "analysis": analysis,
    }


__all__ = ["analyze_session"]
