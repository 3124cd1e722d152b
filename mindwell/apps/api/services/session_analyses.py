from __future__ import annotations

import uuid
from typing import Any, Dict, Mapping

from mindwell.apps.api.core.db import exec as dbexec
from mindwell.apps.api.core.db import q
from mindwell.libs.schemas.records import SessionAnalysis

_ANALYSIS_NAMESPACE = uuid.UUID("0d6c1e9a-7f55-4b8e-a3a2-9e2b64f1c0d4")


class SessionNotFoundError(LookupError):
    """The chat session named by an analysis event does not exist (yet)."""


async def session_owner(session_id: str) -> str:
    row = await q("SELECT user_id::text AS user_id FROM chat_sessions WHERE id = $1", session_id, one=True)
    if not row:
        raise SessionNotFoundError(f"chat session {session_id} not found")
    return row["user_id"]


async def store_session_analysis(
    session_id: str,
    user_id: str,
    analysis: SessionAnalysis,
    *,
    delivery_id: str,
    payload: Mapping[str, Any] | None = None,
) -> str:
    """Insert one analysis row, idempotent per delivery.

    Extra keys of the parsed model reply in ``payload`` are kept in the
    payload column; the normalized fields always win.
    """

    analysis_id =str(uuid.uuid5(_ANALYSIS_NAMESPACE, delivery_id))
    wire = analysis.to_wire()
    await dbexec(
        """
        INSERT INTO session_analyses (
            id, session_id, user_id, key_themes, emotional_state, areas_of_concern,
            recommendations, progress_indicators, risk_level, payload, created_at
        )
        VALUES ($1::uuid, $2, $3, $4::jsonb, $5, $6::jsonb, $7::jsonb, $8::jsonb, $9, $10::jsonb, NOW())
        ON CONFLICT (id) DO NOTHING
        """,
        analysis_id,
        session_id,
        user_id,
        analysis.key_themes,
        analysis.emotional_state,
        analysis.areas_of_concern,
        analysis.recommendations,
        analysis.progress_indicators,
        analysis.risk_level,
        {**dict(payload or {}), **wire},
    )
    return analysis_id


async def latest_session_analysis(session_id: str) -> Dict[str, Any] | None:
    return await q(
        """
        SELECT id::text AS id, session_id, payload, risk_level, created_at
        FROM session_analyses WHERE session_id = $1
        ORDER BY created_at DESC LIMIT 1
        """,
        session_id,
        one=True,
    )


__all__ = ["SessionNotFoundError", "latest_session_analysis", "session_owner", "store_session_analysis"]
