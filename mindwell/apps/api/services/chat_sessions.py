"""Chat sessions and their append-only message lists."""

from __future__ import annotations

import uuid
from typing import Any, Dict, List, Mapping

from mindwell.apps.api.core.db import exec as dbexec
from mindwell.apps.api.core.db import q

_SESSION_COLUMNS = "id, user_id::text AS user_id, status, started_at, updated_at"
_MESSAGE_COLUMNS = "id::text AS id, session_id, role, content, metadata, created_at AS timestamp"


async def create_session(user_id: str, session_id: str | None = None) -> Dict[str, Any]:
    return await q(
        f"""
        INSERT INTO chat_sessions (id, user_id, status, started_at, updated_at)
        VALUES ($1, $2, 'active', NOW(), NOW())
        RETURNING {_SESSION_COLUMNS}
        """,
        session_id or uuid.uuid4().hex,
        user_id,
        one=True,
    )


async def get_session(session_id: str) -> Dict[str, Any] | None:
    return await q(f"SELECT {_SESSION_COLUMNS} FROM chat_sessions WHERE id = $1", session_id, one=True)


async def ensure_session(session_id: str, user_id: str) -> Dict[str, Any]:
    """Return the session, creating it for ``user_id`` on first use."""

    await dbexec(
        """
        INSERT INTO chat_sessions (id, user_id, status, started_at, updated_at)
        VALUES ($1, $2, 'active', NOW(), NOW())
        ON CONFLICT (id) DO NOTHING
        """,
        session_id,
        user_id,
    )
    return await get_session(session_id)


async def list_sessions(user_id: str) -> List[Dict[str, Any]]:
    return await q(
        f"""
        SELECT {_SESSION_COLUMNS},
               (SELECT COUNT(*) FROM chat_messages m WHERE m.session_id = s.id) AS message_count
        FROM chat_sessions s
        WHERE user_id::text = $1
        ORDER BY updated_at DESC
        """,
        user_id,
    )


async def delete_session(session_id: str, user_id: str) -> bool:
    await dbexec("DELETE FROM chat_messages WHERE session_id = $1", session_id)
    status = await dbexec("DELETE FROM chat_sessions WHERE id = $1 AND user_id::text = $2", session_id, user_id)
    return status.endswith(" 1")


async def append_message(
    session_id: str,
    *,
    role: str,
    content: str,
    metadata: Mapping[str, Any] | None = None,
) -> Dict[str, Any]:
    row = await q(
        f"""
        INSERT INTO chat_messages (session_id, role, content, metadata, created_at)
        VALUES ($1, $2, $3, $4::jsonb, clock_timestamp())
        RETURNING {_MESSAGE_COLUMNS}
        """,
        session_id,
        role,
        content,
        dict(metadata) if metadata is not None else None,
        one=True,
    )
    await dbexec("UPDATE chat_sessions SET updated_at = NOW() WHERE id = $1", session_id)
    return row


async def session_messages(session_id: str, *, limit: int | None = None) -> List[Dict[str, Any]]:
    """Messages oldest first; with ``limit`` only the latest ``limit`` are returned."""

    if limit is None:
        return await q(
            f"SELECT {_MESSAGE_COLUMNS} FROM chat_messages WHERE session_id = $1 ORDER BY created_at ASC, id ASC",
            session_id,
        )
    rows = await q(
        f"""
        SELECT {_MESSAGE_COLUMNS} FROM chat_messages WHERE session_id = $1
        ORDER BY created_at DESC, id DESC LIMIT $2
        """,
        session_id,
        limit,
    )
    return list(reversed(rows))


def build_transcript(messages: List[Mapping[str, Any]]) -> str:
    return "\n".join(f"{message['role']}: {message['content']}" for message in messages if message.get("content"))


__all__ = [
    "append_message",
    "build_transcript",
    "create_session",
    "delete_session",
    "ensure_session",
    "get_session",
    "list_sessions",
    "session_messages",
]
