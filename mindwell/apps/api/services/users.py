from __future__ import annotations

from mindwell.apps.api.core.db import q


async def get_display_name(user_id: str) -> str | None:
    row = await q("SELECT name FROM users WHERE id::text = $1", user_id, one=True)
    if not row:
        return None
    return row.get("name")
