import httpx
from fastapi import Header, HTTPException

from mindwell.libs.schemas.settings import get_settings


async def _resolve_session(authorization: str | None, cookie: str | None) -> str | None:
    headers = {}
    if authorization and authorization.startswith("Bearer "):
        headers["Authorization"] = authorization
    if cookie:
        headers["Cookie"] = cookie
    if not headers:
        return None

    settings = get_settings()
    async with httpx.AsyncClient() as client:
        response = await client.get(
            f"{settings.auth_base_url.rstrip('/')}/api/auth/get-session",
            headers=headers,
            timeout=10,
        )
    if response.status_code != 200:
        return None
    payload = response.json()
    if isinstance(payload, dict):
        user = payload.get("user") or payload
        if isinstance(user, dict) and user.get("id"):
            return str(user["id"])
    return None


async def get_current_user_id(
    authorization: str | None = Header(default=None),
    cookie: str | None = Header(default=None),
) -> str:
    user_id = await _resolve_session(authorization, cookie)
    if user_id:
        return user_id

    settings = get_settings()
    if settings.demo_mode and settings.demo_user_id:
        return settings.demo_user_id

    raise HTTPException(status_code=401, detail="Unauthenticated")
