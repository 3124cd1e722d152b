"""OpenRouter provider implementation."""

from __future__ import annotations

import logging
from typing import Any, Mapping, Sequence

import httpx

from .base import BaseProvider
from .types import LLMResponse

OPENROUTER_DEFAULT_BASE_URL = "https://openrouter.ai/api/v1"


class OpenRouterProvider(BaseProvider):
    """Provider that proxies chat requests through OpenRouter's REST API."""

    def __init__(
        self,
        api_key: str,
        *,
        base_url: str | None = None,
        timeout: float = 60.0,
        referer: str | None = None,
    ) -> None:
        if not api_key:
            raise ValueError("OpenRouter API key is required")

        super().__init__(name="openrouter")
        self._api_key = api_key
        self._base_url = base_url or OPENROUTER_DEFAULT_BASE_URL
        self._timeout = timeout
        self._referer = referer
        self._logger = logging.getLogger(__name__)

    async def chat(
        self,
        *,
        messages: Sequence[Mapping[str, Any]],
        model: str,
        **kwargs: Any,
    ) -> LLMResponse:
        """Execute a chat completion request."""

        json_mode = bool(kwargs.pop("json_mode", False))
        payload: dict[str, Any] = {
            "model": model,
            "messages": [self._serialise_message(message) for message in messages],
            **kwargs,
        }
        if json_mode:
            payload["response_format"] = {"type": "json_object"}

        response_json = await self._post("/chat/completions", payload)
        choice = (response_json.get("choices") or [{}])[0]
        message = choice.get("message") or {}

        return LLMResponse(
            model=response_json.get("model") or model,
            text=message.get("content"),
            usage=response_json.get("usage") or {},
            provider=self.name,
            raw=response_json,
        )

    async def _post(self, path: str, payload: Mapping[str, Any]) -> dict[str, Any]:
        url = f"{self._base_url.rstrip('/')}{path}"
        headers = {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
            "HTTP-Referer": self._referer or "http://localhost:3000",
            "X-Title": "MindWell",
        }

        async with httpx.AsyncClient(timeout=self._timeout) as client:
            try:
                response = await client.post(url, headers=headers, json=payload)
            except httpx.RequestError as exc:
                raise RuntimeError(
                    f"OpenRouter network error: {exc}. Check API key or connectivity."
                ) from exc
            content_type = response.headers.get("content-type", "")
            if not response.is_success:
                raise RuntimeError(
                    f"OpenRouter {response.status_code} on {url}. Body: {response.text[:400]}"
                )
            if "application/json" not in content_type.lower():
                raise RuntimeError(
                    f"OpenRouter returned non-JSON (CT={content_type}) on {url}. Body: {response.text[:400]}"
                )
            return response.json()

    def _serialise_message(self, message: Mapping[str, Any]) -> dict[str, Any]:
        role = message.get("role")
        content = message.get("content")
        if role is None or content is None:
            raise ValueError("Chat messages must include 'role' and 'content'")
        return {"role": role, "content": content}


__all__ = ["OpenRouterProvider", "OPENROUTER_DEFAULT_BASE_URL"]
