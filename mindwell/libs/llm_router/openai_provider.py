"""OpenAI provider implementation for the MindWell LLM router."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Mapping, Sequence

import openai
from openai import AsyncOpenAI

from .base import BaseProvider
from .types import LLMResponse

LOGGER = logging.getLogger(__name__)


class OpenAIProvider(BaseProvider):
    """Provider that talks to OpenAI (or any OpenAI-compatible endpoint)."""

    def __init__(
        self,
        api_key: str,
        *,
        model_chat: str,
        timeout: float = 45.0,
        base_url: str | None = None,
    ) -> None:
        if not api_key:
            raise ValueError("OpenAI API key is required")

        super().__init__(name="openai")
        self._api_key = api_key
        self._model_chat = model_chat
        self._timeout = timeout
        self._base_url = base_url.rstrip("/") if base_url else None

    async def chat(
        self,
        *,
        messages: Sequence[Mapping[str, Any]],
        model: str | None = None,
        **kwargs: Any,
    ) -> LLMResponse:
        if not isinstance(messages, Sequence) or not messages:
            raise ValueError("OpenAI provider: 'messages' must be a non-empty sequence.")

        normalised_messages: list[dict[str, Any]] = []
        for message in messages:
            if not isinstance(message, Mapping):
                raise ValueError("Each message must be a mapping with 'role' and 'content'.")
            normalised_messages.append(dict(message))

        kwargs = dict(kwargs)
        json_mode = bool(kwargs.pop("json_mode", False))
        temperature = kwargs.pop("temperature", 0.7)
        max_tokens = kwargs.pop("max_tokens", 800)

        payload: dict[str, Any] = {
            "model": model or self._model_chat,
            "messages": normalised_messages,
            "temperature": float(temperature),
            "max_tokens": int(max_tokens),
            **kwargs,
        }
        if json_mode:
            payload["response_format"] = {"type": "json_object"}

        try:
            async with AsyncOpenAI(api_key=self._api_key, base_url=self._base_url) as client:
                response = await asyncio.wait_for(
                    client.chat.completions.create(**payload),
                    timeout=self._timeout,
                )
        except openai.AuthenticationError as exc:
            LOGGER.error("OpenAI authentication error: %s", exc)
            raise RuntimeError("OpenAI connection error: Invalid API key or unauthorized request") from exc
        except openai.RateLimitError as exc:
            LOGGER.warning("OpenAI rate limit: %s", exc)
            raise RuntimeError("OpenAI connection error: Rate limit reached") from exc
        except openai.APIConnectionError as exc:
            LOGGER.warning("Network error talking to OpenAI: %s", exc)
            raise RuntimeError("OpenAI connection error: Network failure") from exc
        except asyncio.TimeoutError as exc:
            LOGGER.warning("OpenAI call timed out after %.1fs", self._timeout)
            raise RuntimeError("OpenAI connection error: Timeout") from exc

        choice = response.choices[0] if response.choices else None
        message = getattr(choice, "message", None)
        text_content = ""
        if message is not None:
            text_content = getattr(message, "content", "") or ""

        usage = response.usage
        usage_dict = usage.model_dump() if usage is not None else {}

        return LLMResponse(
            model=getattr(response, "model", payload["model"]),
            text=text_content,
            provider=self.name,
            usage=usage_dict,
            raw=response.model_dump(),
        )


__all__ = ["OpenAIProvider"]
