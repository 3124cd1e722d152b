"""Generative-text client used by the workflow handlers.

Handlers only ever see :func:`generate_text`: a prompt goes in, a string
comes out, and any failure propagates to the caller. Fallbacks are the
caller's business.
"""

from __future__ import annotations

import logging
from typing import Any

from mindwell.libs.llm_router import LLMRouter, OpenAIProvider, OpenRouterProvider
from mindwell.libs.logging_utils import colorize
from mindwell.libs.schemas.settings import AppSettings, get_settings

LOGGER = logging.getLogger(__name__)

_ROUTER: LLMRouter | None = None


class LLMResponseError(RuntimeError):
    """Raised when the model returned no usable text."""


def set_router(router: LLMRouter | None) -> None:
    global _ROUTER
    _ROUTER = router


def build_router(settings: AppSettings) -> LLMRouter:
    """Register the providers selected by ``LLM_PROVIDER`` in failover order."""

    router = LLMRouter()
    wanted = (settings.llm_provider or "openai").lower()
    names = ["openai", "openrouter"] if wanted == "both" else [wanted]

    for name in names:
        if name == "openai" and settings.openai_api_key:
            router.register_provider(
                "openai",
                OpenAIProvider(
                    settings.openai_api_key,
                    model_chat=settings.model_chat,
                    timeout=settings.llm_timeout,
                    base_url=settings.openai_base_url,
                ),
            )
        elif name == "openrouter" and settings.openrouter_api_key:
            router.register_provider(
                "openrouter",
                OpenRouterProvider(
                    settings.openrouter_api_key,
                    base_url=settings.openrouter_base_url,
                    timeout=settings.llm_timeout,
                ),
            )
        else:
            LOGGER.warning("LLM provider %s skipped: unknown name or missing API key", name)

    LOGGER.info(
        colorize("Router configured", "cyan"),
        extra={"event": "router_config", "providers": router.providers, "model_chat": settings.model_chat},
    )
    return router


def get_router() -> LLMRouter:
    global _ROUTER
    if _ROUTER is None:
        _ROUTER = build_router(get_settings())
    return _ROUTER


async def generate_text(prompt: str, *, model: str | None = None, **kwargs: Any) -> str:
    """Send one user prompt to the model and return the completion text."""

    if not prompt:
        raise ValueError("prompt must be a non-empty string")

    response = await get_router().chat(
        messages=[{"role": "user", "content": prompt}],
        model=model or get_settings().model_chat,
        **kwargs,
    )
    text = (response.text or "").strip()
    if not text:
        raise LLMResponseError(f"Empty completion from provider {response.provider}")
    return text


__all__ = ["LLMResponseError", "build_router", "generate_text", "get_router", "set_router"]
