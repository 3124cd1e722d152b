"""LLM router with ordered provider failover."""

from __future__ import annotations

import logging
from typing import Any, Mapping, Sequence

from .base import BaseProvider
from .types import LLMResponse


class ProviderFailureError(RuntimeError):
    """Raised when every configured provider failed for a request."""


class LLMRouter:
    """Send chat requests to registered providers in priority order."""

    def __init__(self, *, logger: logging.Logger | None = None) -> None:
        self._providers: dict[str, BaseProvider] = {}
        self._order: list[str] = []
        self._logger = logger or logging.getLogger(__name__)

    @property
    def providers(self) -> list[str]:
        return list(self._order)

    def register_provider(self, key: str, provider: BaseProvider) -> None:
        """Register or replace a provider; new keys go to the end of the order."""

        self._providers[key] = provider
        if key not in self._order:
            self._order.append(key)

    def set_order(self, providers: Sequence[str]) -> None:
        """Assign the failover order. Unknown keys are rejected."""

        if not providers:
            raise ValueError("Provider order requires at least one provider key")
        unknown = [key for key in providers if key not in self._providers]
        if unknown:
            raise ValueError(f"Providers not registered: {', '.join(unknown)}")
        self._order = list(dict.fromkeys(providers))

    async def chat(
        self,
        *,
        messages: Sequence[Mapping[str, Any]],
        model: str,
        provider: str | None = None,
        **kwargs: Any,
    ) -> LLMResponse:
        """Execute a chat request with automatic provider failover."""

        if provider:
            if provider not in self._providers:
                raise ValueError(f"Override provider '{provider}' is not registered")
            candidates = [provider]
        else:
            candidates = list(self._order)
        if not candidates:
            raise ProviderFailureError("No LLM providers configured")

        payload = [dict(message) for message in messages]
        errors: list[str] = []
        for key in candidates:
            try:
                response = await self._providers[key].chat(messages=payload, model=model, **kwargs)
            except Exception as exc:
                self._logger.warning("Provider %s failed: %s", key, exc, exc_info=True)
                errors.append(f"{key}: {exc}")
                continue
            if response.provider is None:
                response.provider = key
            self._log_usage(key, response)
            return response
        raise ProviderFailureError(f"All providers failed: {'; '.join(errors)}")

    def _log_usage(self, provider_key: str, response: LLMResponse) -> None:
        usage = response.usage or {}
        self._logger.info(
            "llm provider=%s model=%s prompt_tokens=%s completion_tokens=%s total_tokens=%s",
            provider_key,
            response.model,
            usage.get("prompt_tokens"),
            usage.get("completion_tokens"),
            usage.get("total_tokens"),
        )


__all__ = ["LLMRouter", "ProviderFailureError"]
