"""Model-agnostic LLM routing utilities."""

from .base import BaseProvider
from .openai_provider import OpenAIProvider
from .openrouter import OPENROUTER_DEFAULT_BASE_URL, OpenRouterProvider
from .router import LLMRouter, ProviderFailureError
from .types import LLMResponse

__all__ = [
    "BaseProvider",
    "LLMResponse",
    "LLMRouter",
    "OPENROUTER_DEFAULT_BASE_URL",
    "OpenAIProvider",
    "OpenRouterProvider",
    "ProviderFailureError",
]
