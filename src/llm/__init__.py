"""Multi-provider LLM abstraction layer."""

from .base import LLMAuthError, LLMError, LLMProvider, LLMRateLimitError, generate_async
from .factory import create_cheap_provider, create_llm_provider, provider_configured

__all__ = [
    "LLMProvider",
    "create_llm_provider",
    "create_cheap_provider",
    "provider_configured",
    "generate_async",
    "LLMError",
    "LLMRateLimitError",
    "LLMAuthError",
]
