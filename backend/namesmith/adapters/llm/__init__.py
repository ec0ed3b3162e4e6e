"""
LLM Adapters - Unified interface for multiple name-generation providers
"""

from typing import Dict, Mapping, Optional

from .base import (
    BaseLLMAdapter,
    LLMConfig,
    LLMMessage,
    LLMResponse,
    LLMUsage,
    LLMProviderType,
    LLMAdapterError,
    LLMRateLimitError,
    LLMAuthenticationError,
    LLMTimeoutError,
    LLMServerError,
    LLMConnectionError,
    LLMInvalidRequestError,
)
from .openai_adapter import OpenAIAdapter
from .anthropic_adapter import AnthropicAdapter
from .google_adapter import GoogleAdapter
from .xai_adapter import XAIAdapter

ADAPTER_CLASSES = {
    LLMProviderType.OPENAI: OpenAIAdapter,
    LLMProviderType.ANTHROPIC: AnthropicAdapter,
    LLMProviderType.GOOGLE: GoogleAdapter,
    LLMProviderType.XAI: XAIAdapter,
}


def get_adapter(
    provider: str,
    api_key: str,
    config: Optional[LLMConfig] = None
) -> BaseLLMAdapter:
    """
    Factory function to get the appropriate LLM adapter.

    Args:
        provider: One of "openai", "anthropic", "google", "xai"
        api_key: API key for the provider
        config: Optional LLM configuration

    Returns:
        Configured LLM adapter instance

    Raises:
        ValueError: If provider is not supported
    """
    try:
        provider_type = LLMProviderType(provider)
    except ValueError:
        raise ValueError(
            f"Unsupported provider: {provider}. Must be one of {[p.value for p in ADAPTER_CLASSES]}"
        )

    return ADAPTER_CLASSES[provider_type](api_key=api_key, config=config)


def build_provider_pool(api_keys: Mapping[str, Optional[str]]) -> Dict[LLMProviderType, BaseLLMAdapter]:
    """
    Build one adapter per provider that has credentials.
    Called once at startup; the pool is handed to the orchestrator.

    Args:
        api_keys: Dict of {provider: api_key}, usually Settings.provider_api_keys

    Returns:
        Dict of {provider type: adapter} for all providers with configured keys
    """
    pool = {}
    for provider_type in ADAPTER_CLASSES:
        key = api_keys.get(provider_type.value)
        if key:
            pool[provider_type] = get_adapter(provider_type.value, api_key=key)
    return pool


__all__ = [
    # Factory
    "get_adapter",
    "build_provider_pool",
    # Base classes
    "BaseLLMAdapter",
    "LLMConfig",
    "LLMMessage",
    "LLMResponse",
    "LLMUsage",
    "LLMProviderType",
    # Exceptions
    "LLMAdapterError",
    "LLMRateLimitError",
    "LLMAuthenticationError",
    "LLMTimeoutError",
    "LLMServerError",
    "LLMConnectionError",
    "LLMInvalidRequestError",
    # Adapters
    "OpenAIAdapter",
    "AnthropicAdapter",
    "GoogleAdapter",
    "XAIAdapter",
]
