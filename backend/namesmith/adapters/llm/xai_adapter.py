"""
xAI (Grok) Adapter
Uses the OpenAI-compatible chat completions API
"""

from .base import LLMProviderType
from .openai_adapter import OpenAIAdapter


class XAIAdapter(OpenAIAdapter):
    """Adapter for xAI Grok API"""

    API_BASE = "https://api.x.ai/v1"

    @property
    def provider(self) -> LLMProviderType:
        return LLMProviderType.XAI

    @property
    def default_model(self) -> str:
        return "grok-beta"

    def estimate_tokens(self, text: str) -> int:
        return max(1, len(text) // 4)
