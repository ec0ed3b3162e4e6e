"""
Base LLM Adapter Interface
All name-generation providers must implement this interface
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional
from enum import Enum

import httpx


class LLMProviderType(str, Enum):
    """Supported LLM providers"""
    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    GOOGLE = "google"
    XAI = "xai"


@dataclass
class LLMConfig:
    """Configuration for LLM request"""
    model: str
    temperature: float = 0.7
    max_tokens: int = 200
    timeout: float = 30  # seconds
    top_p: Optional[float] = None
    stop_sequences: Optional[List[str]] = None
    extra_params: Dict[str, Any] = field(default_factory=dict)


@dataclass
class LLMMessage:
    """A message in the conversation"""
    role: str  # "system", "user", "assistant"
    content: str


@dataclass
class LLMUsage:
    """Token usage information"""
    prompt_tokens: int
    completion_tokens: int
    total_tokens: int


@dataclass
class LLMResponse:
    """Standardized LLM response across all providers"""
    content: str
    raw_response: Dict[str, Any]

    provider: LLMProviderType
    model: str
    finish_reason: Optional[str] = None

    usage: Optional[LLMUsage] = None

    request_time: Optional[datetime] = None
    response_time: Optional[datetime] = None
    latency_ms: Optional[int] = None


class BaseLLMAdapter(ABC):
    """
    Abstract base class for LLM adapters.
    Each provider (OpenAI, Anthropic, Google, xAI) implements this interface.
    """

    def __init__(self, api_key: str, config: Optional[LLMConfig] = None):
        self.api_key = api_key
        self.config = config

    @property
    @abstractmethod
    def provider(self) -> LLMProviderType:
        """Return the provider type"""
        pass

    @property
    @abstractmethod
    def default_model(self) -> str:
        """Return the default model for this provider"""
        pass

    @abstractmethod
    async def execute(
        self,
        prompt: str,
        config: Optional[LLMConfig] = None,
        system_prompt: Optional[str] = None,
    ) -> LLMResponse:
        """
        Execute a prompt against the LLM.

        Args:
            prompt: The user prompt to send
            config: Optional configuration override
            system_prompt: Optional system prompt

        Returns:
            LLMResponse with standardized response data

        Raises:
            LLMAdapterError (or a subclass) on any provider or transport failure
        """
        pass

    def estimate_tokens(self, text: str) -> int:
        """Rough token estimate, ~4 characters per token for English"""
        return max(1, len(text) // 4)

    def _calculate_latency(self, start: datetime, end: datetime) -> int:
        """Calculate latency in milliseconds"""
        return int((end - start).total_seconds() * 1000)

    def _raise_for_status(self, response: httpx.Response) -> None:
        """Translate a non-200 provider response into a typed adapter error"""
        status = response.status_code
        if status == 200:
            return
        details = {"status_code": status, "response": response.text[:500]}
        if status in (401, 403):
            raise LLMAuthenticationError("Invalid API key", self.provider, details)
        if status == 429:
            raise LLMRateLimitError("Rate limit exceeded", self.provider, details)
        if status >= 500:
            raise LLMServerError(f"Provider error ({status})", self.provider, details)
        if status in (400, 404, 422):
            raise LLMInvalidRequestError(f"Invalid request ({status})", self.provider, details)
        raise LLMAdapterError(f"API error ({status})", self.provider, details)


class LLMAdapterError(Exception):
    """Base exception for LLM adapter errors"""
    category = "unknown"
    transient = False

    def __init__(self, message: str, provider: LLMProviderType, details: Optional[Dict] = None):
        super().__init__(message)
        self.provider = provider
        self.details = details or {}


class LLMRateLimitError(LLMAdapterError):
    """Rate limit exceeded"""
    category = "rate_limit"
    transient = True


class LLMAuthenticationError(LLMAdapterError):
    """Authentication failed"""
    category = "authentication"


class LLMTimeoutError(LLMAdapterError):
    """Request timed out"""
    category = "timeout"
    transient = True


class LLMServerError(LLMAdapterError):
    """Provider returned a 5xx"""
    category = "server_error"
    transient = True


class LLMConnectionError(LLMAdapterError):
    """Network failure talking to the provider"""
    category = "network"
    transient = True


class LLMInvalidRequestError(LLMAdapterError):
    """Invalid request parameters"""
    category = "invalid_request"
