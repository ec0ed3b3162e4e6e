"""
Anthropic (Claude) Adapter
"""

from datetime import datetime
from typing import Optional

import httpx

from .base import (
    BaseLLMAdapter,
    LLMConfig,
    LLMResponse,
    LLMUsage,
    LLMProviderType,
    LLMConnectionError,
    LLMTimeoutError,
)


class AnthropicAdapter(BaseLLMAdapter):
    """Adapter for Anthropic Claude API"""

    API_BASE = "https://api.anthropic.com/v1"
    API_VERSION = "2023-06-01"

    @property
    def provider(self) -> LLMProviderType:
        return LLMProviderType.ANTHROPIC

    @property
    def default_model(self) -> str:
        return "claude-3-5-sonnet-20241022"

    async def execute(
        self,
        prompt: str,
        config: Optional[LLMConfig] = None,
        system_prompt: Optional[str] = None,
    ) -> LLMResponse:
        """Execute a single prompt"""
        cfg = config or self.config or LLMConfig(model=self.default_model)
        request_time = datetime.utcnow()

        payload = {
            "model": cfg.model,
            "messages": [{"role": "user", "content": prompt}],
            "max_tokens": cfg.max_tokens,
            "temperature": cfg.temperature,
        }

        if system_prompt:
            payload["system"] = system_prompt
        if cfg.top_p is not None:
            payload["top_p"] = cfg.top_p
        if cfg.stop_sequences:
            payload["stop_sequences"] = cfg.stop_sequences

        headers = {
            "x-api-key": self.api_key,
            "anthropic-version": self.API_VERSION,
            "Content-Type": "application/json",
        }

        try:
            async with httpx.AsyncClient(timeout=cfg.timeout) as client:
                response = await client.post(
                    f"{self.API_BASE}/messages",
                    json=payload,
                    headers=headers,
                )
        except httpx.TimeoutException:
            raise LLMTimeoutError(
                f"Request timed out after {cfg.timeout}s",
                self.provider,
            )
        except httpx.RequestError as e:
            raise LLMConnectionError(
                f"Request failed: {str(e)}",
                self.provider,
            )

        response_time = datetime.utcnow()
        self._raise_for_status(response)

        data = response.json()

        # Content arrives as a list of typed blocks
        content = ""
        for block in data.get("content", []):
            if block.get("type") == "text":
                content += block.get("text", "")

        usage_data = data.get("usage", {})
        usage = LLMUsage(
            prompt_tokens=usage_data.get("input_tokens", 0),
            completion_tokens=usage_data.get("output_tokens", 0),
            total_tokens=usage_data.get("input_tokens", 0) + usage_data.get("output_tokens", 0),
        )

        return LLMResponse(
            content=content,
            raw_response=data,
            provider=self.provider,
            model=cfg.model,
            finish_reason=data.get("stop_reason"),
            usage=usage,
            request_time=request_time,
            response_time=response_time,
            latency_ms=self._calculate_latency(request_time, response_time),
        )
