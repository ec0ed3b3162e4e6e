"""
Google (Gemini) Adapter
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
    LLMAdapterError,
    LLMConnectionError,
    LLMTimeoutError,
)


class GoogleAdapter(BaseLLMAdapter):
    """Adapter for Google Gemini API"""

    API_BASE = "https://generativelanguage.googleapis.com/v1beta"

    @property
    def provider(self) -> LLMProviderType:
        return LLMProviderType.GOOGLE

    @property
    def default_model(self) -> str:
        return "gemini-1.5-pro"

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
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": {
                "temperature": cfg.temperature,
                "maxOutputTokens": cfg.max_tokens,
            },
        }

        if cfg.top_p is not None:
            payload["generationConfig"]["topP"] = cfg.top_p
        if cfg.stop_sequences:
            payload["generationConfig"]["stopSequences"] = cfg.stop_sequences
        if system_prompt:
            payload["systemInstruction"] = {"parts": [{"text": system_prompt}]}

        url = f"{self.API_BASE}/models/{cfg.model}:generateContent"

        try:
            async with httpx.AsyncClient(timeout=cfg.timeout) as client:
                response = await client.post(
                    url,
                    json=payload,
                    params={"key": self.api_key},
                    headers={"Content-Type": "application/json"},
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

        if "error" in data:
            raise LLMAdapterError(
                data["error"].get("message", "Unknown error"),
                self.provider,
                {"error": data["error"]}
            )

        candidates = data.get("candidates", [])
        if not candidates:
            raise LLMAdapterError(
                "No response candidates returned",
                self.provider,
                {"response": data}
            )

        content = ""
        for part in candidates[0].get("content", {}).get("parts", []):
            if "text" in part:
                content += part["text"]

        usage_metadata = data.get("usageMetadata", {})
        usage = LLMUsage(
            prompt_tokens=usage_metadata.get("promptTokenCount", 0),
            completion_tokens=usage_metadata.get("candidatesTokenCount", 0),
            total_tokens=usage_metadata.get("totalTokenCount", 0),
        )

        return LLMResponse(
            content=content,
            raw_response=data,
            provider=self.provider,
            model=cfg.model,
            finish_reason=candidates[0].get("finishReason"),
            usage=usage,
            request_time=request_time,
            response_time=response_time,
            latency_ms=self._calculate_latency(request_time, response_time),
        )
