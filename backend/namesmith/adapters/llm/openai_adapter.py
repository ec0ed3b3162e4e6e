"""
OpenAI (ChatGPT) Adapter
"""

from datetime import datetime
from typing import List, Optional

import httpx
import tiktoken

from .base import (
    BaseLLMAdapter,
    LLMConfig,
    LLMMessage,
    LLMResponse,
    LLMUsage,
    LLMProviderType,
    LLMAdapterError,
    LLMConnectionError,
    LLMTimeoutError,
)


class OpenAIAdapter(BaseLLMAdapter):
    """Adapter for the OpenAI chat completions API"""

    API_BASE = "https://api.openai.com/v1"

    def __init__(self, api_key: str, config: Optional[LLMConfig] = None):
        super().__init__(api_key, config)
        self._tokenizer = None

    @property
    def provider(self) -> LLMProviderType:
        return LLMProviderType.OPENAI

    @property
    def default_model(self) -> str:
        return "gpt-4o"

    def _get_tokenizer(self):
        """Get tiktoken encoder for token counting"""
        if self._tokenizer is None:
            try:
                self._tokenizer = tiktoken.encoding_for_model("gpt-4o")
            except KeyError:
                self._tokenizer = tiktoken.get_encoding("cl100k_base")
        return self._tokenizer

    def estimate_tokens(self, text: str) -> int:
        """Estimate tokens using tiktoken"""
        encoder = self._get_tokenizer()
        return len(encoder.encode(text))

    async def execute(
        self,
        prompt: str,
        config: Optional[LLMConfig] = None,
        system_prompt: Optional[str] = None,
    ) -> LLMResponse:
        """Execute a single prompt"""
        messages = []
        if system_prompt:
            messages.append(LLMMessage(role="system", content=system_prompt))
        messages.append(LLMMessage(role="user", content=prompt))
        return await self._execute_chat(messages, config)

    async def _execute_chat(
        self,
        messages: List[LLMMessage],
        config: Optional[LLMConfig] = None,
    ) -> LLMResponse:
        cfg = config or self.config or LLMConfig(model=self.default_model)
        request_time = datetime.utcnow()

        payload = {
            "model": cfg.model,
            "messages": [{"role": m.role, "content": m.content} for m in messages],
            "temperature": cfg.temperature,
            "max_tokens": cfg.max_tokens,
        }

        if cfg.top_p is not None:
            payload["top_p"] = cfg.top_p
        if cfg.stop_sequences:
            payload["stop"] = cfg.stop_sequences
        payload.update(cfg.extra_params)

        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

        try:
            async with httpx.AsyncClient(timeout=cfg.timeout) as client:
                response = await client.post(
                    f"{self.API_BASE}/chat/completions",
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
        choices = data.get("choices") or []
        if not choices:
            raise LLMAdapterError("No choices returned", self.provider, {"response": data})
        choice = choices[0]
        usage_data = data.get("usage", {})

        usage = LLMUsage(
            prompt_tokens=usage_data.get("prompt_tokens", 0),
            completion_tokens=usage_data.get("completion_tokens", 0),
            total_tokens=usage_data.get("total_tokens", 0),
        )

        return LLMResponse(
            content=choice["message"]["content"] or "",
            raw_response=data,
            provider=self.provider,
            model=cfg.model,
            finish_reason=choice.get("finish_reason"),
            usage=usage,
            request_time=request_time,
            response_time=response_time,
            latency_ms=self._calculate_latency(request_time, response_time),
        )
