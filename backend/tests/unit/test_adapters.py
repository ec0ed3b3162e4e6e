"""Unit tests for provider and registrar HTTP adapters."""

import json
from typing import Callable

import httpx
import pytest

from namesmith.adapters.domain import (
    DomainLookupError,
    PorkbunRegistrar,
    WhoisJsonRegistrar,
    get_registrar,
)
from namesmith.adapters.llm import (
    AnthropicAdapter,
    GoogleAdapter,
    LLMAuthenticationError,
    LLMConfig,
    LLMProviderType,
    LLMRateLimitError,
    LLMServerError,
    LLMTimeoutError,
    OpenAIAdapter,
    build_provider_pool,
    get_adapter,
)

REAL_ASYNC_CLIENT = httpx.AsyncClient


@pytest.fixture
def mock_http(monkeypatch) -> Callable:
    """Route every adapter request through a handler; returns the captured requests."""

    def install(handler):
        captured = []

        def recording_handler(request: httpx.Request):
            captured.append(request)
            return handler(request)

        def client_factory(*args, **kwargs):
            kwargs["transport"] = httpx.MockTransport(recording_handler)
            return REAL_ASYNC_CLIENT(*args, **kwargs)

        monkeypatch.setattr(httpx, "AsyncClient", client_factory)
        return captured

    return install


CONFIG = LLMConfig(model="gpt-4o", temperature=0.7, max_tokens=200, timeout=5)


class TestOpenAIAdapter:
    """Tests for the OpenAI chat completions adapter."""

    @pytest.mark.asyncio
    async def test_success(self, mock_http):
        requests = mock_http(lambda request: httpx.Response(200, json={
            "choices": [{"message": {"content": "1. BrewHaven"}, "finish_reason": "stop"}],
            "usage": {"prompt_tokens": 80, "completion_tokens": 20, "total_tokens": 100},
        }))

        response = await OpenAIAdapter("sk-test").execute("name my shop", CONFIG, system_prompt="be brief")

        assert response.content == "1. BrewHaven"
        assert response.usage.total_tokens == 100
        assert response.provider == LLMProviderType.OPENAI

        body = json.loads(requests[0].content)
        assert body["model"] == "gpt-4o"
        assert body["messages"][0] == {"role": "system", "content": "be brief"}
        assert requests[0].headers["Authorization"] == "Bearer sk-test"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status,error", [
        (401, LLMAuthenticationError),
        (429, LLMRateLimitError),
        (503, LLMServerError),
    ])
    async def test_status_mapping(self, mock_http, status, error):
        mock_http(lambda request: httpx.Response(status, json={"error": "nope"}))

        with pytest.raises(error) as exc_info:
            await OpenAIAdapter("sk-test").execute("name my shop", CONFIG)
        assert exc_info.value.details["status_code"] == status

    @pytest.mark.asyncio
    async def test_timeout(self, mock_http):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        mock_http(handler)

        with pytest.raises(LLMTimeoutError) as exc_info:
            await OpenAIAdapter("sk-test").execute("name my shop", CONFIG)
        assert exc_info.value.transient

    def test_transient_categories(self):
        assert LLMServerError("x", LLMProviderType.OPENAI).transient
        assert LLMRateLimitError("x", LLMProviderType.OPENAI).transient
        assert not LLMAuthenticationError("x", LLMProviderType.OPENAI).transient


class TestAnthropicAdapter:
    """Tests for the Anthropic messages adapter."""

    @pytest.mark.asyncio
    async def test_text_blocks_joined(self, mock_http):
        mock_http(lambda request: httpx.Response(200, json={
            "content": [
                {"type": "text", "text": "1. BrewHaven\n"},
                {"type": "text", "text": "2. CafeNova"},
            ],
            "usage": {"input_tokens": 60, "output_tokens": 15},
            "stop_reason": "end_turn",
        }))

        response = await AnthropicAdapter("sk-ant").execute(
            "name my shop",
            LLMConfig(model="claude-3-5-sonnet-20241022"),
        )

        assert response.content == "1. BrewHaven\n2. CafeNova"
        assert response.usage.total_tokens == 75


class TestGoogleAdapter:
    """Tests for the Gemini adapter."""

    @pytest.mark.asyncio
    async def test_candidates(self, mock_http):
        mock_http(lambda request: httpx.Response(200, json={
            "candidates": [{"content": {"parts": [{"text": "1. RoastLab"}]}}],
            "usageMetadata": {"promptTokenCount": 40, "candidatesTokenCount": 5, "totalTokenCount": 45},
        }))

        response = await GoogleAdapter("g-key").execute("name my shop", LLMConfig(model="gemini-1.5-pro"))

        assert response.content == "1. RoastLab"
        assert response.usage.total_tokens == 45


class TestProviderPool:
    """Tests for the adapter factory."""

    def test_pool_only_has_credentialed_providers(self):
        pool = build_provider_pool({"openai": "sk-test", "anthropic": None, "google": "", "xai": "x-key"})
        assert set(pool) == {LLMProviderType.OPENAI, LLMProviderType.XAI}

    def test_unknown_provider(self):
        with pytest.raises(ValueError):
            get_adapter("mistral", api_key="key")


class TestRegistrars:
    """Tests for domain registrar adapters."""

    @pytest.mark.asyncio
    async def test_whoisjson_falls_back_after_404(self, mock_http):
        def handler(request):
            if "domainsdb" in request.url.host:
                return httpx.Response(404)
            return httpx.Response(200, json={"available": True})

        requests = mock_http(handler)

        assert await WhoisJsonRegistrar(api_key="w-key").lookup("brewhaven.com") is True
        assert len(requests) == 2
        assert requests[1].headers["Authorization"] == "TOKEN=w-key"

    @pytest.mark.asyncio
    async def test_whoisjson_domainsdb_answer(self, mock_http):
        requests = mock_http(lambda request: httpx.Response(200, json={"available": False}))

        assert await WhoisJsonRegistrar().lookup("brewhaven.com") is False
        assert len(requests) == 1

    @pytest.mark.asyncio
    async def test_whoisjson_server_error(self, mock_http):
        mock_http(lambda request: httpx.Response(500))

        with pytest.raises(DomainLookupError):
            await WhoisJsonRegistrar().lookup("brewhaven.com")

    @pytest.mark.asyncio
    async def test_porkbun(self, mock_http):
        mock_http(lambda request: httpx.Response(200, json={
            "status": "SUCCESS",
            "response": {"avail": "yes"},
        }))
        assert await PorkbunRegistrar("pk", "sk").lookup("brewhaven.com") is True

    @pytest.mark.asyncio
    async def test_porkbun_error_status(self, mock_http):
        mock_http(lambda request: httpx.Response(200, json={"status": "ERROR", "message": "Invalid API key"}))

        with pytest.raises(DomainLookupError) as exc_info:
            await PorkbunRegistrar("pk", "sk").lookup("brewhaven.com")
        assert str(exc_info.value) == "Invalid API key"

    def test_get_registrar(self, settings):
        assert isinstance(get_registrar(settings), WhoisJsonRegistrar)

        with pytest.raises(ValueError):
            get_registrar(settings.model_copy(update={"DOMAIN_REGISTRAR": "porkbun"}))

        porkbun = get_registrar(settings.model_copy(update={
            "DOMAIN_REGISTRAR": "porkbun",
            "PORKBUN_API_KEY": "pk",
            "PORKBUN_SECRET_KEY": "sk",
        }))
        assert isinstance(porkbun, PorkbunRegistrar)
