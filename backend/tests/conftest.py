"""Pytest configuration and shared fixtures."""

import asyncio
import copy
from collections.abc import AsyncGenerator
from decimal import Decimal
from typing import Dict, List, Optional, Union

import fakeredis.aioredis
import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from namesmith.adapters.domain import BaseDomainRegistrar
from namesmith.adapters.llm import BaseLLMAdapter, LLMConfig, LLMProviderType, LLMResponse, LLMUsage
from namesmith.config import DEFAULT_MODEL_CATALOG, Settings
from namesmith.models import Base
from namesmith.services.container import ServiceContainer, build_services
from namesmith.services.model_registry import ModelRegistry


class Hang:
    """Reply marker: the provider never answers"""


Reply = Union[str, Exception, Hang]


class ScriptedAdapter(BaseLLMAdapter):
    """Provider stand-in that replays queued replies in order"""

    def __init__(self, provider_type: LLMProviderType, replies: Optional[List[Reply]] = None):
        super().__init__(api_key="test-key")
        self._provider = provider_type
        self.replies: List[Reply] = list(replies or [])
        self.calls: List[Dict] = []
        self.cancelled = 0

    @property
    def provider(self) -> LLMProviderType:
        return self._provider

    @property
    def default_model(self) -> str:
        return "scripted"

    def script(self, *replies: Reply) -> "ScriptedAdapter":
        self.replies.extend(replies)
        return self

    async def execute(
        self,
        prompt: str,
        config: Optional[LLMConfig] = None,
        system_prompt: Optional[str] = None,
    ) -> LLMResponse:
        self.calls.append({"prompt": prompt, "config": config, "system_prompt": system_prompt})
        reply = self.replies.pop(0) if self.replies else "1. Fallback Name"

        if isinstance(reply, Hang):
            try:
                await asyncio.sleep(3600)
            except asyncio.CancelledError:
                self.cancelled += 1
                raise
        if isinstance(reply, Exception):
            raise reply

        return LLMResponse(
            content=reply,
            raw_response={"scripted": True},
            provider=self._provider,
            model=config.model if config else self.default_model,
            finish_reason="stop",
            usage=LLMUsage(prompt_tokens=100, completion_tokens=50, total_tokens=150),
        )


class FakeRegistrar(BaseDomainRegistrar):
    """Registrar answering from a dict; unknown domains are available"""

    name = "fake"

    def __init__(self, answers: Optional[Dict[str, Union[bool, Exception, Hang]]] = None):
        super().__init__(timeout=1.0)
        self.answers = dict(answers or {})
        self.calls: List[str] = []

    async def lookup(self, domain: str) -> bool:
        self.calls.append(domain)
        answer = self.answers.get(domain, True)
        if isinstance(answer, Hang):
            await asyncio.sleep(3600)
        if isinstance(answer, Exception):
            raise answer
        return answer


@pytest.fixture
def settings(tmp_path) -> Settings:
    """Settings isolated from the environment, with small limits and no retry delay."""
    return Settings(
        _env_file=None,
        DATABASE_URL=f"sqlite+aiosqlite:///{tmp_path}/test.db",
        OPENAI_API_KEY="test-openai",
        ANTHROPIC_API_KEY="test-anthropic",
        GOOGLE_API_KEY="test-google",
        XAI_API_KEY="test-xai",
        LLM_MAX_RETRIES=3,
        LLM_RETRY_DELAY=0.0,
        AI_NAMES_PER_MODEL=10,
        AI_MAX_GENERATIONS_PER_HOUR=5,
        AI_MAX_GENERATIONS_PER_DAY=20,
        AI_DAILY_BUDGET_LIMIT=Decimal("10.00"),
        AI_MONTHLY_BUDGET_LIMIT=Decimal("200.00"),
        DOMAIN_CHECK_TIMEOUT=0.5,
    )


@pytest.fixture
def catalog() -> Dict[str, Dict]:
    """Default catalog with timeouts short enough for tests."""
    entries = copy.deepcopy(DEFAULT_MODEL_CATALOG)
    for entry in entries.values():
        entry["timeout_seconds"] = 0.5
    return entries


@pytest.fixture
async def session_factory(tmp_path) -> AsyncGenerator[async_sessionmaker, None]:
    """File-backed SQLite so concurrent sessions get their own connections."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path}/test.db")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


@pytest.fixture
async def redis_client() -> AsyncGenerator[fakeredis.aioredis.FakeRedis, None]:
    """Provide a fake Redis client for testing."""
    client = fakeredis.aioredis.FakeRedis(decode_responses=True)
    yield client
    await client.aclose()


@pytest.fixture
def registry(settings: Settings, catalog: Dict[str, Dict]) -> ModelRegistry:
    return ModelRegistry.from_settings(
        settings,
        catalog=catalog,
        credentialed_providers=list(LLMProviderType),
    )


@pytest.fixture
def adapters() -> Dict[LLMProviderType, ScriptedAdapter]:
    return {provider: ScriptedAdapter(provider) for provider in LLMProviderType}


@pytest.fixture
def registrar() -> FakeRegistrar:
    return FakeRegistrar()


@pytest.fixture
async def services(
    settings: Settings,
    session_factory: async_sessionmaker,
    redis_client: fakeredis.aioredis.FakeRedis,
    adapters: Dict[LLMProviderType, ScriptedAdapter],
    registrar: FakeRegistrar,
    registry: ModelRegistry,
) -> AsyncGenerator[ServiceContainer, None]:
    container = build_services(
        settings=settings,
        session_factory=session_factory,
        redis_client=redis_client,
        providers=adapters,
        registrar=registrar,
        registry=registry,
    )
    yield container
    await container.shutdown()


@pytest.fixture
def app(services: ServiceContainer):
    """Application without lifespan, wired to the test services."""
    from namesmith.main import create_app

    application = create_app(use_lifespan=False)
    application.state.services = services
    yield application
    application.dependency_overrides.clear()


@pytest.fixture
async def async_client(app) -> AsyncGenerator[AsyncClient, None]:
    """Provide an async HTTP client wired to the test services."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
        headers={"X-User-Id": "user-1"},
    ) as client:
        yield client

