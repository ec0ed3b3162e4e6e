"""
Service wiring
Builds every service once per process; the app keeps the result on
app.state.services.
"""

from dataclasses import dataclass
from typing import Dict, Optional

import redis.asyncio as redis
from sqlalchemy.ext.asyncio import async_sessionmaker

from namesmith.adapters.domain import BaseDomainRegistrar
from namesmith.adapters.llm import BaseLLMAdapter, LLMProviderType
from namesmith.config import Settings
from namesmith.services.access_guard import AccessGuard
from namesmith.services.cost_service import CostTrackingService
from namesmith.services.domain_service import DomainCheckService
from namesmith.services.generation_cache import GenerationCacheService
from namesmith.services.generation_service import GenerationService
from namesmith.services.model_registry import ModelRegistry
from namesmith.services.orchestrator import GenerationOrchestrator
from namesmith.services.preferences_service import PreferencesService
from namesmith.services.progress import ProgressBroker
from namesmith.services.prompt_builder import PromptBuilder
from namesmith.services.session_service import SessionStore


@dataclass
class ServiceContainer:
    settings: Settings
    registry: ModelRegistry
    guard: AccessGuard
    store: SessionStore
    cache: GenerationCacheService
    cost: CostTrackingService
    preferences: PreferencesService
    broker: ProgressBroker
    orchestrator: GenerationOrchestrator
    generations: GenerationService
    domains: DomainCheckService

    async def shutdown(self) -> None:
        await self.generations.shutdown()


def build_services(
    settings: Settings,
    session_factory: async_sessionmaker,
    redis_client: redis.Redis,
    providers: Dict[LLMProviderType, BaseLLMAdapter],
    registrar: BaseDomainRegistrar,
    registry: Optional[ModelRegistry] = None,
) -> ServiceContainer:
    registry = registry or ModelRegistry.from_settings(settings, credentialed_providers=providers.keys())

    guard = AccessGuard(redis_client, registry, settings)
    store = SessionStore(session_factory, settings)
    cache = GenerationCacheService(session_factory, settings)
    cost = CostTrackingService(session_factory, guard, settings)
    guard.spend_ledger = cost.logged_spend
    preferences = PreferencesService(session_factory, registry)
    broker = ProgressBroker()

    orchestrator = GenerationOrchestrator(
        store=store,
        cache=cache,
        cost_service=cost,
        guard=guard,
        providers=providers,
        broker=broker,
        settings=settings,
        prompt_builder=PromptBuilder(names_per_model=settings.AI_NAMES_PER_MODEL),
    )

    generations = GenerationService(
        store=store,
        registry=registry,
        guard=guard,
        preferences=preferences,
        cost_service=cost,
        orchestrator=orchestrator,
        broker=broker,
        settings=settings,
    )

    return ServiceContainer(
        settings=settings,
        registry=registry,
        guard=guard,
        store=store,
        cache=cache,
        cost=cost,
        preferences=preferences,
        broker=broker,
        orchestrator=orchestrator,
        generations=generations,
        domains=DomainCheckService(registrar, session_factory, settings),
    )
