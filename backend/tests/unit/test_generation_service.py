"""Unit tests for request submission and session tracking."""

import asyncio

import pytest

from conftest import Hang
from namesmith.adapters.llm import LLMProviderType
from namesmith.exceptions import (
    GenerationRejectedError,
    GenerationValidationError,
    InvalidModelError,
    InvalidTransitionError,
    NoAvailableModelsError,
    SessionNotFoundError,
)
from namesmith.models import GenerationStrategy, SessionStatus
from namesmith.services.generation_service import GenerationRequest, select_models

OPENAI = LLMProviderType.OPENAI


def request(**overrides):
    values = {
        "user_id": "user-1",
        "business_description": "A cozy coffee shop in Brooklyn",
        "requested_models": ["gpt-4"],
    }
    values.update(overrides)
    return GenerationRequest(**values)


async def wait_until_running(services, session_id):
    while not services.orchestrator.is_running(session_id):
        await asyncio.sleep(0.01)


class TestSelectModels:
    """Tests for the fan-out strategies."""

    def test_parallel(self, registry):
        models = select_models(registry, registry.snapshot(), ["gpt-4", "grok-beta"], GenerationStrategy.PARALLEL)
        assert [m.model_id for m in models] == ["gpt-4", "grok-beta"]

    def test_quick_takes_first_usable(self, registry):
        registry.update_model("gpt-4", enabled=False)
        models = select_models(registry, registry.snapshot(), ["gpt-4", "grok-beta"], GenerationStrategy.QUICK)
        assert [m.model_id for m in models] == ["grok-beta"]

    def test_comprehensive_adds_every_available_model(self, registry):
        registry.set_model_maintenance("gemini-1.5-pro", True)
        models = select_models(registry, registry.snapshot(), ["grok-beta"], GenerationStrategy.COMPREHENSIVE)
        assert [m.model_id for m in models] == ["grok-beta", "gpt-4", "claude-3.5-sonnet"]


class TestSubmit:
    """Tests for accepting requests."""

    @pytest.mark.asyncio
    async def test_submit_runs_in_background(self, services, adapters):
        adapters[OPENAI].script("1. BrewHaven\n2. CafeNova")

        session = await services.generations.submit(request())
        assert session.status == SessionStatus.PENDING

        done = await services.generations.wait(session.session_id)
        assert done.status == SessionStatus.COMPLETED
        assert done.results == {"gpt-4": ["BrewHaven", "CafeNova"]}

    @pytest.mark.asyncio
    async def test_defaults_from_preferences(self, services):
        session = await services.generations.submit(request(requested_models=None))

        assert session.requested_models == ["gpt-4", "claude-3.5-sonnet"]
        assert session.generation_mode.value == "creative"
        assert session.deep_thinking is False
        await services.generations.wait(session.session_id)

    @pytest.mark.asyncio
    async def test_preference_priorities_order_models(self, services):
        await services.preferences.update("user-1", {"model_priorities": {"claude-3.5-sonnet": 1, "gpt-4": 2}})

        session = await services.generations.submit(request(requested_models=None))

        assert session.requested_models == ["claude-3.5-sonnet", "gpt-4"]
        await services.generations.wait(session.session_id)

    @pytest.mark.asyncio
    async def test_comprehensive_strategy(self, services):
        session = await services.generations.submit(
            request(generation_strategy=GenerationStrategy.COMPREHENSIVE)
        )
        assert len(session.requested_models) == 4
        await services.generations.wait(session.session_id)


class TestValidation:
    """Rejected input never consumes rate or budget counters."""

    @pytest.mark.asyncio
    async def test_unknown_model(self, services):
        with pytest.raises(InvalidModelError):
            await services.generations.submit(request(requested_models=["gpt-4", "gpt-9"]))

        usage = await services.guard.user_usage("user-1")
        assert usage["hourly"]["used"] == 0
        daily, _ = await services.guard.committed_spend()
        assert daily == 0

    @pytest.mark.asyncio
    async def test_no_available_models(self, services, registry):
        registry.update_model("gpt-4", enabled=False)
        with pytest.raises(NoAvailableModelsError):
            await services.generations.submit(request())

    @pytest.mark.asyncio
    async def test_blank_description(self, services):
        with pytest.raises(GenerationValidationError):
            await services.generations.submit(request(business_description="   "))

    @pytest.mark.asyncio
    async def test_description_too_long(self, services, settings):
        with pytest.raises(GenerationValidationError):
            await services.generations.submit(
                request(business_description="x" * (settings.AI_MAX_DESCRIPTION_LENGTH + 1))
            )

    @pytest.mark.asyncio
    async def test_invalid_mode(self, services):
        with pytest.raises(GenerationValidationError):
            await services.generations.submit(request(generation_mode="poetic"))

    @pytest.mark.asyncio
    async def test_empty_model_list(self, services):
        with pytest.raises(GenerationValidationError):
            await services.generations.submit(request(requested_models=[]))


class TestRejection:
    """Tests for guard and concurrency denials."""

    @pytest.mark.asyncio
    async def test_rate_limit(self, services, settings):
        for i in range(settings.AI_MAX_GENERATIONS_PER_HOUR):
            session = await services.generations.submit(request(business_description=f"Shop number {i}"))
            await services.generations.wait(session.session_id)

        with pytest.raises(GenerationRejectedError) as exc_info:
            await services.generations.submit(request())

        assert exc_info.value.reason == "rate_limited"
        assert exc_info.value.retry_after > 0

    @pytest.mark.asyncio
    async def test_maintenance_mode(self, services, registry):
        registry.set_maintenance_mode(True)

        with pytest.raises(GenerationRejectedError) as exc_info:
            await services.generations.submit(request())

        assert exc_info.value.reason == "maintenance_mode"
        assert (await services.guard.user_usage("user-1"))["hourly"]["used"] == 0

    @pytest.mark.asyncio
    async def test_concurrency_cap(self, services, adapters):
        await services.preferences.update("user-1", {"max_concurrent_generations": 1})
        adapters[OPENAI].script(Hang())

        first = await services.generations.submit(request())
        with pytest.raises(GenerationRejectedError) as exc_info:
            await services.generations.submit(request(business_description="Another shop"))
        assert exc_info.value.reason == "concurrency_limited"

        await services.generations.wait(first.session_id)
        second = await services.generations.submit(request(business_description="Another shop"))
        await services.generations.wait(second.session_id)

    @pytest.mark.asyncio
    async def test_concurrency_cap_under_parallel_submits(self, services, adapters):
        await services.preferences.update("user-1", {"max_concurrent_generations": 2})
        adapters[OPENAI].script(Hang(), Hang(), Hang(), Hang())

        outcomes = await asyncio.gather(
            *(services.generations.submit(request(business_description=f"Shop {i}")) for i in range(4)),
            return_exceptions=True,
        )

        accepted = [o for o in outcomes if not isinstance(o, Exception)]
        rejected = [o for o in outcomes if isinstance(o, GenerationRejectedError)]
        assert len(accepted) == 2
        assert len(rejected) == 2
        for session in accepted:
            await services.generations.wait(session.session_id)

    @pytest.mark.asyncio
    async def test_user_locks_released_after_submit(self, services):
        """Per-user locks do not accumulate across many distinct users."""
        sessions = []
        for i in range(3):
            sessions.append(await services.generations.submit(request(user_id=f"user-{i}")))

        assert len(services.generations._user_locks) == 0
        for session in sessions:
            await services.generations.wait(session.session_id)


class TestQueries:
    """Tests for status, listing and events."""

    @pytest.mark.asyncio
    async def test_status_scoped_to_owner(self, services):
        session = await services.generations.submit(request())
        await services.generations.wait(session.session_id)

        status = await services.generations.status(session.session_id, "user-1")
        assert status["status"] == "completed"
        assert status["progress_percentage"] == 100

        with pytest.raises(SessionNotFoundError):
            await services.generations.status(session.session_id, "user-2")

    @pytest.mark.asyncio
    async def test_list_sessions(self, services):
        first = await services.generations.submit(request())
        await services.generations.wait(first.session_id)

        sessions = await services.generations.list_sessions("user-1")
        assert [s.session_id for s in sessions] == [first.session_id]
        assert await services.generations.list_sessions("user-2") == []

    @pytest.mark.asyncio
    async def test_events_until_terminal(self, services, adapters):
        adapters[OPENAI].script("1. BrewHaven")
        session = await services.generations.submit(request())

        events = [e async for e in services.generations.events(session.session_id, "user-1")]

        progress = [e.progress_percentage for e in events]
        assert progress == sorted(progress)
        assert events[-1].status == "completed"
        assert services.broker.subscriber_count(session.session_id) == 0

    @pytest.mark.asyncio
    async def test_events_for_finished_session(self, services):
        session = await services.generations.submit(request())
        await services.generations.wait(session.session_id)

        events = [e async for e in services.generations.events(session.session_id, "user-1")]

        assert len(events) == 1
        assert events[0].status == "completed"


class TestCancel:
    """Tests for user cancellation."""

    @pytest.mark.asyncio
    async def test_cancel_running(self, services, adapters):
        adapters[OPENAI].script(Hang())
        session = await services.generations.submit(request())
        await wait_until_running(services, session.session_id)

        cancelled = await services.generations.cancel(session.session_id, "user-1")
        assert cancelled.status == SessionStatus.CANCELLED

        final = await services.generations.wait(session.session_id)
        assert final.status == SessionStatus.CANCELLED
        assert adapters[OPENAI].cancelled == 1
        daily, _ = await services.guard.committed_spend()
        assert daily == 0

    @pytest.mark.asyncio
    async def test_cancel_completed(self, services):
        session = await services.generations.submit(request())
        await services.generations.wait(session.session_id)

        with pytest.raises(InvalidTransitionError):
            await services.generations.cancel(session.session_id, "user-1")

    @pytest.mark.asyncio
    async def test_cancel_other_users_session(self, services):
        session = await services.generations.submit(request())
        with pytest.raises(SessionNotFoundError):
            await services.generations.cancel(session.session_id, "user-2")
        await services.generations.wait(session.session_id)
