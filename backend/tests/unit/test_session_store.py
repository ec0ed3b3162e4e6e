"""Unit tests for the generation session state machine."""

from datetime import timedelta

import pytest

from namesmith.exceptions import InvalidTransitionError, SessionNotFoundError
from namesmith.models import GenerationMode, SessionStatus
from namesmith.services.session_service import SessionStore, clamp_progress
from namesmith.utils.clock import utcnow


class Clock:
    def __init__(self):
        self.now = utcnow()

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock():
    return Clock()


@pytest.fixture
def store(session_factory, settings, clock):
    return SessionStore(session_factory, settings, clock=clock)


async def new_session(store, user_id="user-1"):
    return await store.create(
        user_id=user_id,
        business_description="A cozy coffee shop in Brooklyn",
        generation_mode=GenerationMode.CREATIVE,
        deep_thinking=False,
        requested_models=["gpt-4", "claude-3.5-sonnet"],
    )


class TestLifecycle:
    """Tests for the allowed transitions."""

    @pytest.mark.asyncio
    async def test_create_is_pending(self, store):
        session = await new_session(store)

        assert session.status == SessionStatus.PENDING
        assert session.progress_percentage == 0
        assert session.results is None
        assert session.session_id.startswith("session_")

    @pytest.mark.asyncio
    async def test_happy_path(self, store, settings):
        session = await new_session(store)

        running = await store.mark_running(session.session_id)
        assert running.status == SessionStatus.RUNNING
        assert running.progress_percentage == settings.AI_PROGRESS_INITIAL
        assert running.started_at is not None

        done = await store.mark_completed(session.session_id, {"gpt-4": ["BrewHaven"]}, {"cached": False})
        assert done.status == SessionStatus.COMPLETED
        assert done.progress_percentage == 100
        assert done.results == {"gpt-4": ["BrewHaven"]}
        assert done.completed_at is not None

    @pytest.mark.asyncio
    async def test_failed_has_no_results(self, store):
        session = await new_session(store)
        await store.mark_running(session.session_id)

        failed = await store.mark_failed(session.session_id, "All models failed")

        assert failed.status == SessionStatus.FAILED
        assert failed.results is None
        assert failed.error_message == "All models failed"

    @pytest.mark.asyncio
    async def test_pending_cannot_complete(self, store):
        session = await new_session(store)
        with pytest.raises(InvalidTransitionError) as exc_info:
            await store.mark_completed(session.session_id, {"gpt-4": ["X"]})
        assert exc_info.value.current == "pending"
        assert exc_info.value.target == "completed"

    @pytest.mark.asyncio
    async def test_cancel_pending(self, store):
        session = await new_session(store)
        cancelled = await store.cancel(session.session_id, "user-1")
        assert cancelled.status == SessionStatus.CANCELLED

    @pytest.mark.asyncio
    async def test_unknown_session(self, store):
        with pytest.raises(SessionNotFoundError):
            await store.mark_running("does-not-exist")


class TestTerminalStates:
    """Terminal sessions never change again."""

    @pytest.mark.asyncio
    async def test_completed_cannot_be_cancelled(self, store):
        session = await new_session(store)
        await store.mark_running(session.session_id)
        await store.mark_completed(session.session_id, {"gpt-4": ["BrewHaven"]})

        with pytest.raises(InvalidTransitionError):
            await store.cancel(session.session_id, "user-1")

        current = await store.get(session.session_id)
        assert current.status == SessionStatus.COMPLETED
        assert current.results == {"gpt-4": ["BrewHaven"]}

    @pytest.mark.asyncio
    async def test_late_completion_after_cancel(self, store):
        """A model finishing after cancellation cannot overwrite it."""
        session = await new_session(store)
        await store.mark_running(session.session_id)
        await store.cancel(session.session_id)

        with pytest.raises(InvalidTransitionError):
            await store.mark_completed(session.session_id, {"gpt-4": ["Late"]})
        assert not await store.update_progress(session.session_id, 60, "late progress")

        current = await store.get(session.session_id)
        assert current.status == SessionStatus.CANCELLED
        assert current.results is None

    @pytest.mark.asyncio
    async def test_failed_cannot_restart(self, store):
        session = await new_session(store)
        await store.mark_running(session.session_id)
        await store.mark_failed(session.session_id, "boom")

        with pytest.raises(InvalidTransitionError):
            await store.mark_running(session.session_id)


class TestProgress:
    """Tests for progress updates."""

    @pytest.mark.asyncio
    async def test_progress_is_monotonic(self, store):
        session = await new_session(store)
        await store.mark_running(session.session_id)

        assert await store.update_progress(session.session_id, 50, "half way")
        assert not await store.update_progress(session.session_id, 30, "backwards")
        assert await store.update_progress(session.session_id, 50, "same value")

        current = await store.get(session.session_id)
        assert current.progress_percentage == 50
        assert current.current_step == "same value"

    @pytest.mark.asyncio
    async def test_progress_requires_running(self, store):
        session = await new_session(store)
        assert not await store.update_progress(session.session_id, 40, "too early")

    @pytest.mark.asyncio
    async def test_progress_clamped(self, store):
        session = await new_session(store)
        await store.mark_running(session.session_id)
        await store.update_progress(session.session_id, 140, "overshoot")
        assert (await store.get(session.session_id)).progress_percentage == 100

    def test_clamp_progress(self):
        assert clamp_progress(-5) == 0
        assert clamp_progress(42) == 42
        assert clamp_progress(101) == 100


class TestOwnership:
    """Tests for per-user scoping."""

    @pytest.mark.asyncio
    async def test_other_user_sees_not_found(self, store):
        session = await new_session(store, user_id="user-1")

        with pytest.raises(SessionNotFoundError):
            await store.get(session.session_id, "user-2")
        with pytest.raises(SessionNotFoundError):
            await store.cancel(session.session_id, "user-2")

        assert (await store.get(session.session_id)).status == SessionStatus.PENDING

    @pytest.mark.asyncio
    async def test_list_and_count(self, store, clock):
        first = await new_session(store)
        clock.advance(seconds=1)
        second = await new_session(store)
        await new_session(store, user_id="user-2")
        await store.mark_running(first.session_id)

        sessions = await store.list_for_user("user-1")
        assert [s.session_id for s in sessions] == [second.session_id, first.session_id]
        assert await store.count_active("user-1") == 2

        await store.cancel(first.session_id)
        assert await store.count_active("user-1") == 1


class TestStaleSessions:
    """Tests for failing sessions whose worker disappeared."""

    @pytest.mark.asyncio
    async def test_fail_stale(self, store, clock):
        stale = await new_session(store)
        await store.mark_running(stale.session_id)
        clock.advance(minutes=45)
        fresh = await new_session(store)
        await store.mark_running(fresh.session_id)
        waiting = await new_session(store)

        assert await store.fail_stale(timedelta(minutes=30)) == 1

        assert (await store.get(stale.session_id)).status == SessionStatus.FAILED
        assert (await store.get(fresh.session_id)).status == SessionStatus.RUNNING
        assert (await store.get(waiting.session_id)).status == SessionStatus.PENDING
