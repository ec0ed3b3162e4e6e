"""
Generation Service
Request-side entry point: validates, authorizes and creates sessions, then
hands them to the orchestrator as background tasks.
"""

import asyncio
import logging
import weakref
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Dict, List, Optional

from namesmith.config import Settings
from namesmith.exceptions import GenerationRejectedError, GenerationValidationError
from namesmith.models import GenerationMode, GenerationSession, GenerationStrategy
from namesmith.services.access_guard import AccessDecision, AccessGuard, DenialReason, Reservation
from namesmith.services.cost_service import CostTrackingService
from namesmith.services.model_registry import ModelConfig, ModelRegistry, RegistrySnapshot
from namesmith.services.orchestrator import GenerationOrchestrator
from namesmith.services.preferences_service import PreferencesService
from namesmith.services.progress import ProgressBroker, ProgressEvent
from namesmith.services.session_service import SessionStore

logger = logging.getLogger(__name__)


@dataclass
class GenerationRequest:
    """
    One inbound generation request.
    Fields left as None fall back to the user's stored preferences.
    """
    user_id: str
    business_description: str
    requested_models: Optional[List[str]] = None
    generation_mode: Optional[str] = None
    deep_thinking: Optional[bool] = None
    generation_strategy: GenerationStrategy = GenerationStrategy.PARALLEL
    custom_parameters: Dict[str, Any] = field(default_factory=dict)


def select_models(
    registry: ModelRegistry,
    snapshot: RegistrySnapshot,
    requested: List[str],
    strategy: GenerationStrategy,
) -> List[ModelConfig]:
    """Apply the fan-out strategy to the resolved request"""
    resolved = registry.resolve(requested, snapshot=snapshot)
    strategy = GenerationStrategy(strategy)

    if strategy == GenerationStrategy.QUICK:
        return resolved[:1]
    if strategy == GenerationStrategy.COMPREHENSIVE:
        chosen = {m.model_id for m in resolved}
        return resolved + [m for m in snapshot.available() if m.model_id not in chosen]
    return resolved


class GenerationService:
    """Accepts generation requests and tracks their background runs"""

    def __init__(
        self,
        store: SessionStore,
        registry: ModelRegistry,
        guard: AccessGuard,
        preferences: PreferencesService,
        cost_service: CostTrackingService,
        orchestrator: GenerationOrchestrator,
        broker: ProgressBroker,
        settings: Settings,
    ):
        self.store = store
        self.registry = registry
        self.guard = guard
        self.preferences = preferences
        self.cost_service = cost_service
        self.orchestrator = orchestrator
        self.broker = broker
        self.settings = settings
        self._tasks: Dict[str, asyncio.Task] = {}
        # Entries disappear once no submit is holding or waiting on the lock
        self._user_locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = weakref.WeakValueDictionary()

    # =========================================================================
    # SUBMISSION
    # =========================================================================

    def _user_lock(self, user_id: str) -> asyncio.Lock:
        lock = self._user_locks.get(user_id)
        if lock is None:
            lock = asyncio.Lock()
            self._user_locks[user_id] = lock
        return lock

    def _validate_description(self, description: str) -> str:
        description = (description or "").strip()
        if not description:
            raise GenerationValidationError("Business description is required")
        if len(description) > self.settings.AI_MAX_DESCRIPTION_LENGTH:
            raise GenerationValidationError(
                f"Business description must be at most {self.settings.AI_MAX_DESCRIPTION_LENGTH} characters"
            )
        return description

    async def submit(self, request: GenerationRequest) -> GenerationSession:
        """
        Create a pending session and start generating in the background.

        Raises:
            GenerationValidationError: Bad input, unknown or unavailable models
            GenerationRejectedError: Rate limit, budget, maintenance or concurrency cap
        """
        description = self._validate_description(request.business_description)
        prefs = await self.preferences.get_or_create(request.user_id)

        if request.requested_models is None:
            requested = prefs.preferred_models_ordered()
        else:
            requested = list(request.requested_models)
        if not requested:
            raise GenerationValidationError("At least one model must be requested")

        try:
            mode = GenerationMode(request.generation_mode or prefs.default_generation_mode)
        except ValueError:
            raise GenerationValidationError(f"Invalid generation mode: {request.generation_mode}")

        deep_thinking = prefs.default_deep_thinking if request.deep_thinking is None else request.deep_thinking
        custom_parameters = {**(prefs.custom_parameters or {}), **(request.custom_parameters or {})}

        snapshot = self.registry.snapshot()
        models = select_models(self.registry, snapshot, requested, request.generation_strategy)

        prompt = self.orchestrator.prompt_builder.build(description, mode, deep_thinking)
        estimate = self.cost_service.estimate_generation_cost(models, prompt, self.orchestrator.providers)

        async with self._user_lock(request.user_id):
            active = await self.store.count_active(request.user_id)
            if active >= prefs.max_concurrent_generations:
                raise GenerationRejectedError(AccessDecision.deny(
                    DenialReason.CONCURRENCY_LIMITED,
                    f"You already have {active} generations in progress "
                    f"(limit {prefs.max_concurrent_generations})",
                ))

            decision = await self.guard.authorize(request.user_id, len(models), estimate)
            if not decision.allowed:
                raise GenerationRejectedError(decision)

            try:
                session = await self.store.create(
                    user_id=request.user_id,
                    business_description=description,
                    generation_mode=mode,
                    deep_thinking=deep_thinking,
                    requested_models=[m.model_id for m in models],
                    generation_strategy=request.generation_strategy,
                    custom_parameters=custom_parameters,
                )
            except Exception:
                await self.guard.release(decision.reservation, refund_rate_slot=True)
                raise

        logger.info(
            f"Generation {session.session_id} accepted for {request.user_id}: "
            f"{len(models)} models, estimate ${estimate}"
        )

        task = asyncio.create_task(
            self._run(session, models, decision.reservation),
            name=f"generation:{session.session_id}",
        )
        self._tasks[session.session_id] = task
        task.add_done_callback(lambda _: self._tasks.pop(session.session_id, None))
        return session

    async def _run(
        self,
        session: GenerationSession,
        models: List[ModelConfig],
        reservation: Reservation,
    ) -> Optional[GenerationSession]:
        try:
            return await self.orchestrator.generate(
                session_id=session.session_id,
                user_id=session.user_id,
                models=models,
                business_description=session.business_description,
                mode=session.generation_mode,
                deep_thinking=session.deep_thinking,
                custom_parameters=session.custom_parameters,
                reservation=reservation,
            )
        except Exception:
            # Already recorded on the session by the orchestrator
            logger.error(f"Background generation {session.session_id} ended with an error")
            return None

    # =========================================================================
    # QUERIES
    # =========================================================================

    async def wait(self, session_id: str) -> GenerationSession:
        """Block until the background run for a session has finished"""
        task = self._tasks.get(session_id)
        if task is not None:
            await asyncio.shield(task)
        return await self.store.get(session_id)

    async def status(self, session_id: str, user_id: str) -> Dict[str, Any]:
        session = await self.store.get(session_id, user_id)
        return session.status_snapshot()

    async def list_sessions(self, user_id: str, limit: int = 20) -> List[GenerationSession]:
        return await self.store.list_for_user(user_id, limit=limit)

    async def events(self, session_id: str, user_id: str) -> AsyncIterator[ProgressEvent]:
        """
        Current state first, then live progress until the session is terminal.
        Subscribes before reading so no event between the two is lost.
        """
        queue = self.broker.subscribe(session_id)
        try:
            session = await self.store.get(session_id, user_id)
            current = ProgressEvent.from_session(session)
            yield current
            if current.is_terminal:
                return

            async for event in self.broker.stream(session_id, queue=queue):
                if event.progress_percentage < current.progress_percentage and not event.is_terminal:
                    continue
                yield event
        finally:
            self.broker.unsubscribe(session_id, queue)

    # =========================================================================
    # CANCELLATION / SHUTDOWN
    # =========================================================================

    async def cancel(self, session_id: str, user_id: str) -> GenerationSession:
        """
        Raises:
            SessionNotFoundError: Unknown session or another user's
            InvalidTransitionError: Session already finished
        """
        session = await self.store.cancel(session_id, user_id)
        signalled = self.orchestrator.abort(session)
        if signalled:
            logger.info(f"Signalled {signalled} in-flight model calls for {session_id}")
        return session

    async def shutdown(self) -> None:
        """Cancel background runs; their sessions are failed by the stale-session job"""
        tasks = list(self._tasks.values())
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks.clear()

    def active_sessions(self) -> List[str]:
        return [sid for sid, task in self._tasks.items() if not task.done()]
