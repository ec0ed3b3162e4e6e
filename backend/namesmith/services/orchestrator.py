"""
Generation Orchestrator
Fans one request out to every selected model concurrently and folds the
per-model outcomes back into the session.

Flow:
1. Cache lookup on the request content hash; a hit completes the session
   without any provider call.
2. pending -> running at the initial progress value.
3. One task per model: quota slot, provider call with retries inside the
   model's timeout, strict name parsing. A task never raises; failures come
   back as ModelOutcome records.
4. Each finished task advances progress through the configured band. The
   value derives from the number of finished tasks, never from which model
   finished.
5. At least one success -> completed (+ cache write); none -> failed with an
   aggregated message. Spend is recorded either way.

Cancellation is cooperative: abort() cancels the in-flight tasks, and the
status compare-and-swap in the session store rejects any late write.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Awaitable, Callable, Dict, List, Optional

from namesmith.adapters.llm import (
    BaseLLMAdapter,
    LLMAdapterError,
    LLMConfig,
    LLMProviderType,
    LLMResponse,
)
from namesmith.adapters.parsing import NameParser
from namesmith.config import Settings
from namesmith.exceptions import InvalidTransitionError, NamesmithError
from namesmith.models import GenerationMode, GenerationSession
from namesmith.services.access_guard import AccessGuard, Reservation
from namesmith.services.cost_service import CostTrackingService
from namesmith.services.generation_cache import GenerationCacheService
from namesmith.services.model_registry import ModelConfig
from namesmith.services.progress import ProgressBroker, ProgressEvent
from namesmith.services.prompt_builder import NamingPrompt, PromptBuilder
from namesmith.services.session_service import SessionStore
from namesmith.utils.security import generate_input_hash

logger = logging.getLogger(__name__)


@dataclass
class ModelOutcome:
    """What one model task produced"""
    model_id: str
    provider: str
    names: List[str] = field(default_factory=list)
    error: Optional[str] = None
    error_category: Optional[str] = None
    attempts: int = 0
    input_tokens: int = 0
    output_tokens: int = 0
    cost_usd: Decimal = Decimal("0")
    response_time_ms: int = 0

    @property
    def succeeded(self) -> bool:
        return self.error is None and bool(self.names)

    def fail(self, category: str, message: str) -> "ModelOutcome":
        self.error_category = category
        self.error = message
        self.names = []
        return self

    def metrics(self) -> Dict[str, Any]:
        return {
            "succeeded": self.succeeded,
            "names_generated": len(self.names),
            "attempts": self.attempts,
            "input_tokens": self.input_tokens,
            "output_tokens": self.output_tokens,
            "cost_usd": str(self.cost_usd),
            "response_time_ms": self.response_time_ms,
            "error_category": self.error_category,
        }


class GenerationOrchestrator:
    """Runs generation sessions against the provider pool"""

    def __init__(
        self,
        store: SessionStore,
        cache: GenerationCacheService,
        cost_service: CostTrackingService,
        guard: AccessGuard,
        providers: Dict[LLMProviderType, BaseLLMAdapter],
        broker: ProgressBroker,
        settings: Settings,
        prompt_builder: Optional[PromptBuilder] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.store = store
        self.cache = cache
        self.cost_service = cost_service
        self.guard = guard
        self.providers = providers
        self.broker = broker
        self.settings = settings
        self.prompt_builder = prompt_builder or PromptBuilder(names_per_model=settings.AI_NAMES_PER_MODEL)
        self._sleep = sleep
        self._inflight: Dict[str, Dict[str, asyncio.Task]] = {}

    # =========================================================================
    # ENTRY POINTS
    # =========================================================================

    async def generate(
        self,
        session_id: str,
        user_id: str,
        models: List[ModelConfig],
        business_description: str,
        mode: GenerationMode,
        deep_thinking: bool,
        custom_parameters: Optional[Dict[str, Any]] = None,
        reservation: Optional[Reservation] = None,
    ) -> GenerationSession:
        """Drive one pending session to a terminal state and return it"""
        mode = GenerationMode(mode)
        input_hash = generate_input_hash(business_description, mode.value, deep_thinking)

        try:
            cached = await self.cache.get(input_hash)
            if cached is not None:
                return await self._complete_from_cache(session_id, models, cached, input_hash, reservation)

            return await self._fan_out(
                session_id=session_id,
                user_id=user_id,
                models=models,
                business_description=business_description,
                mode=mode,
                deep_thinking=deep_thinking,
                custom_parameters=custom_parameters or {},
                input_hash=input_hash,
                reservation=reservation,
            )
        except InvalidTransitionError as e:
            # Cancelled before dispatch or before the final write
            logger.info(f"Generation {session_id} stopped: {e}")
            if reservation is not None:
                await self.guard.release(reservation)
            return await self.store.get(session_id)
        except Exception:
            logger.exception(f"Generation {session_id} failed unexpectedly")
            if reservation is not None:
                await self.guard.release(reservation)
            await self._fail_if_running(session_id, "Generation failed due to an internal error")
            raise

    def abort(self, session: GenerationSession) -> int:
        """
        Cancel in-flight provider calls for a session that was just cancelled.
        Returns the number of tasks signalled.
        """
        tasks = self._inflight.get(session.session_id, {})
        signalled = 0
        for task in tasks.values():
            if not task.done():
                task.cancel()
                signalled += 1
        self.broker.publish(ProgressEvent.from_session(session))
        return signalled

    def is_running(self, session_id: str) -> bool:
        return session_id in self._inflight

    # =========================================================================
    # CACHE PATH
    # =========================================================================

    async def _complete_from_cache(
        self,
        session_id: str,
        models: List[ModelConfig],
        cached: Dict[str, List[str]],
        input_hash: str,
        reservation: Optional[Reservation],
    ) -> GenerationSession:
        session = await self.store.mark_running(session_id, step="Loading cached results...")
        self.broker.publish(ProgressEvent.from_session(session))

        if reservation is not None:
            await self.guard.release(reservation)

        session = await self.store.mark_completed(
            session_id,
            results=cached,
            metadata={
                "cached": True,
                "input_hash": input_hash,
                "models_dispatched": [m.model_id for m in models],
                "models_completed": list(cached),
                "model_errors": {},
                "total_cost_usd": "0",
                "total_execution_time_ms": 0,
            },
        )
        self.broker.publish(ProgressEvent.from_session(session))
        return session

    # =========================================================================
    # FAN-OUT PATH
    # =========================================================================

    async def _fan_out(
        self,
        session_id: str,
        user_id: str,
        models: List[ModelConfig],
        business_description: str,
        mode: GenerationMode,
        deep_thinking: bool,
        custom_parameters: Dict[str, Any],
        input_hash: str,
        reservation: Optional[Reservation],
    ) -> GenerationSession:
        session = await self.store.mark_running(session_id)
        self.broker.publish(ProgressEvent.from_session(session))

        prompt = self.prompt_builder.build(business_description, mode, deep_thinking)
        started = time.perf_counter()

        tasks = {
            model.model_id: asyncio.create_task(
                self._run_model(model, prompt, deep_thinking, custom_parameters),
                name=f"{session_id}:{model.model_id}",
            )
            for model in models
        }
        self._inflight[session_id] = tasks

        outcomes: Dict[str, ModelOutcome] = {}
        still_running = True
        try:
            still_running = await self._collect(session_id, models, tasks, outcomes)
        finally:
            self._inflight.pop(session_id, None)
            for task in tasks.values():
                if not task.done():
                    task.cancel()

        elapsed_ms = int((time.perf_counter() - started) * 1000)
        ordered = [outcomes[m.model_id] for m in models if m.model_id in outcomes]
        total_cost = await self.cost_service.record_generation(user_id, session_id, ordered, reservation)

        if not still_running:
            logger.info(f"Generation {session_id} no longer running, discarding {len(ordered)} results")
            return await self.store.get(session_id)

        results = {o.model_id: list(o.names) for o in ordered if o.succeeded}
        model_errors = {o.model_id: o.error for o in ordered if not o.succeeded}
        for model in models:
            if model.model_id not in outcomes:
                model_errors[model.model_id] = "Cancelled"

        metadata = {
            "cached": False,
            "input_hash": input_hash,
            "prompt_version": prompt.template_version,
            "models_dispatched": [m.model_id for m in models],
            "models_completed": list(results),
            "model_errors": model_errors,
            "model_metrics": {o.model_id: o.metrics() for o in ordered},
            "total_cost_usd": str(total_cost),
            "total_execution_time_ms": elapsed_ms,
        }

        if results:
            session = await self.store.mark_completed(session_id, results=results, metadata=metadata)
            self.broker.publish(ProgressEvent.from_session(session))
            await self.cache.put(input_hash, business_description, mode.value, deep_thinking, results)
            logger.info(
                f"Generation {session_id} completed: {len(results)}/{len(models)} models, ${total_cost}"
            )
        else:
            message = "All models failed: " + "; ".join(
                f"{model_id} ({error})" for model_id, error in model_errors.items()
            )
            session = await self.store.mark_failed(session_id, message, metadata)
            self.broker.publish(ProgressEvent.from_session(session))
            logger.warning(f"Generation {session_id} failed: {message}")

        return session

    async def _collect(
        self,
        session_id: str,
        models: List[ModelConfig],
        tasks: Dict[str, asyncio.Task],
        outcomes: Dict[str, ModelOutcome],
    ) -> bool:
        """
        Wait for model tasks, advancing progress as each finishes.
        Returns False as soon as the session is found to be no longer running.
        """
        display_names = {m.model_id: m.display_name for m in models}
        total = len(tasks)
        finished = 0
        pending = set(tasks.values())

        while pending:
            done, pending = await asyncio.wait(pending, return_when=asyncio.FIRST_COMPLETED)
            for task in done:
                if task.cancelled():
                    continue

                outcome = task.result()
                outcomes[outcome.model_id] = outcome
                finished += 1

                verb = "completed" if outcome.succeeded else "failed"
                step = f"{display_names[outcome.model_id]} {verb} ({finished}/{total})"
                progress = self._band_progress(finished, total)

                if not await self.store.update_progress(session_id, progress, step):
                    for other in pending:
                        other.cancel()
                    return False

                self.broker.publish(ProgressEvent(
                    session_id=session_id,
                    status="running",
                    progress_percentage=progress,
                    current_step=step,
                    model_id=outcome.model_id,
                ))

        return True

    def _band_progress(self, finished: int, total: int) -> int:
        start = self.settings.AI_PROGRESS_BAND_START
        end = self.settings.AI_PROGRESS_BAND_END
        if total <= 0:
            return end
        return start + (end - start) * finished // total

    # =========================================================================
    # SINGLE MODEL
    # =========================================================================

    def _llm_config(
        self,
        model: ModelConfig,
        deep_thinking: bool,
        custom_parameters: Dict[str, Any],
    ) -> LLMConfig:
        temperature = model.deep_thinking_temperature if deep_thinking else model.temperature
        if custom_parameters.get("temperature") is not None:
            temperature = float(custom_parameters["temperature"])

        max_tokens = model.max_tokens
        if custom_parameters.get("max_tokens") is not None:
            max_tokens = int(custom_parameters["max_tokens"])

        return LLMConfig(
            model=model.provider_model,
            temperature=temperature,
            max_tokens=max_tokens,
            timeout=model.timeout_seconds,
            top_p=custom_parameters.get("top_p"),
        )

    async def _run_model(
        self,
        model: ModelConfig,
        prompt: NamingPrompt,
        deep_thinking: bool,
        custom_parameters: Dict[str, Any],
    ) -> ModelOutcome:
        outcome = ModelOutcome(model_id=model.model_id, provider=model.provider.value)

        adapter = self.providers.get(model.provider)
        if adapter is None:
            return outcome.fail("authentication", f"No credentials configured for {model.provider.value}")

        if not await self.guard.acquire_model_slot(model):
            return outcome.fail("rate_limit", "Rate limit exceeded")

        config = self._llm_config(model, deep_thinking, custom_parameters)
        started = time.perf_counter()
        try:
            response = await asyncio.wait_for(
                self._call_with_retry(adapter, model, prompt, config, outcome),
                timeout=model.timeout_seconds,
            )
        except asyncio.TimeoutError:
            outcome.fail("timeout", f"Timed out after {model.timeout_seconds:g}s")
        except LLMAdapterError as e:
            outcome.fail(e.category, str(e))
        except Exception as e:
            logger.exception(f"Unexpected error from {model.model_id}")
            outcome.fail("unknown", str(e) or e.__class__.__name__)
        else:
            self._apply_response(model, response, outcome)
        finally:
            outcome.response_time_ms = int((time.perf_counter() - started) * 1000)

        if outcome.error:
            logger.warning(f"Model {model.model_id} failed ({outcome.error_category}): {outcome.error}")
        return outcome

    async def _call_with_retry(
        self,
        adapter: BaseLLMAdapter,
        model: ModelConfig,
        prompt: NamingPrompt,
        config: LLMConfig,
        outcome: ModelOutcome,
    ) -> LLMResponse:
        max_attempts = max(1, self.settings.LLM_MAX_RETRIES)
        for attempt in range(1, max_attempts + 1):
            outcome.attempts = attempt
            try:
                return await adapter.execute(prompt.user, config, system_prompt=prompt.system)
            except LLMAdapterError as e:
                if not e.transient or attempt >= max_attempts:
                    raise
                delay = self.settings.LLM_RETRY_DELAY * attempt
                logger.info(
                    f"{model.model_id} attempt {attempt}/{max_attempts} failed ({e.category}), "
                    f"retrying in {delay:g}s"
                )
                await self._sleep(delay)

    def _apply_response(self, model: ModelConfig, response: LLMResponse, outcome: ModelOutcome) -> None:
        if response.usage is not None:
            outcome.input_tokens = response.usage.prompt_tokens
            outcome.output_tokens = response.usage.completion_tokens
        outcome.cost_usd = model.cost_for_tokens(outcome.input_tokens + outcome.output_tokens)

        parsed = NameParser(limit=self.settings.AI_NAMES_PER_MODEL).parse(response.content)
        if parsed.is_empty:
            outcome.fail("parse_error", "No parseable names in response")
            return
        outcome.names = parsed.names

    async def _fail_if_running(self, session_id: str, message: str) -> None:
        try:
            try:
                await self.store.mark_failed(session_id, message)
            except InvalidTransitionError as e:
                if e.current != "pending":
                    raise
                await self.store.mark_running(session_id)
                await self.store.mark_failed(session_id, message)
        except NamesmithError as e:
            logger.info(f"Session {session_id} left as is: {e}")
