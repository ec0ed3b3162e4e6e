"""
Cost Tracking Service
Usage logging, spend reconciliation and budget reporting.

Enforcement lives in the access guard (Redis counters); this service keeps
the durable per-call usage log that budget reporting is derived from.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Callable, Dict, Iterable, List, Optional, Tuple

from redis.exceptions import RedisError
from sqlalchemy import case, func, select
from sqlalchemy.ext.asyncio import async_sessionmaker

from namesmith.adapters.llm import BaseLLMAdapter, LLMProviderType
from namesmith.config import Settings
from namesmith.models import AIUsageLog
from namesmith.services.access_guard import AccessGuard, Reservation
from namesmith.services.model_registry import ModelConfig
from namesmith.services.prompt_builder import NamingPrompt
from namesmith.utils.clock import utcnow

if TYPE_CHECKING:
    from namesmith.services.orchestrator import ModelOutcome

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


@dataclass
class BudgetWindow:
    """Spend against one budget period"""
    period: str
    limit: Decimal
    spent: Decimal
    committed: Decimal  # spent plus in-flight reservations
    alert_threshold: int

    @property
    def remaining(self) -> Decimal:
        return max(ZERO, self.limit - self.committed)

    @property
    def percentage(self) -> float:
        if self.limit <= 0:
            return 100.0
        return round(float(self.committed / self.limit * 100), 1)

    @property
    def exceeded(self) -> bool:
        return self.committed >= self.limit

    @property
    def alert_needed(self) -> bool:
        return self.percentage >= self.alert_threshold

    def to_dict(self) -> Dict[str, Any]:
        return {
            "period": self.period,
            "limit": self.limit,
            "spent": self.spent,
            "committed": self.committed,
            "remaining": self.remaining,
            "percentage": self.percentage,
            "exceeded": self.exceeded,
            "alert_needed": self.alert_needed,
        }


@dataclass
class BudgetState:
    daily: BudgetWindow
    monthly: BudgetWindow

    def to_dict(self) -> Dict[str, Any]:
        return {"daily": self.daily.to_dict(), "monthly": self.monthly.to_dict()}


class CostTrackingService:
    """Records what generations cost and reports it"""

    def __init__(
        self,
        session_factory: async_sessionmaker,
        guard: AccessGuard,
        settings: Settings,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.session_factory = session_factory
        self.guard = guard
        self.settings = settings
        self.clock = clock

    # =========================================================================
    # ESTIMATION
    # =========================================================================

    def estimate_generation_cost(
        self,
        models: Iterable[ModelConfig],
        prompt: NamingPrompt,
        providers: Optional[Dict[LLMProviderType, BaseLLMAdapter]] = None,
    ) -> Decimal:
        """Upper-bound cost: prompt tokens plus each model's full max_tokens"""
        providers = providers or {}
        total = ZERO
        for model in models:
            adapter = providers.get(model.provider)
            if adapter is not None:
                prompt_tokens = adapter.estimate_tokens(prompt.full_text)
            else:
                prompt_tokens = max(1, len(prompt.full_text) // 4)
            total += model.cost_for_tokens(prompt_tokens + model.max_tokens)
        return total

    # =========================================================================
    # RECORDING
    # =========================================================================

    async def record_generation(
        self,
        user_id: str,
        session_id: str,
        outcomes: List["ModelOutcome"],
        reservation: Optional[Reservation] = None,
    ) -> Decimal:
        """Write one usage row per attempted call and settle the reservation"""
        attempted = [o for o in outcomes if o.attempts > 0]
        total_cost = sum((o.cost_usd for o in attempted), ZERO)

        if attempted:
            now = self.clock()
            async with self.session_factory() as db:
                db.add_all([
                    AIUsageLog(
                        user_id=user_id,
                        session_id=session_id,
                        model_id=o.model_id,
                        provider=o.provider,
                        input_tokens=o.input_tokens,
                        output_tokens=o.output_tokens,
                        total_tokens=o.input_tokens + o.output_tokens,
                        cost_usd=o.cost_usd,
                        response_time_ms=o.response_time_ms,
                        names_generated=len(o.names),
                        successful=o.succeeded,
                        error_category=o.error_category,
                        created_at=now,
                    )
                    for o in attempted
                ])
                await db.commit()

        if reservation is not None:
            await self.guard.settle(reservation, total_cost)

        if total_cost > 0:
            await self._check_alert_threshold()
        return total_cost

    async def _check_alert_threshold(self) -> None:
        try:
            state = await self.get_budget_state()
        except RedisError as e:
            logger.error(f"Budget state unavailable for alert check: {e}")
            return
        for window in (state.daily, state.monthly):
            if window.alert_needed:
                logger.warning(
                    f"AI {window.period} budget at {window.percentage}% "
                    f"(${window.committed} of ${window.limit})"
                )

    # =========================================================================
    # REPORTING
    # =========================================================================

    async def _spent_since(self, start: datetime) -> Decimal:
        async with self.session_factory() as db:
            spent = await db.scalar(
                select(func.coalesce(func.sum(AIUsageLog.cost_usd), 0)).where(AIUsageLog.created_at >= start)
            )
        return Decimal(str(spent or 0))

    async def logged_spend(self, when: datetime) -> Tuple[Decimal, Decimal]:
        """(daily, monthly) spend in the usage log for the UTC day and month of `when`"""
        day_start = when.replace(tzinfo=None, hour=0, minute=0, second=0, microsecond=0)
        month_start = day_start.replace(day=1)
        return await self._spent_since(day_start), await self._spent_since(month_start)

    async def get_budget_state(self) -> BudgetState:
        daily_spent, monthly_spent = await self.logged_spend(self.clock())
        daily_committed, monthly_committed = await self.guard.committed_spend()

        threshold = self.settings.AI_COST_ALERT_THRESHOLD
        return BudgetState(
            daily=BudgetWindow(
                period="daily",
                limit=self.settings.AI_DAILY_BUDGET_LIMIT,
                spent=daily_spent,
                committed=max(daily_spent, daily_committed),
                alert_threshold=threshold,
            ),
            monthly=BudgetWindow(
                period="monthly",
                limit=self.settings.AI_MONTHLY_BUDGET_LIMIT,
                spent=monthly_spent,
                committed=max(monthly_spent, monthly_committed),
                alert_threshold=threshold,
            ),
        )

    async def get_user_usage(self, user_id: str, days: int = 30) -> Dict[str, Any]:
        """Usage summary for one user over the last `days` days"""
        start = self.clock() - timedelta(days=days)

        async with self.session_factory() as db:
            totals = (await db.execute(
                select(
                    func.count(func.distinct(AIUsageLog.session_id)),
                    func.count(AIUsageLog.id),
                    func.sum(case((AIUsageLog.successful.is_(True), 1), else_=0)),
                    func.coalesce(func.sum(AIUsageLog.total_tokens), 0),
                    func.coalesce(func.sum(AIUsageLog.cost_usd), 0),
                    func.avg(AIUsageLog.response_time_ms),
                ).where(AIUsageLog.user_id == user_id, AIUsageLog.created_at >= start)
            )).one()

            by_model = (await db.execute(
                select(
                    AIUsageLog.model_id,
                    func.count(AIUsageLog.id),
                    func.coalesce(func.sum(AIUsageLog.total_tokens), 0),
                    func.coalesce(func.sum(AIUsageLog.cost_usd), 0),
                )
                .where(AIUsageLog.user_id == user_id, AIUsageLog.created_at >= start)
                .group_by(AIUsageLog.model_id)
            )).all()

        sessions, calls, successful, tokens, cost, avg_ms = totals
        calls = int(calls or 0)
        successful = int(successful or 0)

        return {
            "period_days": days,
            "generations": int(sessions or 0),
            "model_calls": calls,
            "successful_calls": successful,
            "failed_calls": calls - successful,
            "success_rate": round(successful / calls * 100, 1) if calls else 0.0,
            "total_tokens": int(tokens or 0),
            "total_cost": Decimal(str(cost or 0)),
            "average_response_time_ms": round(float(avg_ms or 0), 1),
            "model_breakdown": {
                model_id: {
                    "calls": int(count),
                    "tokens": int(model_tokens or 0),
                    "cost": Decimal(str(model_cost or 0)),
                }
                for model_id, count, model_tokens, model_cost in by_model
            },
            "limits": await self.guard.user_usage(user_id),
        }
