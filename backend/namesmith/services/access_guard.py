"""
Access Guard
Per-user sliding-window rate limits plus global daily/monthly budget caps.

Checks run in a fixed order: hourly window, daily window, daily budget,
monthly budget, system maintenance flag. Every counter change is an atomic
Redis operation; a later denial undoes the earlier increments, so a denied
request leaves no trace. Missing budget counters are rebuilt from the usage
log. Any Redis or usage-log failure denies the request.
"""

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Awaitable, Callable, Dict, List, Optional, Tuple

import redis.asyncio as redis
from redis.exceptions import RedisError
from sqlalchemy.exc import SQLAlchemyError

from namesmith.config import Settings
from namesmith.services.model_registry import ModelConfig, ModelRegistry
from namesmith.utils.cache import (
    BudgetCounter,
    RateWindow,
    SlidingWindowLimiter,
    from_micros,
    to_micros,
)
from namesmith.utils.security import generate_request_token

logger = logging.getLogger(__name__)

SpendLedger = Callable[[datetime], Awaitable[Tuple[Decimal, Decimal]]]


class DenialReason(str, Enum):
    RATE_LIMITED = "rate_limited"
    BUDGET_EXCEEDED = "budget_exceeded"
    MAINTENANCE_MODE = "maintenance_mode"
    SERVICE_UNAVAILABLE = "service_unavailable"
    CONCURRENCY_LIMITED = "concurrency_limited"


@dataclass
class Reservation:
    """What an allowed request holds until its session finishes"""
    user_id: str
    member: str
    windows: Tuple[RateWindow, ...]
    budget_keys: List[str] = field(default_factory=list)
    reserved_micros: int = 0
    settled: bool = False

    @property
    def reserved_cost(self) -> Decimal:
        return from_micros(self.reserved_micros)


@dataclass
class AccessDecision:
    """Allow, or Deny with a machine-readable reason"""
    allowed: bool
    reason: Optional[str] = None
    retry_after: Optional[int] = None
    message: Optional[str] = None
    reservation: Optional[Reservation] = None

    @classmethod
    def allow(cls, reservation: Reservation) -> "AccessDecision":
        return cls(allowed=True, reservation=reservation)

    @classmethod
    def deny(
        cls,
        reason: DenialReason,
        message: str,
        retry_after: Optional[int] = None,
    ) -> "AccessDecision":
        return cls(allowed=False, reason=reason.value, message=message, retry_after=retry_after)


class AccessGuard:
    """Gatekeeper for new generation requests"""

    HOUR = 3600
    DAY = 86400
    MINUTE = 60

    def __init__(
        self,
        redis_client: redis.Redis,
        registry: ModelRegistry,
        settings: Settings,
        clock: Callable[[], float] = time.time,
        spend_ledger: Optional[SpendLedger] = None,
    ):
        self.registry = registry
        self.settings = settings
        self.clock = clock
        self.limiter = SlidingWindowLimiter(redis_client)
        self.budget = BudgetCounter(redis_client)
        # (daily, monthly) spend from the usage log, used to rebuild lost counters
        self.spend_ledger = spend_ledger

    def user_windows(self) -> Tuple[RateWindow, ...]:
        return (
            RateWindow("hourly", self.settings.AI_MAX_GENERATIONS_PER_HOUR, self.HOUR),
            RateWindow("daily", self.settings.AI_MAX_GENERATIONS_PER_DAY, self.DAY),
        )

    def _now(self) -> Tuple[float, datetime]:
        now = self.clock()
        return now, datetime.fromtimestamp(now, tz=timezone.utc)

    # =========================================================================
    # AUTHORIZATION
    # =========================================================================

    async def authorize(
        self,
        user_id: str,
        requested_model_count: int,
        estimated_cost: Optional[Decimal] = None,
    ) -> AccessDecision:
        """
        Decide whether a generation request may start.

        On allow, the user's window slots and the estimated cost stay
        reserved until settle()/release() is called with the reservation.
        """
        if estimated_cost is None:
            estimated_cost = self.settings.AI_DEFAULT_COST_ESTIMATE_PER_MODEL * max(1, requested_model_count)

        now, when = self._now()
        windows = self.user_windows()
        amount = to_micros(estimated_cost)

        try:
            await self._seed_budget(when)
            acquired = await self.limiter.acquire(user_id, windows, now, generate_request_token())
            if not acquired.allowed:
                window = acquired.exceeded
                logger.info(f"Rate limit hit for {user_id}: {window.name} limit {window.limit}")
                return AccessDecision.deny(
                    DenialReason.RATE_LIMITED,
                    f"{window.name.capitalize()} generation limit of {window.limit} reached",
                    retry_after=acquired.retry_after,
                )

            exceeded, budget_keys = await self.budget.reserve(
                amount,
                to_micros(self.settings.AI_DAILY_BUDGET_LIMIT),
                to_micros(self.settings.AI_MONTHLY_BUDGET_LIMIT),
                when,
            )
            if exceeded:
                await self.limiter.release(user_id, windows, acquired.member)
                logger.info(f"Budget guard denied {user_id}: {exceeded} budget exhausted")
                return AccessDecision.deny(
                    DenialReason.BUDGET_EXCEEDED,
                    f"Global {exceeded} AI budget has been reached",
                )

            if self.registry.maintenance_mode:
                await self.limiter.release(user_id, windows, acquired.member)
                await self.budget.adjust(budget_keys, -amount)
                return AccessDecision.deny(
                    DenialReason.MAINTENANCE_MODE,
                    "AI generation is temporarily unavailable for maintenance",
                )
        except (RedisError, SQLAlchemyError) as e:
            logger.error(f"Usage counters unavailable, denying request for {user_id}: {e}")
            return AccessDecision.deny(
                DenialReason.SERVICE_UNAVAILABLE,
                "Usage limits cannot be verified right now, please retry shortly",
            )

        return AccessDecision.allow(Reservation(
            user_id=user_id,
            member=acquired.member,
            windows=windows,
            budget_keys=budget_keys,
            reserved_micros=amount,
        ))

    async def _seed_budget(self, when: datetime) -> None:
        """Rebuild missing budget counters from the usage log before reserving"""
        if self.spend_ledger is None or await self.budget.has_totals(when):
            return
        daily, monthly = await self.spend_ledger(when)
        await self.budget.seed(when, to_micros(daily), to_micros(monthly))
        logger.info(f"Budget counters seeded from usage log: daily {daily}, monthly {monthly}")

    async def settle(self, reservation: Reservation, actual_cost: Decimal) -> None:
        """Replace the reserved estimate with the real spend"""
        if reservation.settled:
            return
        delta = to_micros(actual_cost) - reservation.reserved_micros
        try:
            await self.budget.adjust(reservation.budget_keys, delta)
        except RedisError as e:
            logger.error(
                f"Could not settle budget for {reservation.user_id} "
                f"(reserved {reservation.reserved_cost}, actual {actual_cost}): {e}"
            )
            return
        reservation.settled = True

    async def release(self, reservation: Reservation, refund_rate_slot: bool = False) -> None:
        """
        Drop a reservation without spend.
        refund_rate_slot also returns the user's window slot, used when the
        request never turned into a session.
        """
        await self.settle(reservation, Decimal("0"))
        if refund_rate_slot:
            try:
                await self.limiter.release(reservation.user_id, reservation.windows, reservation.member)
            except RedisError as e:
                logger.error(f"Could not release rate slot for {reservation.user_id}: {e}")

    # =========================================================================
    # PER-MODEL QUOTA
    # =========================================================================

    async def acquire_model_slot(self, model: ModelConfig) -> bool:
        """Take one of the model's per-minute request slots; False if none left"""
        window = RateWindow("minute", model.rate_limit_per_minute, self.MINUTE)
        now, _ = self._now()
        try:
            acquired = await self.limiter.acquire(
                f"model:{model.model_id}", (window,), now, generate_request_token()
            )
        except RedisError as e:
            logger.error(f"Model quota unavailable for {model.model_id}: {e}")
            return False
        return acquired.allowed

    # =========================================================================
    # REPORTING
    # =========================================================================

    async def user_usage(self, user_id: str) -> Dict[str, Dict[str, int]]:
        now, _ = self._now()
        usage = {}
        for window in self.user_windows():
            used = await self.limiter.count(user_id, window, now)
            usage[window.name] = {
                "used": used,
                "limit": window.limit,
                "remaining": max(0, window.limit - used),
            }
        return usage

    async def ping(self) -> bool:
        return bool(await self.limiter.client.ping())

    async def committed_spend(self) -> Tuple[Decimal, Decimal]:
        """(daily, monthly) spend including in-flight reservations"""
        _, when = self._now()
        daily, monthly = await self.budget.totals(when)
        return from_micros(daily), from_micros(monthly)
