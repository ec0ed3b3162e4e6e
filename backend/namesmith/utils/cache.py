"""
Redis utilities
Connection pool plus the atomic counter primitives used for rate limiting and budgets
"""

import math
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, ROUND_CEILING
from typing import List, Optional, Sequence, Tuple

import redis.asyncio as redis
from redis.asyncio.connection import ConnectionPool

from namesmith.config import get_settings

MICROS_PER_DOLLAR = 1_000_000

# Connection pool
_pool: Optional[ConnectionPool] = None


async def get_redis_pool() -> ConnectionPool:
    """Get or create Redis connection pool"""
    global _pool
    if _pool is None:
        settings = get_settings()
        _pool = ConnectionPool.from_url(
            settings.REDIS_URL,
            max_connections=20,
            decode_responses=True,
        )
    return _pool


async def get_redis() -> redis.Redis:
    """Get Redis client"""
    pool = await get_redis_pool()
    return redis.Redis(connection_pool=pool)


async def close_redis():
    """Close Redis connections"""
    global _pool
    if _pool is not None:
        await _pool.disconnect()
        _pool = None


def to_micros(amount: Decimal) -> int:
    """Dollars to integer micro-dollars, rounded up"""
    return int((Decimal(amount) * MICROS_PER_DOLLAR).to_integral_value(rounding=ROUND_CEILING))


def from_micros(micros: int) -> Decimal:
    """Integer micro-dollars to dollars"""
    return (Decimal(int(micros)) / MICROS_PER_DOLLAR).quantize(Decimal("0.000001"))


class RedisStore:
    """Base for key-prefixed Redis helpers"""

    def __init__(self, client: redis.Redis, prefix: str = "namesmith"):
        self.client = client
        self.prefix = prefix

    def _key(self, key: str) -> str:
        """Generate full key with prefix"""
        return f"{self.prefix}:{key}"


@dataclass(frozen=True)
class RateWindow:
    """A named sliding window with a request limit"""
    name: str
    limit: int
    seconds: int


@dataclass
class WindowAcquisition:
    """Outcome of trying to take a slot in one or more windows"""
    allowed: bool
    member: Optional[str] = None
    exceeded: Optional[RateWindow] = None
    retry_after: Optional[int] = None


class SlidingWindowLimiter(RedisStore):
    """
    Sorted-set sliding windows.

    A slot is added to every window and counted inside one MULTI/EXEC, so two
    concurrent requests can never both observe the same count. Requests that
    push a window over its limit remove their own slot again.
    """

    def __init__(self, client: redis.Redis, prefix: str = "namesmith:ratelimit"):
        super().__init__(client, prefix)

    def window_key(self, identity: str, window: RateWindow) -> str:
        return self._key(f"{identity}:{window.name}")

    async def acquire(
        self,
        identity: str,
        windows: Sequence[RateWindow],
        now: float,
        token: str,
    ) -> WindowAcquisition:
        member = f"{now:.6f}:{token}"

        async with self.client.pipeline(transaction=True) as pipe:
            for window in windows:
                key = self.window_key(identity, window)
                pipe.zremrangebyscore(key, "-inf", now - window.seconds)
                pipe.zadd(key, {member: now})
                pipe.zcard(key)
                pipe.expire(key, window.seconds + 1)
            results = await pipe.execute()

        counts = [results[i * 4 + 2] for i in range(len(windows))]
        for window, count in zip(windows, counts):
            if count > window.limit:
                await self.release(identity, windows, member)
                retry_after = await self.retry_after(identity, window, now)
                return WindowAcquisition(allowed=False, exceeded=window, retry_after=retry_after)

        return WindowAcquisition(allowed=True, member=member)

    async def release(self, identity: str, windows: Sequence[RateWindow], member: str) -> None:
        """Give a previously acquired slot back"""
        async with self.client.pipeline(transaction=True) as pipe:
            for window in windows:
                pipe.zrem(self.window_key(identity, window), member)
            await pipe.execute()

    async def retry_after(self, identity: str, window: RateWindow, now: float) -> int:
        """Seconds until the oldest counted request leaves the window"""
        oldest = await self.client.zrange(self.window_key(identity, window), 0, 0, withscores=True)
        if not oldest:
            return 1
        _, score = oldest[0]
        return max(1, math.ceil(float(score) + window.seconds - now))

    async def count(self, identity: str, window: RateWindow, now: float) -> int:
        key = self.window_key(identity, window)
        return await self.client.zcount(key, f"({now - window.seconds}", "+inf")


class BudgetCounter(RedisStore):
    """
    Global spend counters in integer micro-dollars, one key per UTC day and month.
    Reservations are added up front and corrected once the real cost is known.
    """

    DAILY_EXPIRY = 2 * 24 * 3600
    MONTHLY_EXPIRY = 32 * 24 * 3600

    def __init__(self, client: redis.Redis, prefix: str = "namesmith:budget"):
        super().__init__(client, prefix)

    def keys_for(self, when: datetime) -> Tuple[str, str]:
        return (
            self._key(f"daily:{when:%Y%m%d}"),
            self._key(f"monthly:{when:%Y%m}"),
        )

    async def reserve(
        self,
        amount_micros: int,
        daily_cap_micros: int,
        monthly_cap_micros: int,
        when: datetime,
    ) -> Tuple[Optional[str], List[str]]:
        """
        Atomically add the amount to both counters.

        Returns (exceeded, keys) where exceeded is None, "daily" or "monthly".
        When a cap is exceeded the amount is taken back off before returning.
        """
        daily_key, monthly_key = self.keys_for(when)

        async with self.client.pipeline(transaction=True) as pipe:
            pipe.incrby(daily_key, amount_micros)
            pipe.expire(daily_key, self.DAILY_EXPIRY)
            pipe.incrby(monthly_key, amount_micros)
            pipe.expire(monthly_key, self.MONTHLY_EXPIRY)
            results = await pipe.execute()

        daily_total, monthly_total = results[0], results[2]
        exceeded = None
        if daily_total > daily_cap_micros:
            exceeded = "daily"
        elif monthly_total > monthly_cap_micros:
            exceeded = "monthly"

        if exceeded:
            await self.adjust([daily_key, monthly_key], -amount_micros)
        return exceeded, [daily_key, monthly_key]

    async def adjust(self, keys: Sequence[str], delta_micros: int) -> None:
        if delta_micros == 0:
            return
        async with self.client.pipeline(transaction=True) as pipe:
            for key in keys:
                pipe.incrby(key, delta_micros)
            await pipe.execute()

    async def has_totals(self, when: datetime) -> bool:
        """True when both the day and the month counter exist"""
        return await self.client.exists(*self.keys_for(when)) == 2

    async def seed(self, when: datetime, daily_micros: int, monthly_micros: int) -> None:
        """Initialise missing counters; existing values are left alone"""
        daily_key, monthly_key = self.keys_for(when)
        async with self.client.pipeline(transaction=True) as pipe:
            pipe.set(daily_key, daily_micros, ex=self.DAILY_EXPIRY, nx=True)
            pipe.set(monthly_key, monthly_micros, ex=self.MONTHLY_EXPIRY, nx=True)
            await pipe.execute()

    async def totals(self, when: datetime) -> Tuple[int, int]:
        """Current (daily, monthly) counter values in micro-dollars"""
        daily_key, monthly_key = self.keys_for(when)
        daily, monthly = await self.client.mget(daily_key, monthly_key)
        return int(daily or 0), int(monthly or 0)
