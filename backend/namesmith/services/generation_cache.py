"""
Generation Result Cache
Memoizes completed generations by the content hash of the request
"""

import logging
from datetime import timedelta
from typing import Callable, Dict, List, Optional

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import async_sessionmaker

from namesmith.config import Settings
from namesmith.models import GenerationCache
from namesmith.utils.clock import utcnow

logger = logging.getLogger(__name__)


class GenerationCacheService:
    """
    Rows older than the TTL are invisible to get() and are removed by
    purge_expired(). Each read and write touches only its own row.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker,
        settings: Settings,
        clock: Callable = utcnow,
    ):
        self.session_factory = session_factory
        self.settings = settings
        self.clock = clock

    @property
    def ttl(self) -> timedelta:
        return timedelta(minutes=self.settings.AI_CACHE_TTL_MINUTES)

    @property
    def enabled(self) -> bool:
        return self.settings.AI_CACHE_ENABLED

    async def get(self, input_hash: str) -> Optional[Dict[str, List[str]]]:
        """Fresh cached results for the hash, or None"""
        if not self.enabled:
            return None

        cutoff = self.clock() - self.ttl
        async with self.session_factory() as db:
            entry = await db.scalar(
                select(GenerationCache).where(
                    GenerationCache.input_hash == input_hash,
                    GenerationCache.cached_at >= cutoff,
                )
            )
        if entry is None:
            return None

        logger.info(f"Generation cache hit for {input_hash[:12]}")
        return entry.generated_names

    async def put(
        self,
        input_hash: str,
        business_description: str,
        generation_mode: str,
        deep_thinking: bool,
        generated_names: Dict[str, List[str]],
    ) -> None:
        """Insert or refresh the entry for the hash"""
        if not self.enabled:
            return

        values = {
            "business_description": business_description,
            "generation_mode": generation_mode,
            "deep_thinking": deep_thinking,
            "generated_names": generated_names,
            "cached_at": self.clock(),
        }

        async with self.session_factory() as db:
            entry = await db.scalar(select(GenerationCache).where(GenerationCache.input_hash == input_hash))
            if entry is None:
                db.add(GenerationCache(input_hash=input_hash, **values))
            else:
                for key, value in values.items():
                    setattr(entry, key, value)
            try:
                await db.commit()
                return
            except IntegrityError:
                # Another writer inserted the same hash first
                await db.rollback()

        async with self.session_factory() as db:
            entry = await db.scalar(select(GenerationCache).where(GenerationCache.input_hash == input_hash))
            for key, value in values.items():
                setattr(entry, key, value)
            await db.commit()

    async def invalidate(self, input_hash: str) -> bool:
        async with self.session_factory() as db:
            result = await db.execute(delete(GenerationCache).where(GenerationCache.input_hash == input_hash))
            await db.commit()
        return result.rowcount > 0

    async def purge_expired(self) -> int:
        cutoff = self.clock() - self.ttl
        async with self.session_factory() as db:
            result = await db.execute(delete(GenerationCache).where(GenerationCache.cached_at < cutoff))
            await db.commit()
        if result.rowcount:
            logger.info(f"Purged {result.rowcount} expired generation cache entries")
        return result.rowcount
