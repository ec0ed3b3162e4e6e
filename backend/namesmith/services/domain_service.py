"""
Domain Availability Service
Checks candidate names against a TLD list, backed by a 24h lookup cache.

Each domain is looked up independently; one registrar failure only marks
that domain as `error` and never aborts the batch.
"""

import asyncio
import logging
import re
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Dict, Iterable, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import async_sessionmaker

from namesmith.adapters.domain import BaseDomainRegistrar, DomainLookupError
from namesmith.config import Settings
from namesmith.exceptions import InvalidDomainError
from namesmith.models import DomainCache
from namesmith.utils.clock import utcnow

logger = logging.getLogger(__name__)

DOMAIN_PATTERN = re.compile(
    r"^[a-z0-9]([a-z0-9\-]*[a-z0-9])?(\.[a-z0-9]([a-z0-9\-]*[a-z0-9])?)*\.[a-z]{2,}$"
)


# ============================================================================
# HELPERS
# ============================================================================

def format_domain(domain: str) -> str:
    """Normalise user input like 'https://www.Example.com/' to 'example.com'"""
    domain = domain.strip().lower()
    domain = re.sub(r"^https?://", "", domain)
    domain = re.sub(r"^www\.", "", domain)
    domain = re.split(r"[/?#]", domain, maxsplit=1)[0]
    return domain.rstrip("/")


def validate_domain(domain: str) -> bool:
    if not domain or "." not in domain or len(domain) > 253:
        return False
    return DOMAIN_PATTERN.match(domain) is not None


def sanitize_name(name: str) -> str:
    """Reduce a business name to a registrable label"""
    label = name.strip().lower()
    label = re.sub(r"\s+", "-", label)
    label = re.sub(r"[^a-z0-9\-]", "", label)
    label = re.sub(r"-{2,}", "-", label)
    return label.strip("-")[:63]


def build_domains(names: Iterable[str], tlds: Iterable[str]) -> List[str]:
    """Every valid name x tld combination, order preserved, duplicates dropped"""
    tlds = [t.strip().lstrip(".").lower() for t in tlds if t and t.strip()]
    domains = []
    for name in names:
        label = sanitize_name(name)
        if not label:
            continue
        for tld in tlds:
            domain = f"{label}.{tld}"
            if validate_domain(domain) and domain not in domains:
                domains.append(domain)
    return domains


@dataclass
class DomainAvailability:
    domain: str
    status: str  # available, taken, error
    available: Optional[bool]
    cached: bool = False
    checked_at: Optional[datetime] = None
    error: Optional[str] = None

    @classmethod
    def from_lookup(cls, domain: str, available: bool, checked_at: datetime, cached: bool) -> "DomainAvailability":
        return cls(
            domain=domain,
            status="available" if available else "taken",
            available=available,
            cached=cached,
            checked_at=checked_at,
        )

    @classmethod
    def failed(cls, domain: str, error: str) -> "DomainAvailability":
        return cls(domain=domain, status="error", available=None, error=error)

    def to_dict(self) -> dict:
        return {
            "domain": self.domain,
            "status": self.status,
            "available": self.available,
            "cached": self.cached,
            "checked_at": self.checked_at,
            "error": self.error,
        }


# ============================================================================
# SERVICE
# ============================================================================

class DomainCheckService:
    """Batch availability checks with a read-through cache"""

    def __init__(
        self,
        registrar: BaseDomainRegistrar,
        session_factory: async_sessionmaker,
        settings: Settings,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.registrar = registrar
        self.session_factory = session_factory
        self.settings = settings
        self.clock = clock

    @property
    def cache_ttl(self) -> timedelta:
        return timedelta(hours=self.settings.DOMAIN_CACHE_HOURS)

    async def check(
        self,
        names: List[str],
        tlds: Optional[List[str]] = None,
    ) -> Dict[str, DomainAvailability]:
        """
        Availability for every name/tld pair, keyed by domain.

        Fresh cache entries are served as-is; the rest are looked up
        concurrently and successful answers are written back.
        """
        domains = build_domains(names, tlds or self.settings.domain_tlds_list)
        if not domains:
            return {}

        now = self.clock()
        cached = await self._read_cache(domains, now - self.cache_ttl)
        results: Dict[str, DomainAvailability] = {
            domain: DomainAvailability.from_lookup(domain, entry.available, entry.checked_at, cached=True)
            for domain, entry in cached.items()
        }

        misses = [d for d in domains if d not in results]
        if misses:
            looked_up = await asyncio.gather(*(self._lookup(domain) for domain in misses))
            results.update({r.domain: r for r in looked_up})
            await self._write_cache([r for r in looked_up if r.status != "error"])

        logger.info(
            f"Checked {len(domains)} domains: {len(cached)} cached, {len(misses)} looked up"
        )
        return {domain: results[domain] for domain in domains}

    async def check_domain(self, domain: str) -> DomainAvailability:
        """
        Raises:
            InvalidDomainError: If the domain is not syntactically valid
        """
        domain = format_domain(domain)
        if not validate_domain(domain):
            raise InvalidDomainError(domain)

        cached = await self._read_cache([domain], self.clock() - self.cache_ttl)
        if domain in cached:
            entry = cached[domain]
            return DomainAvailability.from_lookup(domain, entry.available, entry.checked_at, cached=True)

        result = await self._lookup(domain)
        if result.status != "error":
            await self._write_cache([result])
        return result

    async def _lookup(self, domain: str) -> DomainAvailability:
        try:
            available = await asyncio.wait_for(
                self.registrar.lookup(domain),
                timeout=self.settings.DOMAIN_CHECK_TIMEOUT,
            )
        except asyncio.TimeoutError:
            logger.warning(f"Domain lookup timed out for {domain}")
            return DomainAvailability.failed(domain, "Lookup timed out")
        except DomainLookupError as e:
            logger.warning(f"Domain lookup failed for {domain}: {e}")
            return DomainAvailability.failed(domain, str(e))
        except Exception as e:
            logger.exception(f"Unexpected error looking up {domain}: {e}")
            return DomainAvailability.failed(domain, "Lookup failed")

        return DomainAvailability.from_lookup(domain, bool(available), self.clock(), cached=False)

    # =========================================================================
    # CACHE
    # =========================================================================

    async def _read_cache(self, domains: List[str], cutoff: datetime) -> Dict[str, DomainCache]:
        async with self.session_factory() as db:
            result = await db.execute(
                select(DomainCache).where(
                    DomainCache.domain.in_(domains),
                    DomainCache.checked_at >= cutoff,
                )
            )
            return {entry.domain: entry for entry in result.scalars().all()}

    async def _write_cache(self, results: List[DomainAvailability]) -> None:
        for result in results:
            await self._upsert(result.domain, result.available, result.checked_at)

    async def _upsert(self, domain: str, available: bool, checked_at: datetime) -> None:
        async with self.session_factory() as db:
            entry = await db.scalar(select(DomainCache).where(DomainCache.domain == domain))
            if entry is None:
                db.add(DomainCache(domain=domain, available=available, checked_at=checked_at))
            else:
                entry.available = available
                entry.checked_at = checked_at
            try:
                await db.commit()
                return
            except IntegrityError:
                await db.rollback()

        async with self.session_factory() as db:
            entry = await db.scalar(select(DomainCache).where(DomainCache.domain == domain))
            entry.available = available
            entry.checked_at = checked_at
            await db.commit()
