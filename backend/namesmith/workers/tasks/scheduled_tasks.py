"""
Scheduled Tasks
Periodic cleanup of expired caches, abandoned sessions and old usage logs
"""

import asyncio
from datetime import timedelta
from typing import Dict

from celery.utils.log import get_task_logger

from namesmith.config import get_settings
from namesmith.models import AIUsageLog, DomainCache
from namesmith.services.generation_cache import GenerationCacheService
from namesmith.services.session_service import SessionStore
from namesmith.utils.clock import utcnow
from namesmith.utils.database import get_sync_db, isolated_session_maker
from namesmith.workers.celery_app import celery_app

logger = get_task_logger(__name__)


def run_async(coro):
    """Run async function in sync context"""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


async def _purge_generation_cache() -> int:
    async with isolated_session_maker() as session_factory:
        return await GenerationCacheService(session_factory, get_settings()).purge_expired()


async def _fail_stale_sessions(minutes: int) -> int:
    async with isolated_session_maker() as session_factory:
        store = SessionStore(session_factory, get_settings())
        return await store.fail_stale(timedelta(minutes=minutes))


@celery_app.task(
    name="namesmith.workers.tasks.scheduled_tasks.purge_generation_cache",
)
def purge_generation_cache() -> Dict:
    """Delete generation cache entries older than the cache TTL"""
    try:
        purged = run_async(_purge_generation_cache())
        logger.info(f"Purged {purged} expired generation cache entries")
        return {"success": True, "purged": purged}
    except Exception as e:
        logger.exception(f"Error purging generation cache: {e}")
        return {"error": str(e)}


@celery_app.task(
    name="namesmith.workers.tasks.scheduled_tasks.purge_domain_cache",
)
def purge_domain_cache() -> Dict:
    """Delete domain lookups older than DOMAIN_CACHE_HOURS"""
    settings = get_settings()
    db = get_sync_db()

    try:
        cutoff = utcnow() - timedelta(hours=settings.DOMAIN_CACHE_HOURS)
        purged = db.query(DomainCache).filter(DomainCache.checked_at < cutoff).delete(
            synchronize_session=False
        )
        db.commit()

        logger.info(f"Purged {purged} expired domain cache entries")
        return {"success": True, "purged": purged}

    except Exception as e:
        logger.exception(f"Error purging domain cache: {e}")
        db.rollback()
        return {"error": str(e)}
    finally:
        db.close()


@celery_app.task(
    name="namesmith.workers.tasks.scheduled_tasks.fail_stale_sessions",
)
def fail_stale_sessions() -> Dict:
    """
    Fail sessions left running by a process that went away.
    Uses the session store so the same status guard applies.
    """
    minutes = get_settings().STALE_SESSION_MINUTES
    try:
        failed = run_async(_fail_stale_sessions(minutes))
        if failed:
            logger.warning(f"Failed {failed} sessions running for more than {minutes} minutes")
        return {"success": True, "failed": failed}
    except Exception as e:
        logger.exception(f"Error failing stale sessions: {e}")
        return {"error": str(e)}


@celery_app.task(
    name="namesmith.workers.tasks.scheduled_tasks.cleanup_usage_logs",
)
def cleanup_usage_logs() -> Dict:
    """Delete usage log rows past the retention window"""
    settings = get_settings()
    db = get_sync_db()

    try:
        cutoff = utcnow() - timedelta(days=settings.USAGE_LOG_RETENTION_DAYS)
        deleted = db.query(AIUsageLog).filter(AIUsageLog.created_at < cutoff).delete(
            synchronize_session=False
        )
        db.commit()

        logger.info(f"Deleted {deleted} usage log rows older than {settings.USAGE_LOG_RETENTION_DAYS} days")
        return {"success": True, "deleted": deleted}

    except Exception as e:
        logger.exception(f"Error cleaning usage logs: {e}")
        db.rollback()
        return {"error": str(e)}
    finally:
        db.close()
