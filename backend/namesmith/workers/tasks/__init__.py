"""
Celery Tasks
"""

from .scheduled_tasks import (
    purge_generation_cache,
    purge_domain_cache,
    fail_stale_sessions,
    cleanup_usage_logs,
)

__all__ = [
    "purge_generation_cache",
    "purge_domain_cache",
    "fail_stale_sessions",
    "cleanup_usage_logs",
]
