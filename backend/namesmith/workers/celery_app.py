"""
Celery Application Configuration
Periodic maintenance for caches, sessions and usage logs
"""

from celery import Celery
from kombu import Exchange, Queue

from namesmith.config import get_settings

settings = get_settings()

# Create Celery app
celery_app = Celery(
    "namesmith",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
    include=[
        "namesmith.workers.tasks.scheduled_tasks",
    ]
)

# Celery configuration
celery_app.conf.update(
    # Task settings
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,

    # Result backend settings
    result_expires=86400,  # 24 hours

    # Task execution settings
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    task_time_limit=300,  # 5 minutes max
    task_soft_time_limit=240,

    # Worker settings
    worker_prefetch_multiplier=1,
    worker_concurrency=2,

    # Queue configuration
    task_queues=(
        Queue("default", Exchange("default"), routing_key="default"),
        Queue("maintenance", Exchange("maintenance"), routing_key="maintenance"),
    ),

    task_default_queue="default",
    task_default_exchange="default",
    task_default_routing_key="default",

    task_routes={
        "namesmith.workers.tasks.scheduled_tasks.*": {"queue": "maintenance"},
    },

    # Beat scheduler for periodic tasks
    beat_schedule={
        "purge-generation-cache": {
            "task": "namesmith.workers.tasks.scheduled_tasks.purge_generation_cache",
            "schedule": 3600.0,  # Every hour
        },
        "purge-domain-cache": {
            "task": "namesmith.workers.tasks.scheduled_tasks.purge_domain_cache",
            "schedule": 21600.0,  # Every 6 hours
        },
        "fail-stale-sessions": {
            "task": "namesmith.workers.tasks.scheduled_tasks.fail_stale_sessions",
            "schedule": 600.0,  # Every 10 minutes
        },
        "cleanup-usage-logs": {
            "task": "namesmith.workers.tasks.scheduled_tasks.cleanup_usage_logs",
            "schedule": 86400.0,  # Daily
        },
    },
)
