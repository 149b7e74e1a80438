"""Celery application configuration."""

import asyncio
from collections.abc import Coroutine
from typing import Any

from celery import Celery

from app.core.config import settings

# Create Celery app
celery_app = Celery(
    "storeforge",
    broker=str(settings.redis_url),
    backend=str(settings.redis_url),
    include=[
        "app.workers.tasks.embedding",
        "app.workers.tasks.translations",
        "app.workers.tasks.domains",
    ],
)

# Celery configuration
celery_app.conf.update(
    # Task settings
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    # Task safety limits (backfills of large catalogs run long)
    task_time_limit=1800,
    task_soft_time_limit=1500,
    # Task execution settings
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    # Result backend settings
    result_expires=3600,  # Results expire after 1 hour
    # Worker settings
    worker_prefetch_multiplier=1,
    worker_concurrency=4,
    # Default queue name (must match worker -Q flag)
    task_default_queue="default",
    task_routes={
        "tasks.embedding.*": {"queue": "jobs"},
        "tasks.translations.*": {"queue": "jobs"},
    },
    beat_schedule={
        "expire-ssl-certificates": {
            "task": "tasks.domains.expire_certificates",
            "schedule": 3600.0,  # Hourly
        },
    },
)


# Task base class with common error handling
class BaseTask(celery_app.Task):  # type: ignore[misc, name-defined]
    """Base task class with error handling."""

    abstract = True
    autoretry_for = (Exception,)
    retry_backoff = True
    retry_backoff_max = 600  # Max 10 minutes between retries
    retry_jitter = True
    max_retries = 3


def run_async[T](coro: Coroutine[Any, Any, T]) -> T:
    """Run a coroutine in a fresh event loop, disposing DB connections after.

    asyncpg connections are bound to the loop that created them, so pooled
    connections must not outlive the per-task loop.
    """
    from app.core.database import engine

    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.run_until_complete(engine.dispose())
        loop.close()
