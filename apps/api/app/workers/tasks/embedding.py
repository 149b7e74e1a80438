"""Celery task for product embedding backfills."""

from typing import Any
from uuid import UUID

from app.core.database import async_session_maker
from app.services.job_service import JobService
from app.workers.celery_app import BaseTask, celery_app, run_async


@celery_app.task(  # type: ignore[untyped-decorator]
    name="tasks.embedding.backfill_products",
    base=BaseTask,
    bind=True,
    autoretry_for=(),
)
def backfill_product_embeddings(self: BaseTask, job_id: str) -> dict[str, Any]:  # noqa: ARG001
    """Run a queued embedding backfill job.

    Failures are recorded on the job record instead of retried; batches
    already committed are skipped by the next run.
    """
    return run_async(_backfill_product_embeddings_async(UUID(job_id)))


async def _backfill_product_embeddings_async(job_id: UUID) -> dict[str, Any]:
    """Async implementation of the backfill task.

    Returns:
        Dict with job_id, final status and stats
    """
    async with async_session_maker() as session:
        service = JobService(session)
        job = await service.get_job(job_id)
        if job is None:
            return {"job_id": str(job_id), "status": "missing"}

        job = await service.run_embedding_backfill(job)
        return {
            "job_id": str(job.id),
            "status": job.status.value,
            "stats": job.stats,
        }
