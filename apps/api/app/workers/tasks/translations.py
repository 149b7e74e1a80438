"""Celery task for translation normalization jobs."""

from typing import Any
from uuid import UUID

from app.core.database import async_session_maker
from app.services.job_service import JobService
from app.workers.celery_app import BaseTask, celery_app, run_async


@celery_app.task(  # type: ignore[untyped-decorator]
    name="tasks.translations.normalize",
    base=BaseTask,
    bind=True,
    autoretry_for=(),
)
def normalize_translations(self: BaseTask, job_id: str) -> dict[str, Any]:  # noqa: ARG001
    """Run a queued translation normalization job."""
    return run_async(_normalize_translations_async(UUID(job_id)))


async def _normalize_translations_async(job_id: UUID) -> dict[str, Any]:
    async with async_session_maker() as session:
        service = JobService(session)
        job = await service.get_job(job_id)
        if job is None:
            return {"job_id": str(job_id), "status": "missing"}

        job = await service.run_translation_normalization(job)
        return {
            "job_id": str(job.id),
            "status": job.status.value,
            "stats": job.stats,
        }
