"""Background job records and the work they track."""

import logging
from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.background_job import BackgroundJob, JobStatus, JobType
from app.models.base import utcnow
from app.services import translation_migration
from app.services.embedding_service import EmbeddingService, get_embedding_service

logger = logging.getLogger(__name__)


class JobService:
    """Create, run and look up background jobs.

    The ``run_*`` methods do the work inline. The API calls them directly for
    synchronous requests; Celery tasks call them for queued jobs.
    """

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def create_job(
        self,
        job_type: JobType,
        store_id: UUID | None = None,
        params: dict[str, Any] | None = None,
        created_by: str | None = None,
    ) -> BackgroundJob:
        job = BackgroundJob(
            store_id=store_id,
            job_type=job_type,
            status=JobStatus.PENDING,
            params=params or {},
            stats={},
            created_by=created_by,
        )
        self.db.add(job)
        await self.db.commit()
        await self.db.refresh(job)
        return job

    async def get_job(self, job_id: UUID) -> BackgroundJob | None:
        return await self.db.get(BackgroundJob, job_id)

    async def list_jobs(self, created_by: str, limit: int = 20) -> list[BackgroundJob]:
        query = (
            select(BackgroundJob)
            .where(BackgroundJob.created_by == created_by)
            .order_by(BackgroundJob.created_at.desc())
            .limit(limit)
        )
        return list((await self.db.execute(query)).scalars().all())

    async def _start(self, job: BackgroundJob) -> None:
        job.status = JobStatus.RUNNING
        job.started_at = utcnow()
        job.error = None
        await self.db.commit()

    async def _finish(
        self, job: BackgroundJob, stats: dict[str, Any] | None, error: str | None = None
    ) -> BackgroundJob:
        job.status = JobStatus.FAILED if error else JobStatus.COMPLETED
        job.stats = stats or {}
        job.error = error
        job.finished_at = utcnow()
        await self.db.commit()
        await self.db.refresh(job)
        return job

    async def run_embedding_backfill(
        self, job: BackgroundJob, embedding_service: EmbeddingService | None = None
    ) -> BackgroundJob:
        """Embed the job's store products that have no vector yet.

        A failure is recorded on the job; batches committed before the
        failure keep their embeddings.
        """
        service = embedding_service or get_embedding_service()
        await self._start(job)
        try:
            stats = await service.backfill_products(
                self.db,
                store_id=job.store_id,
                batch_size=job.params.get("batch_size"),
            )
        except Exception as e:
            logger.exception("Embedding backfill %s failed", job.id)
            await self.db.rollback()
            return await self._finish(job, None, error=str(e))

        logger.info("Embedding backfill %s finished: %s", job.id, stats)
        return await self._finish(job, stats)

    async def run_translation_normalization(self, job: BackgroundJob) -> BackgroundJob:
        """Copy translation blobs into the normalized tables."""
        entity = job.params.get("entity")
        await self._start(job)
        try:
            reports = await self.db.run_sync(
                lambda session: translation_migration.migrate(session.connection(), entity)
            )
            stats = {r.target: {"migrated": r.migrated, "skipped": r.skipped} for r in reports}
            await self.db.commit()
        except Exception as e:
            logger.exception("Translation normalization %s failed", job.id)
            await self.db.rollback()
            return await self._finish(job, None, error=str(e))

        return await self._finish(job, stats)
