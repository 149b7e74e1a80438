"""Background job API endpoints."""

from uuid import UUID

from fastapi import APIRouter, HTTPException, Query, Request, Response, status

from app.core.deps import (
    DBSession,
    JobUser,
    PlatformAdmin,
    StoreOwner,
    get_store_for_user,
    get_user_id,
)
from app.core.rate_limit import JOB_START_LIMIT, limiter
from app.models.background_job import JobType
from app.schemas.common import ListResponse
from app.schemas.job import (
    EmbeddingBackfillRequest,
    JobResponse,
    TranslationNormalizationRequest,
)
from app.services.job_service import JobService
from app.services.translation_migration import select_targets
from app.workers.tasks.embedding import backfill_product_embeddings
from app.workers.tasks.translations import normalize_translations

router = APIRouter()


@router.post(
    "/embedding-backfill",
    response_model=JobResponse,
    summary="Backfill product embeddings",
    description=(
        "Embed every product of the store that has no vector. With async_mode "
        "the job is queued and 202 is returned; poll GET /jobs/{id}."
    ),
)
@limiter.limit(JOB_START_LIMIT)
async def start_embedding_backfill(
    request: Request,  # noqa: ARG001  # required by slowapi
    response: Response,
    data: EmbeddingBackfillRequest,
    db: DBSession,
    user: StoreOwner,
) -> JobResponse:
    store = await get_store_for_user(data.store_id, user, db)
    service = JobService(db)
    job = await service.create_job(
        JobType.EMBEDDING_BACKFILL,
        store_id=store.id,
        params={"batch_size": data.batch_size},
        created_by=get_user_id(user),
    )

    if data.async_mode:
        result = backfill_product_embeddings.delay(str(job.id))
        job.celery_task_id = result.id
        await db.commit()
        await db.refresh(job)
        response.status_code = status.HTTP_202_ACCEPTED
        return JobResponse.model_validate(job)

    job = await service.run_embedding_backfill(job)
    return JobResponse.model_validate(job)


@router.post(
    "/translation-normalization",
    response_model=JobResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Normalize translation blobs",
    description=(
        "Queue the copy of JSON translations into the per-language tables for "
        "every store. Platform admins only; rollback is CLI and Alembic only."
    ),
)
@limiter.limit(JOB_START_LIMIT)
async def start_translation_normalization(
    request: Request,  # noqa: ARG001  # required by slowapi
    data: TranslationNormalizationRequest,
    db: DBSession,
    user: PlatformAdmin,
) -> JobResponse:
    try:
        select_targets(data.entity)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    job = await JobService(db).create_job(
        JobType.TRANSLATION_NORMALIZATION,
        params={"entity": data.entity},
        created_by=get_user_id(user),
    )
    result = normalize_translations.delay(str(job.id))
    job.celery_task_id = result.id
    await db.commit()
    await db.refresh(job)
    return JobResponse.model_validate(job)


@router.get(
    "",
    response_model=ListResponse[JobResponse],
    summary="List my jobs",
)
async def list_jobs(
    db: DBSession,
    user: JobUser,
    limit: int = Query(20, ge=1, le=100),
) -> ListResponse[JobResponse]:
    jobs = await JobService(db).list_jobs(get_user_id(user), limit=limit)
    return ListResponse[JobResponse](
        items=[JobResponse.model_validate(j) for j in jobs],
        total=len(jobs),
    )


@router.get(
    "/{job_id}",
    response_model=JobResponse,
    summary="Get job status",
)
async def get_job(
    job_id: UUID,
    db: DBSession,
    user: JobUser,
) -> JobResponse:
    job = await JobService(db).get_job(job_id)
    if job is None or job.created_by != get_user_id(user):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Job not found",
        )
    return JobResponse.model_validate(job)
