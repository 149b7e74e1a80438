"""Pydantic schemas for background jobs."""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import Field

from app.models.background_job import JobStatus, JobType
from app.schemas.common import BaseSchema


class EmbeddingBackfillRequest(BaseSchema):
    store_id: UUID
    async_mode: bool = Field(default=True, description="Queue the job and return 202 immediately")
    batch_size: int | None = Field(default=None, ge=1, le=2048)


class TranslationNormalizationRequest(BaseSchema):
    entity: str | None = Field(default=None, description="Entity table to normalize; all when omitted")


class JobResponse(BaseSchema):
    id: UUID
    store_id: UUID | None
    job_type: JobType
    status: JobStatus
    params: dict[str, Any]
    stats: dict[str, Any]
    error: str | None
    started_at: datetime | None
    finished_at: datetime | None
    created_at: datetime
