"""PDF template API endpoints."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.core.deps import DBSession, get_store_for_user
from app.models.pdf_template import PdfTemplate, TemplateType
from app.models.store import Store
from app.schemas.common import ListResponse
from app.schemas.pdf_template import (
    PdfPreviewRequest,
    PdfPreviewResponse,
    PdfTemplateCreate,
    PdfTemplateResponse,
    PdfTemplateUpdate,
)
from app.services.pdf_template_service import (
    PdfTemplateError,
    PdfTemplateService,
    SystemTemplateError,
)

router = APIRouter()


async def _get_template_or_404(
    service: PdfTemplateService, store: Store, template_id: UUID
) -> PdfTemplate:
    template = await service.get_template(store.id, template_id)
    if template is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="PDF template not found",
        )
    return template


@router.get(
    "",
    response_model=ListResponse[PdfTemplateResponse],
    summary="List PDF templates",
)
async def list_templates(
    db: DBSession,
    store: Store = Depends(get_store_for_user),
    template_type: TemplateType | None = Query(None),
) -> ListResponse[PdfTemplateResponse]:
    templates = await PdfTemplateService(db).list_templates(store.id, template_type)
    return ListResponse[PdfTemplateResponse](
        items=[PdfTemplateResponse.model_validate(t) for t in templates],
        total=len(templates),
    )


@router.post(
    "",
    response_model=PdfTemplateResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create PDF template",
)
async def create_template(
    data: PdfTemplateCreate,
    db: DBSession,
    store: Store = Depends(get_store_for_user),
) -> PdfTemplateResponse:
    service = PdfTemplateService(db)
    if await service.get_by_identifier(store.id, data.identifier) is not None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Template '{data.identifier}' already exists",
        )
    template = await service.create_template(store.id, data.model_dump(exclude_none=True))
    return PdfTemplateResponse.model_validate(template)


@router.post(
    "/seed",
    response_model=ListResponse[PdfTemplateResponse],
    summary="Seed default templates",
    description="Create the invoice and shipment templates if missing. Safe to repeat.",
)
async def seed_templates(
    db: DBSession,
    store: Store = Depends(get_store_for_user),
) -> ListResponse[PdfTemplateResponse]:
    created = await PdfTemplateService(db).seed_defaults(store.id)
    return ListResponse[PdfTemplateResponse](
        items=[PdfTemplateResponse.model_validate(t) for t in created],
        total=len(created),
    )


@router.get(
    "/{template_id}",
    response_model=PdfTemplateResponse,
    summary="Get PDF template",
)
async def get_template(
    template_id: UUID,
    db: DBSession,
    store: Store = Depends(get_store_for_user),
) -> PdfTemplateResponse:
    template = await _get_template_or_404(PdfTemplateService(db), store, template_id)
    return PdfTemplateResponse.model_validate(template)


@router.patch(
    "/{template_id}",
    response_model=PdfTemplateResponse,
    summary="Update PDF template",
)
async def update_template(
    template_id: UUID,
    data: PdfTemplateUpdate,
    db: DBSession,
    store: Store = Depends(get_store_for_user),
) -> PdfTemplateResponse:
    service = PdfTemplateService(db)
    template = await _get_template_or_404(service, store, template_id)
    template = await service.update_template(template, data.model_dump(exclude_unset=True))
    return PdfTemplateResponse.model_validate(template)


@router.delete(
    "/{template_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete PDF template",
    description="System templates cannot be deleted; restore their default instead.",
)
async def delete_template(
    template_id: UUID,
    db: DBSession,
    store: Store = Depends(get_store_for_user),
) -> None:
    service = PdfTemplateService(db)
    template = await _get_template_or_404(service, store, template_id)
    try:
        await service.delete_template(template)
    except SystemTemplateError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))


@router.post(
    "/{template_id}/restore",
    response_model=PdfTemplateResponse,
    summary="Restore default markup",
)
async def restore_template(
    template_id: UUID,
    db: DBSession,
    store: Store = Depends(get_store_for_user),
) -> PdfTemplateResponse:
    service = PdfTemplateService(db)
    template = await _get_template_or_404(service, store, template_id)
    try:
        template = await service.restore_default(template)
    except PdfTemplateError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    return PdfTemplateResponse.model_validate(template)


@router.post(
    "/{template_id}/preview",
    response_model=PdfPreviewResponse,
    summary="Preview template",
    description="Render the template with sample values. Unknown placeholders are kept.",
)
async def preview_template(
    template_id: UUID,
    data: PdfPreviewRequest,
    db: DBSession,
    store: Store = Depends(get_store_for_user),
) -> PdfPreviewResponse:
    template = await _get_template_or_404(PdfTemplateService(db), store, template_id)
    try:
        html = PdfTemplateService.preview(template, data.variables)
    except PdfTemplateError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return PdfPreviewResponse(html=html, settings=template.settings or {})
