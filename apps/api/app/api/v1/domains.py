"""Custom domain management API endpoints."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Request, status

from app.core.deps import DBSession, get_store_for_user
from app.core.rate_limit import DOMAIN_CHECK_LIMIT, limiter
from app.models.custom_domain import CustomDomain
from app.models.store import Store
from app.schemas.common import ListResponse
from app.schemas.domain import (
    DnsRecordsResponse,
    DomainCreate,
    DomainCreateResponse,
    DomainDeleteResponse,
    DomainResponse,
    DomainVerifyResponse,
)
from app.services.domain_service import (
    DomainExistsError,
    DomainService,
    DomainStateError,
    InvalidDomainError,
    Resolver,
    required_dns_records,
    resolve_a_records,
)

router = APIRouter()


def get_resolver() -> Resolver:
    """DNS lookup used for verification; overridden in tests."""
    return resolve_a_records


async def _get_domain_or_404(service: DomainService, store: Store, domain_id: UUID) -> CustomDomain:
    domain = await service.get_domain(store.id, domain_id)
    if domain is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Domain not found",
        )
    return domain


@router.get(
    "",
    response_model=ListResponse[DomainResponse],
    summary="List custom domains",
)
async def list_domains(
    db: DBSession,
    store: Store = Depends(get_store_for_user),
) -> ListResponse[DomainResponse]:
    domains = await DomainService(db).list_domains(store.id)
    return ListResponse[DomainResponse](
        items=[DomainResponse.model_validate(d) for d in domains],
        total=len(domains),
    )


@router.post(
    "",
    response_model=DomainCreateResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add custom domain",
    description=(
        "Register a domain for the storefront. The first domain becomes primary. "
        "Pass redirect_from to also register a domain that redirects to it."
    ),
)
async def add_domain(
    data: DomainCreate,
    db: DBSession,
    store: Store = Depends(get_store_for_user),
) -> DomainCreateResponse:
    try:
        domain, companion = await DomainService(db).add_domain(
            store.id, data.domain, redirect_from=data.redirect_from
        )
    except InvalidDomainError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except DomainExistsError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))

    return DomainCreateResponse(
        domain=DomainResponse.model_validate(domain),
        redirect_domain=DomainResponse.model_validate(companion) if companion else None,
    )


@router.get(
    "/dns-records",
    response_model=DnsRecordsResponse,
    summary="Required DNS records",
    description="Records every custom domain must point at the platform.",
)
async def list_required_records(
    store: Store = Depends(get_store_for_user),  # noqa: ARG001
) -> DnsRecordsResponse:
    return DnsRecordsResponse(records=required_dns_records())


@router.get(
    "/{domain_id}",
    response_model=DomainResponse,
    summary="Get custom domain",
)
async def get_domain(
    domain_id: UUID,
    db: DBSession,
    store: Store = Depends(get_store_for_user),
) -> DomainResponse:
    domain = await _get_domain_or_404(DomainService(db), store, domain_id)
    return DomainResponse.model_validate(domain)


@router.get(
    "/{domain_id}/dns-records",
    response_model=DnsRecordsResponse,
    summary="DNS records for a domain",
)
async def get_domain_records(
    domain_id: UUID,
    db: DBSession,
    store: Store = Depends(get_store_for_user),
) -> DnsRecordsResponse:
    domain = await _get_domain_or_404(DomainService(db), store, domain_id)
    return DnsRecordsResponse(records=required_dns_records(domain))


@router.post(
    "/{domain_id}/verify",
    response_model=DomainVerifyResponse,
    summary="Verify custom domain",
    description="Resolve the domain and check that it points at the platform.",
)
@limiter.limit(DOMAIN_CHECK_LIMIT)
async def verify_domain(
    request: Request,  # noqa: ARG001  # required by slowapi
    domain_id: UUID,
    db: DBSession,
    store: Store = Depends(get_store_for_user),
    resolver: Resolver = Depends(get_resolver),
) -> DomainVerifyResponse:
    service = DomainService(db, resolver=resolver)
    domain = await _get_domain_or_404(service, store, domain_id)
    try:
        result = await service.verify_domain(domain)
    except DomainStateError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))

    return DomainVerifyResponse(**result, domain=DomainResponse.model_validate(domain))


@router.post(
    "/{domain_id}/ssl",
    response_model=DomainResponse,
    summary="Provision SSL",
    description="Record certificate issuance for a verified domain.",
)
async def provision_ssl(
    domain_id: UUID,
    db: DBSession,
    store: Store = Depends(get_store_for_user),
) -> DomainResponse:
    service = DomainService(db)
    domain = await _get_domain_or_404(service, store, domain_id)
    try:
        domain = await service.provision_ssl(domain)
    except DomainStateError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    return DomainResponse.model_validate(domain)


@router.post(
    "/{domain_id}/primary",
    response_model=DomainResponse,
    summary="Set primary domain",
)
async def set_primary_domain(
    domain_id: UUID,
    db: DBSession,
    store: Store = Depends(get_store_for_user),
) -> DomainResponse:
    service = DomainService(db)
    domain = await _get_domain_or_404(service, store, domain_id)
    try:
        domain = await service.set_primary(store.id, domain)
    except DomainStateError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    return DomainResponse.model_validate(domain)


@router.delete(
    "/{domain_id}",
    response_model=DomainDeleteResponse,
    summary="Remove custom domain",
    description="Removing the primary domain promotes the oldest remaining domain.",
)
async def delete_domain(
    domain_id: UUID,
    db: DBSession,
    store: Store = Depends(get_store_for_user),
) -> DomainDeleteResponse:
    service = DomainService(db)
    domain = await _get_domain_or_404(service, store, domain_id)
    promoted = await service.delete_domain(store.id, domain)
    return DomainDeleteResponse(
        deleted=True,
        promoted_domain_id=promoted.id if promoted is not None else None,
    )
