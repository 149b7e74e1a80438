"""Periodic custom domain maintenance (Celery Beat)."""

from typing import Any

from app.core.database import async_session_maker
from app.services.domain_service import DomainService
from app.workers.celery_app import BaseTask, celery_app, run_async


@celery_app.task(  # type: ignore[untyped-decorator]
    name="tasks.domains.expire_certificates",
    base=BaseTask,
    bind=True,
)
def expire_certificates(self: BaseTask) -> dict[str, Any]:  # noqa: ARG001
    """Periodic task: mark certificates past their expiry as expired."""
    return run_async(_expire_certificates_async())


async def _expire_certificates_async() -> dict[str, Any]:
    async with async_session_maker() as session:
        expired = await DomainService(session).expire_certificates()
    return {"expired": expired}
