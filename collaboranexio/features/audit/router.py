"""
Audit log endpoints.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from collaboranexio.config import settings
from collaboranexio.core.database import get_db
from collaboranexio.features.audit.service import audit_service
from collaboranexio.features.auth.dependencies import CurrentPrincipal
from collaboranexio.models.audit_log import AuditAction
from collaboranexio.schemas.audit_log import AuditLogRead
from collaboranexio.schemas.common import ApiResponse, PaginatedResponse

router = APIRouter(prefix="/audit-logs", tags=["Audit"])


@router.get("/", response_model=ApiResponse[PaginatedResponse[AuditLogRead]])
async def list_audit_logs(
    db: Annotated[AsyncSession, Depends(get_db)],
    principal: CurrentPrincipal,
    skip: int = Query(0, ge=0),
    limit: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
    entity_type: str | None = Query(None, max_length=30),
    action: AuditAction | None = Query(None),
) -> ApiResponse[PaginatedResponse[AuditLogRead]]:
    """
    Audit entries, newest first.

    Super admins see every entry; other users only their own actions.
    """
    entries, total = await audit_service.list_entries(
        db,
        principal,
        skip=skip,
        limit=limit,
        entity_type=entity_type,
        action=action,
    )
    return ApiResponse(
        data=PaginatedResponse[AuditLogRead](
            items=[AuditLogRead.model_validate(e) for e in entries],
            total=total,
            skip=skip,
            limit=limit,
        )
    )
