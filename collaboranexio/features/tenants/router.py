"""
Company (tenant) management endpoints.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from collaboranexio.config import settings
from collaboranexio.core.database import get_db
from collaboranexio.core.scope import Principal
from collaboranexio.features.auth.dependencies import CurrentPrincipal, require_role
from collaboranexio.features.tenants.service import tenant_service
from collaboranexio.models.tenant import TenantStatus
from collaboranexio.models.user import UserRole
from collaboranexio.schemas.common import ApiResponse, MessageResponse, PaginatedResponse
from collaboranexio.schemas.tenant import TenantCreate, TenantRead, TenantUpdate

router = APIRouter(prefix="/companies", tags=["Companies"])

SuperAdmin = Annotated[Principal, Depends(require_role(UserRole.SUPER_ADMIN))]


@router.get("/", response_model=ApiResponse[PaginatedResponse[TenantRead]])
async def list_companies(
    db: Annotated[AsyncSession, Depends(get_db)],
    principal: CurrentPrincipal,
    skip: int = Query(0, ge=0),
    limit: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
    search: str | None = Query(None, max_length=100, description="Name, fiscal code or VAT"),
    status_filter: TenantStatus | None = Query(None, alias="status"),
) -> ApiResponse[PaginatedResponse[TenantRead]]:
    """
    List companies visible to the caller.

    - Super admins: every company
    - Admins: assigned companies
    - Managers/users: their own company
    """
    tenants, total = await tenant_service.list_tenants(
        db,
        principal,
        skip=skip,
        limit=limit,
        search=search,
        status=status_filter,
    )
    return ApiResponse(
        data=PaginatedResponse[TenantRead](
            items=[TenantRead.model_validate(t) for t in tenants],
            total=total,
            skip=skip,
            limit=limit,
        )
    )


@router.post(
    "/",
    response_model=ApiResponse[TenantRead],
    status_code=status.HTTP_201_CREATED,
)
async def create_company(
    tenant_data: TenantCreate,
    db: Annotated[AsyncSession, Depends(get_db)],
    principal: SuperAdmin,
) -> ApiResponse[TenantRead]:
    """Create a company (super admin only)."""
    tenant = await tenant_service.create_tenant(db, principal, tenant_data)
    return ApiResponse(data=TenantRead.model_validate(tenant), message="Company created")


@router.get("/{tenant_id}", response_model=ApiResponse[TenantRead])
async def get_company(
    tenant_id: str,
    db: Annotated[AsyncSession, Depends(get_db)],
    principal: CurrentPrincipal,
) -> ApiResponse[TenantRead]:
    """Get a company in the caller's scope (404 otherwise)."""
    tenant = await tenant_service.get_tenant(db, principal, tenant_id)
    return ApiResponse(data=TenantRead.model_validate(tenant))


@router.patch("/{tenant_id}", response_model=ApiResponse[TenantRead])
async def update_company(
    tenant_id: str,
    tenant_data: TenantUpdate,
    db: Annotated[AsyncSession, Depends(get_db)],
    principal: SuperAdmin,
) -> ApiResponse[TenantRead]:
    """Update a company (super admin only)."""
    tenant = await tenant_service.update_tenant(db, principal, tenant_id, tenant_data)
    return ApiResponse(data=TenantRead.model_validate(tenant), message="Company updated")


@router.delete("/{tenant_id}", response_model=MessageResponse)
async def delete_company(
    tenant_id: str,
    db: Annotated[AsyncSession, Depends(get_db)],
    principal: SuperAdmin,
    confirm: bool = Query(False, description="Must be true; deletion is permanent"),
) -> MessageResponse:
    """
    Permanently delete a company (super admin only).

    Its managers and users are left without a company.
    """
    await tenant_service.delete_tenant(db, principal, tenant_id, confirm=confirm)
    return MessageResponse(message="Company deleted")
