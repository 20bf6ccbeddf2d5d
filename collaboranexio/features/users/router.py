"""
User management endpoints.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from collaboranexio.config import settings
from collaboranexio.core.database import get_db
from collaboranexio.core.scope import TenantAssociation, Unrestricted
from collaboranexio.features.auth.dependencies import CurrentPrincipal
from collaboranexio.features.users.service import user_service
from collaboranexio.models.tenant import Tenant
from collaboranexio.models.user import User, UserRole
from collaboranexio.schemas.common import ApiResponse, MessageResponse, PaginatedResponse
from collaboranexio.schemas.tenant import TenantSummary
from collaboranexio.schemas.user import (
    CompanyAssignment,
    ManagerOption,
    RoleChange,
    UserCompanies,
    UserCreate,
    UserRead,
    UserUpdate,
)

router = APIRouter(prefix="/users", tags=["Users"])


def _read(user: User) -> UserRead:
    return UserRead.model_validate(user)


def _companies(user: User, association: TenantAssociation, tenants: list[Tenant]) -> UserCompanies:
    return UserCompanies(
        user_id=user.id,
        role=user.role,
        unrestricted=isinstance(association, Unrestricted),
        companies=[TenantSummary.model_validate(t) for t in tenants],
    )


@router.get("/", response_model=ApiResponse[PaginatedResponse[UserRead]])
async def list_users(
    db: Annotated[AsyncSession, Depends(get_db)],
    principal: CurrentPrincipal,
    skip: int = Query(0, ge=0),
    limit: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
    search: str | None = Query(None, max_length=100, description="Name or email"),
    role: UserRole | None = Query(None),
) -> ApiResponse[PaginatedResponse[UserRead]]:
    """List users visible to the caller."""
    users, total = await user_service.list_users(
        db, principal, skip=skip, limit=limit, search=search, role=role
    )
    return ApiResponse(
        data=PaginatedResponse[UserRead](
            items=[_read(u) for u in users],
            total=total,
            skip=skip,
            limit=limit,
        )
    )


@router.post("/", response_model=ApiResponse[UserRead], status_code=status.HTTP_201_CREATED)
async def create_user(
    user_data: UserCreate,
    db: Annotated[AsyncSession, Depends(get_db)],
    principal: CurrentPrincipal,
) -> ApiResponse[UserRead]:
    """
    Create a user.

    - manager/user: ``tenant_id`` required
    - admin: ``tenant_ids`` with at least one company
    - super_admin: no company data
    """
    user = await user_service.create_user(db, principal, user_data)
    return ApiResponse(data=_read(user), message="User created")


@router.get("/managers", response_model=ApiResponse[list[ManagerOption]])
async def list_managers(
    db: Annotated[AsyncSession, Depends(get_db)],
    principal: CurrentPrincipal,
) -> ApiResponse[list[ManagerOption]]:
    """Active managers and admins for the company manager picker."""
    users = await user_service.list_managers(db, principal)
    return ApiResponse(data=[ManagerOption.model_validate(u) for u in users])


@router.get("/{user_id}", response_model=ApiResponse[UserRead])
async def get_user(
    user_id: str,
    db: Annotated[AsyncSession, Depends(get_db)],
    principal: CurrentPrincipal,
) -> ApiResponse[UserRead]:
    user = await user_service.get_user(db, principal, user_id)
    return ApiResponse(data=_read(user))


@router.patch("/{user_id}", response_model=ApiResponse[UserRead])
async def update_user(
    user_id: str,
    user_data: UserUpdate,
    db: Annotated[AsyncSession, Depends(get_db)],
    principal: CurrentPrincipal,
) -> ApiResponse[UserRead]:
    user = await user_service.update_user(db, principal, user_id, user_data)
    return ApiResponse(data=_read(user), message="User updated")


@router.put("/{user_id}/role", response_model=ApiResponse[UserRead])
async def change_role(
    user_id: str,
    role_data: RoleChange,
    db: Annotated[AsyncSession, Depends(get_db)],
    principal: CurrentPrincipal,
) -> ApiResponse[UserRead]:
    """Change role and company association together."""
    user = await user_service.set_role(db, principal, user_id, role_data.role, role_data)
    return ApiResponse(data=_read(user), message="Role updated")


@router.post("/{user_id}/toggle-status", response_model=ApiResponse[UserRead])
async def toggle_status(
    user_id: str,
    db: Annotated[AsyncSession, Depends(get_db)],
    principal: CurrentPrincipal,
) -> ApiResponse[UserRead]:
    user = await user_service.set_user_status(db, principal, user_id)
    message = "User activated" if user.is_active else "User deactivated"
    return ApiResponse(data=_read(user), message=message)


@router.delete("/{user_id}", response_model=MessageResponse)
async def delete_user(
    user_id: str,
    db: Annotated[AsyncSession, Depends(get_db)],
    principal: CurrentPrincipal,
) -> MessageResponse:
    await user_service.delete_user(db, principal, user_id)
    return MessageResponse(message="User deleted")


@router.get("/{user_id}/companies", response_model=ApiResponse[UserCompanies])
async def get_user_companies(
    user_id: str,
    db: Annotated[AsyncSession, Depends(get_db)],
    principal: CurrentPrincipal,
) -> ApiResponse[UserCompanies]:
    user, association, tenants = await user_service.get_user_companies(db, principal, user_id)
    return ApiResponse(data=_companies(user, association, tenants))


@router.put("/{user_id}/companies", response_model=ApiResponse[UserCompanies])
async def replace_user_companies(
    user_id: str,
    assignment: CompanyAssignment,
    db: Annotated[AsyncSession, Depends(get_db)],
    principal: CurrentPrincipal,
) -> ApiResponse[UserCompanies]:
    """
    Replace a user's companies for its current role.

    Admins take ``tenant_ids`` (never empty), managers/users ``tenant_id``.
    """
    await user_service.replace_companies(db, principal, user_id, assignment)
    user, association, tenants = await user_service.get_user_companies(db, principal, user_id)
    return ApiResponse(
        data=_companies(user, association, tenants),
        message="Companies updated",
    )


@router.delete("/{user_id}/companies/{tenant_id}", response_model=ApiResponse[UserCompanies])
async def revoke_user_company(
    user_id: str,
    tenant_id: str,
    db: Annotated[AsyncSession, Depends(get_db)],
    principal: CurrentPrincipal,
) -> ApiResponse[UserCompanies]:
    """
    Revoke one company from an admin.

    The last company may be revoked too; the admin then sees no companies.
    """
    await user_service.revoke_company(db, principal, user_id, tenant_id)
    user, association, tenants = await user_service.get_user_companies(db, principal, user_id)
    return ApiResponse(
        data=_companies(user, association, tenants),
        message="Company revoked",
    )
