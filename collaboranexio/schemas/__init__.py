"""
Pydantic schemas package.
"""

from collaboranexio.schemas.audit_log import AuditLogRead
from collaboranexio.schemas.common import (
    ApiResponse,
    BaseSchema,
    ErrorResponse,
    MessageResponse,
    PaginatedResponse,
    PaginationParams,
)
from collaboranexio.schemas.tenant import TenantCreate, TenantRead, TenantSummary, TenantUpdate
from collaboranexio.schemas.user import (
    CompanyAssignment,
    ManagerOption,
    RoleChange,
    TenantData,
    UserCreate,
    UserRead,
    UserCompanies,
    UserUpdate,
)

__all__ = [
    # Common
    "ApiResponse",
    "BaseSchema",
    "MessageResponse",
    "ErrorResponse",
    "PaginationParams",
    "PaginatedResponse",
    # Tenant
    "TenantCreate",
    "TenantRead",
    "TenantSummary",
    "TenantUpdate",
    # User
    "CompanyAssignment",
    "ManagerOption",
    "RoleChange",
    "TenantData",
    "UserCreate",
    "UserRead",
    "UserCompanies",
    "UserUpdate",
    # Audit
    "AuditLogRead",
]
