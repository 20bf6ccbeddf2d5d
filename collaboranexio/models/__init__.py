"""
Database models package.
"""

from collaboranexio.core.database import Base
from collaboranexio.models.base import BaseModel
from collaboranexio.models.tenant import PlanType, Tenant, TenantStatus
from collaboranexio.models.user import User, UserRole
from collaboranexio.models.assignment import admin_tenant_assignments
from collaboranexio.models.audit_log import AuditAction, AuditLog

__all__ = [
    "Base",
    "BaseModel",
    "Tenant",
    "TenantStatus",
    "PlanType",
    "User",
    "UserRole",
    "admin_tenant_assignments",
    "AuditLog",
    "AuditAction",
]
