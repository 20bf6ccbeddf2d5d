"""
Pydantic schemas for User.
"""

from datetime import datetime

from pydantic import EmailStr, Field, field_validator

from collaboranexio.models.user import UserRole
from collaboranexio.schemas.common import BaseSchema
from collaboranexio.schemas.tenant import TenantSummary


def _check_password_strength(v: str) -> str:
    """
    Requirements:
    - At least 8 characters (enforced by Field)
    - Contains uppercase and lowercase
    - Contains at least one digit
    """
    if not any(char.isupper() for char in v):
        raise ValueError('Password must contain at least one uppercase letter')
    if not any(char.islower() for char in v):
        raise ValueError('Password must contain at least one lowercase letter')
    if not any(char.isdigit() for char in v):
        raise ValueError('Password must contain at least one digit')
    return v


class TenantData(BaseSchema):
    """
    Role-dependent company association.

    ``tenant_id`` is read for managers and users, ``tenant_ids`` for
    admins; super admins take neither.
    """

    tenant_id: str | None = Field(None, description="Company of a manager/user")
    tenant_ids: list[str] | None = Field(None, description="Companies of an admin")


class UserBase(BaseSchema):
    email: EmailStr = Field(..., description="User email address")
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)


class UserCreate(UserBase, TenantData):
    """Schema for creating a user."""

    password: str = Field(..., min_length=8, max_length=100, description="User password")
    role: UserRole = UserRole.USER

    @field_validator('password')
    @classmethod
    def validate_password(cls, v: str) -> str:
        return _check_password_strength(v)


class UserUpdate(BaseSchema):
    """Profile update (all optional). Role and status have their own endpoints."""

    email: EmailStr | None = None
    first_name: str | None = Field(None, min_length=1, max_length=100)
    last_name: str | None = Field(None, min_length=1, max_length=100)
    password: str | None = Field(None, min_length=8, max_length=100)

    @field_validator('password')
    @classmethod
    def validate_password(cls, v: str | None) -> str | None:
        if v is None:
            return v
        return _check_password_strength(v)


class RoleChange(TenantData):
    """New role plus the association shape that goes with it."""

    role: UserRole


class CompanyAssignment(TenantData):
    """Replacement association for the user's current role."""


class UserRead(BaseSchema):
    """Schema for reading user data."""

    id: str
    email: str
    first_name: str
    last_name: str
    name: str
    role: UserRole
    is_active: bool
    tenant_id: str | None = None
    last_login_at: datetime | None = None
    created_at: datetime
    updated_at: datetime


class UserCompanies(BaseSchema):
    """A user's association as seen by the caller."""

    user_id: str
    role: UserRole
    unrestricted: bool = False
    companies: list[TenantSummary] = Field(default_factory=list)


class ManagerOption(BaseSchema):
    """Entry of the company manager picker."""

    id: str
    name: str
    email: str
    role: UserRole
