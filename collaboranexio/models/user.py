"""
User model for authentication and role-based access.
"""

from datetime import datetime
from enum import Enum

from sqlalchemy import Boolean, CheckConstraint, DateTime, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from collaboranexio.models.base import BaseModel


class UserRole(str, Enum):
    """The four roles a user can hold, lowest first."""
    USER = "user"
    MANAGER = "manager"
    ADMIN = "admin"
    SUPER_ADMIN = "super_admin"

    @property
    def level(self) -> int:
        return ROLE_LEVELS[self]

    @property
    def is_single_tenant(self) -> bool:
        """Managers and users are bound to exactly one company."""
        return self in (UserRole.USER, UserRole.MANAGER)


ROLE_LEVELS = {
    UserRole.USER: 1,
    UserRole.MANAGER: 2,
    UserRole.ADMIN: 3,
    UserRole.SUPER_ADMIN: 4,
}

# Roles that can be designated manager of a company
MANAGER_ROLES = (UserRole.MANAGER.value, UserRole.ADMIN.value, UserRole.SUPER_ADMIN.value)


class User(BaseModel):
    """
    User account.

    Association shape depends on role:
    - super_admin: no tenant_id, no assignment rows
    - admin: no tenant_id, one or more rows in admin_tenant_assignments
    - manager/user: tenant_id set (NULL once their company is deleted)
    """

    __tablename__ = "users"

    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
        index=True,
        comment="User email address (unique)"
    )

    hashed_password: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
        comment="Bcrypt hashed password"
    )

    first_name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        comment="First name"
    )

    last_name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        comment="Last name"
    )

    role: Mapped[UserRole] = mapped_column(
        String(20),
        nullable=False,
        default=UserRole.USER,
        index=True,
        comment="One of user, manager, admin, super_admin"
    )

    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
        comment="Account active status"
    )

    tenant_id: Mapped[str | None] = mapped_column(
        String(36),
        ForeignKey("tenants.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
        comment="Company of a manager/user (single-tenant roles only)"
    )

    last_login_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        comment="Last successful login"
    )

    __table_args__ = (
        CheckConstraint(
            "role IN ('user', 'manager', 'admin', 'super_admin')",
            name="ck_users_role",
        ),
    )

    @property
    def name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email}, role={self.role})>"
