"""
Admin <-> company assignments.

Many-to-many link used only for admin-role users. Single-tenant roles
keep their company on ``users.tenant_id`` instead.
"""

from sqlalchemy import Column, DateTime, ForeignKey, String, Table, func

from collaboranexio.core.database import Base

admin_tenant_assignments = Table(
    "admin_tenant_assignments",
    Base.metadata,
    Column(
        "admin_user_id",
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column(
        "tenant_id",
        String(36),
        ForeignKey("tenants.id", ondelete="CASCADE"),
        primary_key=True,
        index=True,
    ),
    Column("created_at", DateTime(timezone=True), server_default=func.now(), nullable=False),
)
