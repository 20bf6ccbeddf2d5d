"""
Audit log of mutating operations.
"""

from enum import Enum

from sqlalchemy import Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from collaboranexio.models.base import BaseModel


class AuditAction(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    ASSIGN = "assign"
    LOGIN = "login"
    ROLE_CHANGE = "role_change"
    STATUS_CHANGE = "status_change"


class AuditLog(BaseModel):
    """
    One audited action.

    The actor is stored by value (id and email) rather than as a foreign
    key so entries outlive the users that wrote them.
    """

    __tablename__ = "audit_logs"

    actor_user_id: Mapped[str | None] = mapped_column(
        String(36),
        nullable=True,
        index=True,
        comment="User who performed the action"
    )

    actor_email: Mapped[str | None] = mapped_column(String(255), nullable=True)

    action: Mapped[AuditAction] = mapped_column(
        String(30),
        nullable=False,
        comment="What happened"
    )

    entity_type: Mapped[str] = mapped_column(
        String(30),
        nullable=False,
        comment="tenant, user or assignment"
    )

    entity_id: Mapped[str | None] = mapped_column(String(36), nullable=True)

    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    ip_address: Mapped[str | None] = mapped_column(String(45), nullable=True)

    __table_args__ = (
        Index("idx_audit_entity", "entity_type", "entity_id"),
    )

    def __repr__(self) -> str:
        return f"<AuditLog(action={self.action}, entity={self.entity_type}:{self.entity_id})>"
