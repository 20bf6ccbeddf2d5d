"""
Pydantic schemas for audit entries.
"""

from datetime import datetime

from collaboranexio.models.audit_log import AuditAction
from collaboranexio.schemas.common import BaseSchema


class AuditLogRead(BaseSchema):
    id: str
    actor_user_id: str | None = None
    actor_email: str | None = None
    action: AuditAction
    entity_type: str
    entity_id: str | None = None
    description: str | None = None
    ip_address: str | None = None
    created_at: datetime
