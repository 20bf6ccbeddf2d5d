"""
Audit log business logic.

Entries are added to the caller's session so they commit (or roll back)
together with the mutation they describe.
"""

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from collaboranexio.core.logging_config import get_logger
from collaboranexio.core.scope import Principal
from collaboranexio.models.audit_log import AuditAction, AuditLog

logger = get_logger(__name__)


class AuditService:
    """Records and lists audit entries."""

    @staticmethod
    async def record(
        db: AsyncSession,
        principal: Principal | None,
        action: AuditAction,
        entity_type: str,
        entity_id: str | None = None,
        description: str | None = None,
    ) -> AuditLog:
        """
        Add an audit entry to the current transaction.

        Args:
            db: Database session (not committed here)
            principal: Acting user, None for system actions
            action: What happened
            entity_type: ``tenant``, ``user`` or ``assignment``
            entity_id: Affected row
            description: Free-text summary
        """
        entry = AuditLog(
            actor_user_id=principal.user_id if principal else None,
            actor_email=principal.email if principal else None,
            action=action.value,
            entity_type=entity_type,
            entity_id=entity_id,
            description=description,
            ip_address=principal.ip_address if principal else None,
        )
        db.add(entry)
        await db.flush()

        logger.debug(
            "audit_recorded",
            action=action.value,
            entity_type=entity_type,
            entity_id=entity_id,
        )
        return entry

    @staticmethod
    async def list_entries(
        db: AsyncSession,
        principal: Principal,
        skip: int = 0,
        limit: int = 10,
        entity_type: str | None = None,
        action: AuditAction | None = None,
    ) -> tuple[list[AuditLog], int]:
        """
        List entries newest first.

        Super admins see everything; everyone else only what they did.
        """
        query = select(AuditLog)
        if not principal.is_super_admin:
            query = query.where(AuditLog.actor_user_id == principal.user_id)
        if entity_type:
            query = query.where(AuditLog.entity_type == entity_type)
        if action:
            query = query.where(AuditLog.action == action.value)

        count_result = await db.execute(
            select(func.count()).select_from(query.subquery())
        )
        total = count_result.scalar_one()

        result = await db.execute(
            query.order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
            .offset(skip)
            .limit(limit)
        )
        return list(result.scalars().all()), total


# Singleton instance
audit_service = AuditService()
