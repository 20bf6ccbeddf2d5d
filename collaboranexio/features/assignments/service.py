"""
User <-> company association.

The shape depends on the user's role:

- super_admin: unrestricted, nothing stored
- admin: rows in ``admin_tenant_assignments`` (one or more)
- manager/user: ``users.tenant_id`` (one, or NULL after its company is deleted)

Functions here write through the caller's session and never commit, so
they compose into the caller's transaction (see ``core.database.atomic``).
"""

from collections.abc import Iterable

from sqlalchemy import delete, insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from collaboranexio.core.exceptions import ResourceNotFoundError, ValidationError
from collaboranexio.core.logging_config import get_logger
from collaboranexio.core.metrics import assignment_changes_total
from collaboranexio.core.scope import UNRESTRICTED, ManySet, Single, TenantAssociation
from collaboranexio.models.assignment import admin_tenant_assignments
from collaboranexio.models.tenant import Tenant
from collaboranexio.models.user import User, UserRole

logger = get_logger(__name__)


class AssignmentService:
    """Reads and replaces role-dependent company associations."""

    @staticmethod
    async def _get_user(db: AsyncSession, user_id: str) -> User:
        user = await db.get(User, user_id)
        if user is None:
            raise ResourceNotFoundError("User not found", details={"user_id": user_id})
        return user

    @staticmethod
    async def missing_tenant_ids(db: AsyncSession, tenant_ids: Iterable[str]) -> set[str]:
        """Return the ids in ``tenant_ids`` that match no company."""
        wanted = set(tenant_ids)
        if not wanted:
            return set()
        result = await db.execute(select(Tenant.id).where(Tenant.id.in_(sorted(wanted))))
        return wanted - set(result.scalars().all())

    @staticmethod
    async def _admin_tenant_ids(db: AsyncSession, user_id: str) -> frozenset[str]:
        result = await db.execute(
            select(admin_tenant_assignments.c.tenant_id).where(
                admin_tenant_assignments.c.admin_user_id == user_id
            )
        )
        return frozenset(result.scalars().all())

    @staticmethod
    async def get_assigned_tenants(db: AsyncSession, user_id: str) -> TenantAssociation:
        """
        Current association of a user, read from persisted state.

        Raises:
            ResourceNotFoundError: unknown user
        """
        user = await AssignmentService._get_user(db, user_id)
        role = UserRole(user.role)

        if role == UserRole.SUPER_ADMIN:
            return UNRESTRICTED
        if role == UserRole.ADMIN:
            return ManySet(await AssignmentService._admin_tenant_ids(db, user_id))
        return Single(user.tenant_id)

    @staticmethod
    async def assign_tenants_to_admin(
        db: AsyncSession,
        user_id: str,
        tenant_ids: Iterable[str],
    ) -> frozenset[str]:
        """
        Replace an admin's whole assignment set.

        Only the difference is written: pairs no longer wanted are deleted,
        missing pairs inserted. Repeating the same set writes nothing.

        Raises:
            ValidationError: empty set, unknown company, or user is not an admin
            ResourceNotFoundError: unknown user
        """
        wanted = frozenset(tenant_ids)
        if not wanted:
            raise ValidationError(
                "An admin must be assigned at least one company",
                field="tenant_ids",
            )

        user = await AssignmentService._get_user(db, user_id)
        if UserRole(user.role) != UserRole.ADMIN:
            raise ValidationError(
                "Multiple companies can only be assigned to admins",
                field="role",
            )

        missing = await AssignmentService.missing_tenant_ids(db, wanted)
        if missing:
            raise ValidationError(
                "One or more companies do not exist",
                field="tenant_ids",
                details={"missing": sorted(missing)},
            )

        current = await AssignmentService._admin_tenant_ids(db, user_id)
        to_remove = current - wanted
        to_add = wanted - current

        if to_remove:
            await db.execute(
                delete(admin_tenant_assignments).where(
                    admin_tenant_assignments.c.admin_user_id == user_id,
                    admin_tenant_assignments.c.tenant_id.in_(sorted(to_remove)),
                )
            )
            assignment_changes_total.labels(change="removed").inc(len(to_remove))
        if to_add:
            await db.execute(
                insert(admin_tenant_assignments),
                [{"admin_user_id": user_id, "tenant_id": tid} for tid in sorted(to_add)],
            )
            assignment_changes_total.labels(change="added").inc(len(to_add))

        if to_add or to_remove:
            logger.info(
                "admin_assignments_replaced",
                user_id=user_id,
                added=len(to_add),
                removed=len(to_remove),
            )
        return wanted

    @staticmethod
    async def assign_tenant_to_user(db: AsyncSession, user_id: str, tenant_id: str) -> User:
        """
        Bind a manager or user to one company, replacing any previous link.

        Raises:
            ValidationError: unknown company, or user is not single-tenant
            ResourceNotFoundError: unknown user
        """
        if not tenant_id:
            raise ValidationError("A company is required for this role", field="tenant_id")

        user = await AssignmentService._get_user(db, user_id)
        if not UserRole(user.role).is_single_tenant:
            raise ValidationError(
                "A single company can only be assigned to managers and users",
                field="role",
            )

        if await AssignmentService.missing_tenant_ids(db, [tenant_id]):
            raise ValidationError("Company does not exist", field="tenant_id")

        if user.tenant_id != tenant_id:
            user.tenant_id = tenant_id
            await db.flush()
            assignment_changes_total.labels(change="linked").inc()
            logger.info("user_tenant_linked", user_id=user_id, tenant_id=tenant_id)
        return user

    @staticmethod
    async def revoke_tenant_from_admin(db: AsyncSession, user_id: str, tenant_id: str) -> bool:
        """
        Remove a single admin/company pair.

        May leave the admin with no companies; its scope is then empty.
        Returns whether a pair was removed.
        """
        result = await db.execute(
            delete(admin_tenant_assignments).where(
                admin_tenant_assignments.c.admin_user_id == user_id,
                admin_tenant_assignments.c.tenant_id == tenant_id,
            )
        )
        removed = result.rowcount > 0
        if removed:
            assignment_changes_total.labels(change="removed").inc()
            logger.info("admin_assignment_revoked", user_id=user_id, tenant_id=tenant_id)
        return removed

    @staticmethod
    async def clear_admin_assignments(db: AsyncSession, user_id: str) -> int:
        result = await db.execute(
            delete(admin_tenant_assignments).where(
                admin_tenant_assignments.c.admin_user_id == user_id
            )
        )
        if result.rowcount:
            assignment_changes_total.labels(change="removed").inc(result.rowcount)
        return result.rowcount

    @staticmethod
    async def clear_managed_tenants(db: AsyncSession, user_id: str) -> int:
        """Unset ``manager_id`` on every company managed by ``user_id``."""
        result = await db.execute(
            update(Tenant)
            .where(Tenant.manager_id == user_id)
            .values(manager_id=None)
            .execution_options(synchronize_session="fetch")
        )
        return result.rowcount

    @staticmethod
    async def on_user_deleted(db: AsyncSession, user_id: str) -> None:
        """Drop the user's assignment rows and clear it as company manager."""
        removed = await AssignmentService.clear_admin_assignments(db, user_id)
        unmanaged = await AssignmentService.clear_managed_tenants(db, user_id)
        logger.info(
            "user_associations_cleared",
            user_id=user_id,
            assignments_removed=removed,
            tenants_unmanaged=unmanaged,
        )

    @staticmethod
    async def on_tenant_deleted(db: AsyncSession, tenant_id: str) -> None:
        """
        Drop the company's assignment rows and unassign its managers/users.

        Affected managers and users keep their accounts with no company,
        which leaves them an empty scope.
        """
        result = await db.execute(
            delete(admin_tenant_assignments).where(
                admin_tenant_assignments.c.tenant_id == tenant_id
            )
        )
        unlinked = await db.execute(
            update(User)
            .where(User.tenant_id == tenant_id)
            .values(tenant_id=None)
            .execution_options(synchronize_session="fetch")
        )
        logger.info(
            "tenant_associations_cleared",
            tenant_id=tenant_id,
            assignments_removed=result.rowcount,
            users_unassigned=unlinked.rowcount,
        )


# Singleton instance
assignment_service = AssignmentService()
