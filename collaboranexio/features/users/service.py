"""
User management business logic.

Visibility follows the access filter: a caller sees the users bound to a
company in its scope, admins assigned to such a company, and itself.
Super admins are only visible to other super admins.

Managing another user additionally requires:
- an admin or super admin caller (managers may only delete)
- a target whose role is not above the caller's
- for an admin target, all of its companies inside the caller's scope
"""

from collections.abc import Iterable

from sqlalchemy import exists, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from collaboranexio.core.database import atomic
from collaboranexio.core.exceptions import (
    AuthorizationError,
    ConflictError,
    ResourceNotFoundError,
    ValidationError,
)
from collaboranexio.core.logging_config import get_logger
from collaboranexio.core.metrics import authorization_denied_total, users_created_total
from collaboranexio.core.performance import PerformanceMonitor
from collaboranexio.core.scope import (
    ManySet,
    Principal,
    Scope,
    Single,
    TenantAssociation,
    Unrestricted,
    apply_scope,
    ensure_in_scope,
    require_role,
    resolve_scope,
    scope_clause,
)
from collaboranexio.core.security import hash_password
from collaboranexio.features.assignments.service import assignment_service
from collaboranexio.features.audit.service import audit_service
from collaboranexio.models.assignment import admin_tenant_assignments
from collaboranexio.models.audit_log import AuditAction
from collaboranexio.models.tenant import Tenant
from collaboranexio.models.user import MANAGER_ROLES, User, UserRole
from collaboranexio.schemas.user import TenantData, UserCreate, UserUpdate

logger = get_logger(__name__)

MANAGING_ROLES = (UserRole.ADMIN, UserRole.SUPER_ADMIN)


def _deny(principal: Principal, operation: str, message: str) -> AuthorizationError:
    authorization_denied_total.labels(operation=operation).inc()
    logger.warning("user_action_denied", operation=operation, user_id=principal.user_id)
    return AuthorizationError(message)


class UserService:
    """User management service."""

    # ------------------------------------------------------------------
    # Visibility and permission checks
    # ------------------------------------------------------------------

    @staticmethod
    def visible_users_query(scope: Scope, principal: Principal):
        """``select(User)`` restricted to the users ``principal`` may see."""
        query = select(User)
        if isinstance(scope, Unrestricted):
            return query

        admin_in_scope = exists().where(
            admin_tenant_assignments.c.admin_user_id == User.id,
            scope_clause(scope, admin_tenant_assignments.c.tenant_id),
        )
        return query.where(
            User.role != UserRole.SUPER_ADMIN.value,
            or_(
                scope_clause(scope, User.tenant_id),
                admin_in_scope,
                User.id == principal.user_id,
            ),
        )

    @staticmethod
    async def _get_visible_user(
        db: AsyncSession,
        principal: Principal,
        scope: Scope,
        user_id: str,
    ) -> User:
        query = UserService.visible_users_query(scope, principal).where(User.id == user_id)
        result = await db.execute(query)
        user = result.scalar_one_or_none()
        if user is None:
            raise ResourceNotFoundError("User not found")
        return user

    @staticmethod
    async def _ensure_can_manage(
        db: AsyncSession,
        principal: Principal,
        scope: Scope,
        target: User,
        operation: str,
    ) -> None:
        """Role hierarchy and admin-scope checks on a visible target."""
        target_role = UserRole(target.role)
        if target_role.level > principal.role.level:
            raise _deny(principal, operation, "You cannot manage a user with a higher role")

        if isinstance(scope, Unrestricted) or target_role != UserRole.ADMIN:
            return

        association = await assignment_service.get_assigned_tenants(db, target.id)
        if isinstance(association, ManySet) and not association.tenant_ids <= scope:
            raise _deny(
                principal,
                operation,
                "This admin manages companies outside your scope",
            )

    @staticmethod
    def _ensure_not_self(principal: Principal, user_id: str, operation: str, message: str) -> None:
        if principal.user_id == user_id:
            raise _deny(principal, operation, message)

    @staticmethod
    def _ensure_can_grant(principal: Principal, role: UserRole, operation: str) -> None:
        if role.level > principal.role.level:
            raise _deny(principal, operation, f"You cannot assign the {role.value} role")

    @staticmethod
    async def _ensure_email_free(
        db: AsyncSession,
        email: str,
        exclude_id: str | None = None,
    ) -> None:
        query = select(User.id).where(func.lower(User.email) == email.lower())
        if exclude_id is not None:
            query = query.where(User.id != exclude_id)
        result = await db.execute(query)
        if result.first() is not None:
            raise ConflictError("Email already registered", field="email")

    @staticmethod
    async def _check_tenant_data(
        db: AsyncSession,
        principal: Principal,
        scope: Scope,
        role: UserRole,
        tenant_data: TenantData,
        operation: str,
    ) -> TenantAssociation:
        """
        Validate the association that goes with ``role``.

        Returns the association to persist.

        Raises:
            ValidationError: missing or unknown companies for the role
            AuthorizationError: a company outside the caller's scope
        """
        if role == UserRole.SUPER_ADMIN:
            return Unrestricted()

        if role == UserRole.ADMIN:
            tenant_ids = frozenset(tenant_data.tenant_ids or [])
            field = "tenant_ids"
            if not tenant_ids:
                raise ValidationError("Admins must be assigned at least one company", field=field)
        else:
            field = "tenant_id"
            if not tenant_data.tenant_id:
                raise ValidationError("Managers and users must belong to a company", field=field)
            tenant_ids = frozenset({tenant_data.tenant_id})

        if await assignment_service.missing_tenant_ids(db, tenant_ids):
            raise ValidationError("One or more companies do not exist", field=field)

        for tenant_id in sorted(tenant_ids):
            ensure_in_scope(scope, tenant_id, principal, operation)

        if role == UserRole.ADMIN:
            return ManySet(tenant_ids)
        return Single(tenant_data.tenant_id)

    @staticmethod
    async def _store_association(
        db: AsyncSession,
        user: User,
        association: TenantAssociation,
    ) -> None:
        """Replace the stored association of ``user`` with ``association``."""
        if isinstance(association, ManySet):
            user.tenant_id = None
            await db.flush()
            await assignment_service.assign_tenants_to_admin(db, user.id, association.tenant_ids)
            return

        await assignment_service.clear_admin_assignments(db, user.id)
        if isinstance(association, Single):
            await assignment_service.assign_tenant_to_user(db, user.id, association.tenant_id)
        else:
            user.tenant_id = None
            await db.flush()

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    @staticmethod
    async def create_user(
        db: AsyncSession,
        principal: Principal,
        user_data: UserCreate,
    ) -> User:
        """
        Create a user together with its company association.

        Raises:
            AuthorizationError: caller may not create users, grant the role,
                or use one of the companies
            ValidationError: role's company data missing or unknown
            ConflictError: email already registered
        """
        require_role(principal, *MANAGING_ROLES, operation="create_user")
        UserService._ensure_can_grant(principal, user_data.role, "create_user")

        scope = await resolve_scope(db, principal)
        association = await UserService._check_tenant_data(
            db, principal, scope, user_data.role, user_data, "create_user"
        )
        await UserService._ensure_email_free(db, user_data.email)

        user = User(
            email=user_data.email,
            hashed_password=hash_password(user_data.password),
            first_name=user_data.first_name,
            last_name=user_data.last_name,
            role=user_data.role.value,
            is_active=True,
        )
        async with atomic(db):
            db.add(user)
            await db.flush()
            await UserService._store_association(db, user, association)
            await audit_service.record(
                db,
                principal,
                AuditAction.CREATE,
                "user",
                user.id,
                f"Created {user.role} {user.email}",
            )

        users_created_total.labels(role=user.role).inc()
        logger.info("user_created", user_id=user.id, role=user.role, created_by=principal.user_id)
        return user

    @staticmethod
    async def set_role(
        db: AsyncSession,
        principal: Principal,
        user_id: str,
        new_role: UserRole,
        tenant_data: TenantData,
    ) -> User:
        """
        Change a user's role and replace its association in one transaction.

        Moving to a single-tenant role drops the admin assignment rows;
        moving to admin or super admin clears ``tenant_id``. Demotion to
        ``user`` also clears the user as manager of any company.
        """
        require_role(principal, *MANAGING_ROLES, operation="set_role")
        UserService._ensure_not_self(principal, user_id, "set_role", "You cannot change your own role")
        UserService._ensure_can_grant(principal, new_role, "set_role")

        scope = await resolve_scope(db, principal)
        user = await UserService._get_visible_user(db, principal, scope, user_id)
        await UserService._ensure_can_manage(db, principal, scope, user, "set_role")
        association = await UserService._check_tenant_data(
            db, principal, scope, new_role, tenant_data, "set_role"
        )

        old_role = user.role
        async with atomic(db):
            user.role = new_role.value
            await db.flush()
            await UserService._store_association(db, user, association)
            if new_role.value not in MANAGER_ROLES:
                await assignment_service.clear_managed_tenants(db, user.id)
            await audit_service.record(
                db,
                principal,
                AuditAction.ROLE_CHANGE,
                "user",
                user.id,
                f"Role changed from {old_role} to {new_role.value}",
            )

        logger.info("user_role_changed", user_id=user.id, old_role=old_role, new_role=new_role.value)
        return user

    @staticmethod
    async def replace_companies(
        db: AsyncSession,
        principal: Principal,
        user_id: str,
        tenant_data: TenantData,
    ) -> TenantAssociation:
        """Replace the association of a user, keeping its role."""
        require_role(principal, *MANAGING_ROLES, operation="assign_companies")

        scope = await resolve_scope(db, principal)
        user = await UserService._get_visible_user(db, principal, scope, user_id)
        await UserService._ensure_can_manage(db, principal, scope, user, "assign_companies")

        role = UserRole(user.role)
        if role == UserRole.SUPER_ADMIN:
            raise ValidationError("Super admins have access to every company", field="role")

        association = await UserService._check_tenant_data(
            db, principal, scope, role, tenant_data, "assign_companies"
        )
        async with atomic(db):
            await UserService._store_association(db, user, association)
            await audit_service.record(
                db,
                principal,
                AuditAction.ASSIGN,
                "assignment",
                user.id,
                f"Companies of {user.email} replaced",
            )
        return association

    @staticmethod
    async def revoke_company(
        db: AsyncSession,
        principal: Principal,
        user_id: str,
        tenant_id: str,
    ) -> None:
        """
        Remove one company from an admin.

        Unlike ``replace_companies`` this may leave the admin with no
        companies at all; its scope is then empty until reassigned.

        Raises:
            ValidationError: target is not an admin
            AuthorizationError: company outside the caller's scope
            ResourceNotFoundError: admin not assigned to the company
        """
        require_role(principal, *MANAGING_ROLES, operation="revoke_company")

        scope = await resolve_scope(db, principal)
        user = await UserService._get_visible_user(db, principal, scope, user_id)
        await UserService._ensure_can_manage(db, principal, scope, user, "revoke_company")
        if user.role != UserRole.ADMIN.value:
            raise ValidationError("Only admins have revocable company assignments", field="role")
        ensure_in_scope(scope, tenant_id, principal, "revoke_company")

        email = user.email
        async with atomic(db):
            removed = await assignment_service.revoke_tenant_from_admin(db, user.id, tenant_id)
            if not removed:
                raise ResourceNotFoundError("Company assignment not found")
            await audit_service.record(
                db,
                principal,
                AuditAction.ASSIGN,
                "assignment",
                user.id,
                f"Company {tenant_id} revoked from {email}",
            )

        logger.info("admin_company_revoked", user_id=user_id, tenant_id=tenant_id)

    @staticmethod
    async def get_user_companies(
        db: AsyncSession,
        principal: Principal,
        user_id: str,
    ) -> tuple[User, TenantAssociation, list[Tenant]]:
        """
        A user's association and the companies in it that the caller can see.
        """
        scope = await resolve_scope(db, principal)
        user = await UserService._get_visible_user(db, principal, scope, user_id)
        association = await assignment_service.get_assigned_tenants(db, user.id)

        if isinstance(association, Unrestricted):
            return user, association, []
        if isinstance(association, ManySet):
            ids: Iterable[str] = association.tenant_ids
        else:
            ids = [association.tenant_id] if association.tenant_id else []
        if not ids:
            return user, association, []

        query = apply_scope(
            select(Tenant).where(Tenant.id.in_(sorted(ids))),
            scope,
            Tenant.id,
        )
        result = await db.execute(query.order_by(Tenant.denominazione, Tenant.id))
        return user, association, list(result.scalars().all())

    @staticmethod
    async def update_user(
        db: AsyncSession,
        principal: Principal,
        user_id: str,
        user_data: UserUpdate,
    ) -> User:
        """
        Update profile fields and, optionally, the password.

        Anyone may update their own profile; other users need the
        management checks.
        """
        scope = await resolve_scope(db, principal)
        user = await UserService._get_visible_user(db, principal, scope, user_id)
        if user.id != principal.user_id:
            require_role(principal, *MANAGING_ROLES, operation="update_user")
            await UserService._ensure_can_manage(db, principal, scope, user, "update_user")

        fields = user_data.model_dump(exclude_unset=True)
        for key in ("email", "first_name", "last_name", "password"):
            if key in fields and fields[key] is None:
                raise ValidationError(f"{key} cannot be empty", field=key)

        if "email" in fields:
            await UserService._ensure_email_free(db, fields["email"], exclude_id=user.id)

        password = fields.pop("password", None)
        async with atomic(db):
            for key, value in fields.items():
                setattr(user, key, value)
            if password is not None:
                user.hashed_password = hash_password(password)
            await db.flush()
            changed = sorted(fields) + (["password"] if password is not None else [])
            await audit_service.record(
                db,
                principal,
                AuditAction.UPDATE,
                "user",
                user.id,
                f"Updated fields: {', '.join(changed) or 'none'}",
            )

        logger.info("user_updated", user_id=user.id, fields=sorted(fields))
        return user

    @staticmethod
    async def set_user_status(
        db: AsyncSession,
        principal: Principal,
        user_id: str,
        is_active: bool | None = None,
    ) -> User:
        """Activate or deactivate a user; ``None`` toggles the current status."""
        require_role(principal, *MANAGING_ROLES, operation="set_user_status")
        UserService._ensure_not_self(
            principal, user_id, "set_user_status", "You cannot change your own status"
        )

        scope = await resolve_scope(db, principal)
        user = await UserService._get_visible_user(db, principal, scope, user_id)
        await UserService._ensure_can_manage(db, principal, scope, user, "set_user_status")

        new_status = (not user.is_active) if is_active is None else is_active
        async with atomic(db):
            user.is_active = new_status
            await db.flush()
            await audit_service.record(
                db,
                principal,
                AuditAction.STATUS_CHANGE,
                "user",
                user.id,
                "Activated" if new_status else "Deactivated",
            )

        logger.info("user_status_changed", user_id=user.id, is_active=new_status)
        return user

    @staticmethod
    async def delete_user(db: AsyncSession, principal: Principal, user_id: str) -> None:
        """
        Permanently delete a user and its assignment rows.

        Managers may delete users of their own company; nobody may delete
        a user with a higher role, or themselves.
        """
        require_role(
            principal,
            UserRole.MANAGER,
            *MANAGING_ROLES,
            operation="delete_user",
        )
        UserService._ensure_not_self(
            principal, user_id, "delete_user", "You cannot delete your own account"
        )

        scope = await resolve_scope(db, principal)
        user = await UserService._get_visible_user(db, principal, scope, user_id)
        await UserService._ensure_can_manage(db, principal, scope, user, "delete_user")

        email = user.email
        async with atomic(db):
            await assignment_service.on_user_deleted(db, user.id)
            await db.delete(user)
            await db.flush()
            await audit_service.record(
                db,
                principal,
                AuditAction.DELETE,
                "user",
                user_id,
                f"Deleted user {email}",
            )

        logger.info("user_deleted", user_id=user_id, deleted_by=principal.user_id)

    @staticmethod
    async def list_users(
        db: AsyncSession,
        principal: Principal,
        skip: int = 0,
        limit: int = 10,
        search: str | None = None,
        role: UserRole | None = None,
    ) -> tuple[list[User], int]:
        """List visible users, searching name and email."""
        async with PerformanceMonitor("list_users", role=principal.role.value):
            scope = await resolve_scope(db, principal)
            query = UserService.visible_users_query(scope, principal)

            if search:
                term = search.strip()
                query = query.where(
                    or_(
                        User.first_name.icontains(term, autoescape=True),
                        User.last_name.icontains(term, autoescape=True),
                        User.email.icontains(term, autoescape=True),
                    )
                )
            if role:
                query = query.where(User.role == role.value)

            count_result = await db.execute(
                select(func.count()).select_from(query.subquery())
            )
            total = count_result.scalar_one()

            result = await db.execute(
                query.order_by(User.last_name, User.first_name, User.id)
                .offset(skip)
                .limit(limit)
            )
            return list(result.scalars().all()), total

    @staticmethod
    async def list_managers(db: AsyncSession, principal: Principal) -> list[User]:
        """Active users eligible for the company manager picker."""
        scope = await resolve_scope(db, principal)
        query = UserService.visible_users_query(scope, principal).where(
            User.role.in_(MANAGER_ROLES),
            User.is_active.is_(True),
        )
        result = await db.execute(query.order_by(User.last_name, User.first_name, User.id))
        return list(result.scalars().all())

    @staticmethod
    async def get_user(db: AsyncSession, principal: Principal, user_id: str) -> User:
        scope = await resolve_scope(db, principal)
        return await UserService._get_visible_user(db, principal, scope, user_id)


# Singleton instance
user_service = UserService()
