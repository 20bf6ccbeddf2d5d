"""
Tenant access filter.

Every tenant-scoped read and write goes through here:

- ``resolve_scope`` turns a principal into the set of company ids it may
  act on (or ``UNRESTRICTED`` for super admins), always from current
  database state.
- ``apply_scope`` / ``scope_clause`` restrict a statement to that set. An
  empty scope matches no rows; it is never an error.
- ``ensure_in_scope`` guards mutations and raises ``AuthorizationError``.
"""

from dataclasses import dataclass
from typing import TypeVar, Union

import structlog
from sqlalchemy import ColumnElement, false, true
from sqlalchemy.ext.asyncio import AsyncSession

from collaboranexio.core.exceptions import AuthorizationError
from collaboranexio.core.metrics import authorization_denied_total
from collaboranexio.models.user import User, UserRole

logger = structlog.get_logger(__name__)

Stmt = TypeVar("Stmt")


class Unrestricted:
    """Sentinel scope: every tenant is visible."""

    _instance: "Unrestricted | None" = None

    def __new__(cls) -> "Unrestricted":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNRESTRICTED"


UNRESTRICTED = Unrestricted()


@dataclass(frozen=True)
class ManySet:
    """Admin association: the companies the admin manages."""
    tenant_ids: frozenset[str]


@dataclass(frozen=True)
class Single:
    """Manager/user association: one company, or None once it was deleted."""
    tenant_id: str | None


TenantAssociation = Union[Unrestricted, ManySet, Single]
Scope = Union[Unrestricted, frozenset[str]]


@dataclass(frozen=True)
class Principal:
    """
    The authenticated caller, passed explicitly into every service call.

    Only identity and role live here. The tenant scope is resolved per call
    with ``resolve_scope`` so revoked assignments apply immediately.
    """

    user_id: str
    role: UserRole
    email: str | None = None
    ip_address: str | None = None

    @classmethod
    def from_user(cls, user: User, ip_address: str | None = None) -> "Principal":
        return cls(
            user_id=user.id,
            role=UserRole(user.role),
            email=user.email,
            ip_address=ip_address,
        )

    @property
    def is_super_admin(self) -> bool:
        return self.role == UserRole.SUPER_ADMIN


def scope_from_association(association: TenantAssociation) -> Scope:
    if isinstance(association, Unrestricted):
        return UNRESTRICTED
    if isinstance(association, ManySet):
        return frozenset(association.tenant_ids)
    if association.tenant_id is None:
        return frozenset()
    return frozenset({association.tenant_id})


async def resolve_scope(db: AsyncSession, principal: Principal) -> Scope:
    """
    Compute the company ids ``principal`` may act on.

    Super admins are unrestricted without looking at assignment rows, so
    stray rows for them can never narrow (or widen) anything.
    """
    if principal.is_super_admin:
        return UNRESTRICTED

    from collaboranexio.features.assignments.service import assignment_service

    association = await assignment_service.get_assigned_tenants(db, principal.user_id)
    return scope_from_association(association)


def scope_clause(scope: Scope, column: ColumnElement) -> ColumnElement[bool]:
    """Boolean SQL expression: ``column`` belongs to ``scope``."""
    if isinstance(scope, Unrestricted):
        return true()
    if not scope:
        return false()
    return column.in_(sorted(scope))


def apply_scope(stmt: Stmt, scope: Scope, column: ColumnElement) -> Stmt:
    """
    Restrict a select/update/delete to rows whose ``column`` is in scope.

    Usage:
        scope = await resolve_scope(db, principal)
        query = apply_scope(select(Tenant), scope, Tenant.id)
    """
    if isinstance(scope, Unrestricted):
        return stmt
    return stmt.where(scope_clause(scope, column))


def is_in_scope(scope: Scope, tenant_id: str | None) -> bool:
    if isinstance(scope, Unrestricted):
        return True
    return tenant_id is not None and tenant_id in scope


def ensure_in_scope(
    scope: Scope,
    tenant_id: str | None,
    principal: Principal,
    operation: str,
) -> None:
    """
    Reject a mutation that targets a company outside ``scope``.

    Raises:
        AuthorizationError: the caller may not act on ``tenant_id``
    """
    if is_in_scope(scope, tenant_id):
        return

    authorization_denied_total.labels(operation=operation).inc()
    logger.warning(
        "scope_denied",
        operation=operation,
        user_id=principal.user_id,
        role=principal.role.value,
        tenant_id=tenant_id,
    )
    raise AuthorizationError("You do not have access to this company")


def require_role(principal: Principal, *roles: UserRole, operation: str) -> None:
    """Reject callers whose role is not one of ``roles``."""
    if principal.role in roles:
        return

    authorization_denied_total.labels(operation=operation).inc()
    logger.warning(
        "role_denied",
        operation=operation,
        user_id=principal.user_id,
        role=principal.role.value,
    )
    raise AuthorizationError("Insufficient permissions for this operation")
