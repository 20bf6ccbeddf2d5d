"""
Company (tenant) business logic.

Writes are reserved to super admins. Reads go through the access filter,
so each caller only ever sees the companies in its scope.
"""

from typing import Any

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from collaboranexio.core.database import atomic
from collaboranexio.core.exceptions import (
    ConflictError,
    ResourceNotFoundError,
    ValidationError,
)
from collaboranexio.core.logging_config import get_logger
from collaboranexio.core.metrics import tenants_created_total, tenants_deleted_total
from collaboranexio.core.performance import PerformanceMonitor
from collaboranexio.core.scope import Principal, apply_scope, require_role, resolve_scope
from collaboranexio.core.validators import (
    validate_fiscal_code,
    validate_province,
    validate_vat_number,
)
from collaboranexio.features.assignments.service import assignment_service
from collaboranexio.features.audit.service import audit_service
from collaboranexio.models.audit_log import AuditAction
from collaboranexio.models.tenant import Tenant, TenantStatus
from collaboranexio.models.user import MANAGER_ROLES, User, UserRole
from collaboranexio.schemas.tenant import TenantCreate, TenantUpdate

logger = get_logger(__name__)

# Columns that may be changed but never cleared
REQUIRED_FIELDS = frozenset({
    "denominazione",
    "codice_fiscale",
    "partita_iva",
    "sede_legale_indirizzo",
    "settore_merceologico",
    "numero_dipendenti",
    "email",
    "rappresentante_legale",
    "status",
    "plan_type",
})


class TenantService:
    """Company management service."""

    @staticmethod
    def _normalize(fields: dict[str, Any]) -> dict[str, Any]:
        """Validate and normalize fiscal fields present in ``fields``."""
        if "codice_fiscale" in fields:
            fields["codice_fiscale"] = validate_fiscal_code(fields["codice_fiscale"])
        if "partita_iva" in fields:
            fields["partita_iva"] = validate_vat_number(fields["partita_iva"])
        if "sede_legale_provincia" in fields:
            fields["sede_legale_provincia"] = validate_province(fields["sede_legale_provincia"])
        for key in ("status", "plan_type"):
            if fields.get(key) is not None:
                fields[key] = fields[key].value
        return fields

    @staticmethod
    async def _check_unique(
        db: AsyncSession,
        codice_fiscale: str | None,
        partita_iva: str | None,
        exclude_id: str | None = None,
    ) -> None:
        checks = (
            ("codice_fiscale", Tenant.codice_fiscale, codice_fiscale),
            ("partita_iva", Tenant.partita_iva, partita_iva),
        )
        for field, column, value in checks:
            if value is None:
                continue
            query = select(Tenant.id).where(column == value)
            if exclude_id is not None:
                query = query.where(Tenant.id != exclude_id)
            result = await db.execute(query)
            if result.first() is not None:
                raise ConflictError(
                    f"A company with this {field} already exists",
                    field=field,
                )

    @staticmethod
    async def _check_manager(db: AsyncSession, manager_id: str | None) -> None:
        if manager_id is None:
            return
        manager = await db.get(User, manager_id)
        if manager is None or not manager.is_active or manager.role not in MANAGER_ROLES:
            raise ValidationError(
                "Manager must be an active user with role manager, admin or super_admin",
                field="manager_id",
            )

    @staticmethod
    async def create_tenant(
        db: AsyncSession,
        principal: Principal,
        tenant_data: TenantCreate,
    ) -> Tenant:
        """
        Create a company.

        Raises:
            AuthorizationError: caller is not a super admin
            ValidationError: bad fiscal code, VAT number, province or manager
            ConflictError: fiscal code or VAT number already registered
        """
        require_role(principal, UserRole.SUPER_ADMIN, operation="create_tenant")

        fields = TenantService._normalize(tenant_data.model_dump())
        await TenantService._check_manager(db, fields.get("manager_id"))
        await TenantService._check_unique(db, fields["codice_fiscale"], fields["partita_iva"])

        tenant = Tenant(**fields)
        async with atomic(db):
            db.add(tenant)
            await db.flush()
            await audit_service.record(
                db,
                principal,
                AuditAction.CREATE,
                "tenant",
                tenant.id,
                f"Created company {tenant.denominazione}",
            )

        tenants_created_total.labels(plan_type=tenant.plan_type).inc()
        logger.info(
            "tenant_created",
            tenant_id=tenant.id,
            denominazione=tenant.denominazione,
            plan_type=tenant.plan_type,
        )
        return tenant

    @staticmethod
    async def update_tenant(
        db: AsyncSession,
        principal: Principal,
        tenant_id: str,
        tenant_data: TenantUpdate,
    ) -> Tenant:
        """
        Update the fields present in ``tenant_data``.

        ``manager_id`` may be set to null to clear the manager.
        """
        require_role(principal, UserRole.SUPER_ADMIN, operation="update_tenant")

        tenant = await db.get(Tenant, tenant_id)
        if tenant is None:
            raise ResourceNotFoundError("Company not found")

        fields = tenant_data.model_dump(exclude_unset=True)
        for key in REQUIRED_FIELDS:
            if key in fields and fields[key] is None:
                raise ValidationError(f"{key} cannot be empty", field=key)

        fields = TenantService._normalize(fields)
        if "manager_id" in fields:
            await TenantService._check_manager(db, fields["manager_id"])
        await TenantService._check_unique(
            db,
            fields.get("codice_fiscale"),
            fields.get("partita_iva"),
            exclude_id=tenant_id,
        )

        async with atomic(db):
            for key, value in fields.items():
                setattr(tenant, key, value)
            await db.flush()
            await audit_service.record(
                db,
                principal,
                AuditAction.UPDATE,
                "tenant",
                tenant.id,
                f"Updated fields: {', '.join(sorted(fields)) or 'none'}",
            )

        logger.info("tenant_updated", tenant_id=tenant.id, fields=sorted(fields))
        return tenant

    @staticmethod
    async def delete_tenant(
        db: AsyncSession,
        principal: Principal,
        tenant_id: str,
        confirm: bool = False,
    ) -> None:
        """
        Permanently delete a company.

        Its assignment rows go with it and its managers/users are left
        without a company, all in one transaction.

        Raises:
            ValidationError: ``confirm`` not set
        """
        require_role(principal, UserRole.SUPER_ADMIN, operation="delete_tenant")
        if not confirm:
            raise ValidationError(
                "Deleting a company is permanent and must be confirmed",
                field="confirm",
            )

        tenant = await db.get(Tenant, tenant_id)
        if tenant is None:
            raise ResourceNotFoundError("Company not found")

        denominazione = tenant.denominazione
        async with atomic(db):
            await assignment_service.on_tenant_deleted(db, tenant_id)
            await db.delete(tenant)
            await db.flush()
            await audit_service.record(
                db,
                principal,
                AuditAction.DELETE,
                "tenant",
                tenant_id,
                f"Deleted company {denominazione}",
            )

        tenants_deleted_total.inc()
        logger.info("tenant_deleted", tenant_id=tenant_id, denominazione=denominazione)

    @staticmethod
    async def list_tenants(
        db: AsyncSession,
        principal: Principal,
        skip: int = 0,
        limit: int = 10,
        search: str | None = None,
        status: TenantStatus | None = None,
    ) -> tuple[list[Tenant], int]:
        """
        List companies in the caller's scope.

        ``search`` matches a case-insensitive substring of the legal name,
        fiscal code or VAT number. Ordered by name, then id.
        """
        async with PerformanceMonitor("list_tenants", role=principal.role.value):
            scope = await resolve_scope(db, principal)
            query = apply_scope(select(Tenant), scope, Tenant.id)

            if search:
                term = search.strip()
                query = query.where(
                    or_(
                        Tenant.denominazione.icontains(term, autoescape=True),
                        Tenant.codice_fiscale.icontains(term, autoescape=True),
                        Tenant.partita_iva.icontains(term, autoescape=True),
                    )
                )
            if status:
                query = query.where(Tenant.status == status.value)

            count_result = await db.execute(
                select(func.count()).select_from(query.subquery())
            )
            total = count_result.scalar_one()

            result = await db.execute(
                query.order_by(Tenant.denominazione, Tenant.id).offset(skip).limit(limit)
            )
            return list(result.scalars().all()), total

    @staticmethod
    async def get_tenant(db: AsyncSession, principal: Principal, tenant_id: str) -> Tenant:
        """
        Get one company in scope.

        Raises:
            ResourceNotFoundError: missing or outside the caller's scope
        """
        scope = await resolve_scope(db, principal)
        result = await db.execute(
            apply_scope(select(Tenant).where(Tenant.id == tenant_id), scope, Tenant.id)
        )
        tenant = result.scalar_one_or_none()
        if tenant is None:
            raise ResourceNotFoundError("Company not found")
        return tenant


# Singleton instance
tenant_service = TenantService()
