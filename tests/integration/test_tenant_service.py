"""
Integration tests for the company service.
"""

import pytest
from sqlalchemy import select

from collaboranexio.core.exceptions import (
    AuthorizationError,
    ConflictError,
    ResourceNotFoundError,
    ValidationError,
)
from collaboranexio.features.tenants.service import tenant_service
from collaboranexio.features.users.service import user_service
from collaboranexio.models import AuditLog, Tenant, TenantStatus, User, admin_tenant_assignments
from collaboranexio.schemas.tenant import TenantCreate, TenantUpdate
from tests.factories import TenantFactory, tenant_payload


def _create_data(**overrides) -> TenantCreate:
    return TenantCreate(**tenant_payload(**overrides))


@pytest.mark.integration
class TestCreateTenant:

    async def test_valid_fiscal_data_accepted(self, db_session, super_admin_principal):
        tenant = await tenant_service.create_tenant(
            db_session,
            super_admin_principal,
            _create_data(codice_fiscale="ABCDEFGHIJKLMNOP", partita_iva="12345678903"),
        )

        assert tenant.id is not None
        assert tenant.codice_fiscale == "ABCDEFGHIJKLMNOP"
        assert tenant.partita_iva == "12345678903"
        assert tenant.status == TenantStatus.ACTIVE.value

    async def test_bad_vat_checksum_rejected(self, db_session, super_admin_principal):
        with pytest.raises(ValidationError) as exc_info:
            await tenant_service.create_tenant(
                db_session,
                super_admin_principal,
                _create_data(partita_iva="12345678901"),
            )

        assert exc_info.value.field == "partita_iva"
        result = await db_session.execute(select(Tenant))
        assert result.scalars().all() == []

    async def test_fiscal_code_stored_upper_case(self, db_session, super_admin_principal):
        tenant = await tenant_service.create_tenant(
            db_session,
            super_admin_principal,
            _create_data(codice_fiscale="abcdefghijklmnop", sede_legale_provincia="rm"),
        )

        assert tenant.codice_fiscale == "ABCDEFGHIJKLMNOP"
        assert tenant.sede_legale_provincia == "RM"

    async def test_bad_fiscal_code_rejected(self, db_session, super_admin_principal):
        with pytest.raises(ValidationError) as exc_info:
            await tenant_service.create_tenant(
                db_session,
                super_admin_principal,
                _create_data(codice_fiscale="TOO-SHORT"),
            )
        assert exc_info.value.field == "codice_fiscale"

    async def test_duplicate_vat_conflicts(self, db_session, super_admin_principal, tenant_a):
        with pytest.raises(ConflictError):
            await tenant_service.create_tenant(
                db_session,
                super_admin_principal,
                _create_data(partita_iva=tenant_a.partita_iva),
            )

    async def test_duplicate_fiscal_code_conflicts(self, db_session, super_admin_principal, tenant_a):
        with pytest.raises(ConflictError):
            await tenant_service.create_tenant(
                db_session,
                super_admin_principal,
                _create_data(codice_fiscale=tenant_a.codice_fiscale.lower()),
            )

    async def test_manager_must_have_manager_role(
        self, db_session, super_admin_principal, regular_user, manager
    ):
        with pytest.raises(ValidationError) as exc_info:
            await tenant_service.create_tenant(
                db_session,
                super_admin_principal,
                _create_data(manager_id=regular_user.id),
            )
        assert exc_info.value.field == "manager_id"

        tenant = await tenant_service.create_tenant(
            db_session,
            super_admin_principal,
            _create_data(manager_id=manager.id),
        )
        assert tenant.manager_id == manager.id

    async def test_manager_picked_from_picker_is_accepted(
        self, db_session, super_admin_principal, super_admin, admin, manager
    ):
        """Every user the manager picker offers can be designated manager."""
        candidates = await user_service.list_managers(db_session, super_admin_principal)
        assert {u.id for u in candidates} == {super_admin.id, admin.id, manager.id}

        for candidate_id in [u.id for u in candidates]:
            tenant = await tenant_service.create_tenant(
                db_session,
                super_admin_principal,
                _create_data(manager_id=candidate_id),
            )
            assert tenant.manager_id == candidate_id

    async def test_only_super_admin_creates(self, db_session, admin_principal):
        with pytest.raises(AuthorizationError):
            await tenant_service.create_tenant(db_session, admin_principal, _create_data())

    async def test_creation_is_audited(self, db_session, super_admin_principal):
        tenant = await tenant_service.create_tenant(
            db_session, super_admin_principal, _create_data()
        )

        result = await db_session.execute(
            select(AuditLog).where(AuditLog.entity_id == tenant.id)
        )
        entry = result.scalar_one()
        assert entry.action == "create"
        assert entry.actor_user_id == super_admin_principal.user_id


@pytest.mark.integration
class TestListTenants:

    async def test_created_company_found_by_search(self, db_session, super_admin_principal):
        """Create then search by a substring of the name returns it."""
        created = await tenant_service.create_tenant(
            db_session,
            super_admin_principal,
            _create_data(denominazione="Officine Meccaniche Rossi"),
        )

        tenants, total = await tenant_service.list_tenants(
            db_session, super_admin_principal, search="meccaniche"
        )

        assert total == 1
        assert tenants[0].id == created.id

    async def test_search_matches_vat_and_fiscal_code(self, db_session, super_admin_principal, tenant_a):
        by_vat, _ = await tenant_service.list_tenants(
            db_session, super_admin_principal, search=tenant_a.partita_iva[2:8]
        )
        by_cf, _ = await tenant_service.list_tenants(
            db_session, super_admin_principal, search=tenant_a.codice_fiscale.lower()
        )

        assert tenant_a.id in [t.id for t in by_vat]
        assert tenant_a.id in [t.id for t in by_cf]

    async def test_search_wildcards_are_literal(self, db_session, super_admin_principal, tenant_a):
        tenants, total = await tenant_service.list_tenants(
            db_session, super_admin_principal, search="%"
        )
        assert total == 0

    async def test_ordered_by_name_then_paginated(
        self, db_session, super_admin_principal, tenant_a, tenant_b, tenant_c
    ):
        first_page, total = await tenant_service.list_tenants(
            db_session, super_admin_principal, skip=0, limit=2
        )
        second_page, _ = await tenant_service.list_tenants(
            db_session, super_admin_principal, skip=2, limit=2
        )

        assert total == 3
        assert [t.denominazione for t in first_page] == ["Alfa S.r.l.", "Beta S.p.A."]
        assert [t.denominazione for t in second_page] == ["Gamma S.n.c."]

    async def test_admin_sees_only_assigned(self, db_session, admin_principal, tenant_a, tenant_b, tenant_c):
        tenants, total = await tenant_service.list_tenants(db_session, admin_principal)

        assert total == 2
        assert {t.id for t in tenants} == {tenant_a.id, tenant_b.id}

    async def test_manager_sees_own_company(self, db_session, manager_principal, tenant_a, tenant_b):
        tenants, total = await tenant_service.list_tenants(db_session, manager_principal)

        assert total == 1
        assert tenants[0].id == tenant_a.id

    async def test_status_filter(self, db_session, super_admin_principal, tenant_a):
        await TenantFactory.create(db_session, status=TenantStatus.SUSPENDED.value)

        tenants, total = await tenant_service.list_tenants(
            db_session, super_admin_principal, status=TenantStatus.SUSPENDED
        )
        assert total == 1
        assert tenants[0].status == "suspended"


@pytest.mark.integration
class TestGetTenant:

    async def test_in_scope(self, db_session, admin_principal, tenant_a):
        tenant = await tenant_service.get_tenant(db_session, admin_principal, tenant_a.id)
        assert tenant.id == tenant_a.id

    async def test_out_of_scope_looks_missing(self, db_session, admin_principal, tenant_c):
        with pytest.raises(ResourceNotFoundError):
            await tenant_service.get_tenant(db_session, admin_principal, tenant_c.id)


@pytest.mark.integration
class TestUpdateTenant:

    async def test_partial_update(self, db_session, super_admin_principal, tenant_a):
        tenant = await tenant_service.update_tenant(
            db_session,
            super_admin_principal,
            tenant_a.id,
            TenantUpdate(denominazione="Alfa Holding S.r.l.", status=TenantStatus.PENDING),
        )

        assert tenant.denominazione == "Alfa Holding S.r.l."
        assert tenant.status == "pending"
        assert tenant.partita_iva == tenant_a.partita_iva

    async def test_invalid_vat_rejected(self, db_session, super_admin_principal, tenant_a):
        with pytest.raises(ValidationError) as exc_info:
            await tenant_service.update_tenant(
                db_session,
                super_admin_principal,
                tenant_a.id,
                TenantUpdate(partita_iva="12345678901"),
            )
        assert exc_info.value.field == "partita_iva"

    async def test_keeping_own_vat_is_not_a_conflict(self, db_session, super_admin_principal, tenant_a):
        tenant = await tenant_service.update_tenant(
            db_session,
            super_admin_principal,
            tenant_a.id,
            TenantUpdate(partita_iva=tenant_a.partita_iva),
        )
        assert tenant.partita_iva == tenant_a.partita_iva

    async def test_required_field_cannot_be_cleared(self, db_session, super_admin_principal, tenant_a):
        with pytest.raises(ValidationError) as exc_info:
            await tenant_service.update_tenant(
                db_session,
                super_admin_principal,
                tenant_a.id,
                TenantUpdate(denominazione=None),
            )
        assert exc_info.value.field == "denominazione"

    async def test_manager_can_be_cleared(self, db_session, super_admin_principal, tenant_a, manager):
        tenant_a.manager_id = manager.id
        await db_session.commit()

        tenant = await tenant_service.update_tenant(
            db_session,
            super_admin_principal,
            tenant_a.id,
            TenantUpdate(manager_id=None),
        )
        assert tenant.manager_id is None

    async def test_admin_cannot_update(self, db_session, admin_principal, tenant_a):
        with pytest.raises(AuthorizationError):
            await tenant_service.update_tenant(
                db_session, admin_principal, tenant_a.id, TenantUpdate(denominazione="X")
            )


@pytest.mark.integration
class TestDeleteTenant:

    async def test_requires_confirmation(self, db_session, super_admin_principal, tenant_a):
        with pytest.raises(ValidationError) as exc_info:
            await tenant_service.delete_tenant(db_session, super_admin_principal, tenant_a.id)

        assert exc_info.value.field == "confirm"
        assert await db_session.get(Tenant, tenant_a.id) is not None

    async def test_cascades_to_assignments_and_users(
        self, db_session, super_admin_principal, admin, manager, tenant_a, tenant_b
    ):
        await tenant_service.delete_tenant(
            db_session, super_admin_principal, tenant_a.id, confirm=True
        )

        assert await db_session.get(Tenant, tenant_a.id) is None

        rows = await db_session.execute(
            select(admin_tenant_assignments.c.tenant_id).where(
                admin_tenant_assignments.c.admin_user_id == admin.id
            )
        )
        assert rows.scalars().all() == [tenant_b.id]

        surviving_manager = await db_session.get(User, manager.id)
        await db_session.refresh(surviving_manager)
        assert surviving_manager.tenant_id is None

    async def test_unknown_company(self, db_session, super_admin_principal):
        with pytest.raises(ResourceNotFoundError):
            await tenant_service.delete_tenant(
                db_session, super_admin_principal, "missing", confirm=True
            )
