"""
Seed database with a super admin and demo companies.

Usage:
    python scripts/seed_db.py
"""

import asyncio
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from sqlalchemy import select

from collaboranexio.core.database import Base, db_manager
from collaboranexio.core.security import hash_password
from collaboranexio.features.assignments.service import assignment_service
from collaboranexio.models.tenant import PlanType, Tenant
from collaboranexio.models.user import User, UserRole

DEMO_COMPANIES = [
    {
        "denominazione": "Nexio Demo S.r.l.",
        "codice_fiscale": "NXDMSR80A01F205X",
        "partita_iva": "12345678903",
        "sede_legale_indirizzo": "Via Roma 1",
        "sede_legale_comune": "Milano",
        "sede_legale_provincia": "MI",
        "settore_merceologico": "Servizi IT",
        "numero_dipendenti": 25,
        "email": "info@nexiodemo.it",
        "rappresentante_legale": "Mario Rossi",
        "plan_type": PlanType.PROFESSIONAL.value,
    },
    {
        "denominazione": "Collabora Consulting S.p.A.",
        "codice_fiscale": "CLBCNS90B02H501Y",
        "partita_iva": "00000000000",
        "sede_legale_indirizzo": "Piazza Navona 10",
        "sede_legale_comune": "Roma",
        "sede_legale_provincia": "RM",
        "settore_merceologico": "Consulenza",
        "numero_dipendenti": 8,
        "email": "info@collaboraconsulting.it",
        "rappresentante_legale": "Giulia Bianchi",
        "plan_type": PlanType.STARTER.value,
    },
]


async def seed_data() -> None:
    """Create initial data."""
    print("🌱 Seeding database...")

    db_manager.init()

    async with db_manager.engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async for db in db_manager.get_session():
        result = await db.execute(select(User).where(User.role == UserRole.SUPER_ADMIN.value))
        if result.first():
            print("⚠️  A super admin already exists. Skipping seed.")
            break

        companies = [Tenant(**data) for data in DEMO_COMPANIES]
        db.add_all(companies)
        await db.flush()

        super_admin = User(
            email="superadmin@collaboranexio.local",
            hashed_password=hash_password("SuperAdmin123!"),
            first_name="Super",
            last_name="Admin",
            role=UserRole.SUPER_ADMIN.value,
        )
        admin = User(
            email="admin@collaboranexio.local",
            hashed_password=hash_password("Admin123!"),
            first_name="Anna",
            last_name="Admin",
            role=UserRole.ADMIN.value,
        )
        manager = User(
            email="manager@nexiodemo.it",
            hashed_password=hash_password("Manager123!"),
            first_name="Marco",
            last_name="Manager",
            role=UserRole.MANAGER.value,
            tenant_id=companies[0].id,
        )
        db.add_all([super_admin, admin, manager])
        await db.flush()

        await assignment_service.assign_tenants_to_admin(db, admin.id, [c.id for c in companies])
        companies[0].manager_id = manager.id

        print(f"✅ Created companies: {', '.join(c.denominazione for c in companies)}")
        print(f"✅ Created super admin: {super_admin.email} (password: SuperAdmin123!)")
        print(f"✅ Created admin: {admin.email} (password: Admin123!)")
        print(f"✅ Created manager: {manager.email} (password: Manager123!)")

    await db_manager.close()
    print("🎉 Seeding complete!")


if __name__ == "__main__":
    asyncio.run(seed_data())
