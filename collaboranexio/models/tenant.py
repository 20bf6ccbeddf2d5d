"""
Tenant (company, "azienda") model.

Each tenant is an Italian company identified by codice fiscale and partita
IVA. Status and plan are independent axes.
"""

from datetime import date
from decimal import Decimal
from enum import Enum

from sqlalchemy import Date, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from collaboranexio.models.base import BaseModel


class TenantStatus(str, Enum):
    ACTIVE = "active"
    PENDING = "pending"
    SUSPENDED = "suspended"


class PlanType(str, Enum):
    TRIAL = "trial"
    STARTER = "starter"
    PROFESSIONAL = "professional"
    ENTERPRISE = "enterprise"


class Tenant(BaseModel):
    """Company record with fiscal identification, contacts and plan."""

    __tablename__ = "tenants"

    # Identification
    denominazione: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        index=True,
        comment="Legal name"
    )

    codice_fiscale: Mapped[str] = mapped_column(
        String(16),
        unique=True,
        nullable=False,
        comment="Fiscal code (16 alphanumeric, upper-case)"
    )

    partita_iva: Mapped[str] = mapped_column(
        String(11),
        unique=True,
        nullable=False,
        comment="VAT number (11 digits, mod-10 checksum)"
    )

    # Addresses
    sede_legale_indirizzo: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Registered office street address"
    )

    sede_legale_comune: Mapped[str | None] = mapped_column(
        String(100),
        nullable=True,
        comment="Registered office municipality"
    )

    sede_legale_provincia: Mapped[str | None] = mapped_column(
        String(2),
        nullable=True,
        comment="Registered office province code"
    )

    sedi_operative: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
        comment="Operational offices"
    )

    # Classification
    settore_merceologico: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        comment="Business sector"
    )

    numero_dipendenti: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False,
        comment="Employee count"
    )

    data_costituzione: Mapped[date | None] = mapped_column(
        Date,
        nullable=True,
        comment="Incorporation date"
    )

    capitale_sociale: Mapped[Decimal | None] = mapped_column(
        Numeric(15, 2),
        nullable=True,
        comment="Share capital"
    )

    # Contacts
    telefono: Mapped[str | None] = mapped_column(String(30), nullable=True)

    email: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Company email"
    )

    pec: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
        comment="Certified email (PEC)"
    )

    # People
    manager_id: Mapped[str | None] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="SET NULL", use_alter=True, name="fk_tenants_manager_id"),
        nullable=True,
        index=True,
        comment="Designated manager (one at most)"
    )

    rappresentante_legale: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Legal representative"
    )

    # Lifecycle
    status: Mapped[TenantStatus] = mapped_column(
        String(20),
        nullable=False,
        default=TenantStatus.ACTIVE,
        index=True,
    )

    plan_type: Mapped[PlanType] = mapped_column(
        String(20),
        nullable=False,
        default=PlanType.TRIAL,
    )

    def __repr__(self) -> str:
        return f"<Tenant(id={self.id}, denominazione={self.denominazione})>"
