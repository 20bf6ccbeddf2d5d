"""
Pydantic schemas for Tenant (company).

Shape checks only. Fiscal code, VAT checksum and province rules are
enforced by the tenant service so they surface as ``ValidationError``
naming the offending field.
"""

from datetime import date, datetime
from decimal import Decimal

from pydantic import EmailStr, Field

from collaboranexio.models.tenant import PlanType, TenantStatus
from collaboranexio.schemas.common import BaseSchema


class TenantBase(BaseSchema):
    """Fields shared by create and read."""

    denominazione: str = Field(..., min_length=1, max_length=255, description="Legal name")
    codice_fiscale: str = Field(..., description="Fiscal code, 16 alphanumeric characters")
    partita_iva: str = Field(..., description="VAT number, 11 digits")

    sede_legale_indirizzo: str = Field(..., min_length=1, max_length=255)
    sede_legale_comune: str | None = Field(None, max_length=100)
    sede_legale_provincia: str | None = Field(None, description="Two-letter province code")
    sedi_operative: str | None = None

    settore_merceologico: str = Field(..., min_length=1, max_length=100)
    numero_dipendenti: int = Field(0, ge=0)
    data_costituzione: date | None = None
    capitale_sociale: Decimal | None = Field(None, ge=0)

    telefono: str | None = Field(None, max_length=30)
    email: EmailStr
    pec: EmailStr | None = None

    manager_id: str | None = None
    rappresentante_legale: str = Field(..., min_length=1, max_length=255)

    status: TenantStatus = TenantStatus.ACTIVE
    plan_type: PlanType = PlanType.TRIAL


class TenantCreate(TenantBase):
    """Schema for creating a company."""


class TenantUpdate(BaseSchema):
    """Schema for updating a company (all fields optional)."""

    denominazione: str | None = Field(None, min_length=1, max_length=255)
    codice_fiscale: str | None = None
    partita_iva: str | None = None

    sede_legale_indirizzo: str | None = Field(None, min_length=1, max_length=255)
    sede_legale_comune: str | None = Field(None, max_length=100)
    sede_legale_provincia: str | None = None
    sedi_operative: str | None = None

    settore_merceologico: str | None = Field(None, min_length=1, max_length=100)
    numero_dipendenti: int | None = Field(None, ge=0)
    data_costituzione: date | None = None
    capitale_sociale: Decimal | None = Field(None, ge=0)

    telefono: str | None = Field(None, max_length=30)
    email: EmailStr | None = None
    pec: EmailStr | None = None

    manager_id: str | None = None
    rappresentante_legale: str | None = Field(None, min_length=1, max_length=255)

    status: TenantStatus | None = None
    plan_type: PlanType | None = None


class TenantRead(TenantBase):
    """Schema for reading company data."""

    id: str
    # Stored values are not re-validated on the way out
    email: str
    pec: str | None = None
    created_at: datetime
    updated_at: datetime


class TenantSummary(BaseSchema):
    """Compact company reference used inside user payloads."""

    id: str
    denominazione: str
    status: TenantStatus
