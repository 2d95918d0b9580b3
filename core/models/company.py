"""Company (tenant) and document numbering models."""

from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field


class DocumentKind(str, Enum):
    """Document kinds that share the numbering mechanism."""

    WORK_ORDER = "work_order"
    PURCHASE_ORDER = "purchase_order"
    ESTIMATE = "estimate"
    INVOICE = "invoice"


# Seeded for every new company. Operators may edit them afterwards.
DEFAULT_NUMBERING: dict[DocumentKind, tuple[str, str]] = {
    DocumentKind.WORK_ORDER: ("WO", "WO-{YYYY}-{####}"),
    DocumentKind.PURCHASE_ORDER: ("PO", "PO-{YYYY}-{####}"),
    DocumentKind.ESTIMATE: ("EST", "EST-{YYYY}-{####}"),
    DocumentKind.INVOICE: ("INV", "INV-{YYYY}-{####}"),
}


class CompanyCreate(BaseModel):
    """Data required to create a company."""

    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr | None = None
    phone: str | None = Field(None, max_length=50)
    address: str | None = Field(None, max_length=500)
    city: str | None = Field(None, max_length=255)
    state: str | None = Field(None, max_length=100)
    zip_code: str | None = Field(None, max_length=20)
    industry: str = Field("HVAC", max_length=100)


class Company(BaseModel):
    """Full company entity as stored."""

    id: UUID
    name: str
    email: str | None
    phone: str | None
    address: str | None
    city: str | None
    state: str | None
    zip_code: str | None
    industry: str | None
    settings: dict[str, Any] = Field(default_factory=dict)
    subscription_plan: str | None = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


# Largest value the integer next_number column holds
MAX_NEXT_NUMBER = 2**31 - 1


class NumberingFormat(BaseModel):
    """Numbering configuration for one document kind of one company."""

    company_id: UUID
    kind: DocumentKind
    prefix: str
    format: str
    next_number: int = Field(..., ge=1)
    updated_at: datetime

    model_config = {"from_attributes": True}


class NumberingFormatUpdate(BaseModel):
    """Settings edit for one document kind. Omitted fields are left as they are."""

    prefix: str | None = Field(None, min_length=1, max_length=20)
    format: str | None = Field(None, min_length=1, max_length=100)
    next_number: int | None = Field(None, ge=1, le=MAX_NEXT_NUMBER)


class NumberingSettings(BaseModel):
    """All four numbering configurations of a company, keyed by kind."""

    work_order: NumberingFormat
    purchase_order: NumberingFormat
    estimate: NumberingFormat
    invoice: NumberingFormat

    def for_kind(self, kind: DocumentKind) -> NumberingFormat:
        return getattr(self, kind.value)
