"""Estimate domain models.

Amounts are Decimal with two places. Tax rate is a percentage (8.25 = 8.25%).
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, Field, model_validator


class EstimateStatus(str, Enum):
    """Estimate lifecycle status. CONVERTED is terminal."""

    DRAFT = "draft"
    SENT = "sent"
    APPROVED = "approved"
    REJECTED = "rejected"
    EXPIRED = "expired"
    CONVERTED = "converted"


class EstimateCreate(BaseModel):
    """Data required to create an estimate. Totals are derived, never supplied."""

    customer_id: UUID
    title: str = Field(..., min_length=1, max_length=255)
    description: str | None = Field(None, max_length=10000)
    issue_date: date | None = None
    expiry_date: date | None = None
    subtotal: Decimal = Field(Decimal("0"), ge=0, max_digits=12, decimal_places=2)
    tax_rate: Decimal = Field(Decimal("0"), ge=0, le=100)
    notes: str | None = Field(None, max_length=10000)

    @model_validator(mode="after")
    def expiry_not_before_issue(self) -> "EstimateCreate":
        """An estimate cannot expire before it is issued."""
        if self.issue_date and self.expiry_date and self.expiry_date < self.issue_date:
            raise ValueError("expiry_date must not be before issue_date")
        return self


class Estimate(BaseModel):
    """Full estimate entity as stored."""

    id: UUID
    company_id: UUID
    customer_id: UUID
    estimate_number: str
    title: str
    description: str | None
    status: EstimateStatus
    issue_date: date | None
    expiry_date: date | None
    subtotal: Decimal
    tax_rate: Decimal
    tax_amount: Decimal
    total_amount: Decimal
    notes: str | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}

    @property
    def is_converted(self) -> bool:
        """Whether estimate has been turned into a project."""
        return self.status == EstimateStatus.CONVERTED
