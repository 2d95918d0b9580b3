"""Invoice domain models.

Amounts are Decimal with two places. Tax rate is a percentage (8.25 = 8.25%).
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, Field


class InvoiceStatus(str, Enum):
    """Invoice lifecycle status."""

    DRAFT = "draft"
    SENT = "sent"
    PAID = "paid"
    OVERDUE = "overdue"
    CANCELLED = "cancelled"


class InvoiceCreate(BaseModel):
    """Data required to create an invoice. tax_amount and total_amount are derived."""

    customer_id: UUID
    work_order_id: UUID | None = None
    issue_date: date | None = None
    due_date: date | None = None
    subtotal: Decimal = Field(Decimal("0"), ge=0, max_digits=12, decimal_places=2)
    tax_rate: Decimal = Field(Decimal("0"), ge=0, le=100)
    notes: str | None = Field(None, max_length=2000)


class Invoice(BaseModel):
    """Full invoice entity as stored."""

    id: UUID
    company_id: UUID
    customer_id: UUID
    work_order_id: UUID | None
    invoice_number: str
    status: InvoiceStatus
    issue_date: date | None
    due_date: date | None
    subtotal: Decimal
    tax_rate: Decimal
    tax_amount: Decimal
    total_amount: Decimal
    paid_amount: Decimal
    payment_date: date | None
    notes: str | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}

    @property
    def balance_due(self) -> Decimal:
        """Remaining amount to be paid."""
        return self.total_amount - self.paid_amount

    @property
    def is_paid(self) -> bool:
        """Whether invoice is fully paid."""
        return self.status == InvoiceStatus.PAID
