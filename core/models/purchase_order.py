"""Purchase order domain models."""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, Field


class PurchaseOrderStatus(str, Enum):
    """Purchase order lifecycle status."""

    DRAFT = "draft"
    SENT = "sent"
    APPROVED = "approved"
    RECEIVED = "received"
    CANCELLED = "cancelled"


class PurchaseOrderCreate(BaseModel):
    """Data required to create a purchase order. total_amount is derived."""

    vendor_id: UUID
    work_order_id: UUID | None = None
    order_date: date | None = None
    expected_delivery: date | None = None
    subtotal: Decimal = Field(Decimal("0"), ge=0, max_digits=12, decimal_places=2)
    tax_amount: Decimal = Field(Decimal("0"), ge=0, max_digits=12, decimal_places=2)
    notes: str | None = Field(None, max_length=10000)


class PurchaseOrder(BaseModel):
    """Full purchase order entity as stored."""

    id: UUID
    company_id: UUID
    vendor_id: UUID
    work_order_id: UUID | None
    po_number: str
    status: PurchaseOrderStatus
    order_date: date | None
    expected_delivery: date | None
    subtotal: Decimal
    tax_amount: Decimal
    total_amount: Decimal
    notes: str | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
