"""Work order domain models."""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, Field


class WorkOrderStatus(str, Enum):
    """Work order lifecycle status."""

    SCHEDULED = "scheduled"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class WorkOrderPriority(str, Enum):
    """How urgent the job is."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class WorkOrderCreate(BaseModel):
    """Data required to create a work order. total_cost is derived."""

    customer_id: UUID
    title: str = Field(..., min_length=1, max_length=255)
    description: str | None = Field(None, max_length=10000)
    assigned_to: UUID | None = None
    project_id: UUID | None = None
    priority: WorkOrderPriority = WorkOrderPriority.MEDIUM
    scheduled_date: datetime | None = None
    estimated_hours: Decimal | None = Field(None, ge=0)
    labor_cost: Decimal = Field(Decimal("0"), ge=0, max_digits=12, decimal_places=2)
    material_cost: Decimal = Field(Decimal("0"), ge=0, max_digits=12, decimal_places=2)
    notes: str | None = Field(None, max_length=10000)


class WorkOrder(BaseModel):
    """Full work order entity as stored."""

    id: UUID
    company_id: UUID
    customer_id: UUID
    project_id: UUID | None
    assigned_to: UUID | None
    wo_number: str
    title: str
    description: str | None
    priority: WorkOrderPriority
    status: WorkOrderStatus
    scheduled_date: datetime | None
    completed_date: datetime | None
    estimated_hours: Decimal | None
    actual_hours: Decimal | None
    labor_cost: Decimal
    material_cost: Decimal
    total_cost: Decimal
    notes: str | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
