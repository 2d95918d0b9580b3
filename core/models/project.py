"""Project domain models and the estimate conversion result."""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, Field, model_validator


class ProjectStatus(str, Enum):
    """Project lifecycle status."""

    PLANNING = "planning"
    IN_PROGRESS = "in_progress"
    ON_HOLD = "on_hold"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class ProjectPriority(str, Enum):
    """Project priority."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


def _check_dates(start: date | None, end: date | None) -> None:
    if start and end and end < start:
        raise ValueError("estimated_end_date must not be before start_date")


class ProjectCreate(BaseModel):
    """Data required to create a project manually."""

    customer_id: UUID
    project_name: str = Field(..., min_length=1, max_length=100)
    description: str | None = Field(None, max_length=10000)
    project_manager_id: UUID | None = None
    start_date: date | None = None
    estimated_end_date: date | None = None
    total_budget: Decimal = Field(Decimal("0"), ge=0, max_digits=12, decimal_places=2)
    priority: ProjectPriority = ProjectPriority.MEDIUM
    notes: str | None = Field(None, max_length=10000)

    @model_validator(mode="after")
    def end_not_before_start(self) -> "ProjectCreate":
        _check_dates(self.start_date, self.estimated_end_date)
        return self


class ConversionOverrides(BaseModel):
    """Optional values that replace what the project would inherit from the estimate."""

    project_name: str | None = Field(None, min_length=1, max_length=100)
    project_manager_id: UUID | None = None
    start_date: date | None = None
    estimated_end_date: date | None = None

    @model_validator(mode="after")
    def end_not_before_start(self) -> "ConversionOverrides":
        _check_dates(self.start_date, self.estimated_end_date)
        return self


class Project(BaseModel):
    """Full project entity as stored."""

    id: UUID
    company_id: UUID
    customer_id: UUID
    estimate_id: UUID | None
    project_name: str
    description: str | None
    project_manager: UUID | None
    start_date: date | None
    estimated_end_date: date | None
    actual_end_date: date | None
    total_budget: Decimal
    actual_cost: Decimal
    status: ProjectStatus
    priority: ProjectPriority
    notes: str | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class ConversionErrorCode(str, Enum):
    """Why a conversion was refused."""

    FORBIDDEN = "FORBIDDEN"
    NOT_FOUND = "NOT_FOUND"
    INVALID_STATE = "INVALID_STATE"
    ALREADY_CONVERTED = "ALREADY_CONVERTED"
    STORAGE_UNAVAILABLE = "STORAGE_UNAVAILABLE"


class ConversionError(BaseModel):
    """Structured conversion failure."""

    code: ConversionErrorCode
    message: str
    current_status: str | None = None


class ConversionResult(BaseModel):
    """
    Tagged outcome of an estimate conversion.

    Exactly one of project_id / error is set, matching success.
    """

    success: bool
    project_id: UUID | None = None
    estimate_id: UUID
    error: ConversionError | None = None

    @classmethod
    def ok(cls, estimate_id: UUID, project_id: UUID) -> "ConversionResult":
        return cls(success=True, estimate_id=estimate_id, project_id=project_id)

    @classmethod
    def fail(
        cls,
        estimate_id: UUID,
        code: ConversionErrorCode,
        message: str,
        current_status: str | None = None,
    ) -> "ConversionResult":
        return cls(
            success=False,
            estimate_id=estimate_id,
            error=ConversionError(code=code, message=message, current_status=current_status),
        )
