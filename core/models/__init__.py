"""Core domain models."""

from core.models.company import (
    Company, CompanyCreate, DocumentKind, DEFAULT_NUMBERING,
    NumberingFormat, NumberingFormatUpdate, NumberingSettings,
)
from core.models.estimate import Estimate, EstimateCreate, EstimateStatus
from core.models.project import (
    Project, ProjectCreate, ProjectStatus, ProjectPriority,
    ConversionOverrides, ConversionResult, ConversionError, ConversionErrorCode,
)
from core.models.work_order import WorkOrder, WorkOrderCreate, WorkOrderStatus, WorkOrderPriority
from core.models.purchase_order import PurchaseOrder, PurchaseOrderCreate, PurchaseOrderStatus
from core.models.invoice import Invoice, InvoiceCreate, InvoiceStatus

__all__ = [
    # Company
    "Company", "CompanyCreate", "DocumentKind", "DEFAULT_NUMBERING",
    "NumberingFormat", "NumberingFormatUpdate", "NumberingSettings",
    # Estimate
    "Estimate", "EstimateCreate", "EstimateStatus",
    # Project
    "Project", "ProjectCreate", "ProjectStatus", "ProjectPriority",
    "ConversionOverrides", "ConversionResult", "ConversionError", "ConversionErrorCode",
    # WorkOrder
    "WorkOrder", "WorkOrderCreate", "WorkOrderStatus", "WorkOrderPriority",
    # PurchaseOrder
    "PurchaseOrder", "PurchaseOrderCreate", "PurchaseOrderStatus",
    # Invoice
    "Invoice", "InvoiceCreate", "InvoiceStatus",
]
