"""API test fixtures: TestClient over the real app with mocked services."""

from decimal import Decimal
from unittest.mock import Mock
from uuid import uuid4

import pytest
from starlette.testclient import TestClient

from api.app import create_app
from core.models import (
    DEFAULT_NUMBERING, Estimate, EstimateStatus, Invoice, InvoiceStatus,
    NumberingFormat, NumberingSettings, Project, ProjectPriority, ProjectStatus,
    PurchaseOrder, PurchaseOrderStatus, WorkOrder, WorkOrderPriority, WorkOrderStatus,
)
from core.services.company_service import CompanyService
from core.services.conversion_service import ConversionService
from core.services.estimate_service import EstimateService
from core.services.invoice_service import InvoiceService
from core.services.numbering_service import NumberingService
from core.services.project_service import ProjectService
from core.services.purchase_order_service import PurchaseOrderService
from core.services.work_order_service import WorkOrderService
from utils.timezone import now_utc

from tests.tenants import ADMIN_A, COMPANY_A_ID, TECH_A

TOKENS = {"admin-token": ADMIN_A, "tech-token": TECH_A}


# =============================================================================
# SERVICES DICT
# =============================================================================


@pytest.fixture
def services():
    return {
        "company": Mock(spec=CompanyService),
        "numbering": Mock(spec=NumberingService),
        "estimate": Mock(spec=EstimateService),
        "conversion": Mock(spec=ConversionService),
        "project": Mock(spec=ProjectService),
        "work_order": Mock(spec=WorkOrderService),
        "purchase_order": Mock(spec=PurchaseOrderService),
        "invoice": Mock(spec=InvoiceService),
    }


# =============================================================================
# ENTITY FIXTURES
# =============================================================================


@pytest.fixture
def estimate():
    now = now_utc()
    return Estimate(
        id=uuid4(), company_id=COMPANY_A_ID, customer_id=uuid4(),
        estimate_number="EST-2024-0001", title="Replace rooftop unit",
        description=None, status=EstimateStatus.APPROVED,
        issue_date=now.date(), expiry_date=None,
        subtotal=Decimal("5000.00"), tax_rate=Decimal("0"),
        tax_amount=Decimal("0.00"), total_amount=Decimal("5000.00"),
        notes=None, created_at=now, updated_at=now,
    )


@pytest.fixture
def project(estimate):
    now = now_utc()
    return Project(
        id=uuid4(), company_id=COMPANY_A_ID, customer_id=estimate.customer_id,
        estimate_id=estimate.id, project_name=estimate.title, description=None,
        project_manager=None, start_date=None, estimated_end_date=None, actual_end_date=None,
        total_budget=estimate.total_amount, actual_cost=Decimal("0.00"),
        status=ProjectStatus.PLANNING, priority=ProjectPriority.MEDIUM,
        notes=f"Project created from estimate #{estimate.estimate_number}",
        created_at=now, updated_at=now,
    )


@pytest.fixture
def work_order():
    now = now_utc()
    return WorkOrder(
        id=uuid4(), company_id=COMPANY_A_ID, customer_id=uuid4(), project_id=None,
        assigned_to=None, wo_number="WO-2024-0001", title="No heat call",
        description=None, priority=WorkOrderPriority.HIGH, status=WorkOrderStatus.SCHEDULED,
        scheduled_date=None, completed_date=None, estimated_hours=None, actual_hours=None,
        labor_cost=Decimal("180.00"), material_cost=Decimal("42.35"),
        total_cost=Decimal("222.35"), notes=None, created_at=now, updated_at=now,
    )


@pytest.fixture
def purchase_order():
    now = now_utc()
    return PurchaseOrder(
        id=uuid4(), company_id=COMPANY_A_ID, vendor_id=uuid4(), work_order_id=None,
        po_number="PO-2024-0001", status=PurchaseOrderStatus.DRAFT,
        order_date=now.date(), expected_delivery=None,
        subtotal=Decimal("100.00"), tax_amount=Decimal("8.00"), total_amount=Decimal("108.00"),
        notes=None, created_at=now, updated_at=now,
    )


@pytest.fixture
def invoice():
    now = now_utc()
    return Invoice(
        id=uuid4(), company_id=COMPANY_A_ID, customer_id=uuid4(), work_order_id=None,
        invoice_number="INV-2024-0001", status=InvoiceStatus.SENT,
        issue_date=now.date(), due_date=None,
        subtotal=Decimal("100.00"), tax_rate=Decimal("0"), tax_amount=Decimal("0.00"),
        total_amount=Decimal("100.00"), paid_amount=Decimal("0.00"), payment_date=None,
        notes=None, created_at=now, updated_at=now,
    )


@pytest.fixture
def numbering_settings():
    now = now_utc()
    return NumberingSettings(**{
        kind.value: NumberingFormat(
            company_id=COMPANY_A_ID, kind=kind, prefix=prefix, format=fmt,
            next_number=1, updated_at=now,
        )
        for kind, (prefix, fmt) in DEFAULT_NUMBERING.items()
    })


# =============================================================================
# APP & CLIENT FIXTURES
# =============================================================================


@pytest.fixture
def app(services):
    """FieldOps app with caller middleware, error handlers, and data/actions routes."""
    return create_app(services, TOKENS.get)


@pytest.fixture
def client(app):
    """Client authenticated as company A's admin."""
    c = TestClient(app, raise_server_exceptions=False)
    c.cookies.set("session_token", "admin-token")
    return c


@pytest.fixture
def unauthed_client(app):
    """Unauthenticated test client (no session cookie)."""
    return TestClient(app, raise_server_exceptions=False)
