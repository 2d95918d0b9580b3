"""Service fixtures backed by the test database."""

import pytest

from core.audit import AuditLogger
from core.event_bus import EventBus
from core.services.company_service import CompanyService
from core.services.conversion_service import ConversionService
from core.services.estimate_service import EstimateService
from core.services.invoice_service import InvoiceService
from core.services.numbering_service import NumberingService
from core.services.project_service import ProjectService
from core.services.purchase_order_service import PurchaseOrderService
from core.services.work_order_service import WorkOrderService


@pytest.fixture
def audit(db, clean_db):
    return AuditLogger(db)


@pytest.fixture
def event_bus():
    return EventBus()


@pytest.fixture
def numbering_service(db, audit):
    return NumberingService(db, audit)


@pytest.fixture
def company_service(clean_db, numbering_service):
    # Onboarding runs before the company exists, so it uses the admin client
    return CompanyService(clean_db, numbering_service)


@pytest.fixture
def estimate_service(db, audit, numbering_service, event_bus):
    return EstimateService(db, audit, numbering_service, event_bus)


@pytest.fixture
def conversion_service(db, audit, event_bus):
    return ConversionService(db, audit, event_bus)


@pytest.fixture
def project_service(db, audit):
    return ProjectService(db, audit)


@pytest.fixture
def work_order_service(db, audit, numbering_service, event_bus):
    return WorkOrderService(db, audit, numbering_service, event_bus)


@pytest.fixture
def purchase_order_service(db, audit, numbering_service, event_bus):
    return PurchaseOrderService(db, audit, numbering_service, event_bus)


@pytest.fixture
def invoice_service(db, audit, numbering_service, event_bus):
    return InvoiceService(db, audit, numbering_service, event_bus)
