"""Tests for EstimateService."""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from core.errors import ConfigNotFoundError, InvalidStateError, NotFoundError
from core.events import DocumentCreated, EstimateStatusChanged
from core.models import DocumentKind, EstimateCreate, EstimateStatus
from utils.timezone import today_in

from tests.tenants import COMPANY_A_ID


@pytest.fixture
def estimate(estimate_service, customer_id, as_admin):
    return estimate_service.create(EstimateCreate(
        customer_id=customer_id,
        title="Furnace tune-up",
        subtotal=Decimal("200.00"),
        tax_rate=Decimal("8.25"),
    ))


class TestCreate:
    """Estimate creation."""

    def test_assigns_number_and_derives_totals(self, estimate):
        assert estimate.estimate_number == f"EST-{today_in('UTC').year}-0001"
        assert estimate.status == EstimateStatus.DRAFT
        assert estimate.subtotal == Decimal("200.00")
        assert estimate.tax_amount == Decimal("16.50")
        assert estimate.total_amount == Decimal("216.50")
        assert estimate.company_id == COMPANY_A_ID
        assert estimate.issue_date is not None

    def test_numbers_are_sequential(self, estimate_service, customer_id, estimate):
        second = estimate_service.create(EstimateCreate(customer_id=customer_id, title="Second"))

        assert second.estimate_number.endswith("-0002")

    def test_publishes_document_created(self, estimate_service, event_bus, customer_id, as_admin):
        received = []
        event_bus.subscribe(DocumentCreated, received.append)

        created = estimate_service.create(EstimateCreate(customer_id=customer_id, title="Evented"))

        assert len(received) == 1
        assert received[0].kind == DocumentKind.ESTIMATE
        assert received[0].number == created.estimate_number

    def test_missing_numbering_config_creates_nothing(self, estimate_service, clean_db, customer_id, as_admin):
        clean_db.execute(
            "DELETE FROM numbering_settings WHERE company_id = %s AND kind = 'estimate'",
            (COMPANY_A_ID,),
        )

        with pytest.raises(ConfigNotFoundError):
            estimate_service.create(EstimateCreate(customer_id=customer_id, title="Nope"))

        assert clean_db.execute_scalar("SELECT count(*) FROM estimates") == 0

    def test_other_company_customer_is_not_found(self, estimate_service, clean_db, customer_b_id, as_admin):
        with pytest.raises(NotFoundError, match="Customer"):
            estimate_service.create(EstimateCreate(customer_id=customer_b_id, title="Cross-tenant"))

        assert clean_db.execute_scalar("SELECT count(*) FROM estimates") == 0
        assert clean_db.execute_scalar(
            "SELECT next_number FROM numbering_settings WHERE company_id = %s AND kind = 'estimate'",
            (COMPANY_A_ID,),
        ) == 1

    def test_expiry_before_issue_rejected(self, customer_id):
        with pytest.raises(ValueError, match="expiry_date"):
            EstimateCreate(
                customer_id=customer_id,
                title="Backwards",
                issue_date=date(2024, 3, 5),
                expiry_date=date(2024, 3, 1),
            )


class TestGetAndList:
    """Reads are scoped to the caller's company."""

    def test_get_by_id(self, estimate_service, estimate):
        assert estimate_service.get_by_id(estimate.id).id == estimate.id

    def test_get_unknown_returns_none(self, estimate_service, as_admin, clean_db):
        assert estimate_service.get_by_id(uuid4()) is None

    def test_other_company_cannot_see(self, estimate_service, estimate, as_admin_b):
        assert estimate_service.get_by_id(estimate.id) is None
        assert estimate_service.list_all() == []

    def test_list_filters_by_status(self, estimate_service, customer_id, estimate):
        other = estimate_service.create(EstimateCreate(customer_id=customer_id, title="Other"))
        estimate_service.send(other.id)

        drafts = estimate_service.list_all(EstimateStatus.DRAFT)
        sent = estimate_service.list_all(EstimateStatus.SENT)

        assert [e.id for e in drafts] == [estimate.id]
        assert [e.id for e in sent] == [other.id]
        assert len(estimate_service.list_all()) == 2


class TestTransitions:
    """Status changes."""

    def test_send_then_approve(self, estimate_service, estimate):
        sent = estimate_service.send(estimate.id)
        approved = estimate_service.approve(estimate.id)

        assert sent.status == EstimateStatus.SENT
        assert approved.status == EstimateStatus.APPROVED

    def test_draft_can_be_approved_directly(self, estimate_service, estimate):
        assert estimate_service.approve(estimate.id).status == EstimateStatus.APPROVED

    def test_draft_cannot_be_rejected(self, estimate_service, estimate):
        with pytest.raises(InvalidStateError) as exc_info:
            estimate_service.reject(estimate.id)

        assert exc_info.value.current_status == "draft"

    def test_expired_cannot_be_sent(self, estimate_service, estimate):
        estimate_service.expire(estimate.id)

        with pytest.raises(InvalidStateError, match="cannot become sent"):
            estimate_service.send(estimate.id)

    def test_converted_is_immutable(self, estimate_service, conversion_service, estimate):
        estimate_service.approve(estimate.id)
        conversion_service.convert(estimate.id)

        for transition in (estimate_service.send, estimate_service.reject, estimate_service.expire):
            with pytest.raises(InvalidStateError, match="converted"):
                transition(estimate.id)

    def test_unknown_estimate_not_found(self, estimate_service, as_admin, clean_db):
        with pytest.raises(NotFoundError):
            estimate_service.send(uuid4())

    def test_publishes_status_change(self, estimate_service, event_bus, estimate):
        received = []
        event_bus.subscribe(EstimateStatusChanged, received.append)

        estimate_service.send(estimate.id)

        assert len(received) == 1
        assert received[0].old_status == "draft"
        assert received[0].estimate.status == EstimateStatus.SENT
