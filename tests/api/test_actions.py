"""Tests for POST /api/actions unified mutation endpoint."""

from decimal import Decimal
from uuid import uuid4

import pytest

from core.errors import (
    ConfigNotFoundError,
    ForbiddenError,
    InvalidStateError,
    StorageUnavailableError,
)
from core.models import (
    ConversionErrorCode,
    ConversionResult,
    DocumentKind,
    EstimateCreate,
    InvoiceStatus,
    NumberingFormatUpdate,
    WorkOrderStatus,
)


def _post(client, domain, action, data):
    return client.post("/api/actions", json={"domain": domain, "action": action, "data": data})


# =============================================================================
# AUTHENTICATION & VALIDATION
# =============================================================================


class TestActionsAuthentication:

    def test_unauthenticated_returns_401(self, unauthed_client, services):
        response = _post(unauthed_client, "numbering", "commit", {"kind": "invoice"})

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "NOT_AUTHENTICATED"
        services["numbering"].commit.assert_not_called()

    def test_unknown_token_returns_401(self, unauthed_client):
        unauthed_client.cookies.set("session_token", "stolen")

        response = _post(unauthed_client, "numbering", "commit", {"kind": "invoice"})

        assert response.status_code == 401


class TestActionsValidation:

    def test_missing_domain_returns_422(self, client):
        response = client.post("/api/actions", json={"action": "create", "data": {}})

        assert response.status_code == 422
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"

    def test_unknown_domain_returns_400(self, client):
        response = _post(client, "timesheet", "create", {})

        assert response.status_code == 400
        assert "Valid domains" in response.json()["error"]["message"]

    def test_disallowed_action_returns_400(self, client):
        response = _post(client, "project", "delete", {"id": str(uuid4())})

        assert response.status_code == 400
        assert "not allowed" in response.json()["error"]["message"]

    def test_invalid_model_data_returns_400(self, client, services):
        response = _post(client, "estimate", "create", {"title": "No customer"})

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_REQUEST"
        services["estimate"].create.assert_not_called()


# =============================================================================
# NUMBERING
# =============================================================================


class TestNumberingActions:

    def test_commit_returns_consumed_value(self, client, services):
        services["numbering"].commit.return_value = 7

        response = _post(client, "numbering", "commit", {"kind": "work_order"})

        assert response.status_code == 200
        assert response.json()["data"] == {"kind": "work_order", "consumed": 7}
        services["numbering"].commit.assert_called_once_with("work_order")

    def test_commit_missing_config_returns_404(self, client, services):
        services["numbering"].commit.side_effect = ConfigNotFoundError("No numbering configured for invoice")

        response = _post(client, "numbering", "commit", {"kind": "invoice"})

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "CONFIG_NOT_FOUND"

    def test_storage_unavailable_returns_503(self, client, services):
        services["numbering"].commit.side_effect = StorageUnavailableError("Database unavailable")

        response = _post(client, "numbering", "commit", {"kind": "invoice"})

        assert response.status_code == 503
        assert response.json()["error"]["code"] == "STORAGE_UNAVAILABLE"

    def test_update_passes_changes(self, client, services, numbering_settings):
        services["numbering"].update_settings.return_value = numbering_settings.invoice

        response = _post(client, "numbering", "update", {"kind": "invoice", "prefix": "BILL"})

        assert response.status_code == 200
        services["numbering"].update_settings.assert_called_once_with(
            "invoice", NumberingFormatUpdate(prefix="BILL")
        )

    def test_update_forbidden_returns_403(self, client, services):
        services["numbering"].update_settings.side_effect = ForbiddenError("Only admin can edit numbering")

        response = _post(client, "numbering", "update", {"kind": "invoice", "prefix": "X"})

        assert response.status_code == 403
        assert response.json()["error"]["code"] == "FORBIDDEN"


# =============================================================================
# ESTIMATES AND CONVERSION
# =============================================================================


class TestEstimateActions:

    def test_create(self, client, services, estimate):
        services["estimate"].create.return_value = estimate

        response = _post(client, "estimate", "create", {
            "customer_id": str(estimate.customer_id),
            "title": "Replace rooftop unit",
            "subtotal": "5000.00",
        })

        assert response.status_code == 200
        assert response.json()["data"]["estimate_number"] == "EST-2024-0001"
        sent = services["estimate"].create.call_args[0][0]
        assert isinstance(sent, EstimateCreate)
        assert sent.subtotal == Decimal("5000.00")

    @pytest.mark.parametrize("action", ["send", "approve", "reject", "expire"])
    def test_transitions(self, client, services, estimate, action):
        getattr(services["estimate"], action).return_value = estimate

        response = _post(client, "estimate", action, {"id": str(estimate.id)})

        assert response.status_code == 200
        getattr(services["estimate"], action).assert_called_once_with(estimate.id)

    def test_invalid_transition_returns_409_with_status(self, client, services, estimate):
        services["estimate"].reject.side_effect = InvalidStateError(
            "cannot become rejected - status is draft", current_status="draft"
        )

        response = _post(client, "estimate", "reject", {"id": str(estimate.id)})

        assert response.status_code == 409
        error = response.json()["error"]
        assert error["code"] == "INVALID_STATE"
        assert error["details"] == {"current_status": "draft"}


class TestConvertAction:

    def test_success_returns_project_id(self, client, services, estimate, project):
        services["conversion"].convert.return_value = ConversionResult.ok(estimate.id, project.id)

        response = _post(client, "estimate", "convert", {"id": str(estimate.id)})

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["success"] is True
        assert data["project_id"] == str(project.id)

    def test_overrides_forwarded(self, client, services, estimate, project):
        services["conversion"].convert.return_value = ConversionResult.ok(estimate.id, project.id)

        _post(client, "estimate", "convert", {
            "id": str(estimate.id),
            "project_name": "Smith RTU",
            "start_date": "2024-04-01",
        })

        estimate_id, overrides = services["conversion"].convert.call_args[0]
        assert estimate_id == estimate.id
        assert overrides.project_name == "Smith RTU"
        assert str(overrides.start_date) == "2024-04-01"

    @pytest.mark.parametrize("code,status_code", [
        (ConversionErrorCode.FORBIDDEN, 403),
        (ConversionErrorCode.NOT_FOUND, 404),
        (ConversionErrorCode.ALREADY_CONVERTED, 409),
        (ConversionErrorCode.STORAGE_UNAVAILABLE, 503),
    ])
    def test_failure_codes(self, client, services, estimate, code, status_code):
        services["conversion"].convert.return_value = ConversionResult.fail(estimate.id, code, "refused")

        response = _post(client, "estimate", "convert", {"id": str(estimate.id)})

        assert response.status_code == status_code
        assert response.json()["error"]["code"] == code.value

    def test_invalid_state_carries_current_status(self, client, services, estimate):
        services["conversion"].convert.return_value = ConversionResult.fail(
            estimate.id, ConversionErrorCode.INVALID_STATE, "Estimate is not approved", "sent",
        )

        response = _post(client, "estimate", "convert", {"id": str(estimate.id)})

        assert response.status_code == 409
        assert response.json()["error"]["details"] == {"current_status": "sent"}

    def test_bad_override_dates_return_400(self, client, services, estimate):
        response = _post(client, "estimate", "convert", {
            "id": str(estimate.id),
            "start_date": "2024-04-05",
            "estimated_end_date": "2024-04-01",
        })

        assert response.status_code == 400
        services["conversion"].convert.assert_not_called()


# =============================================================================
# OTHER DOCUMENTS
# =============================================================================


class TestDocumentActions:

    def test_project_create(self, client, services, project):
        services["project"].create.return_value = project

        response = _post(client, "project", "create", {
            "customer_id": str(project.customer_id),
            "project_name": "Walk-in cooler",
        })

        assert response.status_code == 200
        assert response.json()["data"]["id"] == str(project.id)

    def test_work_order_update_status(self, client, services, work_order):
        services["work_order"].update_status.return_value = work_order

        response = _post(client, "work_order", "update_status", {
            "id": str(work_order.id), "status": "in_progress",
        })

        assert response.status_code == 200
        services["work_order"].update_status.assert_called_once_with(
            work_order.id, WorkOrderStatus.IN_PROGRESS
        )

    def test_work_order_unknown_status_returns_400(self, client, services, work_order):
        response = _post(client, "work_order", "update_status", {
            "id": str(work_order.id), "status": "teleported",
        })

        assert response.status_code == 400

    def test_purchase_order_create(self, client, services, purchase_order):
        services["purchase_order"].create.return_value = purchase_order

        response = _post(client, "purchase_order", "create", {
            "vendor_id": str(purchase_order.vendor_id),
            "subtotal": "100.00",
            "tax_amount": "8.00",
        })

        assert response.status_code == 200
        assert response.json()["data"]["po_number"] == "PO-2024-0001"

    def test_invoice_record_payment(self, client, services, invoice):
        paid = invoice.model_copy(update={"status": InvoiceStatus.PAID, "paid_amount": Decimal("100.00")})
        services["invoice"].record_payment.return_value = paid

        response = _post(client, "invoice", "record_payment", {"id": str(invoice.id), "amount": "100.00"})

        assert response.status_code == 200
        assert response.json()["data"]["status"] == "paid"
        services["invoice"].record_payment.assert_called_once_with(invoice.id, Decimal("100.00"))

    def test_invoice_non_positive_payment_returns_400(self, client, services, invoice):
        services["invoice"].record_payment.side_effect = ValueError("Payment amount must be positive")

        response = _post(client, "invoice", "record_payment", {"id": str(invoice.id), "amount": 0})

        assert response.status_code == 400


class TestUnhandledErrors:

    def test_unexpected_exception_returns_500(self, client, services):
        services["numbering"].commit.side_effect = RuntimeError("boom")

        response = _post(client, "numbering", "commit", {"kind": "invoice"})

        assert response.status_code == 500
        assert response.json()["error"]["code"] == "INTERNAL_ERROR"
        assert "boom" not in response.json()["error"]["message"]
