"""POST /api/actions: unified mutation endpoint."""

from decimal import Decimal
from uuid import UUID

from fastapi import APIRouter, Request
from pydantic import BaseModel

from api.base import success_response
from core.errors import (
    AlreadyConvertedError,
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
    StorageUnavailableError,
)
from core.models import (
    ConversionErrorCode,
    ConversionOverrides,
    EstimateCreate,
    InvoiceCreate,
    NumberingFormatUpdate,
    ProjectCreate,
    PurchaseOrderCreate,
    PurchaseOrderStatus,
    WorkOrderCreate,
    WorkOrderStatus,
)


class ActionRequest(BaseModel):
    domain: str
    action: str
    data: dict


def create_actions_router(services: dict) -> APIRouter:
    router = APIRouter()

    handlers = {
        "numbering": NumberingHandler(services["numbering"]),
        "estimate": EstimateHandler(services["estimate"], services["conversion"]),
        "project": ProjectHandler(services["project"]),
        "work_order": WorkOrderHandler(services["work_order"]),
        "purchase_order": PurchaseOrderHandler(services["purchase_order"]),
        "invoice": InvoiceHandler(services["invoice"]),
    }

    @router.post("/actions")
    async def perform_action(request: Request, body: ActionRequest):
        handler = handlers.get(body.domain)
        if handler is None:
            raise ValueError(
                f"Unknown domain '{body.domain}'. "
                f"Valid domains: {', '.join(sorted(handlers.keys()))}"
            )

        if body.action not in handler.ALLOWED_ACTIONS:
            raise ValueError(
                f"Action '{body.action}' not allowed on '{body.domain}'. "
                f"Allowed: {', '.join(sorted(handler.ALLOWED_ACTIONS))}"
            )

        method = getattr(handler, f"_handle_{body.action}", None)
        result = method(body.data)
        return success_response(result).model_dump(mode="json")

    return router


# =============================================================================
# HANDLER CLASSES
# =============================================================================


class NumberingHandler:
    ALLOWED_ACTIONS = {"commit", "update"}

    def __init__(self, service):
        self.service = service

    def _handle_commit(self, data: dict):
        consumed = self.service.commit(data["kind"])
        return {"kind": data["kind"], "consumed": consumed}

    def _handle_update(self, data: dict):
        kind = data.pop("kind")
        fmt = self.service.update_settings(kind, NumberingFormatUpdate(**data))
        return fmt.model_dump(mode="json")


# Failed conversions surface through the same error envelope as raised errors
_CONVERSION_ERRORS = {
    ConversionErrorCode.FORBIDDEN: ForbiddenError,
    ConversionErrorCode.NOT_FOUND: NotFoundError,
    ConversionErrorCode.ALREADY_CONVERTED: AlreadyConvertedError,
    ConversionErrorCode.STORAGE_UNAVAILABLE: StorageUnavailableError,
}


class EstimateHandler:
    ALLOWED_ACTIONS = {"create", "send", "approve", "reject", "expire", "convert"}

    def __init__(self, service, conversion):
        self.service = service
        self.conversion = conversion

    def _handle_create(self, data: dict):
        estimate = self.service.create(EstimateCreate(**data))
        return estimate.model_dump(mode="json")

    def _handle_send(self, data: dict):
        estimate = self.service.send(UUID(data["id"]))
        return estimate.model_dump(mode="json")

    def _handle_approve(self, data: dict):
        estimate = self.service.approve(UUID(data["id"]))
        return estimate.model_dump(mode="json")

    def _handle_reject(self, data: dict):
        estimate = self.service.reject(UUID(data["id"]))
        return estimate.model_dump(mode="json")

    def _handle_expire(self, data: dict):
        estimate = self.service.expire(UUID(data["id"]))
        return estimate.model_dump(mode="json")

    def _handle_convert(self, data: dict):
        estimate_id = UUID(data.pop("id"))
        result = self.conversion.convert(estimate_id, ConversionOverrides(**data))
        if result.success:
            return result.model_dump(mode="json")

        error = result.error
        if error.code == ConversionErrorCode.INVALID_STATE:
            raise InvalidStateError(error.message, current_status=error.current_status)
        raise _CONVERSION_ERRORS[error.code](error.message)


class ProjectHandler:
    ALLOWED_ACTIONS = {"create"}

    def __init__(self, service):
        self.service = service

    def _handle_create(self, data: dict):
        project = self.service.create(ProjectCreate(**data))
        return project.model_dump(mode="json")


class WorkOrderHandler:
    ALLOWED_ACTIONS = {"create", "update_status"}

    def __init__(self, service):
        self.service = service

    def _handle_create(self, data: dict):
        work_order = self.service.create(WorkOrderCreate(**data))
        return work_order.model_dump(mode="json")

    def _handle_update_status(self, data: dict):
        work_order = self.service.update_status(UUID(data["id"]), WorkOrderStatus(data["status"]))
        return work_order.model_dump(mode="json")


class PurchaseOrderHandler:
    ALLOWED_ACTIONS = {"create", "update_status"}

    def __init__(self, service):
        self.service = service

    def _handle_create(self, data: dict):
        purchase_order = self.service.create(PurchaseOrderCreate(**data))
        return purchase_order.model_dump(mode="json")

    def _handle_update_status(self, data: dict):
        purchase_order = self.service.update_status(
            UUID(data["id"]), PurchaseOrderStatus(data["status"])
        )
        return purchase_order.model_dump(mode="json")


class InvoiceHandler:
    ALLOWED_ACTIONS = {"create", "send", "record_payment", "cancel"}

    def __init__(self, service):
        self.service = service

    def _handle_create(self, data: dict):
        invoice = self.service.create(InvoiceCreate(**data))
        return invoice.model_dump(mode="json")

    def _handle_send(self, data: dict):
        invoice = self.service.send(UUID(data["id"]))
        return invoice.model_dump(mode="json")

    def _handle_record_payment(self, data: dict):
        invoice = self.service.record_payment(UUID(data["id"]), Decimal(str(data["amount"])))
        return invoice.model_dump(mode="json")

    def _handle_cancel(self, data: dict):
        invoice = self.service.cancel(UUID(data["id"]))
        return invoice.model_dump(mode="json")
