"""GET /api/data: unified read endpoint."""

from uuid import UUID

from fastapi import APIRouter, Query, Request

from api.base import success_response
from core.models import (
    EstimateStatus,
    InvoiceStatus,
    ProjectStatus,
    PurchaseOrderStatus,
    WorkOrderStatus,
)


VALID_TYPES = {"estimates", "projects", "work_orders", "purchase_orders", "invoices", "numbering"}


def create_data_router(services: dict) -> APIRouter:
    router = APIRouter()

    company_svc = services["company"]
    numbering_svc = services["numbering"]
    estimate_svc = services["estimate"]
    conversion_svc = services["conversion"]
    project_svc = services["project"]
    work_order_svc = services["work_order"]
    purchase_order_svc = services["purchase_order"]
    invoice_svc = services["invoice"]

    # -------------------------------------------------------------------------
    # Convenience routes (must be registered before the generic /data route)
    # -------------------------------------------------------------------------

    @router.get("/data/company")
    async def current_company(request: Request):
        company = company_svc.get_current()
        if company is None:
            raise ValueError("Company not found")
        return success_response(company.model_dump(mode="json")).model_dump(mode="json")

    @router.get("/data/numbering/preview")
    async def numbering_preview(request: Request, kind: str = Query(...)):
        number = numbering_svc.peek_next(kind)
        return success_response({"kind": kind, "next": number}).model_dump(mode="json")

    # -------------------------------------------------------------------------
    # Generic data endpoint
    # -------------------------------------------------------------------------

    @router.get("/data")
    async def get_data(
        request: Request,
        type: str | None = Query(None),
        id: str | None = Query(None),
        status: str | None = Query(None),
        include: str | None = Query(None),
        limit: int = Query(50, ge=1, le=500),
    ):
        if type is None:
            raise ValueError("'type' query parameter is required")

        if type not in VALID_TYPES:
            raise ValueError(f"Unknown type '{type}'. Valid types: {', '.join(sorted(VALID_TYPES))}")

        includes = set(include.split(",")) if include else set()

        if type == "numbering":
            settings = numbering_svc.get_settings()
            return success_response(settings.model_dump(mode="json")).model_dump(mode="json")

        if type == "estimates":
            return _handle_estimates(estimate_svc, conversion_svc, project_svc, id, status, includes, limit)

        if type == "projects":
            return _handle_list(project_svc, "Project", ProjectStatus, id, status, limit)

        if type == "work_orders":
            return _handle_list(work_order_svc, "Work order", WorkOrderStatus, id, status, limit)

        if type == "purchase_orders":
            return _handle_list(purchase_order_svc, "Purchase order", PurchaseOrderStatus, id, status, limit)

        if type == "invoices":
            return _handle_list(invoice_svc, "Invoice", InvoiceStatus, id, status, limit)

    return router


def _handle_estimates(estimate_svc, conversion_svc, project_svc, id, status, includes, limit):
    if id:
        estimate = estimate_svc.get_by_id(UUID(id))
        if estimate is None:
            raise ValueError(f"Estimate {id} not found")

        data = estimate.model_dump(mode="json")
        if "project" in includes:
            project = project_svc.get_for_estimate(estimate.id)
            data["project"] = project.model_dump(mode="json") if project else None
        if "can_convert" in includes:
            data["can_convert"] = conversion_svc.can_convert(estimate.id)

        return success_response(data).model_dump(mode="json")

    return _handle_list(estimate_svc, "Estimate", EstimateStatus, None, status, limit)


def _handle_list(svc, label, status_enum, id, status, limit):
    if id:
        entity = svc.get_by_id(UUID(id))
        if entity is None:
            raise ValueError(f"{label} {id} not found")
        return success_response(entity.model_dump(mode="json")).model_dump(mode="json")

    entities = svc.list_all(status_enum(status) if status else None, limit)
    return success_response(
        [e.model_dump(mode="json") for e in entities]
    ).model_dump(mode="json")
