"""Application factory: wires services, middleware, error handlers and routers."""

from fastapi import FastAPI

from api.actions import create_actions_router
from api.base import success_response
from api.data import create_data_router
from api.errors import register_error_handlers
from api.middleware import CallerMiddleware, CallerResolver, RequestIDMiddleware
from clients.postgres_client import PostgresClient
from core.audit import AuditLogger
from core.config import AppConfig
from core.event_bus import EventBus
from core.services.company_service import CompanyService
from core.services.conversion_service import ConversionService
from core.services.estimate_service import EstimateService
from core.services.invoice_service import InvoiceService
from core.services.numbering_service import NumberingService
from core.services.project_service import ProjectService
from core.services.purchase_order_service import PurchaseOrderService
from core.services.work_order_service import WorkOrderService


def build_services(
    postgres: PostgresClient,
    config: AppConfig | None = None,
    event_bus: EventBus | None = None,
) -> dict:
    """Construct the service graph the routers expect, keyed by domain."""
    audit = AuditLogger(postgres)
    event_bus = event_bus or EventBus()
    numbering = NumberingService(postgres, audit, config)

    return {
        "numbering": numbering,
        "company": CompanyService(postgres, numbering),
        "estimate": EstimateService(postgres, audit, numbering, event_bus),
        "conversion": ConversionService(postgres, audit, event_bus),
        "project": ProjectService(postgres, audit),
        "work_order": WorkOrderService(postgres, audit, numbering, event_bus),
        "purchase_order": PurchaseOrderService(postgres, audit, numbering, event_bus),
        "invoice": InvoiceService(postgres, audit, numbering, event_bus),
    }


def create_app(services: dict, resolve_caller: CallerResolver) -> FastAPI:
    """
    Build the FastAPI app.

    Args:
        services: Service instances keyed by domain (see build_services)
        resolve_caller: Maps a session token to a Caller, or None if unknown
    """
    app = FastAPI(title="FieldOps")
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(CallerMiddleware, resolve_caller=resolve_caller)
    register_error_handlers(app)

    @app.get("/health")
    async def health():
        return success_response({"status": "ok"}).model_dump(mode="json")

    app.include_router(create_data_router(services), prefix="/api")
    app.include_router(create_actions_router(services), prefix="/api")

    return app
