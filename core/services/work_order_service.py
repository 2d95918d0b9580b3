"""
Work order service.

Work orders are numbered at creation and move
scheduled -> in_progress -> completed. Any open work order can be cancelled;
completed and cancelled are final.
"""

import logging
from uuid import UUID, uuid4

from clients.postgres_client import PostgresClient
from core.audit import AuditLogger, AuditAction
from core.errors import InvalidStateError, NotFoundError
from core.event_bus import EventBus
from core.events import DocumentCreated
from core.models import DocumentKind, WorkOrder, WorkOrderCreate, WorkOrderStatus
from core.references import require_in_company
from core.services.numbering_service import NumberingService
from core.totals import summed_total, to_money
from utils.timezone import now_utc
from utils.user_context import get_current_company_id

logger = logging.getLogger(__name__)

_NEXT_STATUSES: dict[WorkOrderStatus, frozenset[WorkOrderStatus]] = {
    WorkOrderStatus.SCHEDULED: frozenset({WorkOrderStatus.IN_PROGRESS, WorkOrderStatus.CANCELLED}),
    WorkOrderStatus.IN_PROGRESS: frozenset({WorkOrderStatus.COMPLETED, WorkOrderStatus.CANCELLED}),
    WorkOrderStatus.COMPLETED: frozenset(),
    WorkOrderStatus.CANCELLED: frozenset(),
}


class WorkOrderService:
    """Service for work order operations."""

    def __init__(
        self,
        postgres: PostgresClient,
        audit: AuditLogger,
        numbering: NumberingService,
        event_bus: EventBus,
    ):
        self.postgres = postgres
        self.audit = audit
        self.numbering = numbering
        self.event_bus = event_bus

    def create(self, data: WorkOrderCreate) -> WorkOrder:
        """
        Create a work order in SCHEDULED status.

        total_cost is labor_cost + material_cost.

        Raises:
            ConfigNotFoundError: If the company has no work order numbering
            NotFoundError: If a referenced id is not in the caller's company
        """
        company_id = get_current_company_id()
        labor_cost = to_money(data.labor_cost)
        material_cost = to_money(data.material_cost)
        now = now_utc()

        with self.postgres.transaction() as cur:
            require_in_company(cur, "customers", data.customer_id, "Customer")
            require_in_company(cur, "projects", data.project_id, "Project")
            require_in_company(cur, "profiles", data.assigned_to, "Profile")
            number = self.numbering.allocate(cur, DocumentKind.WORK_ORDER)
            cur.execute(
                """
                INSERT INTO work_orders (
                    id, company_id, customer_id, project_id, assigned_to,
                    wo_number, title, description, priority, status,
                    scheduled_date, estimated_hours,
                    labor_cost, material_cost, total_cost,
                    notes, created_at, updated_at
                ) VALUES (
                    %s, %s, %s, %s, %s,
                    %s, %s, %s, %s, %s,
                    %s, %s,
                    %s, %s, %s,
                    %s, %s, %s
                )
                RETURNING *
                """,
                (
                    uuid4(), company_id, data.customer_id, data.project_id, data.assigned_to,
                    number, data.title, data.description, data.priority.value,
                    WorkOrderStatus.SCHEDULED.value,
                    data.scheduled_date, data.estimated_hours,
                    labor_cost, material_cost, summed_total(labor_cost, material_cost),
                    data.notes, now, now
                )
            )
            work_order = WorkOrder.model_validate(cur.fetchone())

            self.audit.log_change(
                entity_type="work_order",
                entity_id=work_order.id,
                action=AuditAction.CREATE,
                changes={"created": work_order.model_dump(mode="json")},
                cursor=cur,
            )

        logger.info("Work order %s created", number)
        self.event_bus.publish(DocumentCreated.create(
            kind=DocumentKind.WORK_ORDER, number=number, document=work_order
        ))
        return work_order

    def get_by_id(self, work_order_id: UUID) -> WorkOrder | None:
        """Get work order by ID, None if not in the caller's company."""
        row = self.postgres.execute_single(
            "SELECT * FROM work_orders WHERE id = %s AND company_id = %s",
            (work_order_id, get_current_company_id())
        )

        if row is None:
            return None

        return WorkOrder.model_validate(row)

    def list_all(self, status: WorkOrderStatus | None = None, limit: int = 50) -> list[WorkOrder]:
        """
        List work orders, soonest scheduled first.

        Args:
            status: Only work orders in this status
            limit: Maximum results
        """
        company_id = get_current_company_id()
        if status is None:
            rows = self.postgres.execute(
                """
                SELECT * FROM work_orders
                WHERE company_id = %s
                ORDER BY scheduled_date ASC NULLS LAST, created_at DESC
                LIMIT %s
                """,
                (company_id, limit)
            )
        else:
            rows = self.postgres.execute(
                """
                SELECT * FROM work_orders
                WHERE company_id = %s AND status = %s
                ORDER BY scheduled_date ASC NULLS LAST, created_at DESC
                LIMIT %s
                """,
                (company_id, status.value, limit)
            )

        return [WorkOrder.model_validate(row) for row in rows]

    def update_status(self, work_order_id: UUID, status: WorkOrderStatus) -> WorkOrder:
        """
        Move a work order to a new status.

        Raises:
            NotFoundError: If the work order is not in the caller's company
            InvalidStateError: If the move is not allowed from the current status
        """
        with self.postgres.transaction() as cur:
            cur.execute(
                "SELECT * FROM work_orders WHERE id = %s AND company_id = %s FOR UPDATE",
                (work_order_id, get_current_company_id())
            )
            row = cur.fetchone()
            if row is None:
                raise NotFoundError(f"Work order {work_order_id} not found")

            current = WorkOrder.model_validate(row)
            if status not in _NEXT_STATUSES[current.status]:
                raise InvalidStateError(
                    f"Work order {current.wo_number} cannot move from {current.status.value} to {status.value}",
                    current_status=current.status.value,
                )

            now = now_utc()
            completed_date = now if status == WorkOrderStatus.COMPLETED else current.completed_date
            cur.execute(
                """
                UPDATE work_orders
                SET status = %s, completed_date = %s, updated_at = %s
                WHERE id = %s
                RETURNING *
                """,
                (status.value, completed_date, now, work_order_id)
            )
            updated = WorkOrder.model_validate(cur.fetchone())

            self.audit.log_change(
                entity_type="work_order",
                entity_id=work_order_id,
                action=AuditAction.UPDATE,
                changes={"status": {"old": current.status.value, "new": status.value}},
                cursor=cur,
            )

        return updated
