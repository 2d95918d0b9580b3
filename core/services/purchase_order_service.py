"""Purchase order service. Orders move draft -> sent -> approved -> received."""

import logging
from uuid import UUID, uuid4

from clients.postgres_client import PostgresClient
from core.audit import AuditLogger, AuditAction
from core.errors import InvalidStateError, NotFoundError
from core.event_bus import EventBus
from core.events import DocumentCreated
from core.models import DocumentKind, PurchaseOrder, PurchaseOrderCreate, PurchaseOrderStatus
from core.references import require_in_company
from core.services.numbering_service import NumberingService
from core.totals import summed_total, to_money
from utils.timezone import now_utc
from utils.user_context import get_current_company_id

logger = logging.getLogger(__name__)

_NEXT_STATUSES: dict[PurchaseOrderStatus, frozenset[PurchaseOrderStatus]] = {
    PurchaseOrderStatus.DRAFT: frozenset({PurchaseOrderStatus.SENT, PurchaseOrderStatus.CANCELLED}),
    PurchaseOrderStatus.SENT: frozenset({PurchaseOrderStatus.APPROVED, PurchaseOrderStatus.CANCELLED}),
    PurchaseOrderStatus.APPROVED: frozenset({PurchaseOrderStatus.RECEIVED, PurchaseOrderStatus.CANCELLED}),
    PurchaseOrderStatus.RECEIVED: frozenset(),
    PurchaseOrderStatus.CANCELLED: frozenset(),
}


class PurchaseOrderService:
    """Service for purchase order operations."""

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

    def create(self, data: PurchaseOrderCreate) -> PurchaseOrder:
        """
        Create a purchase order in DRAFT status.

        Args:
            data: Purchase order creation data

        Returns:
            Created purchase order with total_amount = subtotal + tax_amount

        Raises:
            ConfigNotFoundError: If the company has no purchase order numbering
            NotFoundError: If a referenced id is not in the caller's company
        """
        company_id = get_current_company_id()
        subtotal = to_money(data.subtotal)
        tax_amount = to_money(data.tax_amount)
        now = now_utc()

        with self.postgres.transaction() as cur:
            require_in_company(cur, "vendors", data.vendor_id, "Vendor")
            require_in_company(cur, "work_orders", data.work_order_id, "Work order")
            number = self.numbering.allocate(cur, DocumentKind.PURCHASE_ORDER)
            cur.execute(
                """
                INSERT INTO purchase_orders (
                    id, company_id, vendor_id, work_order_id,
                    po_number, status,
                    order_date, expected_delivery,
                    subtotal, tax_amount, total_amount,
                    notes, created_at, updated_at
                ) VALUES (
                    %s, %s, %s, %s,
                    %s, %s,
                    COALESCE(%s, CURRENT_DATE), %s,
                    %s, %s, %s,
                    %s, %s, %s
                )
                RETURNING *
                """,
                (
                    uuid4(), company_id, data.vendor_id, data.work_order_id,
                    number, PurchaseOrderStatus.DRAFT.value,
                    data.order_date, data.expected_delivery,
                    subtotal, tax_amount, summed_total(subtotal, tax_amount),
                    data.notes, now, now
                )
            )
            purchase_order = PurchaseOrder.model_validate(cur.fetchone())

            self.audit.log_change(
                entity_type="purchase_order",
                entity_id=purchase_order.id,
                action=AuditAction.CREATE,
                changes={"created": purchase_order.model_dump(mode="json")},
                cursor=cur,
            )

        self.event_bus.publish(DocumentCreated.create(
            kind=DocumentKind.PURCHASE_ORDER, number=number, document=purchase_order
        ))
        return purchase_order

    def get_by_id(self, purchase_order_id: UUID) -> PurchaseOrder | None:
        """
        Get purchase order by ID.

        Args:
            purchase_order_id: Purchase order UUID

        Returns:
            PurchaseOrder if found in the caller's company, None otherwise.
        """
        row = self.postgres.execute_single(
            "SELECT * FROM purchase_orders WHERE id = %s AND company_id = %s",
            (purchase_order_id, get_current_company_id())
        )

        if row is None:
            return None

        return PurchaseOrder.model_validate(row)

    def list_all(self, status: PurchaseOrderStatus | None = None, limit: int = 50) -> list[PurchaseOrder]:
        """List purchase orders, newest first."""
        company_id = get_current_company_id()
        if status is None:
            rows = self.postgres.execute(
                """
                SELECT * FROM purchase_orders
                WHERE company_id = %s
                ORDER BY created_at DESC
                LIMIT %s
                """,
                (company_id, limit)
            )
        else:
            rows = self.postgres.execute(
                """
                SELECT * FROM purchase_orders
                WHERE company_id = %s AND status = %s
                ORDER BY created_at DESC
                LIMIT %s
                """,
                (company_id, status.value, limit)
            )

        return [PurchaseOrder.model_validate(row) for row in rows]

    def update_status(self, purchase_order_id: UUID, status: PurchaseOrderStatus) -> PurchaseOrder:
        """
        Move a purchase order to a new status.

        Raises:
            NotFoundError: If the order is not in the caller's company
            InvalidStateError: If the move is not allowed from the current status
        """
        with self.postgres.transaction() as cur:
            cur.execute(
                "SELECT * FROM purchase_orders WHERE id = %s AND company_id = %s FOR UPDATE",
                (purchase_order_id, get_current_company_id())
            )
            row = cur.fetchone()
            if row is None:
                raise NotFoundError(f"Purchase order {purchase_order_id} not found")

            current = PurchaseOrder.model_validate(row)
            if status not in _NEXT_STATUSES[current.status]:
                raise InvalidStateError(
                    f"Purchase order {current.po_number} cannot move from {current.status.value} to {status.value}",
                    current_status=current.status.value,
                )

            cur.execute(
                """
                UPDATE purchase_orders
                SET status = %s, updated_at = %s
                WHERE id = %s
                RETURNING *
                """,
                (status.value, now_utc(), purchase_order_id)
            )
            updated = PurchaseOrder.model_validate(cur.fetchone())

            self.audit.log_change(
                entity_type="purchase_order",
                entity_id=purchase_order_id,
                action=AuditAction.UPDATE,
                changes={"status": {"old": current.status.value, "new": status.value}},
                cursor=cur,
            )

        return updated
