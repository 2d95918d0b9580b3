"""
Invoice service for billing and payments.

Invoices are numbered at creation. Tax is a percentage of the subtotal and
the total is derived. Payments accumulate in paid_amount; the invoice
becomes PAID once paid_amount reaches total_amount.
"""

import logging
from decimal import Decimal
from uuid import UUID, uuid4

from clients.postgres_client import PostgresClient
from core.audit import AuditLogger, AuditAction
from core.errors import InvalidStateError, NotFoundError
from core.event_bus import EventBus
from core.events import DocumentCreated, InvoicePaid
from core.models import DocumentKind, Invoice, InvoiceCreate, InvoiceStatus
from core.references import require_in_company
from core.services.numbering_service import NumberingService
from core.totals import rated_totals, to_money
from utils.timezone import now_utc
from utils.user_context import get_current_company_id

logger = logging.getLogger(__name__)

# Statuses that still accept payments
_OPEN = frozenset({InvoiceStatus.DRAFT, InvoiceStatus.SENT, InvoiceStatus.OVERDUE})


class InvoiceService:
    """Service for invoice operations."""

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

    def create(self, data: InvoiceCreate) -> Invoice:
        """
        Create an invoice in DRAFT status.

        Args:
            data: Invoice creation data

        Returns:
            Created invoice

        Raises:
            ConfigNotFoundError: If the company has no invoice numbering
            NotFoundError: If a referenced id is not in the caller's company
        """
        company_id = get_current_company_id()
        subtotal, tax_amount, total_amount = rated_totals(data.subtotal, data.tax_rate)
        now = now_utc()

        with self.postgres.transaction() as cur:
            require_in_company(cur, "customers", data.customer_id, "Customer")
            require_in_company(cur, "work_orders", data.work_order_id, "Work order")
            invoice_number = self.numbering.allocate(cur, DocumentKind.INVOICE)
            cur.execute(
                """
                INSERT INTO invoices (
                    id, company_id, customer_id, work_order_id,
                    invoice_number, status,
                    issue_date, due_date,
                    subtotal, tax_rate, tax_amount, total_amount,
                    paid_amount, notes,
                    created_at, updated_at
                ) VALUES (
                    %s, %s, %s, %s,
                    %s, %s,
                    COALESCE(%s, CURRENT_DATE), %s,
                    %s, %s, %s, %s,
                    0, %s,
                    %s, %s
                )
                RETURNING *
                """,
                (
                    uuid4(), company_id, data.customer_id, data.work_order_id,
                    invoice_number, InvoiceStatus.DRAFT.value,
                    data.issue_date, data.due_date,
                    subtotal, data.tax_rate, tax_amount, total_amount,
                    data.notes,
                    now, now
                )
            )
            invoice = Invoice.model_validate(cur.fetchone())

            self.audit.log_change(
                entity_type="invoice",
                entity_id=invoice.id,
                action=AuditAction.CREATE,
                changes={"created": invoice.model_dump(mode="json")},
                cursor=cur,
            )

        self.event_bus.publish(DocumentCreated.create(
            kind=DocumentKind.INVOICE, number=invoice_number, document=invoice
        ))
        return invoice

    def get_by_id(self, invoice_id: UUID) -> Invoice | None:
        """
        Get invoice by ID.

        Args:
            invoice_id: Invoice UUID

        Returns:
            Invoice if found in the caller's company, None otherwise.
        """
        row = self.postgres.execute_single(
            "SELECT * FROM invoices WHERE id = %s AND company_id = %s",
            (invoice_id, get_current_company_id())
        )

        if row is None:
            return None

        return Invoice.model_validate(row)

    def _lock(self, cur, invoice_id: UUID) -> Invoice:
        cur.execute(
            "SELECT * FROM invoices WHERE id = %s AND company_id = %s FOR UPDATE",
            (invoice_id, get_current_company_id())
        )
        row = cur.fetchone()
        if row is None:
            raise NotFoundError(f"Invoice {invoice_id} not found")
        return Invoice.model_validate(row)

    def send(self, invoice_id: UUID) -> Invoice:
        """
        Send a draft invoice.

        Raises:
            NotFoundError: If invoice not found
            InvalidStateError: If invoice is not a draft
        """
        with self.postgres.transaction() as cur:
            current = self._lock(cur, invoice_id)
            if current.status != InvoiceStatus.DRAFT:
                raise InvalidStateError(
                    f"Only draft invoices can be sent - status is {current.status.value}",
                    current_status=current.status.value,
                )

            cur.execute(
                """
                UPDATE invoices
                SET status = %s, updated_at = %s
                WHERE id = %s
                RETURNING *
                """,
                (InvoiceStatus.SENT.value, now_utc(), invoice_id)
            )
            updated = Invoice.model_validate(cur.fetchone())

            self.audit.log_change(
                entity_type="invoice",
                entity_id=invoice_id,
                action=AuditAction.UPDATE,
                changes={"status": {"old": current.status.value, "new": InvoiceStatus.SENT.value}},
                cursor=cur,
            )

        return updated

    def record_payment(self, invoice_id: UUID, amount: Decimal) -> Invoice:
        """
        Record a payment on an invoice.

        Args:
            invoice_id: Invoice UUID
            amount: Payment amount, positive

        Returns:
            Updated invoice (status becomes PAID once fully paid)

        Raises:
            ValueError: If amount is not positive
            NotFoundError: If invoice not found
            InvalidStateError: If invoice is paid or cancelled
        """
        amount = to_money(amount)
        if amount <= 0:
            raise ValueError("Payment amount must be positive")

        with self.postgres.transaction() as cur:
            current = self._lock(cur, invoice_id)
            if current.status not in _OPEN:
                raise InvalidStateError(
                    f"Invoice {current.invoice_number} is {current.status.value} and accepts no payments",
                    current_status=current.status.value,
                )

            new_paid_amount = current.paid_amount + amount
            if new_paid_amount >= current.total_amount:
                new_status = InvoiceStatus.PAID
                payment_date = now_utc().date()
            else:
                new_status = current.status
                payment_date = current.payment_date

            cur.execute(
                """
                UPDATE invoices
                SET paid_amount = %s, status = %s, payment_date = %s, updated_at = %s
                WHERE id = %s
                RETURNING *
                """,
                (new_paid_amount, new_status.value, payment_date, now_utc(), invoice_id)
            )
            updated = Invoice.model_validate(cur.fetchone())

            self.audit.log_change(
                entity_type="invoice",
                entity_id=invoice_id,
                action=AuditAction.UPDATE,
                changes={
                    "paid_amount": {"old": str(current.paid_amount), "new": str(new_paid_amount)},
                    "status": {"old": current.status.value, "new": new_status.value},
                    "payment_recorded": str(amount)
                },
                cursor=cur,
            )

        if new_status == InvoiceStatus.PAID:
            logger.info("Invoice %s paid in full", updated.invoice_number)
            self.event_bus.publish(InvoicePaid.create(invoice=updated))

        return updated

    def cancel(self, invoice_id: UUID) -> Invoice:
        """
        Cancel an invoice.

        Raises:
            NotFoundError: If invoice not found
            InvalidStateError: If invoice is paid or already cancelled
        """
        with self.postgres.transaction() as cur:
            current = self._lock(cur, invoice_id)
            if current.status in (InvoiceStatus.PAID, InvoiceStatus.CANCELLED):
                raise InvalidStateError(
                    f"Invoice {current.invoice_number} is {current.status.value} and cannot be cancelled",
                    current_status=current.status.value,
                )

            cur.execute(
                """
                UPDATE invoices
                SET status = %s, updated_at = %s
                WHERE id = %s
                RETURNING *
                """,
                (InvoiceStatus.CANCELLED.value, now_utc(), invoice_id)
            )
            updated = Invoice.model_validate(cur.fetchone())

            self.audit.log_change(
                entity_type="invoice",
                entity_id=invoice_id,
                action=AuditAction.UPDATE,
                changes={"status": {"old": current.status.value, "new": InvoiceStatus.CANCELLED.value}},
                cursor=cur,
            )

        return updated

    def list_all(self, status: InvoiceStatus | None = None, limit: int = 50) -> list[Invoice]:
        """
        List invoices, newest first.

        Args:
            status: Only invoices in this status
            limit: Maximum results
        """
        company_id = get_current_company_id()
        if status is None:
            rows = self.postgres.execute(
                """
                SELECT * FROM invoices
                WHERE company_id = %s
                ORDER BY created_at DESC
                LIMIT %s
                """,
                (company_id, limit)
            )
        else:
            rows = self.postgres.execute(
                """
                SELECT * FROM invoices
                WHERE company_id = %s AND status = %s
                ORDER BY created_at DESC
                LIMIT %s
                """,
                (company_id, status.value, limit)
            )

        return [Invoice.model_validate(row) for row in rows]
