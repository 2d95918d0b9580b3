"""
Estimate service for quoting.

Estimates move draft -> sent -> approved, with rejected and expired as side
exits. The approved -> converted step belongs to ConversionService; once
converted an estimate never changes status again.
"""

import logging
from uuid import UUID, uuid4

from clients.postgres_client import PostgresClient
from core.audit import AuditLogger, AuditAction
from core.errors import InvalidStateError, NotFoundError
from core.event_bus import EventBus
from core.events import DocumentCreated, EstimateStatusChanged
from core.models import DocumentKind, Estimate, EstimateCreate, EstimateStatus
from core.references import require_in_company
from core.services.numbering_service import NumberingService
from core.totals import rated_totals
from utils.timezone import now_utc
from utils.user_context import get_current_company_id

logger = logging.getLogger(__name__)

# target status -> statuses it may be entered from
_TRANSITIONS: dict[EstimateStatus, frozenset[EstimateStatus]] = {
    EstimateStatus.SENT: frozenset({EstimateStatus.DRAFT}),
    EstimateStatus.APPROVED: frozenset({EstimateStatus.DRAFT, EstimateStatus.SENT}),
    EstimateStatus.REJECTED: frozenset({EstimateStatus.SENT, EstimateStatus.APPROVED}),
    EstimateStatus.EXPIRED: frozenset({
        EstimateStatus.DRAFT, EstimateStatus.SENT,
        EstimateStatus.APPROVED, EstimateStatus.REJECTED,
    }),
}


class EstimateService:
    """Service for estimate operations."""

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

    def create(self, data: EstimateCreate) -> Estimate:
        """
        Create an estimate in DRAFT status.

        The estimate number is consumed in the same transaction as the insert.

        Args:
            data: Estimate creation data

        Returns:
            Created estimate

        Raises:
            ConfigNotFoundError: If the company has no estimate numbering
            NotFoundError: If a referenced id is not in the caller's company
        """
        company_id = get_current_company_id()
        subtotal, tax_amount, total_amount = rated_totals(data.subtotal, data.tax_rate)
        now = now_utc()

        with self.postgres.transaction() as cur:
            require_in_company(cur, "customers", data.customer_id, "Customer")
            number = self.numbering.allocate(cur, DocumentKind.ESTIMATE)
            cur.execute(
                """
                INSERT INTO estimates (
                    id, company_id, customer_id, estimate_number,
                    title, description, status,
                    issue_date, expiry_date,
                    subtotal, tax_rate, tax_amount, total_amount,
                    notes, created_at, updated_at
                ) VALUES (
                    %s, %s, %s, %s,
                    %s, %s, %s,
                    COALESCE(%s, CURRENT_DATE), %s,
                    %s, %s, %s, %s,
                    %s, %s, %s
                )
                RETURNING *
                """,
                (
                    uuid4(), company_id, data.customer_id, number,
                    data.title, data.description, EstimateStatus.DRAFT.value,
                    data.issue_date, data.expiry_date,
                    subtotal, data.tax_rate, tax_amount, total_amount,
                    data.notes, now, now
                )
            )
            estimate = Estimate.model_validate(cur.fetchone())

            self.audit.log_change(
                entity_type="estimate",
                entity_id=estimate.id,
                action=AuditAction.CREATE,
                changes={"created": estimate.model_dump(mode="json")},
                cursor=cur,
            )

        self.event_bus.publish(DocumentCreated.create(
            kind=DocumentKind.ESTIMATE, number=number, document=estimate
        ))
        return estimate

    def get_by_id(self, estimate_id: UUID) -> Estimate | None:
        """
        Get estimate by ID.

        Args:
            estimate_id: Estimate UUID

        Returns:
            Estimate if found in the caller's company, None otherwise.
        """
        row = self.postgres.execute_single(
            "SELECT * FROM estimates WHERE id = %s AND company_id = %s",
            (estimate_id, get_current_company_id())
        )

        if row is None:
            return None

        return Estimate.model_validate(row)

    def list_all(self, status: EstimateStatus | None = None, limit: int = 50) -> list[Estimate]:
        """
        List estimates, newest first.

        Args:
            status: Only estimates in this status
            limit: Maximum results
        """
        company_id = get_current_company_id()
        if status is None:
            rows = self.postgres.execute(
                """
                SELECT * FROM estimates
                WHERE company_id = %s
                ORDER BY created_at DESC
                LIMIT %s
                """,
                (company_id, limit)
            )
        else:
            rows = self.postgres.execute(
                """
                SELECT * FROM estimates
                WHERE company_id = %s AND status = %s
                ORDER BY created_at DESC
                LIMIT %s
                """,
                (company_id, status.value, limit)
            )

        return [Estimate.model_validate(row) for row in rows]

    def _transition(self, estimate_id: UUID, target: EstimateStatus) -> Estimate:
        allowed_from = _TRANSITIONS[target]

        with self.postgres.transaction() as cur:
            cur.execute(
                "SELECT * FROM estimates WHERE id = %s AND company_id = %s FOR UPDATE",
                (estimate_id, get_current_company_id())
            )
            row = cur.fetchone()
            if row is None:
                raise NotFoundError(f"Estimate {estimate_id} not found")

            current = Estimate.model_validate(row)
            if current.is_converted:
                raise InvalidStateError(
                    f"Estimate {estimate_id} is converted and immutable",
                    current_status=current.status.value,
                )
            if current.status not in allowed_from:
                raise InvalidStateError(
                    f"Estimate {estimate_id} cannot become {target.value} - status is {current.status.value}",
                    current_status=current.status.value,
                )

            cur.execute(
                """
                UPDATE estimates
                SET status = %s, updated_at = %s
                WHERE id = %s
                RETURNING *
                """,
                (target.value, now_utc(), estimate_id)
            )
            updated = Estimate.model_validate(cur.fetchone())

            self.audit.log_change(
                entity_type="estimate",
                entity_id=estimate_id,
                action=AuditAction.UPDATE,
                changes={"status": {"old": current.status.value, "new": target.value}},
                cursor=cur,
            )

        self.event_bus.publish(EstimateStatusChanged.create(
            estimate=updated, old_status=current.status.value
        ))
        return updated

    def send(self, estimate_id: UUID) -> Estimate:
        """Mark a draft estimate as sent to the customer."""
        return self._transition(estimate_id, EstimateStatus.SENT)

    def approve(self, estimate_id: UUID) -> Estimate:
        """Record customer approval. Approved estimates can be converted to projects."""
        return self._transition(estimate_id, EstimateStatus.APPROVED)

    def reject(self, estimate_id: UUID) -> Estimate:
        """Record customer rejection."""
        return self._transition(estimate_id, EstimateStatus.REJECTED)

    def expire(self, estimate_id: UUID) -> Estimate:
        """Expire an estimate that was never converted."""
        return self._transition(estimate_id, EstimateStatus.EXPIRED)
