"""
Domain events for FieldOps.

Immutable event objects that represent state changes in the domain.
Events enable loose coupling between services: a service publishes what
happened, and handlers react without the publisher knowing who's listening.

Event Categories:
- DocumentEvent: Numbered document lifecycle (created, invoice paid)
- EstimateEvent: Estimate lifecycle (status change, conversion)

Events are published only after the transaction that produced them commits,
and carry the full domain objects so handlers don't need to re-fetch state.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any
from uuid import uuid4

from utils.timezone import now_utc


@dataclass(frozen=True, kw_only=True)
class FieldOpsEvent:
    """Base class for all domain events."""
    event_id: str = field(default_factory=lambda: str(uuid4()))
    occurred_at: datetime = field(default_factory=now_utc)


# =============================================================================
# DOCUMENT EVENTS
# =============================================================================


@dataclass(frozen=True)
class DocumentEvent(FieldOpsEvent):
    """Events related to numbered documents."""
    pass


@dataclass(frozen=True)
class DocumentCreated(DocumentEvent):
    """A numbered document (work order, purchase order, estimate, invoice) was created."""
    kind: Any = None  # DocumentKind; Any avoids a circular import
    number: str = ""
    document: Any = None

    @classmethod
    def create(cls, kind: Any, number: str, document: Any) -> "DocumentCreated":
        return cls(kind=kind, number=number, document=document)


@dataclass(frozen=True)
class InvoicePaid(DocumentEvent):
    """An invoice's payments reached its total."""
    invoice: Any = None

    @classmethod
    def create(cls, invoice: Any) -> "InvoicePaid":
        return cls(invoice=invoice)


# =============================================================================
# ESTIMATE EVENTS
# =============================================================================


@dataclass(frozen=True)
class EstimateEvent(FieldOpsEvent):
    """Events related to estimate lifecycle."""
    pass


@dataclass(frozen=True)
class EstimateStatusChanged(EstimateEvent):
    """Estimate moved between draft/sent/approved/rejected/expired."""
    estimate: Any = None
    old_status: str = ""

    @classmethod
    def create(cls, estimate: Any, old_status: str) -> "EstimateStatusChanged":
        return cls(estimate=estimate, old_status=old_status)


@dataclass(frozen=True)
class EstimateConverted(EstimateEvent):
    """An approved estimate became a project."""
    estimate: Any = None
    project: Any = None

    @classmethod
    def create(cls, estimate: Any, project: Any) -> "EstimateConverted":
        return cls(estimate=estimate, project=project)
