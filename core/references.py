"""
Tenant checks for ids that a request points at.

Foreign keys are checked by PostgreSQL without row level security, so a
customer or profile id from another company would otherwise be accepted.
Services call require_in_company() on their open cursor before inserting a
row that references another entity. The composite foreign keys in
db/schema.sql enforce the same rule in the database.
"""

from uuid import UUID

from core.errors import NotFoundError
from utils.user_context import get_current_company_id

# Tables whose ids documents may reference
_REFERENCE_TABLES = {"customers", "vendors", "profiles", "projects", "work_orders"}


def require_in_company(cursor, table: str, entity_id: UUID | None, label: str) -> None:
    """
    Check that an optional referenced id belongs to the caller's company.

    Args:
        cursor: Open transaction cursor
        table: Referenced table
        entity_id: Referenced id; None is accepted
        label: Entity name for the error message, e.g. "Customer"

    Raises:
        NotFoundError: If the id does not exist in the caller's company
    """
    if entity_id is None:
        return
    if table not in _REFERENCE_TABLES:
        raise ValueError(f"Unknown reference table '{table}'")

    cursor.execute(
        f"SELECT 1 FROM {table} WHERE id = %s AND company_id = %s",
        (entity_id, get_current_company_id())
    )
    if cursor.fetchone() is None:
        raise NotFoundError(f"{label} {entity_id} not found")
