"""
Universal audit trail for all entity changes.

Every mutation to every entity is logged here. The audit log is:
- Append-only (entries never modified or deleted)
- Caller-attributed (which user of which company made the change)
- Detailed (captures old and new values)

Services running a multi-statement transaction pass their cursor so the
audit row commits or rolls back together with the change it describes.
"""

from enum import Enum
from uuid import UUID, uuid4
from typing import Any

from psycopg2.extras import Json

from clients.postgres_client import PostgresClient
from utils.user_context import get_current_caller
from utils.timezone import now_utc

_INSERT_SQL = """
    INSERT INTO audit_log (id, company_id, user_id, entity_type, entity_id, action, changes, created_at)
    VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
"""


class AuditAction(Enum):
    """Type of change made to an entity."""

    CREATE = "create"
    UPDATE = "update"


def compute_changes(
    old: dict[str, Any],
    new: dict[str, Any],
    exclude_fields: set[str] | None = None
) -> dict[str, dict[str, Any]]:
    """
    Compute changes between two entity states.

    Args:
        old: Previous state of entity
        new: New state of entity
        exclude_fields: Fields to ignore (defaults to {"updated_at"})

    Returns:
        Dict of {field: {"old": old_val, "new": new_val}} for changed fields.
        Empty dict if no changes.
    """
    exclude = exclude_fields or {"updated_at"}
    changes = {}

    all_keys = set(old.keys()) | set(new.keys())
    for key in all_keys:
        if key in exclude:
            continue

        old_val = old.get(key)
        new_val = new.get(key)

        if old_val != new_val:
            changes[key] = {"old": old_val, "new": new_val}

    return changes


class AuditLogger:
    """
    Universal audit trail for all entity changes.

    IMPORTANT: Always use model_dump(mode="json") when passing Pydantic models
    to ensure UUIDs, Decimals and datetimes are serialized to JSON-compatible values.

    Usage:
        audit = AuditLogger(postgres)

        # Standalone write
        audit.log_change(
            entity_type="estimate",
            entity_id=estimate.id,
            action=AuditAction.CREATE,
            changes={"created": data.model_dump(mode="json", exclude_none=True)}
        )

        # Inside a transaction
        with postgres.transaction() as cur:
            ...
            audit.log_change("project", project_id, AuditAction.CREATE, changes, cursor=cur)
    """

    def __init__(self, postgres: PostgresClient):
        self.postgres = postgres

    def log_change(
        self,
        entity_type: str,
        entity_id: UUID,
        action: AuditAction,
        changes: dict[str, Any],
        cursor=None,
    ) -> None:
        """
        Log an entity change.

        Args:
            entity_type: Type of entity ("estimate", "project", etc.)
            entity_id: ID of the entity
            action: The action performed (CREATE, UPDATE)
            changes: The changes made (format depends on action)
            cursor: Open transaction cursor; omit to write in its own transaction

        Changes format by action:
        - CREATE: {"created": {full entity data}}
        - UPDATE: {"field": {"old": old_val, "new": new_val}, ...}
        """
        caller = get_current_caller()
        params = (
            uuid4(),
            caller.company_id,
            caller.user_id,
            entity_type,
            entity_id,
            action.value,
            Json(changes),
            now_utc(),
        )

        if cursor is not None:
            cursor.execute(_INSERT_SQL, params)
        else:
            self.postgres.execute(_INSERT_SQL, params)

    def get_entity_history(
        self,
        entity_type: str,
        entity_id: UUID
    ) -> list[dict[str, Any]]:
        """
        Get full audit history for an entity.

        Args:
            entity_type: Type of entity ("estimate", "project", etc.)
            entity_id: ID of the entity

        Returns:
            List of audit entries of the caller's company, newest first.
        """
        return self.postgres.execute(
            """
            SELECT id, company_id, user_id, entity_type, entity_id, action, changes, created_at
            FROM audit_log
            WHERE entity_type = %s AND entity_id = %s AND company_id = %s
            ORDER BY created_at DESC
            """,
            (entity_type, entity_id, get_current_caller().company_id)
        )
