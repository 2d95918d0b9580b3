"""
Document numbering service (sequence allocator).

Each company has one numbering_settings row per document kind holding the
prefix, the format template and next_number. Two operations matter:

- peek_next renders what the next number would be. It is a plain read and
  advisory only: two forms open at once are shown the same preview.
- commit / allocate consume a number with a single in-place
  UPDATE ... SET next_number = next_number + 1 ... RETURNING. The row lock
  taken by that UPDATE serializes concurrent callers, so no two callers ever
  consume the same value. There is no read-then-write from Python.

Document services call allocate() inside their insert transaction, so the
stored document number is assigned by the server at commit time and a failed
insert rolls the counter back with it.

Operational constraint: editing a format to drop its counter token, or
lowering next_number, can reintroduce duplicate numbers. Such edits are
accepted and logged; the unique (company_id, number) constraint on each
document table rejects the duplicate insert when it happens.
"""

import logging
from datetime import date

import psycopg2.errors

from clients.postgres_client import PostgresClient
from core.audit import AuditLogger, AuditAction, compute_changes
from core.authorization import ADMINS, require_role
from core.config import AppConfig
from core.errors import ConfigNotFoundError, InvalidStateError
from core.models import (
    DEFAULT_NUMBERING,
    DocumentKind,
    NumberingFormat,
    NumberingFormatUpdate,
    NumberingSettings,
)
from core.numbering import has_counter, render_document_number
from utils.timezone import now_utc, today_in
from utils.user_context import get_current_company_id

logger = logging.getLogger(__name__)


def parse_kind(kind: DocumentKind | str) -> DocumentKind:
    """
    Normalize a document kind.

    Raises:
        ConfigNotFoundError: If kind is not one of the four numbered kinds
    """
    try:
        return DocumentKind(kind)
    except ValueError:
        valid = ", ".join(k.value for k in DocumentKind)
        raise ConfigNotFoundError(
            f"No numbering configuration for document kind '{kind}'. Valid kinds: {valid}"
        )


class NumberingService:
    """Service for document number preview, consumption and settings."""

    def __init__(self, postgres: PostgresClient, audit: AuditLogger, config: AppConfig | None = None):
        self.postgres = postgres
        self.audit = audit
        self.config = config or AppConfig()

    def _today(self) -> date:
        return today_in(self.config.numbering_timezone)

    def get_format(self, kind: DocumentKind | str) -> NumberingFormat:
        """
        Get the numbering configuration for one kind of the caller's company.

        Raises:
            ConfigNotFoundError: If kind is unknown or has no configuration row
        """
        kind = parse_kind(kind)
        company_id = get_current_company_id()

        row = self.postgres.execute_single(
            "SELECT * FROM numbering_settings WHERE company_id = %s AND kind = %s",
            (company_id, kind.value)
        )
        if row is None:
            raise ConfigNotFoundError(
                f"No {kind.value} numbering configuration for company {company_id}"
            )

        return NumberingFormat.model_validate(row)

    def get_settings(self) -> NumberingSettings:
        """
        Get all four numbering configurations of the caller's company.

        Raises:
            ConfigNotFoundError: If any kind lacks a configuration row
        """
        company_id = get_current_company_id()
        rows = self.postgres.execute(
            "SELECT * FROM numbering_settings WHERE company_id = %s",
            (company_id,)
        )

        by_kind = {row["kind"]: NumberingFormat.model_validate(row) for row in rows}
        missing = [k.value for k in DocumentKind if k.value not in by_kind]
        if missing:
            raise ConfigNotFoundError(
                f"Company {company_id} has no numbering configuration for: {', '.join(missing)}"
            )

        return NumberingSettings(**by_kind)

    def peek_next(self, kind: DocumentKind | str, on: date | None = None) -> str:
        """
        Render the next number for a kind without consuming it.

        Idempotent: repeated calls return the same string until a commit.

        Args:
            kind: Document kind
            on: Date for the date placeholders (defaults to today)

        Raises:
            ConfigNotFoundError: If kind is unknown or not configured
        """
        fmt = self.get_format(kind)
        return render_document_number(fmt.format, fmt.next_number, on or self._today(), fmt.prefix)

    def _advance(self, cursor, kind: DocumentKind) -> dict:
        """Consume one number on an open transaction. Returns consumed value, prefix and format."""
        company_id = get_current_company_id()
        try:
            cursor.execute(
                """
                UPDATE numbering_settings
                SET next_number = next_number + 1, updated_at = %s
                WHERE company_id = %s AND kind = %s
                RETURNING next_number - 1 AS consumed, prefix, format
                """,
                (now_utc(), company_id, kind.value)
            )
        except psycopg2.errors.NumericValueOutOfRange:
            raise InvalidStateError(f"The {kind.value} counter is exhausted; no numbers remain")
        row = cursor.fetchone()
        if row is None:
            raise ConfigNotFoundError(
                f"No {kind.value} numbering configuration for company {company_id}"
            )
        return row

    def commit(self, kind: DocumentKind | str) -> int:
        """
        Advance the counter for a kind by exactly one.

        A single atomic UPDATE; concurrent commits each consume a distinct
        value. On any failure the transaction rolls back and next_number is
        unchanged, so retrying never skips a number.

        Args:
            kind: Document kind

        Returns:
            The consumed (pre-increment) counter value

        Raises:
            ConfigNotFoundError: If kind is unknown or not configured
            InvalidStateError: If the counter has reached the column maximum
            StorageUnavailableError: If the database is unreachable; safe to retry
        """
        kind = parse_kind(kind)
        with self.postgres.transaction() as cur:
            row = self._advance(cur, kind)

        consumed = row["consumed"]
        logger.info("Committed %s number %d", kind.value, consumed)
        return consumed

    def allocate(self, cursor, kind: DocumentKind | str, on: date | None = None) -> str:
        """
        Consume a number inside the caller's transaction and render it.

        The increment commits or rolls back with the caller's transaction,
        so a failed document insert does not burn a number.

        Args:
            cursor: Open cursor from PostgresClient.transaction()
            kind: Document kind
            on: Date for the date placeholders (defaults to today)

        Returns:
            The rendered document number

        Raises:
            ConfigNotFoundError: If kind is unknown or not configured
        """
        kind = parse_kind(kind)
        row = self._advance(cursor, kind)
        return render_document_number(row["format"], row["consumed"], on or self._today(), row["prefix"])

    def seed_defaults(self, cursor, company_id) -> None:
        """Create the default configuration rows for a new company. Existing rows are kept."""
        now = now_utc()
        for kind, (prefix, fmt) in DEFAULT_NUMBERING.items():
            cursor.execute(
                """
                INSERT INTO numbering_settings (company_id, kind, prefix, format, next_number, updated_at)
                VALUES (%s, %s, %s, %s, 1, %s)
                ON CONFLICT (company_id, kind) DO NOTHING
                """,
                (company_id, kind.value, prefix, fmt, now)
            )

    def update_settings(self, kind: DocumentKind | str, data: NumberingFormatUpdate) -> NumberingFormat:
        """
        Edit prefix, format or next_number for a kind. Admin only.

        Edits that remove the counter token or lower next_number are applied
        but logged as warnings: they can produce duplicate numbers.

        Raises:
            ForbiddenError: If caller is not an admin
            ConfigNotFoundError: If kind is unknown or not configured
        """
        require_role(ADMINS, "edit document numbering")
        kind = parse_kind(kind)
        company_id = get_current_company_id()

        updates = data.model_dump(exclude_none=True)

        with self.postgres.transaction() as cur:
            cur.execute(
                "SELECT * FROM numbering_settings WHERE company_id = %s AND kind = %s FOR UPDATE",
                (company_id, kind.value)
            )
            row = cur.fetchone()
            if row is None:
                raise ConfigNotFoundError(
                    f"No {kind.value} numbering configuration for company {company_id}"
                )
            current = NumberingFormat.model_validate(row)

            if not updates:
                return current

            if "format" in updates and not has_counter(updates["format"]):
                logger.warning(
                    "Format %r for %s has no counter token; numbers will repeat",
                    updates["format"], kind.value,
                )
            if "next_number" in updates and updates["next_number"] < current.next_number:
                logger.warning(
                    "Lowering %s next_number from %d to %d may reissue numbers",
                    kind.value, current.next_number, updates["next_number"],
                )

            set_parts = [f"{field} = %s" for field in updates]
            params = list(updates.values())
            set_parts.append("updated_at = %s")
            params.extend([now_utc(), company_id, kind.value])

            cur.execute(
                f"""
                UPDATE numbering_settings
                SET {', '.join(set_parts)}
                WHERE company_id = %s AND kind = %s
                RETURNING *
                """,
                tuple(params)
            )
            updated = NumberingFormat.model_validate(cur.fetchone())

            changes = compute_changes(
                current.model_dump(mode="json"),
                updated.model_dump(mode="json")
            )
            if changes:
                self.audit.log_change(
                    entity_type="numbering_settings",
                    entity_id=company_id,
                    action=AuditAction.UPDATE,
                    changes={"kind": kind.value, **changes},
                    cursor=cur,
                )

        return updated
