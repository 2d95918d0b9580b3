"""
Estimate -> project conversion.

Converting an approved estimate creates exactly one project carrying the
estimate's customer, title, description and total (as the budget), and marks
the estimate converted. Both writes happen in one transaction: either both
are visible or neither is.

Concurrent conversions of the same estimate are serialized by the row lock
taken on the estimate (SELECT ... FOR UPDATE). The second caller waits, then
sees status 'converted'. The unique index on projects.estimate_id backs this
up; a violation is reported as ALREADY_CONVERTED.

convert() never raises for expected failures. It returns a ConversionResult
tagged with the reason, so callers can branch without exception handling.
"""

import logging
from uuid import UUID, uuid4

import psycopg2.errors

from clients.postgres_client import PostgresClient
from core.audit import AuditLogger, AuditAction
from core.authorization import MANAGERS, require_role
from core.errors import ForbiddenError, NotFoundError, StorageUnavailableError
from core.event_bus import EventBus
from core.events import EstimateConverted
from core.models import (
    ConversionErrorCode,
    ConversionOverrides,
    ConversionResult,
    Estimate,
    EstimateStatus,
    Project,
    ProjectPriority,
    ProjectStatus,
)
from core.references import require_in_company
from utils.timezone import now_utc
from utils.user_context import get_current_company_id

logger = logging.getLogger(__name__)

# projects.project_name is varchar(100); longer estimate titles are cut to fit
PROJECT_NAME_MAX = 100


class _Refused(Exception):
    """Internal: aborts the conversion transaction with a result code."""

    def __init__(self, code: ConversionErrorCode, message: str, current_status: str | None = None):
        super().__init__(message)
        self.code = code
        self.message = message
        self.current_status = current_status


class ConversionService:
    """Service for turning approved estimates into projects."""

    def __init__(self, postgres: PostgresClient, audit: AuditLogger, event_bus: EventBus):
        self.postgres = postgres
        self.audit = audit
        self.event_bus = event_bus

    def convert(
        self,
        estimate_id: UUID,
        overrides: ConversionOverrides | None = None,
    ) -> ConversionResult:
        """
        Convert an approved estimate into a project.

        The project name defaults to the estimate title. Titles longer than
        PROJECT_NAME_MAX characters are truncated and a warning is logged;
        pass overrides.project_name to choose the name instead.

        Args:
            estimate_id: Estimate to convert
            overrides: Optional project name, manager and dates

        Returns:
            ConversionResult with project_id on success, or an error code:
            FORBIDDEN, NOT_FOUND, INVALID_STATE (with current_status),
            ALREADY_CONVERTED or STORAGE_UNAVAILABLE. On any failure no
            project exists and the estimate is unchanged.
        """
        try:
            require_role(MANAGERS, "convert estimates to projects")
        except ForbiddenError as e:
            return ConversionResult.fail(estimate_id, ConversionErrorCode.FORBIDDEN, e.message)

        overrides = overrides or ConversionOverrides()

        try:
            with self.postgres.transaction() as cur:
                estimate = self._lock_estimate(cur, estimate_id)
                try:
                    require_in_company(cur, "profiles", overrides.project_manager_id, "Profile")
                except NotFoundError as e:
                    raise _Refused(ConversionErrorCode.NOT_FOUND, e.message)
                project = self._insert_project(cur, estimate, overrides)
                converted = self._mark_converted(cur, estimate_id)

                self.audit.log_change(
                    entity_type="project",
                    entity_id=project.id,
                    action=AuditAction.CREATE,
                    changes={"created": project.model_dump(mode="json")},
                    cursor=cur,
                )
                self.audit.log_change(
                    entity_type="estimate",
                    entity_id=estimate_id,
                    action=AuditAction.UPDATE,
                    changes={"status": {
                        "old": EstimateStatus.APPROVED.value,
                        "new": EstimateStatus.CONVERTED.value,
                    }},
                    cursor=cur,
                )
        except _Refused as e:
            logger.info("Conversion of estimate %s refused: %s", estimate_id, e.message)
            return ConversionResult.fail(estimate_id, e.code, e.message, e.current_status)
        except psycopg2.errors.UniqueViolation:
            logger.info("Estimate %s was converted by a concurrent request", estimate_id)
            return ConversionResult.fail(
                estimate_id,
                ConversionErrorCode.ALREADY_CONVERTED,
                f"Estimate {estimate_id} has already been converted to a project",
            )
        except psycopg2.errors.ForeignKeyViolation as e:
            logger.info("Conversion of estimate %s references a missing row: %s", estimate_id, e)
            return ConversionResult.fail(
                estimate_id,
                ConversionErrorCode.NOT_FOUND,
                "A customer or profile referenced by the conversion was not found",
            )
        except StorageUnavailableError as e:
            logger.warning("Conversion of estimate %s failed: %s", estimate_id, e.message)
            return ConversionResult.fail(
                estimate_id, ConversionErrorCode.STORAGE_UNAVAILABLE, e.message
            )
        except psycopg2.Error as e:
            logger.exception("Conversion of estimate %s failed in the database", estimate_id)
            return ConversionResult.fail(
                estimate_id,
                ConversionErrorCode.STORAGE_UNAVAILABLE,
                f"Conversion could not be stored: {e.pgerror or e}",
            )

        logger.info("Estimate %s converted to project %s", estimate_id, project.id)
        self.event_bus.publish(EstimateConverted.create(estimate=converted, project=project))
        return ConversionResult.ok(estimate_id, project.id)

    def _lock_estimate(self, cur, estimate_id: UUID) -> Estimate:
        """Lock the estimate row and check it may be converted."""
        cur.execute(
            "SELECT * FROM estimates WHERE id = %s AND company_id = %s FOR UPDATE",
            (estimate_id, get_current_company_id())
        )
        row = cur.fetchone()
        if row is None:
            raise _Refused(ConversionErrorCode.NOT_FOUND, f"Estimate {estimate_id} not found")

        estimate = Estimate.model_validate(row)
        if estimate.is_converted:
            raise _Refused(
                ConversionErrorCode.ALREADY_CONVERTED,
                f"Estimate {estimate_id} has already been converted to a project",
            )
        if estimate.status != EstimateStatus.APPROVED:
            raise _Refused(
                ConversionErrorCode.INVALID_STATE,
                f"Only approved estimates can be converted - status is {estimate.status.value}",
                current_status=estimate.status.value,
            )

        cur.execute("SELECT 1 FROM projects WHERE estimate_id = %s", (estimate_id,))
        if cur.fetchone() is not None:
            raise _Refused(
                ConversionErrorCode.ALREADY_CONVERTED,
                f"A project already exists for estimate {estimate_id}",
            )

        return estimate

    def _project_name(self, estimate: Estimate, overrides: ConversionOverrides) -> str:
        if overrides.project_name:
            return overrides.project_name
        if len(estimate.title) > PROJECT_NAME_MAX:
            logger.warning(
                "Estimate %s title is %d characters; project name truncated to %d",
                estimate.id, len(estimate.title), PROJECT_NAME_MAX,
            )
        return estimate.title[:PROJECT_NAME_MAX]

    def _insert_project(self, cur, estimate: Estimate, overrides: ConversionOverrides) -> Project:
        now = now_utc()
        cur.execute(
            """
            INSERT INTO projects (
                id, company_id, customer_id, estimate_id,
                project_name, description, project_manager,
                start_date, estimated_end_date,
                total_budget, actual_cost, status, priority,
                notes, created_at, updated_at
            ) VALUES (
                %s, %s, %s, %s,
                %s, %s, %s,
                %s, %s,
                %s, 0, %s, %s,
                %s, %s, %s
            )
            RETURNING *
            """,
            (
                uuid4(), estimate.company_id, estimate.customer_id, estimate.id,
                self._project_name(estimate, overrides),
                estimate.description, overrides.project_manager_id,
                overrides.start_date, overrides.estimated_end_date,
                estimate.total_amount, ProjectStatus.PLANNING.value, ProjectPriority.MEDIUM.value,
                f"Project created from estimate #{estimate.estimate_number}", now, now
            )
        )
        return Project.model_validate(cur.fetchone())

    def _mark_converted(self, cur, estimate_id: UUID) -> Estimate:
        cur.execute(
            """
            UPDATE estimates
            SET status = %s, updated_at = %s
            WHERE id = %s AND status = %s
            RETURNING *
            """,
            (EstimateStatus.CONVERTED.value, now_utc(), estimate_id, EstimateStatus.APPROVED.value)
        )
        return Estimate.model_validate(cur.fetchone())

    def can_convert(self, estimate_id: UUID) -> bool:
        """
        Whether the caller could convert this estimate right now.

        Advisory only: convert() re-checks everything under a row lock.
        """
        try:
            require_role(MANAGERS, "convert estimates to projects")
        except ForbiddenError:
            return False

        row = self.postgres.execute_single(
            """
            SELECT e.status, p.id AS project_id
            FROM estimates e
            LEFT JOIN projects p ON p.estimate_id = e.id
            WHERE e.id = %s AND e.company_id = %s
            """,
            (estimate_id, get_current_company_id())
        )
        if row is None:
            return False

        return row["status"] == EstimateStatus.APPROVED.value and row["project_id"] is None
