"""Project service: manual creation and lookups."""

import logging
from uuid import UUID, uuid4

from clients.postgres_client import PostgresClient
from core.audit import AuditLogger, AuditAction
from core.authorization import MANAGERS, require_role
from core.models import Project, ProjectCreate, ProjectStatus
from core.references import require_in_company
from utils.timezone import now_utc
from utils.user_context import get_current_company_id

logger = logging.getLogger(__name__)


class ProjectService:
    """Service for project operations. Projects from estimates come from ConversionService."""

    def __init__(self, postgres: PostgresClient, audit: AuditLogger):
        self.postgres = postgres
        self.audit = audit

    def create(self, data: ProjectCreate) -> Project:
        """
        Create a project that has no originating estimate.

        Raises:
            ForbiddenError: If caller is not an admin or manager
            NotFoundError: If the customer or manager is not in the caller's company
        """
        require_role(MANAGERS, "create projects")
        company_id = get_current_company_id()
        now = now_utc()

        with self.postgres.transaction() as cur:
            require_in_company(cur, "customers", data.customer_id, "Customer")
            require_in_company(cur, "profiles", data.project_manager_id, "Profile")
            cur.execute(
                """
                INSERT INTO projects (
                    id, company_id, customer_id, estimate_id,
                    project_name, description, project_manager,
                    start_date, estimated_end_date,
                    total_budget, actual_cost, status, priority,
                    notes, created_at, updated_at
                ) VALUES (
                    %s, %s, %s, NULL,
                    %s, %s, %s,
                    %s, %s,
                    %s, 0, %s, %s,
                    %s, %s, %s
                )
                RETURNING *
                """,
                (
                    uuid4(), company_id, data.customer_id,
                    data.project_name, data.description, data.project_manager_id,
                    data.start_date, data.estimated_end_date,
                    data.total_budget, ProjectStatus.PLANNING.value, data.priority.value,
                    data.notes, now, now
                )
            )
            project = Project.model_validate(cur.fetchone())

            self.audit.log_change(
                entity_type="project",
                entity_id=project.id,
                action=AuditAction.CREATE,
                changes={"created": project.model_dump(mode="json")},
                cursor=cur,
            )

        return project

    def get_by_id(self, project_id: UUID) -> Project | None:
        """Get project by ID, None if not in the caller's company."""
        row = self.postgres.execute_single(
            "SELECT * FROM projects WHERE id = %s AND company_id = %s",
            (project_id, get_current_company_id())
        )

        if row is None:
            return None

        return Project.model_validate(row)

    def get_for_estimate(self, estimate_id: UUID) -> Project | None:
        """Get the project an estimate was converted into."""
        row = self.postgres.execute_single(
            "SELECT * FROM projects WHERE estimate_id = %s AND company_id = %s",
            (estimate_id, get_current_company_id())
        )

        if row is None:
            return None

        return Project.model_validate(row)

    def list_all(self, status: ProjectStatus | None = None, limit: int = 50) -> list[Project]:
        """List projects, newest first."""
        company_id = get_current_company_id()
        if status is None:
            rows = self.postgres.execute(
                """
                SELECT * FROM projects
                WHERE company_id = %s
                ORDER BY created_at DESC
                LIMIT %s
                """,
                (company_id, limit)
            )
        else:
            rows = self.postgres.execute(
                """
                SELECT * FROM projects
                WHERE company_id = %s AND status = %s
                ORDER BY created_at DESC
                LIMIT %s
                """,
                (company_id, status.value, limit)
            )

        return [Project.model_validate(row) for row in rows]
