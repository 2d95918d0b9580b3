"""
Company (tenant) service.

Companies are created during onboarding, before any member profile exists,
so create() is meant to run on a client that bypasses RLS. Numbering
configuration is seeded in the same transaction: a company never exists
without its four numbering rows.
"""

import logging
from uuid import uuid4

from clients.postgres_client import PostgresClient
from core.models import Company, CompanyCreate
from core.services.numbering_service import NumberingService
from utils.timezone import now_utc
from utils.user_context import get_current_company_id

logger = logging.getLogger(__name__)


class CompanyService:
    """Service for company operations."""

    def __init__(self, postgres: PostgresClient, numbering: NumberingService):
        self.postgres = postgres
        self.numbering = numbering

    def create(self, data: CompanyCreate) -> Company:
        """
        Create a company with default document numbering.

        Args:
            data: Company creation data

        Returns:
            Created company
        """
        company_id = uuid4()
        now = now_utc()

        with self.postgres.transaction() as cur:
            cur.execute(
                """
                INSERT INTO companies (
                    id, name, email, phone, address, city, state, zip_code,
                    industry, settings, created_at, updated_at
                ) VALUES (
                    %s, %s, %s, %s, %s, %s, %s, %s,
                    %s, '{}'::jsonb, %s, %s
                )
                RETURNING *
                """,
                (
                    company_id, data.name, data.email, data.phone, data.address,
                    data.city, data.state, data.zip_code,
                    data.industry, now, now
                )
            )
            company = Company.model_validate(cur.fetchone())
            self.numbering.seed_defaults(cur, company_id)

        logger.info("Company %s created with default numbering", company_id)
        return company

    def get_current(self) -> Company | None:
        """
        Get the caller's company.

        Returns:
            Company if visible, None otherwise.
        """
        row = self.postgres.execute_single(
            "SELECT * FROM companies WHERE id = %s",
            (get_current_company_id(),)
        )

        if row is None:
            return None

        return Company.model_validate(row)
