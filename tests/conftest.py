"""Shared test fixtures for the FieldOps test suite."""

import os
import pytest
from uuid import UUID
from pathlib import Path

from dotenv import load_dotenv

# Load .env file BEFORE any other imports that might use env vars
# override=True ensures .env takes precedence over shell env vars
load_dotenv(Path(__file__).parent.parent / ".env", override=True)

# Reset vault client singleton to pick up env vars
import clients.vault_client as vault_module
vault_module._vault_client_instance = None
vault_module._secret_cache.clear()

from tests.tenants import (
    ADMIN_A, ADMIN_B, MANAGER_A, TECH_A,
    COMPANY_A_ID, COMPANY_B_ID,
)
from utils.user_context import caller_context, clear_current_caller

SCHEMA_PATH = Path(__file__).parent.parent / "db" / "schema.sql"

_PROFILES = [
    (ADMIN_A, "admin-a@test.local", "Ada", "Admin"),
    (MANAGER_A, "manager-a@test.local", "Max", "Manager"),
    (TECH_A, "tech-a@test.local", "Tia", "Tech"),
    (ADMIN_B, "admin-b@test.local", "Bea", "Admin"),
]


# =============================================================================
# CALLER CONTEXT FIXTURES
# =============================================================================


@pytest.fixture(autouse=True)
def reset_caller_context():
    """Ensure clean caller context before and after each test."""
    clear_current_caller()
    yield
    clear_current_caller()


@pytest.fixture
def as_admin():
    """Admin of company A."""
    with caller_context(ADMIN_A) as caller:
        yield caller


@pytest.fixture
def as_manager():
    """Manager of company A."""
    with caller_context(MANAGER_A) as caller:
        yield caller


@pytest.fixture
def as_tech():
    """Technician of company A."""
    with caller_context(TECH_A) as caller:
        yield caller


@pytest.fixture
def as_admin_b():
    """Admin of company B."""
    with caller_context(ADMIN_B) as caller:
        yield caller


# =============================================================================
# DATABASE FIXTURES
# =============================================================================


@pytest.fixture(scope="session")
def db_admin():
    """
    Session-scoped admin PostgresClient (bypasses RLS, for test setup/teardown).

    Applies db/schema.sql. Skips the requesting test when no database is configured.
    """
    from clients.postgres_client import PostgresClient

    if not os.getenv("DATABASE_URL"):
        pytest.skip("DATABASE_URL not configured")

    client = PostgresClient(os.getenv("DATABASE_ADMIN_URL") or os.environ["DATABASE_URL"])
    client.execute(SCHEMA_PATH.read_text())
    yield client
    client.close()


@pytest.fixture(scope="session")
def db(db_admin):
    """Session-scoped PostgresClient (application role, RLS enforced)."""
    from clients.postgres_client import PostgresClient
    from clients.vault_client import get_database_url

    client = PostgresClient(get_database_url())
    yield client
    client.close()


@pytest.fixture
def clean_db(db_admin):
    """Reset database state and seed two companies with profiles and default numbering."""
    from core.audit import AuditLogger
    from core.services.numbering_service import NumberingService

    # Every tenant table references companies
    db_admin.execute("TRUNCATE companies CASCADE")

    numbering = NumberingService(db_admin, AuditLogger(db_admin))
    with db_admin.transaction() as cur:
        for company_id, name in ((COMPANY_A_ID, "Acme HVAC"), (COMPANY_B_ID, "Beta Plumbing")):
            cur.execute(
                "INSERT INTO companies (id, name, created_at, updated_at) VALUES (%s, %s, now(), now())",
                (company_id, name),
            )
            numbering.seed_defaults(cur, company_id)

        for caller, email, first_name, last_name in _PROFILES:
            cur.execute(
                """
                INSERT INTO profiles (id, company_id, email, first_name, last_name, role)
                VALUES (%s, %s, %s, %s, %s, %s)
                """,
                (caller.user_id, caller.company_id, email, first_name, last_name, caller.role.value),
            )

    yield db_admin


@pytest.fixture
def customer_id(clean_db) -> UUID:
    """A customer of company A."""
    return clean_db.execute_single(
        """
        INSERT INTO customers (company_id, first_name, last_name)
        VALUES (%s, 'Carla', 'Customer')
        RETURNING id
        """,
        (COMPANY_A_ID,),
    )["id"]


@pytest.fixture
def customer_b_id(clean_db) -> UUID:
    """A customer of company B."""
    return clean_db.execute_single(
        """
        INSERT INTO customers (company_id, first_name, last_name)
        VALUES (%s, 'Bert', 'Customer')
        RETURNING id
        """,
        (COMPANY_B_ID,),
    )["id"]


@pytest.fixture
def vendor_id(clean_db) -> UUID:
    """A vendor of company A."""
    return clean_db.execute_single(
        "INSERT INTO vendors (company_id, name) VALUES (%s, 'Parts Depot') RETURNING id",
        (COMPANY_A_ID,),
    )["id"]
