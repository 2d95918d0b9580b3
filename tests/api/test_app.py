"""Tests for the application factory's service wiring."""

from unittest.mock import Mock

from api.app import build_services, create_app
from clients.postgres_client import PostgresClient
from core.services.company_service import CompanyService


class TestBuildServices:

    def test_every_router_domain_is_wired(self):
        services = build_services(Mock(spec=PostgresClient))

        assert set(services) == {
            "company", "numbering", "estimate", "conversion", "project",
            "work_order", "purchase_order", "invoice",
        }

    def test_company_service_shares_numbering(self):
        services = build_services(Mock(spec=PostgresClient))

        assert isinstance(services["company"], CompanyService)
        assert services["company"].numbering is services["numbering"]

    def test_app_builds_from_wired_services(self):
        app = create_app(build_services(Mock(spec=PostgresClient)), lambda token: None)

        paths = {route.path for route in app.routes}
        assert "/api/data/company" in paths
