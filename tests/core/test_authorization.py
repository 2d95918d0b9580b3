"""Tests for role capability checks."""

import logging
from uuid import uuid4

import pytest

from core.authorization import ADMINS, MANAGERS, has_role, require_role
from core.errors import ForbiddenError
from utils.user_context import Caller, Role, caller_context


def _caller(role: Role) -> Caller:
    return Caller(user_id=uuid4(), company_id=uuid4(), role=role)


class TestHasRole:

    @pytest.mark.parametrize("role,expected", [
        (Role.ADMIN, True),
        (Role.MANAGER, True),
        (Role.TECH, False),
    ])
    def test_managers(self, role, expected):
        assert has_role(_caller(role), MANAGERS) is expected

    def test_admins_excludes_manager(self):
        assert not has_role(_caller(Role.MANAGER), ADMINS)


class TestRequireRole:

    def test_returns_allowed_caller(self):
        caller = _caller(Role.MANAGER)
        with caller_context(caller):
            assert require_role(MANAGERS, "convert estimates") == caller

    def test_raises_forbidden_and_logs(self, caplog):
        with caller_context(_caller(Role.TECH)):
            with caplog.at_level(logging.WARNING, logger="core.authorization"):
                with pytest.raises(ForbiddenError, match="Only admin, manager can convert estimates"):
                    require_role(MANAGERS, "convert estimates")

        assert "denied" in caplog.text

    def test_forbidden_code(self):
        with caller_context(_caller(Role.TECH)):
            with pytest.raises(ForbiddenError) as exc_info:
                require_role(ADMINS, "edit numbering")

        assert exc_info.value.code == "FORBIDDEN"

    def test_requires_context(self):
        with pytest.raises(RuntimeError, match="No caller context"):
            require_role(MANAGERS, "anything")
