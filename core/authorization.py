"""
Role capability checks for state-mutating operations.

Services call these at the start of an operation. UI-side role gating is a
convenience only; this is the enforcement point, backed by RLS in the database.
"""

import logging

from core.errors import ForbiddenError
from utils.user_context import Caller, Role, get_current_caller

logger = logging.getLogger(__name__)

# Roles allowed to approve money-moving transitions (conversion, settings edits)
MANAGERS = frozenset({Role.ADMIN, Role.MANAGER})
ADMINS = frozenset({Role.ADMIN})


def has_role(caller: Caller, allowed: frozenset[Role]) -> bool:
    """Whether the caller holds one of the allowed roles."""
    return caller.role in allowed


def require_role(allowed: frozenset[Role], action: str) -> Caller:
    """
    Return the current caller if their role is allowed.

    Args:
        allowed: Roles permitted to perform the action
        action: Human-readable action name for the error message

    Raises:
        ForbiddenError: If the caller's role is not allowed
        RuntimeError: If no caller context is set
    """
    caller = get_current_caller()
    if not has_role(caller, allowed):
        logger.warning(
            "Role %s denied for %s (user=%s, company=%s)",
            caller.role.value, action, caller.user_id, caller.company_id,
        )
        roles = ", ".join(sorted(r.value for r in allowed))
        raise ForbiddenError(f"Only {roles} can {action}")
    return caller
