"""Propagate caller identity (user, tenant, role) through the call stack using contextvars."""

from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass
from enum import Enum
from uuid import UUID


class Role(str, Enum):
    """Role of a profile within its company."""

    ADMIN = "admin"
    MANAGER = "manager"
    TECH = "tech"


@dataclass(frozen=True)
class Caller:
    """
    The authenticated caller as supplied by the identity layer.

    company_id is the tenant boundary: every query runs with it set as
    app.current_company_id so RLS filters rows to that company.
    """

    user_id: UUID
    company_id: UUID
    role: Role


_current_caller: ContextVar[Caller | None] = ContextVar("current_caller", default=None)


def get_current_caller() -> Caller:
    """
    Get current caller from context.

    Raises RuntimeError if no caller context is set.
    This is fail-fast behavior - if you're in a code path that
    requires a caller and it's not set, that's a bug.
    """
    caller = _current_caller.get()
    if caller is None:
        raise RuntimeError(
            "No caller context set. This usually means you're calling "
            "tenant-scoped code outside of an authenticated request."
        )
    return caller


def get_current_user_id() -> UUID:
    """User ID of the current caller. Raises RuntimeError without context."""
    return get_current_caller().user_id


def get_current_company_id() -> UUID:
    """Company (tenant) ID of the current caller. Raises RuntimeError without context."""
    return get_current_caller().company_id


def set_current_caller(caller: Caller) -> None:
    """
    Set current caller in context.

    Called by the API middleware after the identity layer resolves the request.
    """
    _current_caller.set(caller)


def clear_current_caller() -> None:
    """
    Clear caller context.

    Must be called in finally block to prevent context leakage.
    """
    _current_caller.set(None)


@contextmanager
def caller_context(caller: Caller):
    """
    Context manager for temporarily setting the caller.

    Useful for:
    - Tests
    - Worker threads (contextvars are not inherited by new threads)
    - Admin operations on behalf of a tenant

    Example:
        with caller_context(Caller(user_id, company_id, Role.ADMIN)):
            number = numbering_service.peek_next(DocumentKind.INVOICE)
    """
    previous = _current_caller.get()
    set_current_caller(caller)
    try:
        yield caller
    finally:
        if previous is None:
            clear_current_caller()
        else:
            set_current_caller(previous)
