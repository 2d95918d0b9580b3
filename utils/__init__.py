"""Utility modules for cross-cutting concerns."""

from utils.timezone import now_utc, to_local, today_in
from utils.user_context import (
    Caller,
    Role,
    get_current_caller,
    get_current_user_id,
    get_current_company_id,
    set_current_caller,
    clear_current_caller,
    caller_context,
)
