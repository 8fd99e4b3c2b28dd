"""Shared API dependencies — single import point for all routers.

Re-exports the database session, clock and authentication dependencies so
that router modules can import everything they need from one place::

    from stayledger.api.deps import get_clock, get_current_active_user, get_db
"""

from stayledger.auth.dependencies import get_current_active_user, get_current_user
from stayledger.clock import get_clock
from stayledger.database import get_db

__all__ = [
    "get_db",
    "get_clock",
    "get_current_user",
    "get_current_active_user",
]
