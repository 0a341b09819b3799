"""Shared API dependencies — single import point for all routers::

    from visitgate.api.deps import get_db, get_current_user
"""

from visitgate.auth.dependencies import (
    get_admin_user,
    get_current_user,
    get_desk_user,
    get_staff_user,
    require_roles,
)
from visitgate.database import get_db

__all__ = [
    "get_db",
    "get_current_user",
    "get_staff_user",
    "get_desk_user",
    "get_admin_user",
    "require_roles",
]
