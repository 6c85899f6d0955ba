"""
Principal and collaborator dependencies.

Identity management is external: in demo mode (the default) the caller is
identified by the X-User-Id / X-User-Role headers set by the fronting
gateway. Role checks are enforced here.
"""

import os
from typing import Optional

from fastapi import HTTPException, Header

from engtrack.constants import Role
from engtrack.database import SessionLocal
from engtrack.services.store import TimesheetStore

AUTH_MODE = os.getenv("AUTH_MODE", "demo")

DEMO_USER_ID = "00000000-0000-0000-0000-000000000000"
DEMO_ROLE = "user"

_VALID_ROLES = {r.value for r in Role}


def get_store() -> TimesheetStore:
    return TimesheetStore(SessionLocal)


def get_current_user_id(
    x_user_id: Optional[str] = Header(default=None),
) -> str:
    if x_user_id:
        return x_user_id.strip()
    if AUTH_MODE == "demo":
        return DEMO_USER_ID
    raise HTTPException(status_code=401, detail="Not authenticated")


def get_current_role(
    x_user_role: Optional[str] = Header(default=None),
) -> str:
    if x_user_role:
        role = x_user_role.strip().lower()
        if role not in _VALID_ROLES:
            raise HTTPException(status_code=400, detail=f"Invalid X-User-Role: {x_user_role}")
        return role
    if AUTH_MODE == "demo":
        return DEMO_ROLE
    raise HTTPException(status_code=401, detail="Not authenticated")


def require_manager(
    x_user_role: Optional[str] = Header(default=None),
) -> str:
    """Require manager or admin role. Returns the role."""
    role = get_current_role(x_user_role)
    if role not in (Role.manager.value, Role.admin.value):
        raise HTTPException(status_code=403, detail="Manager access required")
    return role


def require_admin(
    x_user_role: Optional[str] = Header(default=None),
) -> str:
    """Require admin role."""
    role = get_current_role(x_user_role)
    if role != Role.admin.value:
        raise HTTPException(status_code=403, detail="Admin access required")
    return role


_STATUS_BY_KIND = {
    "permission_denied": 403,
    "not_found": 404,
    "constraint_violation": 409,
    "connectivity": 503,
    "unknown": 500,
}


def store_http_error(kind: Optional[str], message: Optional[str]) -> HTTPException:
    """Map a store failure kind to an HTTP error carrying the store's message."""
    return HTTPException(
        status_code=_STATUS_BY_KIND.get(kind or "unknown", 500),
        detail=message or "Database error",
    )
