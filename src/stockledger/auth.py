"""Principal and role resolution for API handlers.

Authentication happens upstream; the identity layer forwards the user name
and role in request headers and the API trusts them.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Callable

from fastapi import HTTPException, Request, status

USER_HEADER = "X-User"
ROLE_HEADER = "X-Role"


class Role(str, enum.Enum):
    ADMIN = "Admin"
    MANAGER = "Manager"
    STAFF = "Staff"
    VIEWER = "Viewer"


EDITORS = (Role.ADMIN, Role.MANAGER)
POSTERS = (Role.ADMIN, Role.MANAGER, Role.STAFF)


@dataclass(frozen=True, slots=True)
class Principal:
    username: str
    role: Role


def get_current_principal(request: Request) -> Principal:
    """Require an identified caller with a known role."""

    username = (request.headers.get(USER_HEADER) or "").strip()
    if not username:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Authentication required")

    raw_role = (request.headers.get(ROLE_HEADER) or "").strip()
    try:
        role = Role(raw_role.capitalize())
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=f"Unknown role '{raw_role}'") from exc
    return Principal(username=username, role=role)


def require_roles(*roles: Role) -> Callable[[Request], Principal]:
    """Build a dependency that admits only *roles*."""

    def dependency(request: Request) -> Principal:
        principal = get_current_principal(request)
        if principal.role not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Role {principal.role.value} may not perform this action",
            )
        return principal

    return dependency
