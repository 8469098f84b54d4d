"""Session/auth context resolved from an authenticated request."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from rest_framework.exceptions import NotAuthenticated

AUTH_REQUIRED = "AUTH_REQUIRED"


@dataclass(frozen=True)
class SessionContext:
    user_id: int
    tenant_id: Optional[str]
    role: str
    is_super_admin: bool
    user_name: str


def get_session_context(request) -> SessionContext:
    """Return the caller's context or fail with ``AUTH_REQUIRED``."""

    user = getattr(request, "user", None)
    if user is None or not user.is_authenticated:
        raise NotAuthenticated(detail="Authentication required.", code=AUTH_REQUIRED)
    return SessionContext(
        user_id=user.pk,
        tenant_id=str(user.tenant_id) if user.tenant_id else None,
        role=user.role,
        is_super_admin=bool(user.is_super_admin),
        user_name=user.display_name,
    )
