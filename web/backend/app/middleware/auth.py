"""Auth middleware -- FastAPI dependencies for the service and the current user.

Authentication uses an ``Authorization: Bearer <session_token>`` header.
Tests swap the service through ``app.dependency_overrides[get_service]``.
"""

from __future__ import annotations

from typing import Optional

from fastapi import Depends, Header, HTTPException, status

from whistlespace.auth.models import Role, User
from whistlespace.auth.permissions import require_role
from whistlespace.config import load_settings
from whistlespace.service import ModerationService

# Shared service instance
_service: Optional[ModerationService] = None


def get_service() -> ModerationService:
    """Return the singleton ModerationService, built from settings on first use."""
    global _service
    if _service is None:
        _service = ModerationService.from_settings(load_settings())
    return _service


def _token_from_header(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() == "bearer" and token:
        return token
    return None


async def get_current_user(
    authorization: Optional[str] = Header(None),
    service: ModerationService = Depends(get_service),
) -> User:
    """FastAPI dependency that extracts and validates the current user.

    Raises ``401 Unauthorized`` if no valid session token is provided.
    """
    token = _token_from_header(authorization)
    if token:
        user = service.users.validate_session(token)
        if user is not None:
            return user

    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Not authenticated",
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_optional_user(
    authorization: Optional[str] = Header(None),
    service: ModerationService = Depends(get_service),
) -> Optional[User]:
    """Same as ``get_current_user`` but returns ``None`` instead of raising 401.

    Use this for endpoints that work for both anonymous and authenticated users.
    """
    token = _token_from_header(authorization)
    if token is None:
        return None
    return service.users.validate_session(token)


async def get_admin_user(user: User = Depends(get_current_user)) -> User:
    require_role(user, Role.admin)
    return user
