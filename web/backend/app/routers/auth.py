"""Auth router -- signup, current user, and logout endpoints."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Header

from whistlespace.auth.models import FlagEntry, User
from whistlespace.service import ModerationService
from web.backend.app.middleware.auth import get_current_user, get_service
from web.backend.app.models.api import (
    FlagEntryResponse,
    LoginResponse,
    SignupRequest,
    UserDetailResponse,
    UserResponse,
)

router = APIRouter(prefix="/api/auth", tags=["auth"])


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _user_response(u: User) -> UserResponse:
    """Convert a domain User to a Pydantic UserResponse."""
    return UserResponse(
        id=u.id,
        email=u.email,
        role=u.role.value,
        warning_count=u.warning_count,
        ban_until=u.ban_until.isoformat() if u.ban_until else None,
        is_banned=u.is_banned(),
        created_at=u.created_at,
        last_login=u.last_login,
    )


def _flag_response(f: FlagEntry) -> FlagEntryResponse:
    return FlagEntryResponse(
        reason=f.reason,
        timestamp=f.timestamp.isoformat(),
        action_taken=f.action_taken.value,
        feedback_ref=f.feedback_ref,
    )


def _user_detail_response(u: User) -> UserDetailResponse:
    return UserDetailResponse(
        **_user_response(u).model_dump(),
        flag_history=[_flag_response(f) for f in u.flag_history],
        version=u.version,
    )


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@router.post("/signup", response_model=LoginResponse, status_code=201)
async def signup(
    body: SignupRequest,
    service: ModerationService = Depends(get_service),
):
    """Register a new account and return a session token.

    The first account ever registered becomes an admin.
    """
    user = await service.register_user(body.email)
    session = service.users.create_session(user.id)
    service.users.touch_login(user.id)
    return LoginResponse(token=session.token, user=_user_response(user))


@router.get("/me", response_model=UserDetailResponse)
async def me(user: User = Depends(get_current_user)):
    """Return the current user with their violation history."""
    return _user_detail_response(user)


@router.post("/logout")
async def logout(
    authorization: Optional[str] = Header(None),
    service: ModerationService = Depends(get_service),
):
    """Invalidate the current session token."""
    _, _, token = (authorization or "").partition(" ")
    deleted = service.users.delete_session(token) if token else False
    return {"logged_out": deleted}
