"""Admin router -- violation records, unban, and the audit trail.

Prefix: ``/api/admin``
"""

from __future__ import annotations

from dataclasses import asdict
from typing import Optional

from fastapi import APIRouter, Depends, Query

from whistlespace.auth.models import User
from whistlespace.service import ModerationService
from web.backend.app.middleware.auth import get_admin_user, get_service
from web.backend.app.models.api import (
    AuditEntryResponse,
    UnbanResponse,
    UserDetailResponse,
    UserResponse,
)
from web.backend.app.routers.auth import _user_detail_response, _user_response

router = APIRouter(prefix="/api/admin", tags=["admin"])


@router.get("/users", response_model=list[UserResponse])
async def list_users(
    banned_only: bool = Query(False),
    flagged_only: bool = Query(False),
    _admin: User = Depends(get_admin_user),
    service: ModerationService = Depends(get_service),
):
    """List users; ``flagged_only`` keeps warned users who are not banned, most warnings first."""
    users = service.users.list_users()
    if banned_only:
        users = [u for u in users if u.is_banned()]
    if flagged_only:
        users = [u for u in users if u.warning_count > 0 and not u.is_banned()]
        users.sort(key=lambda u: u.warning_count, reverse=True)
    return [_user_response(u) for u in users]


@router.get("/users/{user_id}", response_model=UserDetailResponse)
async def get_user(
    user_id: str,
    _admin: User = Depends(get_admin_user),
    service: ModerationService = Depends(get_service),
):
    """Return a user's violation record and flag history."""
    return _user_detail_response(service.users.require_user(user_id))


@router.post("/users/{user_id}/unban", response_model=UnbanResponse)
async def unban_user(
    user_id: str,
    admin: User = Depends(get_admin_user),
    service: ModerationService = Depends(get_service),
):
    """Lift a user's ban.  Repeating the call changes nothing."""
    await service.unban(user_id, admin.id)
    user = service.users.require_user(user_id)
    return UnbanResponse(user=_user_response(user), message=f"User {user_id} has no active ban")


@router.get("/audit", response_model=list[AuditEntryResponse])
async def list_audit_events(
    actor: Optional[str] = Query(None),
    action: Optional[str] = Query(None),
    resource_type: Optional[str] = Query(None),
    resource_id: Optional[str] = Query(None),
    start_date: Optional[str] = Query(None),
    end_date: Optional[str] = Query(None),
    limit: int = Query(200, ge=1, le=10000),
    _admin: User = Depends(get_admin_user),
    service: ModerationService = Depends(get_service),
):
    """List enforcement audit events with optional filters."""
    events = service.audit.get_events(
        actor=actor,
        action=action,
        resource_type=resource_type,
        resource_id=resource_id,
        start_date=start_date,
        end_date=end_date,
        limit=limit,
    )
    return [AuditEntryResponse(**asdict(e)) for e in events]
