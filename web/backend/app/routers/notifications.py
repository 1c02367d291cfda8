"""Notifications router -- the signed-in user's inbox.

Prefix: ``/api/notifications``
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from whistlespace.auth.models import User
from whistlespace.notifications.store import Notification
from whistlespace.service import ModerationService
from web.backend.app.middleware.auth import get_current_user, get_service
from web.backend.app.models.api import (
    MarkReadRequest,
    MarkReadResponse,
    NotificationListResponse,
    NotificationResponse,
)

router = APIRouter(prefix="/api/notifications", tags=["notifications"])


def _notification_response(n: Notification) -> NotificationResponse:
    return NotificationResponse(
        id=n.id,
        title=n.title,
        message=n.message,
        type=n.type,
        severity=n.severity,
        template_key=n.template_key,
        read=n.read,
        timestamp=n.timestamp,
    )


@router.get("", response_model=NotificationListResponse)
async def list_notifications(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    unread_only: bool = Query(False),
    user: User = Depends(get_current_user),
    service: ModerationService = Depends(get_service),
):
    result = service.list_notifications(user.id, page, limit, unread_only)
    return NotificationListResponse(
        notifications=[_notification_response(n) for n in result.notifications],
        total_count=result.total_count,
        unread_count=result.unread_count,
        current_page=result.current_page,
        total_pages=result.total_pages,
    )


@router.post("/mark-read", response_model=MarkReadResponse)
async def mark_read(
    body: MarkReadRequest,
    user: User = Depends(get_current_user),
    service: ModerationService = Depends(get_service),
):
    """Mark notifications read.  An empty id list marks every notification."""
    return MarkReadResponse(updated=service.mark_read(user.id, body.notification_ids))
