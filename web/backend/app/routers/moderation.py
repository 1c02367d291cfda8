"""Moderation router -- dry-run the pipeline on arbitrary text.

Prefix: ``/api/moderation``
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from whistlespace.auth.models import User
from whistlespace.service import ModerationService
from web.backend.app.middleware.auth import get_admin_user, get_service
from web.backend.app.models.api import ModerationCheckRequest, VerdictResponse

router = APIRouter(prefix="/api/moderation", tags=["moderation"])


@router.post("/check", response_model=VerdictResponse)
async def check_text(
    body: ModerationCheckRequest,
    _admin: User = Depends(get_admin_user),
    service: ModerationService = Depends(get_service),
):
    """Run the moderation pipeline without storing anything or enforcing."""
    verdict = await service.moderate(body.text)
    return VerdictResponse(**verdict.to_dict())


@router.get("/providers")
async def list_providers(
    _admin: User = Depends(get_admin_user),
    service: ModerationService = Depends(get_service),
):
    """List classifier adapters in precedence order and whether each is usable."""
    return [
        {"name": a.name, "available": a.available}
        for a in service.pipeline.adapters
    ]
