"""Feedback router -- submission and admin review.

Prefix: ``/api/feedback``
"""

from __future__ import annotations

from dataclasses import asdict
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from whistlespace.auth.models import User
from whistlespace.enforcement.models import EnforcementDecision
from whistlespace.feedback.models import Feedback, FeedbackQuery, FeedbackStatus
from whistlespace.moderation.models import ModerationVerdict
from whistlespace.service import ModerationService
from web.backend.app.middleware.auth import get_admin_user, get_optional_user, get_service
from web.backend.app.models.api import (
    DecisionResponse,
    FeedbackCreateRequest,
    FeedbackListResponse,
    FeedbackResponse,
    StatusUpdateRequest,
    SubmissionResponse,
    VerdictResponse,
)

router = APIRouter(prefix="/api/feedback", tags=["feedback"])


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _feedback_response(fb: Feedback) -> FeedbackResponse:
    d = asdict(fb)
    d["status"] = fb.status.value
    return FeedbackResponse(**d)


def _verdict_response(v: ModerationVerdict) -> VerdictResponse:
    return VerdictResponse(**v.to_dict())


def _decision_response(d: Optional[EnforcementDecision]) -> Optional[DecisionResponse]:
    return DecisionResponse(**d.to_dict()) if d is not None else None


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@router.post("", response_model=SubmissionResponse, status_code=201)
async def submit_feedback(
    body: FeedbackCreateRequest,
    user: Optional[User] = Depends(get_optional_user),
    service: ModerationService = Depends(get_service),
):
    """Submit feedback, anonymously or as the signed-in user.

    Banned users receive 403.
    """
    result = await service.submit_feedback(
        body.text,
        user_id=user.id if user else None,
        email=body.email,
    )
    return SubmissionResponse(
        feedback=_feedback_response(result.feedback),
        verdict=_verdict_response(result.verdict),
        decision=_decision_response(result.decision),
    )


@router.get("", response_model=FeedbackListResponse)
async def list_feedback(
    search: str = Query(""),
    status: Optional[FeedbackStatus] = Query(None),
    category: Optional[str] = Query(None),
    sentiment: Optional[str] = Query(None),
    date_from: Optional[str] = Query(None, alias="from"),
    date_to: Optional[str] = Query(None, alias="to"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    _admin: User = Depends(get_admin_user),
    service: ModerationService = Depends(get_service),
):
    """List feedback with filters and pagination (admin only)."""
    result = service.feedback.list_feedback(
        FeedbackQuery(
            search=search,
            status=status,
            category=category,
            sentiment=sentiment,
            date_from=date_from,
            date_to=date_to,
            page=page,
            limit=limit,
        )
    )
    return FeedbackListResponse(
        items=[_feedback_response(f) for f in result.items],
        total=result.total,
        page=result.page,
        total_pages=result.total_pages,
    )


@router.get("/{feedback_id}", response_model=FeedbackResponse)
async def get_feedback(
    feedback_id: str,
    _admin: User = Depends(get_admin_user),
    service: ModerationService = Depends(get_service),
):
    fb = service.feedback.get_feedback(feedback_id)
    if fb is None:
        raise HTTPException(status_code=404, detail=f"Feedback '{feedback_id}' not found")
    return _feedback_response(fb)


@router.patch("/{feedback_id}/status", response_model=FeedbackResponse)
async def update_status(
    feedback_id: str,
    body: StatusUpdateRequest,
    admin: User = Depends(get_admin_user),
    service: ModerationService = Depends(get_service),
):
    """Change a feedback entry's review status (admin only)."""
    try:
        status = FeedbackStatus(body.status)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Invalid status '{body.status}'")
    fb = service.feedback.update_status(feedback_id, status, admin_id=admin.id, reason=body.reason)
    return _feedback_response(fb)


@router.delete("/{feedback_id}")
async def delete_feedback(
    feedback_id: str,
    _admin: User = Depends(get_admin_user),
    service: ModerationService = Depends(get_service),
):
    if not service.feedback.delete_feedback(feedback_id):
        raise HTTPException(status_code=404, detail=f"Feedback '{feedback_id}' not found")
    return {"deleted": True, "id": feedback_id}
