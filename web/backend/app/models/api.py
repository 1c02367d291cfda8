"""Pydantic models for API request/response serialization.

These models mirror the WhistleSpace dataclasses and provide JSON
serialization for the FastAPI endpoints.
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Auth models
# ---------------------------------------------------------------------------


class SignupRequest(BaseModel):
    email: str = Field(..., min_length=3)


class FlagEntryResponse(BaseModel):
    """Mirrors whistlespace.auth.models.FlagEntry."""

    reason: str
    timestamp: str
    action_taken: str
    feedback_ref: str = ""


class UserResponse(BaseModel):
    """Mirrors whistlespace.auth.models.User."""

    id: str
    email: str = ""
    role: str = "user"
    warning_count: int = 0
    ban_until: Optional[str] = None
    is_banned: bool = False
    created_at: str = ""
    last_login: str = ""


class UserDetailResponse(UserResponse):
    """User plus full violation history, for admins."""

    flag_history: list[FlagEntryResponse] = Field(default_factory=list)
    version: int = 0


class LoginResponse(BaseModel):
    token: str
    user: UserResponse


# ---------------------------------------------------------------------------
# Moderation models
# ---------------------------------------------------------------------------


class ModerationCheckRequest(BaseModel):
    text: str = ""


class VerdictResponse(BaseModel):
    """Mirrors whistlespace.moderation.models.ModerationVerdict."""

    flagged: bool
    reason: str
    provider: str
    scores: Optional[dict[str, float]] = None
    timestamp: str = ""
    details: dict[str, Any] = Field(default_factory=dict)


class DecisionResponse(BaseModel):
    """Mirrors whistlespace.enforcement.models.EnforcementDecision."""

    user_id: str
    action: str
    new_warning_count: int
    ban_until: Optional[str] = None
    notify_admins: bool = False
    already_banned: bool = False
    violation_type: str = ""


# ---------------------------------------------------------------------------
# Feedback models
# ---------------------------------------------------------------------------


class FeedbackCreateRequest(BaseModel):
    text: str = Field(..., max_length=10000)
    email: Optional[str] = None


class AdminActionResponse(BaseModel):
    action: str
    admin_id: str = ""
    reason: str = ""
    timestamp: str = ""


class FeedbackResponse(BaseModel):
    """Mirrors whistlespace.feedback.models.Feedback."""

    id: str
    text: str
    email: str = ""
    user_id: Optional[str] = None
    category: str = ""
    sentiment: str = ""
    status: str = "pending"
    moderation: dict[str, Any] = Field(default_factory=dict)
    admin_actions: list[AdminActionResponse] = Field(default_factory=list)
    timestamp: str = ""


class SubmissionResponse(BaseModel):
    feedback: FeedbackResponse
    verdict: VerdictResponse
    decision: Optional[DecisionResponse] = None


class FeedbackListResponse(BaseModel):
    items: list[FeedbackResponse] = Field(default_factory=list)
    total: int = 0
    page: int = 1
    total_pages: int = 0


class StatusUpdateRequest(BaseModel):
    status: str
    reason: str = ""


# ---------------------------------------------------------------------------
# Notification models
# ---------------------------------------------------------------------------


class NotificationResponse(BaseModel):
    """Mirrors whistlespace.notifications.store.Notification."""

    id: str
    title: str
    message: str
    type: str
    severity: str
    template_key: str = ""
    read: bool = False
    timestamp: str = ""


class NotificationListResponse(BaseModel):
    notifications: list[NotificationResponse] = Field(default_factory=list)
    total_count: int = 0
    unread_count: int = 0
    current_page: int = 1
    total_pages: int = 0


class MarkReadRequest(BaseModel):
    notification_ids: list[str] = Field(default_factory=list)


class MarkReadResponse(BaseModel):
    updated: int = 0


# ---------------------------------------------------------------------------
# Admin / audit models
# ---------------------------------------------------------------------------


class UnbanResponse(BaseModel):
    user: UserResponse
    message: str = ""


class AuditEntryResponse(BaseModel):
    """Mirrors whistlespace.security.audit_log.AuditEntry."""

    id: str
    timestamp: str
    actor: str
    action: str
    resource_type: str
    resource_id: str
    details: dict[str, Any] = Field(default_factory=dict)
    success: bool = True
