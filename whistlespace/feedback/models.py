"""Data models for submitted feedback."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional


class FeedbackStatus(str, Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"
    under_review = "under_review"


@dataclass
class AdminAction:
    """An admin decision recorded against a feedback entry."""

    action: str  # "flagged" | "approved" | "rejected" | "warning_issued" | "user_banned"
    admin_id: str = ""
    reason: str = ""
    timestamp: str = ""

    def __post_init__(self) -> None:
        if not self.timestamp:
            self.timestamp = datetime.now(timezone.utc).isoformat()


@dataclass
class Feedback:
    """A single feedback submission with its moderation verdict attached."""

    id: str
    text: str
    email: str = ""
    user_id: Optional[str] = None
    category: str = ""
    sentiment: str = ""
    status: FeedbackStatus = FeedbackStatus.pending
    moderation: dict[str, Any] = field(default_factory=dict)
    admin_actions: list[AdminAction] = field(default_factory=list)
    timestamp: str = ""

    def __post_init__(self) -> None:
        if not self.id:
            self.id = uuid.uuid4().hex[:16]
        if not self.timestamp:
            self.timestamp = datetime.now(timezone.utc).isoformat()
        if isinstance(self.status, str):
            self.status = FeedbackStatus(self.status)
        self.admin_actions = [
            a if isinstance(a, AdminAction) else AdminAction(**a) for a in self.admin_actions
        ]

    @property
    def flagged(self) -> bool:
        return bool(self.moderation.get("flagged"))


@dataclass
class FeedbackQuery:
    """Filters for listing feedback.  Dates are ISO-8601 strings."""

    search: str = ""
    status: Optional[FeedbackStatus] = None
    category: Optional[str] = None
    sentiment: Optional[str] = None
    date_from: Optional[str] = None
    date_to: Optional[str] = None
    page: int = 1
    limit: int = 10


@dataclass
class FeedbackPage:
    items: list[Feedback]
    total: int
    page: int
    total_pages: int
