"""Identity models: users, their violation record, and sessions."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Role(str, Enum):
    """Role hierarchy: admin > user."""

    admin = "admin"
    user = "user"

    @property
    def level(self) -> int:
        """Return numeric level for comparison (higher = more privileges)."""
        return {
            Role.admin: 20,
            Role.user: 10,
        }[self]


class ActionTaken(str, Enum):
    """Enforcement action recorded against a flag."""

    warning = "Warning"
    temporary_ban = "TemporaryBan"


@dataclass
class FlagEntry:
    """One confirmed violation.  Never edited after the transition commits."""

    reason: str
    timestamp: datetime
    action_taken: ActionTaken
    feedback_ref: str = ""

    def __post_init__(self) -> None:
        if isinstance(self.action_taken, str):
            self.action_taken = ActionTaken(self.action_taken)
        if isinstance(self.timestamp, str):
            self.timestamp = datetime.fromisoformat(self.timestamp)


@dataclass
class User:
    """A registered submitter or admin.

    ``warning_count``, ``ban_until`` and ``flag_history`` form the violation
    record.  ``version`` is bumped by the store on every successful save and
    is what concurrent writers compare against.
    """

    id: str
    email: str
    role: Role = Role.user
    warning_count: int = 0
    ban_until: Optional[datetime] = None
    flag_history: list[FlagEntry] = field(default_factory=list)
    is_active: bool = True
    version: int = 0
    created_at: str = ""
    last_login: str = ""

    def __post_init__(self) -> None:
        if not self.created_at:
            self.created_at = utcnow().isoformat()
        if isinstance(self.role, str):
            self.role = Role(self.role)
        if isinstance(self.ban_until, str):
            self.ban_until = datetime.fromisoformat(self.ban_until)

    def is_banned(self, now: Optional[datetime] = None) -> bool:
        """Ban state is derived from ``ban_until`` on every read."""
        if self.ban_until is None:
            return False
        return self.ban_until > (now or utcnow())


@dataclass
class Session:
    """Represents an active user session."""

    id: str
    user_id: str
    token: str
    created_at: str = ""
    expires_at: str = ""

    def __post_init__(self) -> None:
        if not self.created_at:
            self.created_at = utcnow().isoformat()
