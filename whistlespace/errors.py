"""Exception hierarchy shared by the moderation and enforcement layers."""

from __future__ import annotations

from datetime import datetime
from typing import Optional


class WhistleSpaceError(Exception):
    """Base class for all WhistleSpace errors."""


class ConfigurationError(WhistleSpaceError):
    """A component is permanently unusable (missing credentials, bad settings)."""


class TransientError(WhistleSpaceError):
    """A single external call failed; the next submission may succeed."""


class ClassifierTimeout(TransientError):
    """A classifier call exceeded its time budget."""


class ConflictError(WhistleSpaceError):
    """A versioned record changed between read and write."""

    def __init__(self, record_id: str, expected: int, actual: int) -> None:
        super().__init__(
            f"Version conflict on {record_id}: expected {expected}, found {actual}"
        )
        self.record_id = record_id
        self.expected = expected
        self.actual = actual


class ValidationError(WhistleSpaceError):
    """Input rejected before any processing happened."""


class NotFoundError(WhistleSpaceError):
    """A referenced user, feedback entry or template does not exist."""


class AccountBannedError(WhistleSpaceError):
    """The acting user is inside an active ban window."""

    def __init__(self, user_id: str, ban_until: Optional[datetime]) -> None:
        until = ban_until.isoformat() if ban_until else "unknown"
        super().__init__(f"User {user_id} is banned until {until}")
        self.user_id = user_id
        self.ban_until = ban_until
