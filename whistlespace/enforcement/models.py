"""Data models for enforcement decisions."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Optional


class EnforcementAction(str, Enum):
    none = "None"
    warn = "Warn"
    temporary_ban = "TemporaryBan"


@dataclass(frozen=True)
class EnforcementDecision:
    """Result of one violation transition.

    Not stored on its own; it links the violation-record update to the
    notifications sent afterwards.  ``already_banned`` marks the case where
    the user was inside a ban window and nothing changed.
    """

    user_id: str
    action: EnforcementAction
    new_warning_count: int
    ban_until: Optional[datetime] = None
    notify_admins: bool = False
    already_banned: bool = False
    violation_type: str = ""
    template_key: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "user_id": self.user_id,
            "action": self.action.value,
            "new_warning_count": self.new_warning_count,
            "ban_until": self.ban_until.isoformat() if self.ban_until else None,
            "notify_admins": self.notify_admins,
            "already_banned": self.already_banned,
            "violation_type": self.violation_type,
        }
