"""Progressive enforcement: warnings escalate into temporary bans.

Per-user state is ``(warning_count, ban_until)``:

- clean: no warnings, no active ban
- warned-N: ``1 <= warning_count <= threshold``
- banned: ``ban_until`` in the future; ``warning_count`` was reset to 0 when
  the ban was issued

Ban expiry is not a process.  A ban is over as soon as ``ban_until`` is in
the past, so every consumer must call :meth:`User.is_banned` instead of
caching the answer.

Each transition is read-compute-write against a versioned record.  A lost
race raises :class:`ConflictError` in the store; the whole transition is then
recomputed once from fresh state, which is what stops two concurrent
violations at the threshold from both issuing a ban.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Callable, Optional, TypeVar

from whistlespace.auth.models import ActionTaken, FlagEntry, User, utcnow
from whistlespace.auth.store import UserStore
from whistlespace.enforcement.models import EnforcementAction, EnforcementDecision
from whistlespace.errors import ConflictError

logger = logging.getLogger(__name__)

T = TypeVar("T")

# (updated user or None when nothing changes, result handed to the caller)
Transition = Callable[[User, datetime], "tuple[Optional[User], T]"]

FIRST_WARNING = "FIRST_WARNING"
SECOND_WARNING = "SECOND_WARNING"
FINAL_WARNING = "FINAL_WARNING"
TEMPORARY_BAN = "TEMPORARY_BAN"


class EnforcementEngine:
    """Applies violation and unban transitions to a user's violation record."""

    def __init__(
        self,
        store: UserStore,
        ban_duration_hours: int = 24,
        warning_threshold: int = 3,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.store = store
        self.ban_duration = timedelta(hours=ban_duration_hours)
        self.warning_threshold = warning_threshold
        self.clock = clock

    # -- transition runner ---------------------------------------------------

    def _apply(self, user_id: str, transition: Transition) -> T:
        """Run *transition* as one compare-and-set, retrying once on conflict."""
        for attempt in (1, 2):
            user = self.store.require_user(user_id)
            updated, result = transition(user, self.clock())
            if updated is None:
                return result
            try:
                self.store.save_user(updated, expected_version=user.version)
            except ConflictError:
                if attempt == 1:
                    logger.info("Concurrent update on user %s, recomputing transition", user_id)
                    continue
                logger.warning("Persistent version conflict on user %s; transition dropped", user_id)
                raise
            return result
        raise AssertionError("unreachable")

    # -- violations ----------------------------------------------------------

    def _template_for(self, count: int) -> str:
        if count >= self.warning_threshold:
            return FINAL_WARNING
        if count == 1:
            return FIRST_WARNING
        return SECOND_WARNING

    def _violation(
        self, violation_type: str, feedback_ref: str, reason: str
    ) -> Transition:
        def transition(user: User, now: datetime):
            if user.is_banned(now):
                return None, EnforcementDecision(
                    user_id=user.id,
                    action=EnforcementAction.none,
                    new_warning_count=user.warning_count,
                    ban_until=user.ban_until,
                    already_banned=True,
                    violation_type=violation_type,
                )

            count = user.warning_count + 1
            entry = FlagEntry(
                reason=reason or violation_type,
                timestamp=now,
                action_taken=ActionTaken.warning,
                feedback_ref=feedback_ref,
            )
            history = list(user.flag_history) + [entry]

            if count <= self.warning_threshold:
                updated = replace(user, warning_count=count, flag_history=history)
                return updated, EnforcementDecision(
                    user_id=user.id,
                    action=EnforcementAction.warn,
                    new_warning_count=count,
                    notify_admins=count == self.warning_threshold,
                    violation_type=violation_type,
                    template_key=self._template_for(count),
                )

            ban_until = now + self.ban_duration
            history[-1] = replace(entry, action_taken=ActionTaken.temporary_ban)
            updated = replace(user, warning_count=0, ban_until=ban_until, flag_history=history)
            return updated, EnforcementDecision(
                user_id=user.id,
                action=EnforcementAction.temporary_ban,
                new_warning_count=0,
                ban_until=ban_until,
                notify_admins=True,
                violation_type=violation_type,
                template_key=TEMPORARY_BAN,
            )

        return transition

    def record_violation(
        self,
        user_id: str,
        violation_type: str = "Harassment",
        feedback_ref: str = "",
        reason: str = "",
    ) -> EnforcementDecision:
        """Count one confirmed violation against *user_id*.

        Raises :class:`NotFoundError` for unknown users and
        :class:`ConflictError` if the record keeps changing underneath us.
        """
        decision = self._apply(user_id, self._violation(violation_type, feedback_ref, reason))
        if decision.already_banned:
            logger.info("User %s is already banned; violation not counted", user_id)
        elif decision.action == EnforcementAction.temporary_ban:
            logger.info("User %s banned until %s", user_id, decision.ban_until.isoformat())
        else:
            logger.info(
                "User %s warned (%d/%d)", user_id, decision.new_warning_count, self.warning_threshold
            )
        return decision

    # -- manual unban --------------------------------------------------------

    def unban(self, user_id: str, admin_id: str) -> bool:
        """Clear ``ban_until`` whether or not the ban is still running.

        ``warning_count`` is left alone.  Returns True when a ban timestamp was
        actually cleared; a second call finds nothing to do and returns False.
        """

        def transition(user: User, now: datetime):
            if user.ban_until is None:
                return None, False
            return replace(user, ban_until=None), True

        cleared = self._apply(user_id, transition)
        if cleared:
            logger.info("User %s unbanned by %s", user_id, admin_id)
        return cleared

    def status(self, user_id: str) -> User:
        return self.store.require_user(user_id)
