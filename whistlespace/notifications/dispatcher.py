"""Notification dispatch: in-app first, email on the side.

The in-app notification is appended synchronously and is the record of
truth.  Email is scheduled as a detached task once the notification has been
stored; its outcome is logged and never reaches the caller.
"""

from __future__ import annotations

import asyncio
import html
import logging
from typing import Any, Awaitable, Iterable, Optional

from whistlespace.auth.store import UserStore
from whistlespace.enforcement.models import EnforcementAction, EnforcementDecision
from whistlespace.errors import NotFoundError
from whistlespace.notifications.mailer import Mailer, NullMailer
from whistlespace.notifications.store import Notification, NotificationStore
from whistlespace.notifications.templates import get_template, render
from whistlespace.security.audit_log import ACTION_ADMIN_ALERT, AuditLogger

logger = logging.getLogger(__name__)

EXCERPT_LIMIT = 200


# ------------------------------------------------------------------
# Email bodies
# ------------------------------------------------------------------


def user_email_html(title: str, message: str, frontend_url: str) -> str:
    return f"""
<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
  <div style="background: #f8f9fa; padding: 20px; border-radius: 8px;">
    <h2>{html.escape(title)}</h2>
  </div>
  <div style="padding: 20px; background: white; border-radius: 8px; border: 1px solid #e9ecef;">
    <p>{html.escape(message)}</p>
    <hr />
    <p style="font-size: 14px; color: #888;">
      This notification was sent from WhistleSpace.
      <a href="{frontend_url}/profile">View all notifications</a>
    </p>
  </div>
  <div style="margin-top: 20px; text-align: center;">
    <a href="{frontend_url}/guidelines">Review Community Guidelines</a>
  </div>
</div>
"""


def admin_alert_html(
    user_id: str,
    action: str,
    violation_type: str,
    warning_count: int,
    excerpt: str,
    frontend_url: str,
) -> str:
    snippet = excerpt[:EXCERPT_LIMIT] + ("..." if len(excerpt) > EXCERPT_LIMIT else "")
    return f"""
<h2>User Violation Alert</h2>
<p><strong>Action Taken:</strong> {html.escape(action)}</p>
<p><strong>User ID:</strong> {html.escape(user_id)}</p>
<p><strong>Violation Type:</strong> {html.escape(violation_type)}</p>
<p><strong>Warning Count:</strong> {warning_count}</p>
<h3>Flagged Content:</h3>
<div style="background: #f8f9fa; padding: 15px; border-left: 4px solid #dc3545;">
  {html.escape(snippet)}
</div>
<p><a href="{frontend_url}/admin/users">View User Management</a></p>
"""


# ------------------------------------------------------------------
# Dispatcher
# ------------------------------------------------------------------


class NotificationDispatcher:
    """Delivers templated notifications to users and violation alerts to admins."""

    def __init__(
        self,
        store: NotificationStore,
        users: UserStore,
        mailer: Optional[Mailer] = None,
        audit: Optional[AuditLogger] = None,
        frontend_url: str = "http://localhost:5173",
        admin_emails: Iterable[str] = (),
        ban_duration_hours: int = 24,
    ) -> None:
        self.store = store
        self.users = users
        self.mailer = mailer or NullMailer()
        self.audit = audit
        self.frontend_url = frontend_url.rstrip("/")
        self.admin_emails = list(admin_emails)
        self.ban_duration_hours = ban_duration_hours
        self._tasks: set[asyncio.Task] = set()

    # -- detached email ------------------------------------------------------

    async def _deliver(self, to: str, subject: str, body: str) -> bool:
        try:
            return await self.mailer.send(to, subject, body)
        except Exception:
            logger.exception("Mailer raised while sending %r to %s", subject, to)
            return False

    def _spawn(self, coro: Awaitable[bool]) -> asyncio.Task:
        task = asyncio.ensure_future(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def drain(self) -> None:
        """Wait for every scheduled email to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    # -- user notifications --------------------------------------------------

    async def dispatch(
        self,
        user_id: str,
        template_key: str,
        variables: Optional[dict[str, Any]] = None,
        send_email: bool = False,
    ) -> bool:
        """Store a notification for *user_id*; optionally email it.

        Returns False when the user or template does not exist or the
        notification could not be stored.  Email failures do not change the
        result.
        """
        user = self.users.get_user(user_id)
        if user is None:
            logger.error("Cannot notify unknown user %s", user_id)
            return False
        try:
            template = get_template(template_key)
        except NotFoundError as exc:
            logger.error("%s", exc)
            return False

        title, message = render(template_key, variables)
        try:
            notification = self.store.append(
                Notification(
                    id="",
                    user_id=user_id,
                    title=title,
                    message=message,
                    type=template.type,
                    severity=template.severity,
                    template_key=template_key,
                    metadata={"variables": {k: str(v) for k, v in (variables or {}).items()}},
                )
            )
        except OSError:
            logger.exception("Could not store %s notification for user %s", template_key, user_id)
            return False
        logger.info("Notification %s sent to user %s: %s", notification.id, user_id, title)

        if send_email and user.email:
            self._spawn(
                self._deliver(
                    user.email,
                    f"WhistleSpace - {title}",
                    user_email_html(title, message, self.frontend_url),
                )
            )
        return True

    async def notify_decision(self, decision: EnforcementDecision) -> bool:
        """Send the user-facing notification for an enforcement decision."""
        if decision.already_banned or decision.template_key is None:
            return False
        variables: dict[str, Any] = {"violation_type": decision.violation_type}
        if decision.action == EnforcementAction.temporary_ban and decision.ban_until:
            variables["duration"] = f"{self.ban_duration_hours} hours"
            variables["unban_date"] = decision.ban_until.strftime("%Y-%m-%d %H:%M UTC")
        return await self.dispatch(decision.user_id, decision.template_key, variables, send_email=True)

    async def notify_unbanned(self, user_id: str, admin_id: str) -> bool:
        return await self.dispatch(
            user_id, "ACCOUNT_UNBANNED", {"unbanned_by": admin_id}, send_email=True
        )

    # -- admin alerts --------------------------------------------------------

    def admin_recipients(self) -> list[str]:
        recipients = list(self.admin_emails)
        for admin in self.users.list_admins():
            if admin.email and admin.email not in recipients:
                recipients.append(admin.email)
        return recipients

    async def alert_admins(
        self,
        user_id: str,
        action: str,
        violation_type: str,
        warning_count: int = 0,
        excerpt: str = "",
    ) -> int:
        """Email every admin about a serious violation.  Returns the recipient count.

        *user_id* may be ``"anonymous"`` for content with no identified
        submitter.
        """
        recipients = self.admin_recipients()
        subject = f"🚨 User Violation Alert - {action}"
        body = admin_alert_html(
            user_id, action, violation_type, warning_count, excerpt, self.frontend_url
        )
        for to in recipients:
            self._spawn(self._deliver(to, subject, body))

        if not recipients:
            logger.warning("No admin recipients configured for violation alert on %s", user_id)
        if self.audit is not None:
            try:
                self.audit.log_event(
                    actor="system",
                    action=ACTION_ADMIN_ALERT,
                    resource_type="user",
                    resource_id=user_id,
                    details={
                        "action": action,
                        "violation_type": violation_type,
                        "recipients": len(recipients),
                    },
                )
            except OSError:
                logger.exception("Could not audit admin alert for %s", user_id)
        return len(recipients)

    async def alert_for_decision(self, decision: EnforcementDecision, excerpt: str = "") -> int:
        return await self.alert_admins(
            decision.user_id,
            decision.action.value,
            decision.violation_type,
            decision.new_warning_count,
            excerpt,
        )
