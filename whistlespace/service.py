"""Moderation service facade.

Wires the pipeline, enforcement engine, notification dispatcher and stores
together and exposes the operations the HTTP API and CLI call.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

import httpx

from whistlespace.auth.models import Role, User
from whistlespace.auth.store import UserStore
from whistlespace.config import Settings
from whistlespace.enforcement.engine import EnforcementEngine
from whistlespace.enforcement.models import EnforcementAction, EnforcementDecision
from whistlespace.errors import AccountBannedError, ConflictError, ValidationError
from whistlespace.feedback.models import AdminAction, Feedback, FeedbackStatus
from whistlespace.feedback.store import FeedbackStore
from whistlespace.llm.analyzer import FeedbackAnalysis, FeedbackAnalyzer
from whistlespace.llm.client import LLMClient
from whistlespace.moderation.models import ModerationVerdict
from whistlespace.moderation.pipeline import ModerationPipeline, build_pipeline
from whistlespace.notifications.dispatcher import NotificationDispatcher
from whistlespace.notifications.mailer import Mailer, build_mailer
from whistlespace.notifications.store import NotificationPage, NotificationStore
from whistlespace.security.audit_log import (
    ACTION_BAN,
    ACTION_BANNED_SUBMISSION,
    ACTION_FEEDBACK_FLAGGED,
    ACTION_UNBAN,
    ACTION_WARN,
    AuditLogger,
)

logger = logging.getLogger(__name__)

HARASSMENT = "Harassment"
INAPPROPRIATE = "Inappropriate Content"


@dataclass
class SubmissionResult:
    feedback: Feedback
    verdict: ModerationVerdict
    decision: Optional[EnforcementDecision] = None


class ModerationService:
    """Entry point for feedback submission, enforcement and notifications."""

    def __init__(
        self,
        settings: Settings,
        users: UserStore,
        feedback: FeedbackStore,
        notifications: NotificationStore,
        pipeline: ModerationPipeline,
        engine: EnforcementEngine,
        dispatcher: NotificationDispatcher,
        analyzer: FeedbackAnalyzer,
        audit: AuditLogger,
    ) -> None:
        self.settings = settings
        self.users = users
        self.feedback = feedback
        self.notifications = notifications
        self.pipeline = pipeline
        self.engine = engine
        self.dispatcher = dispatcher
        self.analyzer = analyzer
        self.audit = audit

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        mailer: Optional[Mailer] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        llm_client: Optional[LLMClient] = None,
    ) -> "ModerationService":
        """Build every collaborator under ``settings.data_path``."""
        root = settings.data_path
        users = UserStore(root / "auth")
        notifications = NotificationStore(root / "notifications")
        audit = AuditLogger(root / "audit_logs")
        dispatcher = NotificationDispatcher(
            notifications,
            users,
            mailer=mailer or build_mailer(settings),
            audit=audit,
            frontend_url=settings.frontend_url,
            admin_emails=settings.admin_emails,
            ban_duration_hours=settings.ban_duration_hours,
        )
        engine = EnforcementEngine(
            users,
            ban_duration_hours=settings.ban_duration_hours,
            warning_threshold=settings.warning_threshold,
        )
        analyzer = FeedbackAnalyzer(llm_client or LLMClient(api_key=settings.anthropic_api_key))
        return cls(
            settings=settings,
            users=users,
            feedback=FeedbackStore(root / "feedback"),
            notifications=notifications,
            pipeline=build_pipeline(settings, client=http_client),
            engine=engine,
            dispatcher=dispatcher,
            analyzer=analyzer,
            audit=audit,
        )

    def _audit(self, **event) -> None:
        # Audit writes follow a committed change and never raise.
        try:
            self.audit.log_event(**event)
        except OSError:
            logger.exception("Could not write audit event %s", event.get("action"))

    # ------------------------------------------------------------------
    # Core operations
    # ------------------------------------------------------------------

    async def moderate(self, text: str) -> ModerationVerdict:
        return await self.pipeline.moderate(text)

    async def record_violation(
        self,
        user_id: str,
        violation_type: str = HARASSMENT,
        feedback_ref: str = "",
        excerpt: str = "",
        reason: str = "",
    ) -> EnforcementDecision:
        """Apply one violation, then notify the user and (if warranted) admins.

        The record update is committed before any notification goes out;
        notification trouble never undoes it.
        """
        decision = self.engine.record_violation(user_id, violation_type, feedback_ref, reason)
        if decision.already_banned:
            return decision

        audit_action = (
            ACTION_BAN if decision.action == EnforcementAction.temporary_ban else ACTION_WARN
        )
        self._audit(
            actor="system",
            action=audit_action,
            resource_type="user",
            resource_id=user_id,
            details={**decision.to_dict(), "feedback_ref": feedback_ref},
        )

        await self.dispatcher.notify_decision(decision)
        if decision.notify_admins:
            await self.dispatcher.alert_for_decision(decision, excerpt)
        return decision

    async def unban(self, user_id: str, admin_id: str) -> None:
        """Lift any ban on *user_id*.  Calling it again is a no-op."""
        if not self.engine.unban(user_id, admin_id):
            logger.info("Unban of %s requested by %s but no ban was set", user_id, admin_id)
            return
        self._audit(
            actor=admin_id,
            action=ACTION_UNBAN,
            resource_type="user",
            resource_id=user_id,
        )
        await self.dispatcher.notify_unbanned(user_id, admin_id)

    def list_notifications(
        self,
        user_id: str,
        page: int = 1,
        limit: int = 10,
        unread_only: bool = False,
    ) -> NotificationPage:
        self.users.require_user(user_id)
        return self.notifications.list_for_user(user_id, page, limit, unread_only)

    def mark_read(self, user_id: str, notification_ids: Optional[list[str]] = None) -> int:
        self.users.require_user(user_id)
        return self.notifications.mark_read(user_id, notification_ids)

    # ------------------------------------------------------------------
    # Accounts and submissions
    # ------------------------------------------------------------------

    async def register_user(self, email: str, role: Role = Role.user) -> User:
        user = self.users.create_user(email, role)
        logger.info("Registered user %s (%s)", user.id, user.role.value)
        await self.dispatcher.dispatch(user.id, "WELCOME")
        return user

    async def submit_feedback(
        self,
        text: str,
        user_id: Optional[str] = None,
        email: Optional[str] = None,
    ) -> SubmissionResult:
        """Moderate, analyse and store one submission.

        Raises :class:`ValidationError` for blank text and
        :class:`AccountBannedError` when the submitter is banned.  Any other
        moderation or enforcement trouble still lets the submission through.
        """
        if not text or not text.strip():
            raise ValidationError("Feedback text is required")
        text = text.strip()

        user: Optional[User] = None
        if user_id:
            user = self.users.require_user(user_id)
            if user.is_banned():
                self._audit(
                    actor=user.id,
                    action=ACTION_BANNED_SUBMISSION,
                    resource_type="user",
                    resource_id=user.id,
                    success=False,
                )
                raise AccountBannedError(user.id, user.ban_until)

        verdict = await self.moderate(text)
        analysis: FeedbackAnalysis = await self.analyzer.analyze(text)
        harassment = analysis.category == HARASSMENT

        fb = Feedback(
            id="",
            text=text,
            email=email or "",
            user_id=user.id if user else None,
            category=analysis.category,
            sentiment=analysis.sentiment,
            status=(
                FeedbackStatus.under_review
                if verdict.flagged or harassment
                else FeedbackStatus.pending
            ),
            moderation=verdict.to_dict(),
        )
        if verdict.flagged:
            fb.admin_actions.append(AdminAction(action="flagged", admin_id="system", reason=verdict.reason))
        self.feedback.save_feedback(fb)

        decision: Optional[EnforcementDecision] = None
        if verdict.flagged:
            self._audit(
                actor=user.id if user else "anonymous",
                action=ACTION_FEEDBACK_FLAGGED,
                resource_type="feedback",
                resource_id=fb.id,
                details={"reason": verdict.reason, "provider": verdict.provider.value},
            )
            if user is not None:
                try:
                    decision = await self.record_violation(
                        user.id,
                        HARASSMENT if harassment else INAPPROPRIATE,
                        feedback_ref=fb.id,
                        excerpt=text,
                        reason=verdict.reason,
                    )
                except ConflictError:
                    logger.warning(
                        "Violation for feedback %s not recorded: user %s kept changing",
                        fb.id,
                        user.id,
                    )
                except OSError:
                    logger.exception(
                        "Violation for feedback %s not recorded for user %s", fb.id, user.id
                    )
        elif harassment:
            if user is not None:
                await self.dispatcher.dispatch(user.id, "HARASSMENT_DETECTED")
            await self.dispatcher.alert_admins(
                user.id if user else "anonymous",
                "Review",
                HARASSMENT,
                user.warning_count if user else 0,
                text,
            )

        logger.info(
            "Feedback %s stored (status=%s, flagged=%s)", fb.id, fb.status.value, verdict.flagged
        )
        return SubmissionResult(feedback=fb, verdict=verdict, decision=decision)

    async def aclose(self) -> None:
        """Wait for detached email tasks to finish."""
        await self.dispatcher.drain()
