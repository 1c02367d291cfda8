"""End-to-end tests for the moderation service facade."""

import asyncio
import tempfile
from datetime import datetime, timedelta, timezone

import pytest

from whistlespace.auth.models import ActionTaken
from whistlespace.config import Settings
from whistlespace.enforcement.models import EnforcementAction
from whistlespace.errors import AccountBannedError, ConflictError, ValidationError
from whistlespace.feedback.models import FeedbackStatus
from whistlespace.llm.analyzer import FeedbackAnalysis
from whistlespace.llm.client import LLMClient
from whistlespace.moderation.models import AdapterResult, ModerationVerdict, Provider
from whistlespace.moderation.pipeline import ModerationPipeline
from whistlespace.security.audit_log import ACTION_BAN, ACTION_UNBAN, ACTION_WARN
from whistlespace.service import ModerationService

HARASSMENT_TEXT = "you are a worthless bastard and everyone hates you"


class RecordingMailer:
    def __init__(self):
        self.sent = []

    async def send(self, to, subject, html):
        self.sent.append((to, subject))
        return True


class StaticAnalyzer:
    def __init__(self, category="Other", sentiment="Neutral"):
        self.result = FeedbackAnalysis(category=category, sentiment=sentiment)
        self.calls = 0

    async def analyze(self, text):
        self.calls += 1
        return self.result


class AlwaysFlagAdapter:
    name = "perspective"
    available = True

    def __init__(self):
        self.calls = 0

    async def classify(self, text, timeout=None):
        self.calls += 1
        return AdapterResult(
            adapter=self.name,
            verdict=ModerationVerdict(
                flagged=True, reason="High toxicity score", provider=Provider.perspective
            ),
        )


def _service(tmpdir, analyzer=None, adapters=(), **settings_kwargs):
    mailer = RecordingMailer()
    settings = Settings(data_dir=tmpdir, admin_emails=["ops@example.com"], **settings_kwargs)
    service = ModerationService.from_settings(
        settings, mailer=mailer, llm_client=LLMClient(api_key="")
    )
    service.pipeline = ModerationPipeline(adapters=list(adapters))
    if analyzer is not None:
        service.analyzer = analyzer
    return service, mailer


def _run(service, coro):
    async def wrapper():
        try:
            return await coro
        finally:
            await service.aclose()

    return asyncio.run(wrapper())


def test_register_user_sends_welcome():
    with tempfile.TemporaryDirectory() as tmpdir:
        service, mailer = _service(tmpdir)
        user = _run(service, service.register_user("New@Example.com"))

        assert user.email == "new@example.com"
        page = service.list_notifications(user.id)
        assert page.total_count == 1
        assert page.notifications[0].template_key == "WELCOME"
        assert mailer.sent == []


def test_blank_submission_rejected():
    with tempfile.TemporaryDirectory() as tmpdir:
        service, _ = _service(tmpdir)
        with pytest.raises(ValidationError):
            _run(service, service.submit_feedback("   "))
        assert service.feedback.list_feedback().total == 0


def test_clean_submission_is_pending():
    with tempfile.TemporaryDirectory() as tmpdir:
        service, _ = _service(tmpdir)
        user = _run(service, service.register_user("a@example.com"))
        result = _run(service, service.submit_feedback("The canteen could open earlier.", user.id))

        assert result.verdict.flagged is False
        assert result.decision is None
        assert result.feedback.status == FeedbackStatus.pending
        assert result.feedback.category == "Other"
        assert result.feedback.sentiment == "Neutral"
        assert service.users.get_user(user.id).warning_count == 0


def test_four_harassing_submissions_end_in_ban():
    with tempfile.TemporaryDirectory() as tmpdir:
        service, mailer = _service(tmpdir)
        _run(service, service.register_user("admin@example.com"))
        user = _run(service, service.register_user("user@example.com"))

        results = [
            _run(service, service.submit_feedback(HARASSMENT_TEXT, user.id)) for _ in range(4)
        ]

        assert all(r.verdict.flagged and r.verdict.provider == Provider.local for r in results)
        assert [r.decision.action for r in results] == [
            EnforcementAction.warn,
            EnforcementAction.warn,
            EnforcementAction.warn,
            EnforcementAction.temporary_ban,
        ]
        assert all(r.feedback.status == FeedbackStatus.under_review for r in results)

        stored = service.users.get_user(user.id)
        assert stored.warning_count == 0
        expected_until = datetime.now(timezone.utc) + timedelta(hours=24)
        assert abs((stored.ban_until - expected_until).total_seconds()) < 60
        assert [f.action_taken for f in stored.flag_history] == [
            ActionTaken.warning,
            ActionTaken.warning,
            ActionTaken.warning,
            ActionTaken.temporary_ban,
        ]
        assert [f.feedback_ref for f in stored.flag_history] == [r.feedback.id for r in results]

        latest = service.list_notifications(user.id, limit=1).notifications[0]
        assert latest.title == "🚫 Account Temporarily Suspended"

        # Admins are alerted on the final warning and on the ban
        alerts = [s for s in mailer.sent if s[1].startswith("🚨 User Violation Alert")]
        assert sorted(subject for to, subject in alerts if to == "ops@example.com") == [
            "🚨 User Violation Alert - TemporaryBan",
            "🚨 User Violation Alert - Warn",
        ]
        user_mail = [subject for to, subject in mailer.sent if to == "user@example.com"]
        assert len(user_mail) == 4

        assert len(service.audit.get_events(action=ACTION_WARN, resource_id=user.id)) == 3
        assert len(service.audit.get_events(action=ACTION_BAN, resource_id=user.id)) == 1

        with pytest.raises(AccountBannedError):
            _run(service, service.submit_feedback("please let me back in", user.id))


def test_anonymous_flagged_submission_skips_enforcement():
    with tempfile.TemporaryDirectory() as tmpdir:
        service, _ = _service(tmpdir)
        result = _run(service, service.submit_feedback(HARASSMENT_TEXT, email="x@example.com"))

        assert result.verdict.flagged is True
        assert result.decision is None
        assert result.feedback.user_id is None
        assert result.feedback.email == "x@example.com"
        assert result.feedback.status == FeedbackStatus.under_review
        assert result.feedback.admin_actions[0].action == "flagged"


def test_adapter_flag_is_enforced():
    with tempfile.TemporaryDirectory() as tmpdir:
        adapter = AlwaysFlagAdapter()
        service, _ = _service(tmpdir, adapters=[adapter])
        user = _run(service, service.register_user("a@example.com"))

        result = _run(service, service.submit_feedback("subtle but nasty", user.id))
        assert adapter.calls == 1
        assert result.decision.action == EnforcementAction.warn
        assert service.users.get_user(user.id).flag_history[0].reason == "High toxicity score"


def test_conflict_does_not_fail_submission(monkeypatch):
    with tempfile.TemporaryDirectory() as tmpdir:
        service, _ = _service(tmpdir)
        user = _run(service, service.register_user("a@example.com"))

        def always_conflict(user_id, *args, **kwargs):
            raise ConflictError(user_id, 1, 2)

        monkeypatch.setattr(service.engine, "record_violation", always_conflict)
        result = _run(service, service.submit_feedback(HARASSMENT_TEXT, user.id))

        assert result.verdict.flagged is True
        assert result.decision is None
        assert service.feedback.get_feedback(result.feedback.id) is not None


def test_side_effect_storage_failure_does_not_fail_submission(monkeypatch):
    with tempfile.TemporaryDirectory() as tmpdir:
        service, _ = _service(tmpdir)
        user = _run(service, service.register_user("a@example.com"))

        def disk_full(*args, **kwargs):
            raise OSError("disk full")

        monkeypatch.setattr(service.notifications, "append", disk_full)
        monkeypatch.setattr(service.audit, "log_event", disk_full)
        result = _run(service, service.submit_feedback(HARASSMENT_TEXT, user.id))

        assert result.verdict.flagged is True
        assert result.decision.action == EnforcementAction.warn
        assert service.users.get_user(user.id).warning_count == 1
        assert service.feedback.get_feedback(result.feedback.id) is not None


def test_unflagged_harassment_notifies_without_warning():
    with tempfile.TemporaryDirectory() as tmpdir:
        service, mailer = _service(tmpdir, analyzer=StaticAnalyzer(category="Harassment"))
        user = _run(service, service.register_user("a@example.com"))

        result = _run(service, service.submit_feedback("My manager keeps following me home.", user.id))

        assert result.verdict.flagged is False
        assert result.decision is None
        assert result.feedback.status == FeedbackStatus.under_review
        assert service.users.get_user(user.id).warning_count == 0
        keys = [n.template_key for n in service.list_notifications(user.id).notifications]
        assert "HARASSMENT_DETECTED" in keys
        assert ("ops@example.com", "🚨 User Violation Alert - Review") in mailer.sent


def test_unban_notifies_once():
    with tempfile.TemporaryDirectory() as tmpdir:
        service, _ = _service(tmpdir)
        admin = _run(service, service.register_user("admin@example.com"))
        user = _run(service, service.register_user("user@example.com"))
        for _ in range(4):
            _run(service, service.submit_feedback(HARASSMENT_TEXT, user.id))

        _run(service, service.unban(user.id, admin.id))
        _run(service, service.unban(user.id, admin.id))

        stored = service.users.get_user(user.id)
        assert stored.ban_until is None
        assert stored.is_banned() is False
        keys = [n.template_key for n in service.list_notifications(user.id, limit=50).notifications]
        assert keys.count("ACCOUNT_UNBANNED") == 1
        events = service.audit.get_events(action=ACTION_UNBAN)
        assert len(events) == 1
        assert events[0].actor == admin.id

        # Submitting works again
        result = _run(service, service.submit_feedback("Thanks for reconsidering.", user.id))
        assert result.verdict.flagged is False


def test_mark_read_through_service():
    with tempfile.TemporaryDirectory() as tmpdir:
        service, _ = _service(tmpdir)
        user = _run(service, service.register_user("a@example.com"))
        assert service.list_notifications(user.id, unread_only=True).total_count == 1
        assert service.mark_read(user.id, []) == 1
        assert service.list_notifications(user.id, unread_only=True).total_count == 0
