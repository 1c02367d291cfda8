"""Tests for notification templates, storage and dispatch."""

import asyncio
import tempfile
from datetime import datetime, timezone
from pathlib import Path

import pytest

from whistlespace.auth.store import UserStore
from whistlespace.enforcement.models import EnforcementAction, EnforcementDecision
from whistlespace.errors import NotFoundError
from whistlespace.notifications.dispatcher import NotificationDispatcher
from whistlespace.notifications.store import Notification, NotificationStore
from whistlespace.notifications.templates import TEMPLATES, render
from whistlespace.security.audit_log import ACTION_ADMIN_ALERT, AuditLogger


class RecordingMailer:
    def __init__(self, ok=True):
        self.ok = ok
        self.sent = []

    async def send(self, to, subject, html):
        self.sent.append((to, subject, html))
        return self.ok


class ExplodingMailer:
    async def send(self, to, subject, html):
        raise RuntimeError("smtp on fire")


def _dispatcher(tmpdir, mailer=None, **kwargs):
    base = Path(tmpdir)
    users = UserStore(base / "auth")
    store = NotificationStore(base / "notifications")
    audit = AuditLogger(base / "audit")
    dispatcher = NotificationDispatcher(store, users, mailer=mailer, audit=audit, **kwargs)
    return dispatcher, users, store, audit


# ---------------------------------------------------------------------------
# Templates
# ---------------------------------------------------------------------------


def test_all_templates_present():
    assert set(TEMPLATES) == {
        "WELCOME",
        "FIRST_WARNING",
        "SECOND_WARNING",
        "FINAL_WARNING",
        "TEMPORARY_BAN",
        "ACCOUNT_UNBANNED",
        "HARASSMENT_DETECTED",
    }
    assert TEMPLATES["TEMPORARY_BAN"].severity == "critical"
    assert TEMPLATES["TEMPORARY_BAN"].type == "ban"


def test_render_substitutes_variables():
    title, message = render("TEMPORARY_BAN", {"duration": "24 hours", "unban_date": "tomorrow"})
    assert title == "🚫 Account Temporarily Suspended"
    assert "suspended for 24 hours" in message
    assert "after tomorrow" in message


def test_render_leaves_missing_placeholders():
    _, message = render("TEMPORARY_BAN", {"duration": "2 hours"})
    assert "{unban_date}" in message


def test_render_unknown_template():
    with pytest.raises(NotFoundError):
        render("NOPE")


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------


def _notification(user_id, i, read=False):
    return Notification(
        id=f"n{i}",
        user_id=user_id,
        title=f"title {i}",
        message="m",
        type="info",
        severity="low",
        read=read,
        timestamp=datetime(2025, 1, 1, 0, i, tzinfo=timezone.utc).isoformat(),
    )


def test_store_paginates_newest_first():
    with tempfile.TemporaryDirectory() as tmpdir:
        store = NotificationStore(tmpdir)
        for i in range(5):
            store.append(_notification("u1", i, read=i < 2))

        page1 = store.list_for_user("u1", page=1, limit=2)
        assert [n.id for n in page1.notifications] == ["n4", "n3"]
        assert page1.total_count == 5
        assert page1.unread_count == 3
        assert page1.total_pages == 3

        page3 = store.list_for_user("u1", page=3, limit=2)
        assert [n.id for n in page3.notifications] == ["n0"]


def test_store_unread_only():
    with tempfile.TemporaryDirectory() as tmpdir:
        store = NotificationStore(tmpdir)
        for i in range(4):
            store.append(_notification("u1", i, read=i % 2 == 0))
        page = store.list_for_user("u1", unread_only=True)
        assert [n.id for n in page.notifications] == ["n3", "n1"]
        assert page.total_count == 2


def test_mark_read_selected_and_all():
    with tempfile.TemporaryDirectory() as tmpdir:
        store = NotificationStore(tmpdir)
        for i in range(3):
            store.append(_notification("u1", i))

        assert store.mark_read("u1", ["n1"]) == 1
        assert store.list_for_user("u1").unread_count == 2
        assert store.mark_read("u1", []) == 2
        assert store.list_for_user("u1").unread_count == 0
        assert store.mark_read("u1") == 0


def test_store_is_per_user():
    with tempfile.TemporaryDirectory() as tmpdir:
        store = NotificationStore(tmpdir)
        store.append(_notification("u1", 0))
        assert store.list_for_user("u2").total_count == 0


# ---------------------------------------------------------------------------
# Dispatcher
# ---------------------------------------------------------------------------


def test_dispatch_in_app_and_email():
    with tempfile.TemporaryDirectory() as tmpdir:
        mailer = RecordingMailer()
        dispatcher, users, store, _ = _dispatcher(tmpdir, mailer)
        user = users.create_user("person@example.com")

        async def run():
            ok = await dispatcher.dispatch(user.id, "FIRST_WARNING", send_email=True)
            await dispatcher.drain()
            return ok

        assert asyncio.run(run()) is True
        page = store.list_for_user(user.id)
        assert page.notifications[0].title == "⚠️ Community Guidelines Reminder"
        assert page.notifications[0].severity == "low"
        assert len(mailer.sent) == 1
        to, subject, html = mailer.sent[0]
        assert to == "person@example.com"
        assert subject == "WhistleSpace - ⚠️ Community Guidelines Reminder"
        assert "/guidelines" in html


def test_dispatch_without_email_flag_sends_nothing():
    with tempfile.TemporaryDirectory() as tmpdir:
        mailer = RecordingMailer()
        dispatcher, users, store, _ = _dispatcher(tmpdir, mailer)
        user = users.create_user("person@example.com")

        async def run():
            await dispatcher.dispatch(user.id, "WELCOME")
            await dispatcher.drain()

        asyncio.run(run())
        assert store.list_for_user(user.id).total_count == 1
        assert mailer.sent == []


def test_email_failure_keeps_notification():
    with tempfile.TemporaryDirectory() as tmpdir:
        dispatcher, users, store, _ = _dispatcher(tmpdir, ExplodingMailer())
        user = users.create_user("person@example.com")

        async def run():
            ok = await dispatcher.dispatch(user.id, "SECOND_WARNING", send_email=True)
            await dispatcher.drain()
            return ok

        assert asyncio.run(run()) is True
        assert store.list_for_user(user.id).total_count == 1
        assert dispatcher.pending == 0


def test_dispatch_unknown_user_or_template():
    with tempfile.TemporaryDirectory() as tmpdir:
        dispatcher, users, store, _ = _dispatcher(tmpdir, RecordingMailer())
        user = users.create_user("person@example.com")

        assert asyncio.run(dispatcher.dispatch("ghost", "WELCOME")) is False
        assert asyncio.run(dispatcher.dispatch(user.id, "NOPE")) is False
        assert store.list_for_user(user.id).total_count == 0


def test_dispatch_storage_failure_returns_false(monkeypatch):
    with tempfile.TemporaryDirectory() as tmpdir:
        mailer = RecordingMailer()
        dispatcher, users, store, _ = _dispatcher(tmpdir, mailer)
        user = users.create_user("person@example.com")

        def disk_full(notification):
            raise OSError("disk full")

        monkeypatch.setattr(store, "append", disk_full)

        async def run():
            sent = await dispatcher.dispatch(user.id, "FIRST_WARNING", send_email=True)
            await dispatcher.drain()
            return sent

        assert asyncio.run(run()) is False
        assert mailer.sent == []


def test_notify_decision_ban_fills_variables():
    with tempfile.TemporaryDirectory() as tmpdir:
        dispatcher, users, store, _ = _dispatcher(tmpdir, RecordingMailer(), ban_duration_hours=24)
        user = users.create_user("person@example.com")
        decision = EnforcementDecision(
            user_id=user.id,
            action=EnforcementAction.temporary_ban,
            new_warning_count=0,
            ban_until=datetime(2025, 6, 2, 9, 30, tzinfo=timezone.utc),
            notify_admins=True,
            violation_type="Harassment",
            template_key="TEMPORARY_BAN",
        )

        async def run():
            ok = await dispatcher.notify_decision(decision)
            await dispatcher.drain()
            return ok

        assert asyncio.run(run()) is True
        message = store.list_for_user(user.id).notifications[0].message
        assert "24 hours" in message
        assert "2025-06-02 09:30 UTC" in message


def test_notify_decision_skips_already_banned():
    with tempfile.TemporaryDirectory() as tmpdir:
        dispatcher, users, store, _ = _dispatcher(tmpdir, RecordingMailer())
        user = users.create_user("person@example.com")
        decision = EnforcementDecision(
            user_id=user.id,
            action=EnforcementAction.none,
            new_warning_count=0,
            already_banned=True,
        )
        assert asyncio.run(dispatcher.notify_decision(decision)) is False
        assert store.list_for_user(user.id).total_count == 0


def test_alert_admins_emails_configured_and_stored_admins():
    with tempfile.TemporaryDirectory() as tmpdir:
        mailer = RecordingMailer()
        dispatcher, users, _, audit = _dispatcher(
            tmpdir, mailer, admin_emails=["ops@example.com"]
        )
        admin = users.create_user("boss@example.com")
        offender = users.create_user("offender@example.com")

        async def run():
            count = await dispatcher.alert_admins(
                offender.id, "TemporaryBan", "Harassment", 0, "x" * 250
            )
            await dispatcher.drain()
            return count

        assert asyncio.run(run()) == 2
        recipients = sorted(to for to, _, _ in mailer.sent)
        assert recipients == ["boss@example.com", "ops@example.com"]
        subject, html = mailer.sent[0][1], mailer.sent[0][2]
        assert subject == "🚨 User Violation Alert - TemporaryBan"
        assert "x" * 200 + "..." in html
        assert "x" * 201 not in html
        assert admin.id not in html

        events = audit.get_events(action=ACTION_ADMIN_ALERT)
        assert len(events) == 1
        assert events[0].resource_id == offender.id
