"""Outbound email.

Delivery is best-effort: a mailer reports failure through its return value
and never raises into the caller.  :class:`SMTPMailer` uses ``smtplib`` in a
worker thread so the event loop is not blocked.
"""

from __future__ import annotations

import asyncio
import logging
import smtplib
from email.message import EmailMessage
from typing import Protocol, runtime_checkable

from whistlespace.config import Settings

logger = logging.getLogger(__name__)


@runtime_checkable
class Mailer(Protocol):
    async def send(self, to: str, subject: str, html: str) -> bool: ...


class NullMailer:
    """Used when no SMTP host is configured.  Logs and reports failure."""

    async def send(self, to: str, subject: str, html: str) -> bool:
        logger.info("Email delivery disabled; dropping %r to %s", subject, to)
        return False


class SMTPMailer:
    def __init__(
        self,
        host: str,
        port: int = 587,
        username: str = "",
        password: str = "",
        sender: str = "",
        timeout: float = 10.0,
    ) -> None:
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.sender = sender or username
        self.timeout = timeout

    def _build(self, to: str, subject: str, html: str) -> EmailMessage:
        msg = EmailMessage()
        msg["From"] = self.sender
        msg["To"] = to
        msg["Subject"] = subject
        msg.set_content("This message requires an HTML-capable mail client.")
        msg.add_alternative(html, subtype="html")
        return msg

    def _send_sync(self, msg: EmailMessage) -> None:
        with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as smtp:
            smtp.starttls()
            if self.username:
                smtp.login(self.username, self.password)
            smtp.send_message(msg)

    async def send(self, to: str, subject: str, html: str) -> bool:
        try:
            await asyncio.to_thread(self._send_sync, self._build(to, subject, html))
        except (smtplib.SMTPException, OSError) as exc:
            logger.warning("Email to %s failed: %s", to, exc)
            return False
        logger.info("Email sent to %s: %s", to, subject)
        return True


def build_mailer(settings: Settings) -> Mailer:
    if not settings.smtp_host:
        return NullMailer()
    return SMTPMailer(
        host=settings.smtp_host,
        port=settings.smtp_port,
        username=settings.smtp_user,
        password=settings.smtp_password,
        sender=settings.mail_from,
    )
