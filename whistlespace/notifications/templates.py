"""Fixed notification templates keyed by name."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Optional

from whistlespace.errors import NotFoundError


@dataclass(frozen=True)
class Template:
    key: str
    title: str
    message: str
    type: str
    severity: str


TEMPLATES: dict[str, Template] = {
    t.key: t
    for t in (
        Template(
            key="FIRST_WARNING",
            title="⚠️ Community Guidelines Reminder",
            message=(
                "You have been flagged once for potentially inappropriate content. "
                "Please review our community guidelines to ensure your future "
                "submissions are constructive and respectful."
            ),
            type="warning",
            severity="low",
        ),
        Template(
            key="SECOND_WARNING",
            title="⚠️ Second Warning - Account at Risk",
            message=(
                "You have received two warnings for policy violations. One more "
                "violation may result in temporary account suspension. Please ensure "
                "all future feedback follows our community standards."
            ),
            type="warning",
            severity="medium",
        ),
        Template(
            key="FINAL_WARNING",
            title="🚨 Final Warning - Immediate Action Required",
            message=(
                "This is your final warning. You have accumulated multiple violations. "
                "Any further inappropriate behavior will result in account suspension. "
                "Please review our terms of service immediately."
            ),
            type="warning",
            severity="high",
        ),
        Template(
            key="TEMPORARY_BAN",
            title="🚫 Account Temporarily Suspended",
            message=(
                "Your account has been temporarily suspended for {duration} due to "
                "repeated policy violations. You can resume using the platform after "
                "{unban_date}. During this time, please review our community guidelines."
            ),
            type="ban",
            severity="critical",
        ),
        Template(
            key="ACCOUNT_UNBANNED",
            title="✅ Account Reinstated",
            message=(
                "Your account suspension has been lifted. Welcome back! Please remember "
                "to follow our community guidelines to maintain a positive environment "
                "for all users."
            ),
            type="info",
            severity="low",
        ),
        Template(
            key="HARASSMENT_DETECTED",
            title="🛡️ Content Under Review",
            message=(
                "Your recent submission has been flagged for potential harassment. Our "
                "team is reviewing it. If you believe this is an error, please contact "
                "support."
            ),
            type="review",
            severity="medium",
        ),
        Template(
            key="WELCOME",
            title="🎉 Welcome to WhistleSpace!",
            message=(
                "Thank you for joining our community! Please take a moment to review "
                "our community guidelines to ensure a positive experience for everyone."
            ),
            type="info",
            severity="low",
        ),
    )
}

_PLACEHOLDER = re.compile(r"\{(\w+)\}")


def get_template(key: str) -> Template:
    try:
        return TEMPLATES[key]
    except KeyError:
        raise NotFoundError(f"Unknown notification template: {key}") from None


def render(key: str, variables: Optional[dict[str, Any]] = None) -> tuple[str, str]:
    """Return ``(title, message)`` with ``{name}`` placeholders filled in.

    Placeholders without a matching variable are left untouched.
    """
    template = get_template(key)
    variables = variables or {}

    def _sub(match: re.Match) -> str:
        name = match.group(1)
        if name in variables and variables[name] is not None:
            return str(variables[name])
        return match.group(0)

    return template.title, _PLACEHOLDER.sub(_sub, template.message)
