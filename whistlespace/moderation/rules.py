"""Local rule-based content filter.

A pure, synchronous scan that runs before any external classifier.  It
catches profanity from a fixed word list and the usual spam shapes
(character floods, shouting, long digit runs, repeated chunks, oversized
posts).  The first rule that fires decides the result; no severity score is
computed.
"""

from __future__ import annotations

import re
from typing import Iterable, Optional

from whistlespace.config import DEFAULT_BAD_WORDS
from whistlespace.moderation.models import RuleResult

MAX_TEXT_LENGTH = 2000

# ---------------------------------------------------------------------------
# Spam patterns
# ---------------------------------------------------------------------------

# (rule name, pattern, reason)
_SPAM_PATTERNS: list[tuple[str, re.Pattern[str], str]] = [
    (
        "char_flood",
        re.compile(r"(\S)\1{8,}"),
        "Excessive character repetition",
    ),
    (
        "char_repeat",
        re.compile(r"(\S)\1{5,7}"),
        "Repeated characters",
    ),
    (
        "shouting",
        re.compile(r"[A-Z]{15,}"),
        "Excessive capital letters",
    ),
    (
        "digits",
        re.compile(r"\d{10,}"),
        "Long number sequence (possible personal information)",
    ),
    (
        "chunk_repeat",
        re.compile(r"(\S{1,3}?)\1{4,}"),
        "Repeated text pattern",
    ),
]


def _excerpt(text: str, limit: int = 40) -> str:
    return text if len(text) <= limit else text[:limit] + "..."


def check(
    text: str,
    bad_words: Optional[Iterable[str]] = None,
    max_length: int = MAX_TEXT_LENGTH,
) -> RuleResult:
    """Scan *text* against the local rules and return a :class:`RuleResult`."""
    if len(text) > max_length:
        return RuleResult(
            flagged=True,
            reason=f"Text exceeds maximum length of {max_length} characters",
            details={"rule": "length", "match": str(len(text))},
        )

    lowered = text.lower()
    words = DEFAULT_BAD_WORDS if bad_words is None else bad_words
    for word in words:
        if word and word.lower() in lowered:
            return RuleResult(
                flagged=True,
                reason="Inappropriate language",
                details={"rule": "bad_word", "match": word},
            )

    for name, pattern, reason in _SPAM_PATTERNS:
        m = pattern.search(text)
        if m:
            return RuleResult(
                flagged=True,
                reason=reason,
                details={"rule": name, "match": _excerpt(m.group(0))},
            )

    return RuleResult(flagged=False)


class LocalRuleFilter:
    """:func:`check` bound to a configured word list and length cap."""

    def __init__(
        self,
        bad_words: Optional[Iterable[str]] = None,
        max_length: int = MAX_TEXT_LENGTH,
    ) -> None:
        source = DEFAULT_BAD_WORDS if bad_words is None else bad_words
        self.bad_words: tuple[str, ...] = tuple(w.lower() for w in source if w)
        self.max_length = max_length

    def check(self, text: str) -> RuleResult:
        return check(text, self.bad_words, self.max_length)
