"""Data models for the content moderation pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from whistlespace.errors import WhistleSpaceError


class Provider(str, Enum):
    """Which stage of the pipeline produced a verdict."""

    local = "local"
    perspective = "perspective"  # provider A
    openai = "openai"  # provider B
    none = "none"
    all = "all"


@dataclass(frozen=True)
class ModerationVerdict:
    """Outcome of moderating one piece of text.

    Created once per submission and attached to the feedback record.
    """

    flagged: bool
    reason: str
    provider: Provider
    scores: Optional[dict[str, float]] = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    details: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "flagged": self.flagged,
            "reason": self.reason,
            "provider": self.provider.value,
            "scores": dict(self.scores) if self.scores is not None else None,
            "timestamp": self.timestamp.isoformat(),
            "details": dict(self.details),
        }

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> "ModerationVerdict":
        ts = d.get("timestamp")
        return cls(
            flagged=bool(d.get("flagged", False)),
            reason=d.get("reason", ""),
            provider=Provider(d.get("provider", "none")),
            scores=d.get("scores"),
            timestamp=datetime.fromisoformat(ts) if ts else datetime.now(timezone.utc),
            details=d.get("details") or {},
        )


@dataclass
class RuleResult:
    """Result of the local rule filter."""

    flagged: bool
    reason: str = ""
    details: dict[str, Any] = field(default_factory=dict)


@dataclass
class AdapterResult:
    """What a classifier adapter hands back: a verdict or a typed error."""

    adapter: str
    verdict: Optional[ModerationVerdict] = None
    error: Optional[WhistleSpaceError] = None
    latency_ms: int = 0

    @property
    def ok(self) -> bool:
        return self.verdict is not None and self.error is None
