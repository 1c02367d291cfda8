"""Moderation pipeline: local rules, then one classifier, then a fallback.

Order of operations for :meth:`ModerationPipeline.moderate`:

1. Blank text is accepted immediately as ``empty``.
2. The local rule filter runs; a local flag is final.
3. The first *available* adapter in preference order becomes the primary.
   With none available the pipeline degrades to rule-based moderation.
4. A flag from the primary is returned as-is.
5. Only when the primary *errors* is the next available adapter tried, once.
   A clean answer from the primary is never double-checked.
6. Anything that reaches the end is ``clean`` with provider ``all``.

Adapters are awaited one after another, never concurrently.
"""

from __future__ import annotations

import logging
from typing import Optional, Sequence

import httpx

from whistlespace.config import Settings
from whistlespace.moderation.adapters import (
    ClassifierAdapter,
    OpenAIModerationAdapter,
    PerspectiveAdapter,
)
from whistlespace.moderation.models import ModerationVerdict, Provider
from whistlespace.moderation.rules import LocalRuleFilter

logger = logging.getLogger(__name__)


class ModerationPipeline:
    """Combine the local filter with at most two classifier calls."""

    def __init__(
        self,
        rule_filter: Optional[LocalRuleFilter] = None,
        adapters: Sequence[ClassifierAdapter] = (),
    ) -> None:
        self.rule_filter = rule_filter or LocalRuleFilter()
        self.adapters = list(adapters)

    def available_adapters(self) -> list[ClassifierAdapter]:
        return [a for a in self.adapters if a.available]

    async def moderate(self, text: str) -> ModerationVerdict:
        if not text or not text.strip():
            return ModerationVerdict(flagged=False, reason="empty", provider=Provider.none)

        rule = self.rule_filter.check(text)
        if rule.flagged:
            logger.info("Local rule %s flagged submission", rule.details.get("rule"))
            return ModerationVerdict(
                flagged=True,
                reason=rule.reason,
                provider=Provider.local,
                details=rule.details,
            )

        candidates = self.available_adapters()
        if not candidates:
            return ModerationVerdict(
                flagged=False, reason="rule-based only", provider=Provider.none
            )

        primary = candidates[0]
        secondary = candidates[1] if len(candidates) > 1 else None

        result = await primary.classify(text)
        if result.ok:
            if result.verdict.flagged:
                return result.verdict
            return self._clean(result.verdict, [primary.name])

        checked = [primary.name]
        errors = {primary.name: str(result.error)}
        scores = None
        if secondary is not None:
            logger.info(
                "Primary classifier %s failed, falling back to %s", primary.name, secondary.name
            )
            fallback = await secondary.classify(text)
            checked.append(secondary.name)
            if fallback.ok:
                if fallback.verdict.flagged:
                    return fallback.verdict
                scores = fallback.verdict.scores
            else:
                errors[secondary.name] = str(fallback.error)

        if len(errors) == len(checked):
            logger.warning("No classifier answered; accepting submission (%s)", ", ".join(checked))
        return ModerationVerdict(
            flagged=False,
            reason="clean",
            provider=Provider.all,
            scores=scores,
            details={"checked": checked, "errors": errors},
        )

    @staticmethod
    def _clean(verdict: ModerationVerdict, checked: list[str]) -> ModerationVerdict:
        return ModerationVerdict(
            flagged=False,
            reason="clean",
            provider=Provider.all,
            scores=verdict.scores,
            details={"checked": checked},
        )


def build_pipeline(
    settings: Settings,
    client: Optional[httpx.AsyncClient] = None,
) -> ModerationPipeline:
    """Wire the pipeline from settings: Perspective first, OpenAI second."""
    common = {
        "timeout": settings.classifier_timeout,
        "threshold": settings.flag_threshold,
        "client": client,
    }
    adapters: list[ClassifierAdapter] = [
        PerspectiveAdapter(api_key=settings.perspective_api_key, **common),
        OpenAIModerationAdapter(api_key=settings.openai_api_key, **common),
    ]
    rule_filter = LocalRuleFilter(settings.bad_words, settings.max_text_length)
    return ModerationPipeline(rule_filter, adapters)
