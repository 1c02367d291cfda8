"""Content moderation: local rules, classifier adapters and the pipeline."""

from whistlespace.moderation.models import AdapterResult, ModerationVerdict, Provider, RuleResult
from whistlespace.moderation.pipeline import ModerationPipeline, build_pipeline
from whistlespace.moderation.rules import LocalRuleFilter, check

__all__ = [
    "AdapterResult",
    "LocalRuleFilter",
    "ModerationPipeline",
    "ModerationVerdict",
    "Provider",
    "RuleResult",
    "build_pipeline",
    "check",
]
