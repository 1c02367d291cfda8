"""WhistleSpace LLM integration module.

Provides a thin wrapper around the Anthropic API and the feedback
categorisation/sentiment analyzer built on it.
"""

from whistlespace.llm.analyzer import (
    CATEGORIES,
    SENTIMENTS,
    FeedbackAnalysis,
    FeedbackAnalyzer,
)
from whistlespace.llm.client import LLMClient, LLMResponse

__all__ = [
    "CATEGORIES",
    "SENTIMENTS",
    "FeedbackAnalysis",
    "FeedbackAnalyzer",
    "LLMClient",
    "LLMResponse",
]
