"""Feedback categorisation and sentiment analysis.

Analysis never blocks a submission: when the LLM is not configured, errors
out, or replies with something unexpected, the fallbacks ``Other`` and
``Neutral`` are returned.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import anthropic

from whistlespace.llm.client import LLMClient
from whistlespace.llm.prompts import (
    CATEGORY_PROMPT,
    CATEGORY_SYSTEM_PROMPT,
    SENTIMENT_PROMPT,
    SENTIMENT_SYSTEM_PROMPT,
)

logger = logging.getLogger(__name__)

CATEGORIES = ["Harassment", "Suggestion", "Technical Issue", "Praise", "Other"]
SENTIMENTS = ["Positive", "Negative", "Neutral"]

FALLBACK_CATEGORY = "Other"
FALLBACK_SENTIMENT = "Neutral"


@dataclass
class FeedbackAnalysis:
    category: str = FALLBACK_CATEGORY
    sentiment: str = FALLBACK_SENTIMENT


def _match_label(reply: str, labels: list[str], fallback: str) -> str:
    cleaned = reply.strip().strip(".\"'").lower()
    for label in labels:
        if cleaned == label.lower():
            return label
    # Models sometimes wrap the label in a sentence
    for label in labels:
        if label.lower() in cleaned:
            return label
    return fallback


class FeedbackAnalyzer:
    def __init__(self, client: LLMClient) -> None:
        self.client = client

    @property
    def configured(self) -> bool:
        return self.client.configured

    async def _ask(self, prompt: str, system: str, labels: list[str], fallback: str) -> str:
        if not self.client.configured:
            return fallback
        try:
            response = await self.client.complete(prompt, system_prompt=system)
        except anthropic.APIError as exc:
            logger.warning("Feedback analysis failed, using %r: %s", fallback, exc)
            return fallback
        return _match_label(response.content, labels, fallback)

    async def categorize(self, text: str) -> str:
        return await self._ask(
            CATEGORY_PROMPT.format(text=text),
            CATEGORY_SYSTEM_PROMPT,
            CATEGORIES,
            FALLBACK_CATEGORY,
        )

    async def sentiment(self, text: str) -> str:
        return await self._ask(
            SENTIMENT_PROMPT.format(text=text),
            SENTIMENT_SYSTEM_PROMPT,
            SENTIMENTS,
            FALLBACK_SENTIMENT,
        )

    async def analyze(self, text: str) -> FeedbackAnalysis:
        return FeedbackAnalysis(
            category=await self.categorize(text),
            sentiment=await self.sentiment(text),
        )
