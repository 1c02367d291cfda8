"""Tests for LLM-backed feedback analysis fallbacks."""

import asyncio

import anthropic
import httpx

from whistlespace.llm.analyzer import FeedbackAnalyzer
from whistlespace.llm.client import LLMClient, LLMResponse


class FakeClient:
    configured = True

    def __init__(self, replies=None, error=None):
        self.replies = list(replies or [])
        self.error = error
        self.prompts = []

    async def complete(self, prompt, system_prompt=None, **kwargs):
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return LLMResponse(content=self.replies.pop(0))


def test_unconfigured_client_uses_fallbacks():
    analyzer = FeedbackAnalyzer(LLMClient(api_key=""))
    result = asyncio.run(analyzer.analyze("anything"))
    assert result.category == "Other"
    assert result.sentiment == "Neutral"


def test_labels_are_normalised():
    client = FakeClient(replies=["technical issue.", "Sentiment: Negative"])
    result = asyncio.run(FeedbackAnalyzer(client).analyze("the VPN keeps dropping"))
    assert result.category == "Technical Issue"
    assert result.sentiment == "Negative"
    assert "the VPN keeps dropping" in client.prompts[0]


def test_unknown_reply_falls_back():
    client = FakeClient(replies=["Complaint", "Mixed"])
    result = asyncio.run(FeedbackAnalyzer(client).analyze("meh"))
    assert result.category == "Other"
    assert result.sentiment == "Neutral"


def test_api_error_falls_back():
    request = httpx.Request("POST", "https://api.anthropic.com/v1/messages")
    client = FakeClient(error=anthropic.APIConnectionError(request=request))
    result = asyncio.run(FeedbackAnalyzer(client).analyze("hello"))
    assert result.category == "Other"
    assert result.sentiment == "Neutral"
