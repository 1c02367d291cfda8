"""Tests for the moderation pipeline's ordering and fallback behaviour."""

import asyncio

import httpx

from whistlespace.config import Settings
from whistlespace.errors import ClassifierTimeout, ConfigurationError, TransientError
from whistlespace.moderation.adapters import OpenAIModerationAdapter, PerspectiveAdapter
from whistlespace.moderation.models import AdapterResult, ModerationVerdict, Provider
from whistlespace.moderation.pipeline import ModerationPipeline, build_pipeline


class FakeAdapter:
    """Stands in for a classifier; records every call."""

    def __init__(self, name, provider, flagged=False, error=None, available=True):
        self.name = name
        self.provider = provider
        self.flagged = flagged
        self.error = error
        self.available = available
        self.calls = []

    async def classify(self, text, timeout=None):
        self.calls.append(text)
        if not self.available:
            return AdapterResult(adapter=self.name, error=ConfigurationError("missing key"))
        if self.error is not None:
            return AdapterResult(adapter=self.name, error=self.error)
        return AdapterResult(
            adapter=self.name,
            verdict=ModerationVerdict(
                flagged=self.flagged,
                reason="toxic" if self.flagged else "clean",
                provider=self.provider,
                scores={"toxicity": 0.9 if self.flagged else 0.1},
            ),
        )


def _adapters(**kwargs):
    a = FakeAdapter("perspective", Provider.perspective, **kwargs.get("a", {}))
    b = FakeAdapter("openai", Provider.openai, **kwargs.get("b", {}))
    return a, b


def _moderate(pipeline, text):
    return asyncio.run(pipeline.moderate(text))


def test_empty_text_is_clean_without_calls():
    a, b = _adapters()
    pipeline = ModerationPipeline(adapters=[a, b])
    for text in ("", "   ", "\n\t"):
        verdict = _moderate(pipeline, text)
        assert verdict.flagged is False
        assert verdict.provider == Provider.none
    assert a.calls == [] and b.calls == []


def test_bad_word_short_circuits_adapters():
    a, b = _adapters()
    verdict = _moderate(ModerationPipeline(adapters=[a, b]), "you are a bastard")
    assert verdict.flagged is True
    assert verdict.provider == Provider.local
    assert a.calls == [] and b.calls == []


def test_no_adapters_is_rule_based_only():
    a, b = _adapters(a={"available": False}, b={"available": False})
    verdict = _moderate(ModerationPipeline(adapters=[a, b]), "all good here")
    assert verdict.flagged is False
    assert verdict.reason == "rule-based only"
    assert verdict.provider == Provider.none
    assert a.calls == [] and b.calls == []


def test_primary_flag_skips_secondary():
    a, b = _adapters(a={"flagged": True})
    verdict = _moderate(ModerationPipeline(adapters=[a, b]), "mean words")
    assert verdict.flagged is True
    assert verdict.provider == Provider.perspective
    assert len(a.calls) == 1
    assert b.calls == []


def test_primary_clean_skips_secondary():
    a, b = _adapters(b={"flagged": True})
    verdict = _moderate(ModerationPipeline(adapters=[a, b]), "nice words")
    assert verdict.flagged is False
    assert verdict.reason == "clean"
    assert verdict.provider == Provider.all
    assert b.calls == []


def test_primary_timeout_falls_back_once():
    a, b = _adapters(a={"error": ClassifierTimeout("slow")}, b={"flagged": True})
    verdict = _moderate(ModerationPipeline(adapters=[a, b]), "mean words")
    assert verdict.flagged is True
    assert verdict.provider == Provider.openai
    assert len(a.calls) == 1
    assert len(b.calls) == 1


def test_primary_error_secondary_clean():
    a, b = _adapters(a={"error": TransientError("boom")})
    verdict = _moderate(ModerationPipeline(adapters=[a, b]), "fine words")
    assert verdict.flagged is False
    assert verdict.provider == Provider.all
    assert verdict.details["checked"] == ["perspective", "openai"]
    assert "perspective" in verdict.details["errors"]
    assert len(b.calls) == 1


def test_both_fail_degrades_to_clean():
    a, b = _adapters(a={"error": TransientError("a down")}, b={"error": ClassifierTimeout("b slow")})
    verdict = _moderate(ModerationPipeline(adapters=[a, b]), "anything")
    assert verdict.flagged is False
    assert verdict.reason == "clean"
    assert set(verdict.details["errors"]) == {"perspective", "openai"}


def test_missing_primary_promotes_secondary():
    a, b = _adapters(a={"available": False}, b={"flagged": True})
    verdict = _moderate(ModerationPipeline(adapters=[a, b]), "mean words")
    assert verdict.flagged is True
    assert verdict.provider == Provider.openai
    assert a.calls == []
    assert len(b.calls) == 1


def test_single_adapter_failure_has_no_fallback():
    a, _ = _adapters(a={"error": TransientError("down")})
    verdict = _moderate(ModerationPipeline(adapters=[a]), "anything")
    assert verdict.flagged is False
    assert verdict.details["checked"] == ["perspective"]


def test_build_pipeline_orders_perspective_first():
    settings = Settings(perspective_api_key="p", openai_api_key="o", classifier_timeout_ms=1500)
    pipeline = build_pipeline(settings)
    assert isinstance(pipeline.adapters[0], PerspectiveAdapter)
    assert isinstance(pipeline.adapters[1], OpenAIModerationAdapter)
    assert pipeline.adapters[0].timeout == 1.5
    assert [a.name for a in pipeline.available_adapters()] == ["perspective", "openai"]


def test_build_pipeline_without_keys():
    pipeline = build_pipeline(Settings())
    assert pipeline.available_adapters() == []


def test_malformed_primary_body_falls_back_to_secondary():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request.url.host)
        if "openai" in request.url.host:
            return httpx.Response(200, json={"results": [{"flagged": True, "category_scores": {}}]})
        return httpx.Response(200, json={"attributeScores": []})

    async def _run():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            pipeline = ModerationPipeline(
                adapters=[
                    PerspectiveAdapter(api_key="p", client=client),
                    OpenAIModerationAdapter(api_key="o", client=client),
                ]
            )
            return await pipeline.moderate("hello there friend")

    verdict = asyncio.run(_run())
    assert verdict.flagged is True
    assert verdict.provider == Provider.openai
    assert len(calls) == 2
