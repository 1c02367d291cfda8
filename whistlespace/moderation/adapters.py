"""Adapters for external text classifiers.

Each adapter wraps exactly one HTTP classification call and normalises the
provider's response into a :class:`ModerationVerdict`.  Adapters never
raise: every outcome comes back as an :class:`AdapterResult` holding either
a verdict or a typed error.  Cancellation is the one exception and is left
to propagate so an abandoned request does not keep a call alive.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Optional

import httpx

from whistlespace.errors import ClassifierTimeout, ConfigurationError, TransientError
from whistlespace.moderation.models import AdapterResult, ModerationVerdict, Provider

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 2.0
DEFAULT_THRESHOLD = 0.5

PERSPECTIVE_URL = "https://commentanalyzer.googleapis.com/v1alpha1/comments:analyze"
OPENAI_MODERATION_URL = "https://api.openai.com/v1/moderations"

PERSPECTIVE_ATTRIBUTES = (
    "TOXICITY",
    "SEVERE_TOXICITY",
    "THREAT",
    "INSULT",
    "IDENTITY_ATTACK",
)


class ClassifierAdapter:
    """Base class for one external classifier.

    Parameters
    ----------
    api_key : str
        Provider credential.  An empty key makes the adapter permanently
        unavailable.
    timeout : float
        Default time budget in seconds for a single call.
    threshold : float
        Score above which an attribute counts as a flag.
    client : httpx.AsyncClient | None
        Shared client.  When *None* a short-lived client is opened per call.
    """

    name = "classifier"
    provider = Provider.none

    def __init__(
        self,
        api_key: str = "",
        timeout: float = DEFAULT_TIMEOUT,
        threshold: float = DEFAULT_THRESHOLD,
        client: Optional[httpx.AsyncClient] = None,
        url: Optional[str] = None,
    ) -> None:
        self.api_key = api_key
        self.timeout = timeout
        self.threshold = threshold
        self._client = client
        if url:
            self.url = url

    @property
    def available(self) -> bool:
        return bool(self.api_key)

    # -- provider hooks ------------------------------------------------------

    def _build_request(self, text: str) -> tuple[str, dict[str, str], dict[str, Any]]:
        raise NotImplementedError

    def _normalize(self, payload: dict[str, Any]) -> ModerationVerdict:
        raise NotImplementedError

    # -- transport -----------------------------------------------------------

    async def _post(self, text: str, timeout: float) -> dict[str, Any]:
        url, headers, body = self._build_request(text)
        if self._client is not None:
            response = await self._client.post(url, json=body, headers=headers, timeout=timeout)
        else:
            async with httpx.AsyncClient(timeout=timeout) as client:
                response = await client.post(url, json=body, headers=headers)
        response.raise_for_status()
        return response.json()

    # -- public API ----------------------------------------------------------

    async def classify(self, text: str, timeout: Optional[float] = None) -> AdapterResult:
        """Classify *text* with a hard time limit."""
        if not self.available:
            return AdapterResult(
                adapter=self.name,
                error=ConfigurationError(f"{self.name} is not configured"),
            )

        budget = self.timeout if timeout is None else timeout
        start = time.monotonic()
        error: Optional[Exception] = None
        verdict: Optional[ModerationVerdict] = None
        try:
            payload = await asyncio.wait_for(self._post(text, budget), timeout=budget)
            verdict = self._normalize(payload)
        except (asyncio.TimeoutError, httpx.TimeoutException):
            error = ClassifierTimeout(f"{self.name} did not answer within {budget:.2f}s")
        except httpx.HTTPStatusError as exc:
            error = TransientError(f"{self.name} returned HTTP {exc.response.status_code}")
        except httpx.HTTPError as exc:
            error = TransientError(f"{self.name} transport error: {exc}")
        except (AttributeError, KeyError, IndexError, TypeError, ValueError) as exc:
            error = TransientError(f"{self.name} returned a malformed response: {exc}")

        latency_ms = int((time.monotonic() - start) * 1000)
        if error is not None:
            logger.warning("Classifier %s failed after %dms: %s", self.name, latency_ms, error)
            return AdapterResult(adapter=self.name, error=error, latency_ms=latency_ms)

        logger.debug(
            "Classifier %s answered in %dms (flagged=%s)", self.name, latency_ms, verdict.flagged
        )
        return AdapterResult(adapter=self.name, verdict=verdict, latency_ms=latency_ms)

    def _over_threshold(self, scores: dict[str, float]) -> list[str]:
        return sorted(name for name, score in scores.items() if score > self.threshold)


class PerspectiveAdapter(ClassifierAdapter):
    """Google Perspective API (``comments:analyze``)."""

    name = "perspective"
    provider = Provider.perspective
    url = PERSPECTIVE_URL

    def _build_request(self, text):
        body = {
            "comment": {"text": text},
            "languages": ["en"],
            "requestedAttributes": {attr: {} for attr in PERSPECTIVE_ATTRIBUTES},
            "doNotStore": True,
        }
        return f"{self.url}?key={self.api_key}", {}, body

    def _normalize(self, payload):
        scores: dict[str, float] = {}
        for attr, data in payload["attributeScores"].items():
            scores[attr.lower()] = float(data["summaryScore"]["value"])

        over = self._over_threshold(scores)
        if over:
            reason = "High " + ", ".join(a.replace("_", " ") for a in over) + " score"
        else:
            reason = "clean"
        return ModerationVerdict(
            flagged=bool(over),
            reason=reason,
            provider=self.provider,
            scores=scores,
            details={"attributes": over},
        )


class OpenAIModerationAdapter(ClassifierAdapter):
    """OpenAI moderation endpoint (``POST /v1/moderations``)."""

    name = "openai"
    provider = Provider.openai
    url = OPENAI_MODERATION_URL

    def _build_request(self, text):
        headers = {"Authorization": f"Bearer {self.api_key}"}
        return self.url, headers, {"input": text}

    def _normalize(self, payload):
        result = payload["results"][0]
        scores = {
            name: float(value)
            for name, value in (result.get("category_scores") or {}).items()
        }
        categories = sorted(k for k, v in (result.get("categories") or {}).items() if v)
        over = self._over_threshold(scores)
        provider_flag = bool(result.get("flagged", False))

        flagged = provider_flag or bool(over)
        if flagged:
            hits = sorted(set(categories) | set(over))
            reason = "Flagged by OpenAI moderation"
            if hits:
                reason += ": " + ", ".join(hits)
        else:
            reason = "clean"
        return ModerationVerdict(
            flagged=flagged,
            reason=reason,
            provider=self.provider,
            scores=scores,
            details={"categories": categories, "provider_flag": provider_flag},
        )
