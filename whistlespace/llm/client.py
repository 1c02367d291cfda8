"""LLM client wrapper for WhistleSpace.

Provides a small async interface to the Anthropic API with graceful
fallback when no API key is configured.
"""

from __future__ import annotations

import os
import time
from dataclasses import dataclass
from typing import Optional

import anthropic


DEFAULT_MODEL = "claude-haiku-3-5-20241022"


# ---------------------------------------------------------------------------
# Response dataclass
# ---------------------------------------------------------------------------


@dataclass
class LLMResponse:
    """Structured response from an LLM call."""

    content: str
    model: str = ""
    input_tokens: int = 0
    output_tokens: int = 0
    latency_ms: int = 0


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------


class LLMClient:
    """Thin wrapper around the Anthropic Python SDK.

    Parameters
    ----------
    model : str
        Model identifier to use for completions.
    api_key : str | None
        Anthropic API key.  Falls back to the ``ANTHROPIC_API_KEY``
        environment variable when *None*.
    timeout : float
        Per-request timeout in seconds.
    """

    def __init__(
        self,
        model: str = DEFAULT_MODEL,
        api_key: Optional[str] = None,
        timeout: float = 10.0,
    ) -> None:
        self.model = model
        self.api_key = api_key if api_key is not None else os.environ.get("ANTHROPIC_API_KEY", "")
        self._configured = bool(self.api_key)

        if self._configured:
            self._async_client = anthropic.AsyncAnthropic(api_key=self.api_key, timeout=timeout)
        else:
            self._async_client = None  # type: ignore[assignment]

    @property
    def configured(self) -> bool:
        """Return *True* if an API key is available."""
        return self._configured

    async def complete(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        max_tokens: int = 16,
        temperature: float = 0.0,
    ) -> LLMResponse:
        """Send a completion request and return an :class:`LLMResponse`.

        Raises ``anthropic.APIError`` subclasses on failure; callers decide
        what to fall back to.  Must not be called when not configured.
        """
        if not self._configured:
            raise RuntimeError("LLM not configured. Set ANTHROPIC_API_KEY.")

        kwargs: dict = {
            "model": self.model,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "messages": [{"role": "user", "content": prompt}],
        }
        if system_prompt:
            kwargs["system"] = system_prompt

        start = time.monotonic()
        response = await self._async_client.messages.create(**kwargs)
        latency_ms = int((time.monotonic() - start) * 1000)

        content = response.content[0].text if response.content else ""
        return LLMResponse(
            content=content,
            model=self.model,
            input_tokens=response.usage.input_tokens,
            output_tokens=response.usage.output_tokens,
            latency_ms=latency_ms,
        )
