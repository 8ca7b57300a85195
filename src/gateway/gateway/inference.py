"""Inference providers — thin clients for the two hosted chat-completion APIs.

Both go through the official ``openai`` SDK:

- :class:`PerplexityClient` points ``AsyncOpenAI`` at Perplexity's
  OpenAI-compatible endpoint.  Perplexity-only request fields travel in
  ``extra_body`` and the provider-reported ``citations`` are read from the
  response's extra fields.
- :class:`OpenAIChatClient` talks to OpenAI itself.

Every call is attempted exactly once (``max_retries=0``).  Any non-2xx
status, transport failure or undecodable body surfaces as
:class:`ProviderError`.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from dataclasses import dataclass, field
from typing import Any

import httpx
from openai import APIResponseValidationError, APIStatusError, AsyncOpenAI, OpenAIError

logger = logging.getLogger(__name__)

# Request fields the SDK accepts as keyword arguments; anything else goes in extra_body
_SDK_PARAMS = frozenset({"temperature", "max_tokens", "top_p", "presence_penalty", "frequency_penalty"})


class ProviderError(Exception):
    """An upstream inference call failed."""

    def __init__(self, provider: str, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.provider = provider
        self.message = message
        self.status_code = status_code


@dataclass
class Completion:
    """Text of the first choice plus any provider-reported citations."""

    content: str
    citations: list[Any] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Perplexity (search-augmented)
# ---------------------------------------------------------------------------


class PerplexityClient:
    """Client for Perplexity chat completions."""

    provider = "perplexity"

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.perplexity.ai",
        model: str = "sonar-pro",
        timeout: float = 120.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.model = model
        self.client = AsyncOpenAI(
            api_key=api_key,
            base_url=base_url.rstrip("/"),
            timeout=timeout,
            max_retries=0,
            http_client=httpx.AsyncClient(transport=transport, timeout=timeout) if transport else None,
        )

    def _request(self, messages: list[dict], stream: bool, params: dict[str, Any]) -> dict[str, Any]:
        kwargs: dict[str, Any] = {"model": self.model, "messages": messages, "stream": stream}
        kwargs.update({k: v for k, v in params.items() if k in _SDK_PARAMS})
        extra = {k: v for k, v in params.items() if k not in _SDK_PARAMS}
        if extra:
            kwargs["extra_body"] = extra
        return kwargs

    def _error(self, e: OpenAIError) -> ProviderError:
        if isinstance(e, APIStatusError):
            logger.error("Perplexity API error %d: %s", e.status_code, e.message)
            return ProviderError(self.provider, f"Perplexity API error: {e.message}", e.status_code)
        if isinstance(e, APIResponseValidationError):
            logger.error("Malformed Perplexity response: %s", e)
            return ProviderError(self.provider, "Malformed response from Perplexity API")
        logger.error("Perplexity request failed: %s", e)
        return ProviderError(self.provider, f"Perplexity API request failed: {e}")

    async def complete(self, messages: list[dict], **params: Any) -> Completion:
        """Blocking completion — returns the whole answer at once."""
        logger.info("Perplexity request (model=%s, messages=%d)", self.model, len(messages))
        try:
            response = await self.client.chat.completions.create(**self._request(messages, False, params))
        except OpenAIError as e:
            raise self._error(e) from e

        choices = getattr(response, "choices", None)
        if not choices:
            raise ProviderError(self.provider, "Malformed response from Perplexity API")

        content = choices[0].message.content or ""
        citations = (response.model_extra or {}).get("citations") or []
        logger.debug("Perplexity response: %s...", content[:200])
        return Completion(content=content, citations=citations)

    async def stream(self, messages: list[dict], **params: Any) -> AsyncIterator[str]:
        """Streaming completion — yields answer text fragments as they arrive."""
        logger.info("Perplexity stream (model=%s, messages=%d)", self.model, len(messages))
        try:
            chunks = await self.client.chat.completions.create(**self._request(messages, True, params))
            async for chunk in chunks:
                if not chunk.choices:
                    continue
                fragment = chunk.choices[0].delta.content
                if fragment:
                    yield fragment
        except OpenAIError as e:
            raise self._error(e) from e


# ---------------------------------------------------------------------------
# OpenAI (generic)
# ---------------------------------------------------------------------------


class OpenAIChatClient:
    """Client for OpenAI chat completions via ``AsyncOpenAI``."""

    provider = "openai"

    def __init__(self, api_key: str, model: str = "gpt-4o-mini", client: AsyncOpenAI | None = None) -> None:
        self.model = model
        self.client = client or AsyncOpenAI(api_key=api_key, max_retries=0)

    async def complete(
        self,
        messages: list[dict],
        temperature: float = 0.7,
        max_tokens: int | None = None,
    ) -> Completion:
        logger.info("OpenAI request (model=%s, messages=%d)", self.model, len(messages))
        kwargs: dict[str, Any] = {
            "model": self.model,
            "messages": messages,
            "temperature": temperature,
        }
        if max_tokens is not None:
            kwargs["max_tokens"] = max_tokens

        try:
            response = await self.client.chat.completions.create(**kwargs)
        except APIStatusError as e:
            logger.error("OpenAI API error %s: %s", e.status_code, e.message)
            raise ProviderError(self.provider, f"OpenAI API Error: {e.message}", e.status_code) from e
        except OpenAIError as e:
            logger.error("OpenAI request failed: %s", e)
            raise ProviderError(self.provider, f"OpenAI API Error: {e}") from e

        choice = response.choices[0] if response.choices else None
        content = (choice.message.content if choice else None) or ""
        logger.info(
            "OpenAI response received (finish_reason=%s, model=%s)",
            choice.finish_reason if choice else None,
            response.model,
        )
        return Completion(content=content)
