"""Tests for gateway.inference — provider clients.

Perplexity calls go through the SDK over ``httpx.MockTransport``; the
OpenAI SDK client is replaced by a mock.
"""

from __future__ import annotations

import json
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import httpx
import openai
import pytest

from gateway.inference import Completion, OpenAIChatClient, PerplexityClient, ProviderError

_MESSAGES = [{"role": "user", "content": "hello"}]


def _perplexity(handler) -> PerplexityClient:
    return PerplexityClient(
        api_key="pk-test",
        base_url="https://perplexity.test/",
        model="sonar-pro",
        transport=httpx.MockTransport(handler),
    )


def _completion_body(content: str, **extra) -> dict:
    return {
        "id": "cmpl-1",
        "object": "chat.completion",
        "created": 1700000000,
        "model": "sonar-pro",
        "choices": [{"index": 0, "message": {"role": "assistant", "content": content}, "finish_reason": "stop"}],
        **extra,
    }


def _sse(*payloads: dict | str) -> bytes:
    frames = []
    for p in payloads:
        data = p if isinstance(p, str) else json.dumps(p)
        frames.append(f"data: {data}\n\n")
    return "".join(frames).encode()


def _delta(text: str | None) -> dict:
    delta = {} if text is None else {"content": text}
    return {
        "id": "cmpl-1",
        "object": "chat.completion.chunk",
        "created": 1700000000,
        "model": "sonar-pro",
        "choices": [{"index": 0, "delta": delta, "finish_reason": None}],
    }


# ---------------------------------------------------------------------------
# Perplexity, blocking
# ---------------------------------------------------------------------------


class TestPerplexityComplete:
    @pytest.mark.asyncio
    async def test_request_shape(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=_completion_body("answer"))

        result = await _perplexity(handler).complete(_MESSAGES, temperature=0.2)

        request = seen[0]
        assert str(request.url) == "https://perplexity.test/chat/completions"
        assert request.headers["authorization"] == "Bearer pk-test"
        body = json.loads(request.content)
        assert body["model"] == "sonar-pro"
        assert body["stream"] is False
        assert body["temperature"] == 0.2
        assert body["messages"] == _MESSAGES
        assert result == Completion(content="answer", citations=[])

    @pytest.mark.asyncio
    async def test_provider_fields_in_body_and_citations_returned(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=_completion_body("x", citations=["https://a.example"]))

        result = await _perplexity(handler).complete(
            _MESSAGES, frequency_penalty=0.5, return_citations=True
        )

        body = json.loads(seen[0].content)
        assert body["return_citations"] is True
        assert body["frequency_penalty"] == 0.5
        assert result.citations == ["https://a.example"]

    @pytest.mark.asyncio
    async def test_non_2xx_is_attempted_once(self) -> None:
        calls: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(503, json={"error": "overloaded"})

        with pytest.raises(ProviderError) as exc_info:
            await _perplexity(handler).complete(_MESSAGES)

        assert len(calls) == 1
        assert exc_info.value.status_code == 503
        assert exc_info.value.provider == "perplexity"
        assert exc_info.value.message.startswith("Perplexity API error")

    @pytest.mark.asyncio
    async def test_malformed_body(self) -> None:
        client = _perplexity(lambda request: httpx.Response(200, text="<html>oops</html>"))

        with pytest.raises(ProviderError, match="Malformed"):
            await client.complete(_MESSAGES)

    @pytest.mark.asyncio
    async def test_missing_choices(self) -> None:
        client = _perplexity(lambda request: httpx.Response(200, json={"id": "x", "choices": []}))

        with pytest.raises(ProviderError, match="Malformed"):
            await client.complete(_MESSAGES)

    @pytest.mark.asyncio
    async def test_transport_failure(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(ProviderError, match="request failed") as exc_info:
            await _perplexity(handler).complete(_MESSAGES)

        assert exc_info.value.status_code is None


# ---------------------------------------------------------------------------
# Perplexity, streaming
# ---------------------------------------------------------------------------


class TestPerplexityStream:
    @pytest.mark.asyncio
    async def test_yields_fragments(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(
                200,
                content=_sse(_delta("Hel"), _delta(None), _delta("lo"), "[DONE]"),
                headers={"content-type": "text/event-stream"},
            )

        fragments = [f async for f in _perplexity(handler).stream(_MESSAGES)]

        assert fragments == ["Hel", "lo"]
        assert json.loads(seen[0].content)["stream"] is True

    @pytest.mark.asyncio
    async def test_non_2xx(self) -> None:
        client = _perplexity(lambda request: httpx.Response(500, json={"error": "upstream down"}))

        with pytest.raises(ProviderError) as exc_info:
            async for _ in client.stream(_MESSAGES):
                pass

        assert exc_info.value.status_code == 500

    @pytest.mark.asyncio
    async def test_transport_failure(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("slow", request=request)

        with pytest.raises(ProviderError, match="request failed"):
            async for _ in _perplexity(handler).stream(_MESSAGES):
                pass


# ---------------------------------------------------------------------------
# OpenAI
# ---------------------------------------------------------------------------


def _openai_response(content: str | None) -> SimpleNamespace:
    return SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content=content), finish_reason="stop")],
        model="gpt-4o-mini",
    )


class TestOpenAIChatClient:
    def _client(self, create: AsyncMock) -> OpenAIChatClient:
        sdk = MagicMock()
        sdk.chat.completions.create = create
        return OpenAIChatClient(api_key="sk-test", model="gpt-4o-mini", client=sdk)

    @pytest.mark.asyncio
    async def test_complete(self) -> None:
        create = AsyncMock(return_value=_openai_response("formatted"))

        result = await self._client(create).complete(_MESSAGES, temperature=0.3, max_tokens=4000)

        assert result.content == "formatted"
        kwargs = create.call_args.kwargs
        assert kwargs["model"] == "gpt-4o-mini"
        assert kwargs["temperature"] == 0.3
        assert kwargs["max_tokens"] == 4000

    @pytest.mark.asyncio
    async def test_max_tokens_omitted_by_default(self) -> None:
        create = AsyncMock(return_value=_openai_response("x"))
        await self._client(create).complete(_MESSAGES)
        assert "max_tokens" not in create.call_args.kwargs

    @pytest.mark.asyncio
    async def test_none_content_becomes_empty(self) -> None:
        create = AsyncMock(return_value=_openai_response(None))
        assert (await self._client(create).complete(_MESSAGES)).content == ""

    @pytest.mark.asyncio
    async def test_status_error(self) -> None:
        request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
        error = openai.APIStatusError(
            "Rate limit reached",
            response=httpx.Response(429, request=request),
            body=None,
        )
        create = AsyncMock(side_effect=error)

        with pytest.raises(ProviderError) as exc_info:
            await self._client(create).complete(_MESSAGES)

        assert exc_info.value.status_code == 429
        assert exc_info.value.message == "OpenAI API Error: Rate limit reached"

    @pytest.mark.asyncio
    async def test_connection_error(self) -> None:
        request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
        create = AsyncMock(side_effect=openai.APIConnectionError(request=request))

        with pytest.raises(ProviderError) as exc_info:
            await self._client(create).complete(_MESSAGES)

        assert exc_info.value.status_code is None
