"""HTTP client for the perspective gateway.

Each call opens its own ``httpx.AsyncClient``; the gateway is stateless so
nothing is shared between requests.  Non-2xx responses are raised as
:class:`GatewayError` carrying the gateway's ``{"error": ...}`` message.
"""

from __future__ import annotations

import json
import logging
from collections.abc import AsyncIterator, Sequence
from typing import Any

import httpx

from app.models import Article, AuthorInfo, ChatMessage, Viewpoint

logger = logging.getLogger(__name__)

_DATA_PREFIX = "data:"


class GatewayError(Exception):
    """The gateway answered with an error or could not be reached."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def _error_message(response: httpx.Response) -> str:
    try:
        return response.json().get("error") or response.reason_phrase
    except (ValueError, AttributeError):
        return response.reason_phrase or f"HTTP {response.status_code}"


def _perspectives_from(data: dict[str, Any]) -> dict[str, Viewpoint]:
    return {key: Viewpoint.from_dict(value) for key, value in data.items()}


class GatewayClient:
    """Calls the gateway's perspectives, analyze and chat endpoints."""

    def __init__(
        self,
        endpoint: str,
        timeout: float = 120.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.endpoint = endpoint.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(base_url=self.endpoint, timeout=self.timeout, transport=self._transport)

    async def _post(self, path: str, payload: dict[str, Any]) -> dict[str, Any]:
        try:
            async with self._client() as client:
                response = await client.post(path, json=payload)
        except httpx.HTTPError as e:
            raise GatewayError(f"Gateway unreachable: {e}") from e

        if response.is_error:
            message = _error_message(response)
            logger.warning("Gateway %s → %d: %s", path, response.status_code, message)
            raise GatewayError(message, response.status_code)
        return response.json()

    async def perspectives(self, query: str) -> dict[str, Viewpoint]:
        """Three viewpoints on a free-form question."""
        data = await self._post("/api/perspectives", {"mode": "search", "query": query})
        return _perspectives_from(data["perspectives"])

    async def analyze(self, url: str) -> tuple[Article, dict[str, Viewpoint]]:
        """Scrape, format and analyse the article at *url*."""
        data = await self._post("/api/analyze", {"url": url})
        raw = data["article"]
        author = raw.get("authorInfo")
        article = Article(
            url=url,
            title=raw.get("title", ""),
            content=raw.get("content", ""),
            author_info=AuthorInfo.from_dict(author) if author else None,
        )
        return article, _perspectives_from(data["perspectives"])

    async def stream_chat(
        self,
        messages: Sequence[ChatMessage],
        article_title: str,
        article_content: str,
    ) -> AsyncIterator[dict[str, Any]]:
        """Yield decoded ``{"type", "content"}`` events from ``/api/chat``."""
        payload = {
            "messages": [m.to_dict() for m in messages],
            "articleTitle": article_title,
            "articleContent": article_content,
        }
        try:
            async with self._client() as client:
                async with client.stream("POST", "/api/chat", json=payload) as response:
                    if response.is_error:
                        await response.aread()
                        raise GatewayError(_error_message(response), response.status_code)
                    async for line in response.aiter_lines():
                        if not line.startswith(_DATA_PREFIX):
                            continue
                        try:
                            yield json.loads(line[len(_DATA_PREFIX):].strip())
                        except json.JSONDecodeError:
                            logger.warning("Skipping malformed chat frame: %s", line[:200])
        except httpx.HTTPError as e:
            raise GatewayError(f"Gateway unreachable: {e}") from e
