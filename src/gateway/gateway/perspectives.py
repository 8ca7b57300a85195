"""Perspective analysis — progressive, moderate and conservative takes on a prompt.

The three framings are requested concurrently and joined.  A framing whose
answer cannot be parsed is replaced by a placeholder viewpoint rather than
failing the whole request; provider failures still propagate.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable
from typing import TypeVar

from gateway.inference import PerplexityClient
from gateway.models import VIEWPOINTS, Perspectives, Viewpoint, ViewpointType
from gateway.parser import ResponseParseError, fallback_viewpoint, parse_viewpoint
from gateway.prompts import news_analysis_prompt, viewpoint_messages

logger = logging.getLogger(__name__)

T = TypeVar("T")

SEARCH_MODE = "search"
NEWS_MODE = "news"

VIEWPOINT_LABELS: dict[ViewpointType, str] = {
    "progressive": "Progressive",
    "moderate": "Moderate",
    "conservative": "Conservative",
}


async def gather_or_cancel(*aws: Awaitable[T]) -> list[T]:
    """Like ``asyncio.gather``, but the first failure cancels the other awaitables."""
    tasks = [asyncio.ensure_future(aw) for aw in aws]
    try:
        return await asyncio.gather(*tasks)
    except BaseException:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise


def build_prompt(mode: str, query: str | None = None, article_content: str | None = None) -> str:
    """Return the user prompt for *mode* (``search`` → the query itself)."""
    if mode == NEWS_MODE:
        return news_analysis_prompt(article_content or "")
    return query or ""


async def get_viewpoint(perplexity: PerplexityClient, prompt: str, perspective: ViewpointType) -> Viewpoint:
    """Analyse *prompt* from a single ideological *perspective*."""
    title = VIEWPOINT_LABELS[perspective]
    completion = await perplexity.complete(viewpoint_messages(prompt, perspective))
    try:
        viewpoint = parse_viewpoint(completion.content, title)
    except ResponseParseError as e:
        logger.warning(
            "Unparseable %s perspective (%s); substituting placeholder. Content: %s...",
            perspective,
            e,
            completion.content[:200],
        )
        return fallback_viewpoint(title)

    logger.info(
        "%s perspective: %d arguments, %d citations",
        title,
        len(viewpoint.arguments),
        len(viewpoint.citations),
    )
    return viewpoint


async def get_perspectives(perplexity: PerplexityClient, prompt: str) -> Perspectives:
    """Fetch all three perspectives concurrently; one provider failure cancels the rest."""
    results = await gather_or_cancel(*(get_viewpoint(perplexity, prompt, v) for v in VIEWPOINTS))
    return Perspectives(**dict(zip(VIEWPOINTS, results)))
