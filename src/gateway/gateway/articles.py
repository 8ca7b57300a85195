"""News-article flow — scrape, reformat, analyse and annotate an article.

``analyze_article`` runs the whole pipeline:

1. Scrape the page and extract its text.
2. Reformat (OpenAI) and analyse perspectives (Perplexity) concurrently.
3. Look up the author, best-effort — any failure just omits ``authorInfo``.
"""

from __future__ import annotations

import logging

import httpx

from gateway.author import lookup_author
from gateway.extractor import ExtractedArticle, extract_article, fetch_html
from gateway.inference import OpenAIChatClient, PerplexityClient, ProviderError
from gateway.models import Article, AuthorInfo, Perspectives
from gateway.perspectives import NEWS_MODE, build_prompt, gather_or_cancel, get_perspectives
from gateway.prompts import format_messages

logger = logging.getLogger(__name__)


class EmptyArticleError(Exception):
    """The page was fetched but no article text could be extracted."""


async def scrape_article(
    url: str,
    timeout: float = 30.0,
    transport: httpx.AsyncBaseTransport | None = None,
) -> ExtractedArticle:
    """Fetch *url* and extract its title and text.

    Raises ``FetchError`` on non-2xx responses and :class:`EmptyArticleError`
    when nothing in the page qualifies as article content.
    """
    html = await fetch_html(url, timeout=timeout, transport=transport)
    article = extract_article(html)
    if not article.content:
        raise EmptyArticleError(f"Could not extract article content from {url}")
    logger.info("Scraped %r (%d chars)", article.title[:80], len(article.content))
    return article


async def format_article(openai_client: OpenAIChatClient, content: str) -> str:
    """Rewrite *content* as readable Markdown without changing its facts."""
    logger.info("Formatting content (%d chars)", len(content))
    completion = await openai_client.complete(format_messages(content), temperature=0.3, max_tokens=4000)
    if not completion.content:
        raise ProviderError(openai_client.provider, "Failed to format content - no content returned from API")
    return completion.content


async def _format_or_raw(openai_client: OpenAIChatClient, content: str) -> str:
    try:
        return await format_article(openai_client, content)
    except ProviderError as e:
        logger.warning("Formatting failed, keeping raw article text: %s", e)
        return content


async def _author_or_none(perplexity: PerplexityClient, content: str) -> AuthorInfo | None:
    try:
        return await lookup_author(perplexity, content)
    except Exception:
        logger.warning("Author lookup failed; continuing without author info", exc_info=True)
        return None


async def analyze_article(
    url: str,
    perplexity: PerplexityClient,
    openai_client: OpenAIChatClient,
    timeout: float = 30.0,
    transport: httpx.AsyncBaseTransport | None = None,
) -> tuple[Article, Perspectives]:
    """Scrape *url*, then format, analyse and annotate it."""
    scraped = await scrape_article(url, timeout=timeout, transport=transport)

    formatted, perspectives = await gather_or_cancel(
        _format_or_raw(openai_client, scraped.content),
        get_perspectives(perplexity, build_prompt(NEWS_MODE, article_content=scraped.content)),
    )

    author = await _author_or_none(perplexity, scraped.content)

    article = Article(title=scraped.title, content=formatted, author_info=author)
    return article, perspectives
