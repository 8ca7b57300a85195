"""Author research — identify an article's author and summarise their background."""

from __future__ import annotations

import logging

from gateway.inference import PerplexityClient
from gateway.models import AuthorInfo
from gateway.parser import parse_author_info
from gateway.prompts import author_messages

logger = logging.getLogger(__name__)


async def lookup_author(perplexity: PerplexityClient, article_content: str) -> AuthorInfo:
    """Ask the search provider who wrote *article_content*.

    Raises ``ProviderError`` when the call fails and ``ResponseParseError``
    when the answer is not the expected JSON.
    """
    completion = await perplexity.complete(
        author_messages(article_content),
        temperature=0.2,
        max_tokens=1024,
        presence_penalty=0,
        frequency_penalty=0.5,
        return_citations=True,
    )
    author = parse_author_info(completion.content, completion.citations)
    logger.info(
        "Author identified: %s (%d citations)",
        author.name,
        len(author.citations),
    )
    return author
