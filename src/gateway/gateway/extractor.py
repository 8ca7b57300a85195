"""Article text extraction — locate the main body of a news page with BeautifulSoup.

Works on static HTML only:

- **Title**: first ``<h1>``, falling back to ``<title>``.
- **Content**: the first selector candidate (in fixed priority order) whose
  matches still hold text once boilerplate nodes are removed.  When no
  candidate yields text, every paragraph longer than
  ``MIN_PARAGRAPH_LENGTH`` characters is joined instead.

An empty ``content`` means nothing qualified; callers report that as a
client error.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from urllib.parse import urlparse

import httpx
from bs4 import BeautifulSoup, Tag

logger = logging.getLogger(__name__)

ARTICLE_SELECTORS: tuple[str, ...] = (
    "article",
    '[role="article"]',
    ".article-content",
    ".post-content",
    ".story-content",
    "main",
)

BOILERPLATE_SELECTOR = "script, style, nav, header, footer, .ad, .advertisement, .social-share"

MIN_PARAGRAPH_LENGTH = 50

_BLOCK_TAGS = ["p", "div", "section", "li", "blockquote", "pre", "br", "h1", "h2", "h3", "h4", "h5", "h6"]

USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0 Safari/537.36"
)


@dataclass
class ExtractedArticle:
    """Title and plain-text body pulled from a page."""

    title: str
    content: str


class FetchError(Exception):
    """The article URL answered with a non-2xx status."""

    def __init__(self, url: str, status_code: int) -> None:
        super().__init__(f"Fetching {url} returned HTTP {status_code}")
        self.url = url
        self.status_code = status_code


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def is_valid_url(url: str) -> bool:
    """Return ``True`` for absolute ``http(s)`` URLs with a host."""
    try:
        parsed = urlparse(url)
    except ValueError:
        return False
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


async def fetch_html(url: str, timeout: float = 30.0, transport: httpx.AsyncBaseTransport | None = None) -> str:
    """Download *url* and return the response body as text.

    Raises :class:`FetchError` on non-2xx responses; transport failures
    propagate as ``httpx.HTTPError``.
    """
    async with httpx.AsyncClient(
        follow_redirects=True,
        timeout=timeout,
        headers={"User-Agent": USER_AGENT},
        transport=transport,
    ) as client:
        response = await client.get(url)

    if not response.is_success:
        logger.warning("Fetch %s → HTTP %d", url, response.status_code)
        raise FetchError(url, response.status_code)

    logger.info("Fetched %s (%d chars)", url, len(response.text))
    return response.text


def extract_article(html: str) -> ExtractedArticle:
    """Return the title and main text of *html*."""
    soup = BeautifulSoup(html, "html.parser")
    return ExtractedArticle(title=_extract_title(soup), content=_extract_content(soup))


# ---------------------------------------------------------------------------
# Private helpers
# ---------------------------------------------------------------------------


def _extract_title(soup: BeautifulSoup) -> str:
    h1 = soup.find("h1")
    if h1:
        title = _normalize(h1.get_text())
        if title:
            return title
    if soup.title:
        return _normalize(soup.title.get_text())
    return ""


def _extract_content(soup: BeautifulSoup) -> str:
    for selector in ARTICLE_SELECTORS:
        matches = soup.select(selector)
        if not matches:
            continue

        for element in matches:
            _strip_boilerplate(element)

        content = "\n".join(_block_text(el) for el in matches).strip()
        if content:
            logger.debug("Content found via selector %r (%d chars)", selector, len(content))
            return content

    paragraphs = [_normalize(p.get_text()) for p in soup.find_all("p")]
    content = "\n\n".join(p for p in paragraphs if len(p) > MIN_PARAGRAPH_LENGTH)
    if content:
        logger.debug("Content assembled from paragraphs (%d chars)", len(content))
    else:
        logger.info("No article content found")
    return content


def _strip_boilerplate(element: Tag) -> None:
    """Remove script/style/navigation/ad nodes below *element* in place."""
    for node in element.select(BOILERPLATE_SELECTOR):
        node.decompose()


def _block_text(element: Tag) -> str:
    """Text of *element*, one line per block, whitespace collapsed, blank lines dropped."""
    for block in element.find_all(_BLOCK_TAGS):
        block.append("\n")
    lines = (_normalize(line) for line in element.get_text().splitlines())
    return "\n".join(line for line in lines if line)


def _normalize(text: str) -> str:
    """Collapse all whitespace (including ``\\xa0``) and strip."""
    return re.sub(r"[\s\xa0]+", " ", text).strip()
