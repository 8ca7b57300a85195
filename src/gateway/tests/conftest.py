"""Shared test fixtures for gateway tests.

Environment variables MUST be set at module level (before any gateway
modules are imported) because ``gateway.config`` evaluates
``_load_config()`` at import time.  pytest processes conftest.py before
collecting test modules, so ``os.environ.setdefault(...)`` here runs early
enough.
"""

import json
import os

# Set provider keys before any gateway code is imported
os.environ.setdefault("PERPLEXITY_API_KEY", "test-perplexity-key")
os.environ.setdefault("OPENAI_API_KEY", "test-openai-key")
os.environ.setdefault("PERPLEXITY_BASE_URL", "https://perplexity.test")

import pytest  # noqa: E402


@pytest.fixture
def viewpoint_json():
    """Factory for a well-formed perspective answer as the model returns it."""

    def _make(summary: str = "Overview", citations: list | None = None) -> str:
        return json.dumps({
            "summary": summary,
            "arguments": [
                {"summary": "Point one", "detail": "Detail one [1]"},
                {"summary": "Point two", "detail": "Detail two"},
            ],
            "citations": citations if citations is not None else [
                {"title": "Source A", "url": "https://a.example", "snippet": "quote"},
            ],
        })

    return _make


@pytest.fixture
def author_json():
    """Factory for an author-research answer."""

    def _make(**overrides) -> str:
        data = {
            "name": "Jane Doe",
            "background": "Veteran political reporter.",
            "potentialBiases": ["Covers one party more often"],
            "recentArticles": [
                {"title": "Earlier piece", "url": "https://news.example/1", "date": "2024-05-01"},
            ],
            "citations": [{"title": "Bio", "url": "https://bio.example"}],
        }
        data.update(overrides)
        return json.dumps(data)

    return _make


@pytest.fixture
def article_html() -> str:
    """A small news page with boilerplate around the article body."""
    return """
    <html>
      <head><title>Page Title | News</title><script>var x = 1;</script></head>
      <body>
        <nav>Home | World | Politics</nav>
        <h1>Council Approves New Budget</h1>
        <article>
          <header>Byline header</header>
          <p>The city council approved the budget on <a href="#">Tuesday</a>.</p>
          <div class="ad">Buy now!</div>
          <p>Critics argued the plan underfunds transit.</p>
          <script>track();</script>
        </article>
        <footer>Copyright</footer>
      </body>
    </html>
    """
