"""Perspective gateway — FastAPI server for the perspective and news-article flows.

Starts the gateway as a local HTTP server (port 8088).  It is stateless —
chat history and article text are sent by the client with each request.

Endpoints
---------
- ``GET  /health``            — health check and provider configuration
- ``POST /api/scrape``        — fetch a URL and extract the article text
- ``POST /api/format``        — reformat article text as Markdown
- ``POST /api/author``        — author background for an article
- ``POST /api/perspectives``  — progressive / moderate / conservative analysis
- ``POST /api/analyze``       — scrape + format + perspectives + author in one call
- ``POST /api/chat``          — article Q&A as a Server-Sent Events stream
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Literal

import httpx
import uvicorn
from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from starlette.exceptions import HTTPException as StarletteHTTPException

from gateway.articles import EmptyArticleError, analyze_article, format_article, scrape_article
from gateway.author import lookup_author
from gateway.chat import ChatSession
from gateway.config import OPENAI, PERPLEXITY, config
from gateway.extractor import FetchError, is_valid_url
from gateway.inference import OpenAIChatClient, PerplexityClient, ProviderError
from gateway.models import ChatMessage
from gateway.parser import ResponseParseError
from gateway.perspectives import NEWS_MODE, SEARCH_MODE, build_prompt, get_perspectives

# Setup logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-8s %(name)s — %(message)s",
)
for _name in ("httpx", "httpcore", "openai"):
    logging.getLogger(_name).setLevel(logging.WARNING)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Global state (initialised in lifespan)
# ---------------------------------------------------------------------------

perplexity: PerplexityClient | None = None
openai_client: OpenAIChatClient | None = None


def create_clients() -> tuple[PerplexityClient, OpenAIChatClient]:
    """Build both provider clients from ``config``."""
    return (
        PerplexityClient(
            api_key=config.perplexity_api_key or "unset",
            base_url=config.perplexity_base_url,
            model=config.perplexity_model,
            timeout=config.request_timeout,
        ),
        OpenAIChatClient(
            api_key=config.openai_api_key or "unset",
            model=config.openai_model,
        ),
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create the provider clients on startup."""
    global perplexity, openai_client

    logger.info("[GATEWAY] Server starting up...")
    perplexity, openai_client = create_clients()

    missing = config.missing_credentials(PERPLEXITY, OPENAI)
    if missing:
        logger.warning("[GATEWAY] Missing credentials: %s — affected endpoints will answer 500", ", ".join(missing))
    logger.info("[GATEWAY] Ready (perplexity=%s, openai=%s)", config.perplexity_model, config.openai_model)

    yield

    logger.info("[GATEWAY] Server shutting down...")


app = FastAPI(
    title="Perspective Gateway",
    description="Multi-perspective analysis of questions and news articles",
    version="0.1.0",
    lifespan=lifespan,
)


# ---------------------------------------------------------------------------
# Error rendering: every error body is {"error": "<message>"}
# ---------------------------------------------------------------------------

@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.info("[GATEWAY] Rejected request body on %s: %s", request.url.path, exc.errors()[:3])
    return JSONResponse(status_code=400, content={"error": "Invalid request body"})


def _require_credentials(*providers: str) -> None:
    """Fail fast with a 500 before any network call if a provider key is unset."""
    missing = config.missing_credentials(*providers)
    if missing:
        logger.error("[GATEWAY] Missing credentials: %s", ", ".join(missing))
        raise HTTPException(status_code=500, detail="API keys not configured")


def _get_perplexity() -> PerplexityClient:
    global perplexity
    if perplexity is None:
        perplexity, _ = create_clients()
    return perplexity


def _get_openai() -> OpenAIChatClient:
    global openai_client
    if openai_client is None:
        _, openai_client = create_clients()
    return openai_client


# ---------------------------------------------------------------------------
# Request / Response models
# ---------------------------------------------------------------------------

class _RequestModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ScrapeRequest(_RequestModel):
    url: str | None = None


class FormatRequest(_RequestModel):
    content: str | None = None


class AuthorRequest(_RequestModel):
    article_content: str | None = None


class PerspectivesRequest(_RequestModel):
    query: str | None = None
    mode: Literal["search", "news"] = SEARCH_MODE
    article_content: str | None = None


class AnalyzeRequest(_RequestModel):
    url: str | None = None


class ChatRequest(_RequestModel):
    messages: list[ChatMessage] = []
    article_content: str = ""
    article_title: str = ""


class HealthResponse(BaseModel):
    status: str
    providers: dict[str, bool]


# ---------------------------------------------------------------------------
# API Endpoints
# ---------------------------------------------------------------------------

@app.get("/health", response_model=HealthResponse)
async def health_check():
    """Health check endpoint."""
    missing = config.missing_credentials(PERPLEXITY, OPENAI)
    return HealthResponse(
        status="healthy",
        providers={
            PERPLEXITY: "PERPLEXITY_API_KEY" not in missing,
            OPENAI: "OPENAI_API_KEY" not in missing,
        },
    )


@app.post("/api/scrape")
async def scrape(request: ScrapeRequest):
    """Fetch an article URL and return its title and plain-text content."""
    if not request.url:
        raise HTTPException(status_code=400, detail="URL is required")
    if not is_valid_url(request.url):
        raise HTTPException(status_code=400, detail="Invalid URL format")

    try:
        article = await scrape_article(request.url, timeout=config.request_timeout)
    except FetchError as e:
        raise HTTPException(status_code=e.status_code, detail="Failed to fetch the article")
    except EmptyArticleError:
        raise HTTPException(status_code=400, detail="Could not extract article content")
    except Exception as e:
        logger.error("[GATEWAY] Article scraping error: %s", e, exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to process the article")

    return {"title": article.title, "content": article.content}


@app.post("/api/format")
async def format_content(request: FormatRequest):
    """Reformat article text as readable Markdown."""
    if not request.content:
        raise HTTPException(status_code=400, detail="Content is required")
    _require_credentials(OPENAI)

    try:
        content = await format_article(_get_openai(), request.content)
    except ProviderError as e:
        logger.error("[GATEWAY] Error formatting content: %s", e)
        raise HTTPException(status_code=500, detail=e.message)

    return {"content": content}


@app.post("/api/author")
async def author_info(request: AuthorRequest):
    """Identify the author of an article and summarise their background."""
    if not request.article_content:
        raise HTTPException(status_code=400, detail="Article content is required")
    _require_credentials(PERPLEXITY)

    try:
        author = await lookup_author(_get_perplexity(), request.article_content)
    except (ProviderError, ResponseParseError) as e:
        logger.error("[GATEWAY] Error in author analysis: %s", e)
        raise HTTPException(status_code=500, detail=str(e))

    return {"authorInfo": author.model_dump(by_alias=True, exclude_none=True)}


@app.post("/api/perspectives")
async def perspectives(request: PerspectivesRequest):
    """Return progressive, moderate and conservative perspectives.

    ``mode="search"`` analyses ``query``; ``mode="news"`` analyses
    ``articleContent``.
    """
    _require_credentials(PERPLEXITY)
    if request.mode == NEWS_MODE and not request.article_content:
        raise HTTPException(status_code=400, detail="Article content is required for news analysis")
    if request.mode == SEARCH_MODE and not request.query:
        raise HTTPException(status_code=400, detail="Query is required for search")

    logger.info("[GATEWAY] Perspectives request (mode=%s)", request.mode)
    prompt = build_prompt(request.mode, query=request.query, article_content=request.article_content)

    try:
        result = await get_perspectives(_get_perplexity(), prompt)
    except ProviderError as e:
        logger.error("[GATEWAY] Error getting perspectives: %s", e)
        raise HTTPException(status_code=500, detail=e.message)

    return {"perspectives": result.model_dump(by_alias=True, exclude_none=True)}


@app.post("/api/analyze")
async def analyze(request: AnalyzeRequest):
    """Scrape a news article, then format, analyse and annotate it."""
    if not request.url:
        raise HTTPException(status_code=400, detail="URL is required")
    if not is_valid_url(request.url):
        raise HTTPException(status_code=400, detail="Invalid URL format")
    _require_credentials(PERPLEXITY, OPENAI)

    logger.info("[GATEWAY] Analyze request: %s", request.url)
    try:
        article, result = await analyze_article(
            request.url,
            _get_perplexity(),
            _get_openai(),
            timeout=config.request_timeout,
        )
    except FetchError as e:
        raise HTTPException(status_code=e.status_code, detail="Failed to fetch the article")
    except EmptyArticleError:
        raise HTTPException(status_code=400, detail="Could not extract article content")
    except ProviderError as e:
        logger.error("[GATEWAY] Error analysing article: %s", e)
        raise HTTPException(status_code=500, detail=e.message)
    except httpx.HTTPError as e:
        logger.error("[GATEWAY] Article fetch failed: %s", e)
        raise HTTPException(status_code=500, detail="Failed to process the article")

    return {
        "article": article.model_dump(by_alias=True, exclude_none=True),
        "perspectives": result.model_dump(by_alias=True, exclude_none=True),
    }


@app.post("/api/chat")
async def chat(request: ChatRequest):
    """Answer the latest question about an article as an SSE stream.

    The first frame carries follow-up suggestions; answer fragments follow.
    """
    _require_credentials(PERPLEXITY, OPENAI)
    if not request.messages:
        raise HTTPException(status_code=400, detail="Messages are required")

    session = ChatSession(
        _get_perplexity(),
        _get_openai(),
        request.messages,
        article_title=request.article_title,
        article_content=request.article_content,
    )
    logger.info("[GATEWAY] Chat request: %s...", session.question[:100])

    try:
        await session.prepare()
    except ProviderError as e:
        logger.error("[GATEWAY] Error in chat API: %s", e)
        raise HTTPException(status_code=500, detail="Failed to process chat request")

    async def generate():
        async for event in session.events():
            yield event.to_sse()

    return StreamingResponse(
        generate(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def main():
    """Launch the gateway server."""
    port = config.port

    logger.info("[GATEWAY] Starting server on port %d", port)
    logger.info("[GATEWAY] Health:       http://localhost:%d/health", port)
    logger.info("[GATEWAY] Perspectives: http://localhost:%d/api/perspectives", port)
    logger.info("[GATEWAY] Chat:         http://localhost:%d/api/chat", port)

    uvicorn.run(app, host="0.0.0.0", port=port, log_level="info")


if __name__ == "__main__":
    main()
