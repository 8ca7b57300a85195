"""Perspective Lens — Chainlit entry point.

The web app is a thin Chainlit client for the perspective gateway.  A plain
question is answered with progressive, moderate and conservative takes; a
news-article URL is analysed and then opens a streamed chat about that
article.  The gateway runs as a separate service (``python src/gateway/main.py``).
"""

from __future__ import annotations

import logging
from urllib.parse import urlparse

import chainlit as cl
from chainlit.input_widget import Slider

from app.config import config
from app.gateway_client import GatewayClient, GatewayError
from app.models import Article, ChatMessage, Viewpoint
from app.views import (
    DEFAULT_VIEWPOINT,
    VIEWPOINTS,
    ChatStreamState,
    render_article,
    render_sources,
    render_spectrum_header,
    render_viewpoint,
    slider_value_for,
    split_sources,
    viewpoint_for_slider,
)

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-8s %(name)s — %(message)s",
)
for _name in ("httpx", "httpcore", "watchfiles"):
    logging.getLogger(_name).setLevel(logging.WARNING)

logger = logging.getLogger(__name__)

_RESET_COMMANDS = {"/reset", "reset"}
_SLIDER_ID = "viewpoint"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _extract_url(text: str) -> str | None:
    """Return *text* if it is a single absolute http(s) URL."""
    candidate = text.strip()
    if not candidate or any(c.isspace() for c in candidate):
        return None
    parsed = urlparse(candidate)
    if parsed.scheme in ("http", "https") and parsed.netloc:
        return candidate
    return None


def _follow_up_actions(queries: list[str]) -> list[cl.Action]:
    return [
        cl.Action(name="follow_up", payload={"query": q}, label=q)
        for q in queries
        if q.strip()
    ]


def _reset_action() -> cl.Action:
    return cl.Action(name="reset", payload={}, label="Start over", tooltip="Clear this conversation")


# ---------------------------------------------------------------------------
# Context window management
# ---------------------------------------------------------------------------
_MAX_CONTEXT_TOKENS = 128_000
_RESPONSE_HEADROOM = 8_000
_CHARS_PER_TOKEN = 4


def _estimate_tokens(text: str) -> int:
    """Estimate token count using a char-based heuristic (1 token ≈ 4 chars)."""
    return len(text) // _CHARS_PER_TOKEN


def _trim_context(
    messages: list[ChatMessage],
    max_tokens: int | None = None,
    reserved: str = "",
) -> list[ChatMessage]:
    """Trim oldest messages if estimated tokens exceed the context window.

    Messages are dropped from the front (oldest first); the latest message
    is always kept.  *reserved* is text that travels with every request
    (the article) and counts against the limit.
    """
    limit = (max_tokens or (_MAX_CONTEXT_TOKENS - _RESPONSE_HEADROOM)) - _estimate_tokens(reserved)

    total = sum(_estimate_tokens(m.content) for m in messages)
    if total <= limit:
        return messages

    dropped = 0
    trimmed = list(messages)
    while len(trimmed) > 1:
        est = sum(_estimate_tokens(m.content) for m in trimmed)
        if est <= limit:
            break
        trimmed.pop(0)
        dropped += 1

    if dropped:
        logger.warning(
            "Context window trimmed: dropped %d oldest messages (estimated %d tokens remaining)",
            dropped,
            sum(_estimate_tokens(m.content) for m in trimmed),
        )
    return trimmed


# ---------------------------------------------------------------------------
# Session state
# ---------------------------------------------------------------------------

def _reset_session() -> None:
    cl.user_session.set("perspectives", None)
    cl.user_session.set("article", None)
    cl.user_session.set("messages", [])


def _gateway() -> GatewayClient:
    client = cl.user_session.get("gateway")
    if client is None:
        client = GatewayClient(config.gateway_endpoint, timeout=config.request_timeout)
        cl.user_session.set("gateway", client)
    return client


async def _send_viewpoint() -> None:
    """Render the selected viewpoint of the current perspectives."""
    perspectives: dict[str, Viewpoint] | None = cl.user_session.get("perspectives")
    if not perspectives:
        return
    selected = cl.user_session.get("viewpoint") or DEFAULT_VIEWPOINT
    viewpoint = perspectives.get(selected)
    if viewpoint is None:
        logger.warning("Gateway returned no %s viewpoint", selected)
        return
    await cl.Message(
        content=f"{render_spectrum_header(selected)}\n\n{render_viewpoint(viewpoint)}",
    ).send()


async def _send_follow_ups(queries: list[str]) -> None:
    actions = _follow_up_actions(queries)
    if actions:
        await cl.Message(content="Follow-up questions:", actions=actions).send()


# ---------------------------------------------------------------------------
# Chainlit lifecycle hooks
# ---------------------------------------------------------------------------

@cl.set_starters
async def set_starters() -> list[cl.Starter]:
    """Provide the topic cards on the welcome screen."""
    return [
        cl.Starter(
            label="Immigration",
            message="What are the different perspectives on immigration policy and border security?",
        ),
        cl.Starter(
            label="Abortion",
            message="What are the different perspectives on abortion rights and restrictions?",
        ),
        cl.Starter(
            label="Israeli-Palestinian Conflict",
            message="What are the different perspectives on the Israeli-Palestinian conflict?",
        ),
        cl.Starter(
            label="Cryptocurrency",
            message="What are the different perspectives on cryptocurrency regulation and adoption?",
        ),
    ]


@cl.on_chat_start
async def on_chat_start() -> None:
    """Initialise the gateway client, spectrum slider and session state."""
    cl.user_session.set("gateway", GatewayClient(config.gateway_endpoint, timeout=config.request_timeout))
    cl.user_session.set("viewpoint", DEFAULT_VIEWPOINT)
    _reset_session()

    await cl.ChatSettings(
        [
            Slider(
                id=_SLIDER_ID,
                label="Viewpoint (progressive ← → conservative)",
                initial=slider_value_for(DEFAULT_VIEWPOINT),
                min=0,
                max=len(VIEWPOINTS) - 1,
                step=1,
            ),
        ]
    ).send()
    logger.info("New chat session started (gateway endpoint: %s)", config.gateway_endpoint)


@cl.on_settings_update
async def on_settings_update(settings: dict) -> None:
    """Switch the displayed viewpoint when the slider moves."""
    selected = viewpoint_for_slider(settings.get(_SLIDER_ID))
    if selected == cl.user_session.get("viewpoint"):
        return
    cl.user_session.set("viewpoint", selected)
    logger.info("Viewpoint changed to %s", selected)
    await _send_viewpoint()


@cl.on_message
async def on_message(message: cl.Message) -> None:
    """Route a message: reset, article chat, article analysis or a question."""
    text = message.content.strip()
    if not text:
        return

    if text.lower() in _RESET_COMMANDS:
        await _reset()
        return

    url = _extract_url(text)
    if url:
        await _analyze(url)
    elif cl.user_session.get("article") is not None:
        await _stream_answer(text)
    else:
        await _search(text)


@cl.action_callback("follow_up")
async def on_follow_up(action: cl.Action) -> None:
    query = (action.payload or {}).get("query", "")
    if not query:
        return
    await cl.Message(content=f"**{query}**", author="You").send()
    await _stream_answer(query)


@cl.action_callback("reset")
async def on_reset(action: cl.Action) -> None:
    await _reset()


# ---------------------------------------------------------------------------
# Flows
# ---------------------------------------------------------------------------

async def _reset() -> None:
    _reset_session()
    logger.info("Session reset")
    await cl.Message(content="Cleared. Ask a question or paste a news article URL.").send()


async def _search(query: str) -> None:
    """Fetch the three perspectives on a question and show the selected one."""
    status = cl.Message(content="Gathering perspectives…")
    await status.send()
    try:
        perspectives = await _gateway().perspectives(query)
    except GatewayError as e:
        logger.error("Perspectives request failed: %s", e)
        status.content = f"Could not get perspectives: {e.message}"
        await status.update()
        return

    await status.remove()
    cl.user_session.set("perspectives", perspectives)
    await _send_viewpoint()


async def _analyze(url: str) -> None:
    """Analyse an article, show it with its perspectives, then enter article chat."""
    status = cl.Message(content="Analyzing article…")
    await status.send()
    try:
        article, perspectives = await _gateway().analyze(url)
    except GatewayError as e:
        logger.error("Article analysis failed for %s: %s", url, e)
        status.content = f"Could not analyze the article: {e.message}"
        await status.update()
        return

    cl.user_session.set("article", article)
    cl.user_session.set("perspectives", perspectives)
    cl.user_session.set("messages", [])

    # Chainlit links the side element from its name appearing in the content
    name = article.title or "Article"
    await status.remove()
    await cl.Message(
        content=f"{name}\n\nOpen the article panel to read it, or ask a question about it below.",
        elements=[cl.Text(name=name, content=render_article(article), display="side")],
        actions=[_reset_action()],
    ).send()
    await _send_viewpoint()


async def _stream_answer(question: str) -> None:
    """Stream an answer about the current article from ``/api/chat``."""
    article: Article | None = cl.user_session.get("article")
    if article is None:
        await _search(question)
        return

    messages: list[ChatMessage] = cl.user_session.get("messages") or []
    messages.append(ChatMessage(role="user", content=question))
    context = _trim_context(messages, reserved=article.content)

    state = ChatStreamState()
    state.start()
    msg = cl.Message(content="")
    await msg.send()

    try:
        async for event in _gateway().stream_chat(context, article.title, article.content):
            token = state.apply(event)
            if token:
                await msg.stream_token(token)
    except GatewayError as e:
        logger.error("Chat request failed: %s", e)
        state.finish(error=e.message)
    else:
        state.finish()

    if state.error and not state.text:
        messages.pop()
        cl.user_session.set("messages", messages)
        msg.content = f"Error communicating with the gateway: {state.error}"
        await msg.update()
        return

    content, sources = split_sources(state.text)
    if not content:
        # No answer to pair with the question, so it leaves the history too
        messages.pop()
        cl.user_session.set("messages", messages)
        msg.content = "I wasn't able to generate a response. Please try again."
        await msg.update()
        await _send_follow_ups(state.follow_ups)
        return

    messages.append(ChatMessage(role="assistant", content=content, sources=sources))
    cl.user_session.set("messages", messages)

    rendered_sources = render_sources(sources)
    msg.content = f"{content}\n\n{rendered_sources}" if rendered_sources else content
    await msg.update()
    await _send_follow_ups(state.follow_ups)
