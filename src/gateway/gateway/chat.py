"""Article chat — refine the user's question, then stream a grounded answer.

A :class:`ChatSession` moves through ``idle → querying → streaming → done``:

- ``prepare()`` runs the blocking query-refinement pass (OpenAI) that turns
  the latest question into a search-ready main query plus follow-up
  suggestions.  Failures here propagate to the caller before any stream
  is opened.
- ``events()`` first yields the follow-up suggestions, then one ``answer``
  event per fragment streamed by Perplexity.  A failure mid-stream is
  logged and ends the stream; there is no error frame and no terminal frame.
"""

from __future__ import annotations

import enum
import logging
from collections.abc import AsyncIterator, Sequence

from gateway.inference import OpenAIChatClient, PerplexityClient
from gateway.models import ChatMessage, StreamEvent
from gateway.parser import RefinedQueries, parse_refined_queries
from gateway.prompts import chat_messages, query_refinement_messages

logger = logging.getLogger(__name__)


class ChatPhase(str, enum.Enum):
    IDLE = "idle"
    QUERYING = "querying"
    STREAMING = "streaming"
    DONE = "done"


class ChatSession:
    """One chat turn about an article."""

    def __init__(
        self,
        perplexity: PerplexityClient,
        openai_client: OpenAIChatClient,
        messages: Sequence[ChatMessage],
        article_title: str = "",
        article_content: str = "",
    ) -> None:
        if not messages:
            raise ValueError("At least one message is required")
        self.perplexity = perplexity
        self.openai_client = openai_client
        self.messages = list(messages)
        self.article_title = article_title
        self.article_content = article_content
        self.phase = ChatPhase.IDLE
        self.queries: RefinedQueries | None = None

    @property
    def question(self) -> str:
        return self.messages[-1].content

    def _enter(self, phase: ChatPhase) -> None:
        logger.debug("Chat phase %s → %s", self.phase.value, phase.value)
        self.phase = phase

    async def prepare(self) -> RefinedQueries:
        """Refine the latest question into a main query and follow-ups."""
        self._enter(ChatPhase.QUERYING)
        completion = await self.openai_client.complete(
            query_refinement_messages(
                self.article_title,
                self.article_content,
                self.messages,
                self.question,
            ),
            temperature=0.7,
        )
        self.queries = parse_refined_queries(completion.content, self.question)
        logger.info(
            "Refined query: %s... (%d follow-ups)",
            self.queries.main_query[:100],
            len(self.queries.follow_up_queries),
        )
        return self.queries

    async def events(self) -> AsyncIterator[StreamEvent]:
        """Yield the follow-up event, then streamed answer fragments."""
        queries = self.queries or await self.prepare()

        yield StreamEvent(type="follow_up_queries", content=queries.follow_up_queries)

        self._enter(ChatPhase.STREAMING)
        fragments = 0
        try:
            async for fragment in self.perplexity.stream(
                chat_messages(
                    self.article_title,
                    self.article_content,
                    self.messages,
                    queries.main_query,
                )
            ):
                fragments += 1
                yield StreamEvent(type="answer", content=fragment)
        except Exception:
            logger.error("Error processing chat stream", exc_info=True)
        finally:
            self._enter(ChatPhase.DONE)
            logger.info("Chat stream closed after %d answer fragment(s)", fragments)
