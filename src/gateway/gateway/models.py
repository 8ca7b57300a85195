"""Request-scoped data transfer objects.

Everything here lives for a single request/response cycle.  Wire keys are
camelCase (``potentialBiases``, ``authorInfo``) while Python attributes stay
snake_case; serialise with ``model_dump(by_alias=True)``.
"""

from __future__ import annotations

import json
from typing import Literal, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

ViewpointType = Literal["progressive", "moderate", "conservative"]

VIEWPOINTS: tuple[ViewpointType, ...] = ("progressive", "moderate", "conservative")


class _WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Citation(_WireModel):
    """A source reference reported by the model or the provider."""

    title: str = ""
    url: str = ""
    snippet: str | None = None


class RecentArticle(_WireModel):
    title: str = ""
    url: str = ""
    date: str | None = None


class AuthorInfo(_WireModel):
    """Background on the author of an analyzed article."""

    name: str
    background: str = ""
    potential_biases: list[str] = Field(default_factory=list)
    recent_articles: list[RecentArticle] = Field(default_factory=list)
    citations: list[Citation] = Field(default_factory=list)


class Argument(_WireModel):
    """One argument of a viewpoint.

    ``detail`` may end with a bracketed 1-based index (``[2]``) into the
    enclosing viewpoint's ``citations``.
    """

    summary: str = ""
    detail: str = ""


class Viewpoint(_WireModel):
    title: str
    description: str
    arguments: list[Argument] = Field(default_factory=list)
    citations: list[Citation] = Field(default_factory=list)


class Perspectives(_WireModel):
    progressive: Viewpoint
    moderate: Viewpoint
    conservative: Viewpoint


class Article(_WireModel):
    title: str
    content: str
    author_info: AuthorInfo | None = None


class ChatMessage(_WireModel):
    role: Literal["user", "assistant"]
    content: str
    sources: list[Citation] | None = None


class StreamEvent(_WireModel):
    """One frame of the chat event stream."""

    type: Literal["follow_up_queries", "answer"]
    content: Union[list[str], str]

    def to_sse(self) -> str:
        """Encode as a ``data: <json>\\n\\n`` frame."""
        return f"data: {json.dumps(self.model_dump(), ensure_ascii=False)}\n\n"
