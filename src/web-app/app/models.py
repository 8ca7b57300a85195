"""Shared data models for the web app.

Plain dataclasses built from the gateway's camelCase JSON.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass
class Citation:
    """A source backing a viewpoint, author profile or chat answer."""

    title: str = ""
    url: str = ""
    snippet: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Citation:
        return cls(
            title=data.get("title") or "",
            url=data.get("url") or "",
            snippet=data.get("snippet"),
        )


@dataclass
class Argument:
    summary: str = ""
    detail: str = ""


@dataclass
class Viewpoint:
    """One perspective — label, summary, arguments and their sources."""

    title: str
    description: str
    arguments: list[Argument] = field(default_factory=list)
    citations: list[Citation] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Viewpoint:
        return cls(
            title=data.get("title", ""),
            description=data.get("description", ""),
            arguments=[
                Argument(summary=a.get("summary", ""), detail=a.get("detail", ""))
                for a in data.get("arguments") or []
            ],
            citations=[Citation.from_dict(c) for c in data.get("citations") or []],
        )


@dataclass
class RecentArticle:
    title: str = ""
    url: str = ""
    date: str | None = None


@dataclass
class AuthorInfo:
    name: str
    background: str = ""
    potential_biases: list[str] = field(default_factory=list)
    recent_articles: list[RecentArticle] = field(default_factory=list)
    citations: list[Citation] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AuthorInfo:
        return cls(
            name=data.get("name", ""),
            background=data.get("background", ""),
            potential_biases=list(data.get("potentialBiases") or []),
            recent_articles=[
                RecentArticle(title=a.get("title", ""), url=a.get("url", ""), date=a.get("date"))
                for a in data.get("recentArticles") or []
            ],
            citations=[Citation.from_dict(c) for c in data.get("citations") or []],
        )


@dataclass
class Article:
    """A scraped, formatted article as returned by ``/api/analyze``."""

    url: str
    title: str
    content: str
    author_info: AuthorInfo | None = None


@dataclass
class ChatMessage:
    """A chat turn as sent to the gateway."""

    role: str
    content: str
    sources: list[Citation] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"role": self.role, "content": self.content}
