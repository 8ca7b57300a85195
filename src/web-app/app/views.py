"""View-state helpers and Markdown renderers for the Chainlit UI.

Everything here is pure: no Chainlit imports, no I/O.
"""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass, field

from app.models import Article, AuthorInfo, Citation, Viewpoint

VIEWPOINTS = ("progressive", "moderate", "conservative")
DEFAULT_VIEWPOINT = "moderate"

VIEWPOINT_LABELS = {
    "progressive": "Progressive",
    "moderate": "Moderate",
    "conservative": "Conservative",
}

# A trailing "[n]" marker on an argument's detail (1-based)
_CITATION_MARKER_RE = re.compile(r"\[(\d+)\]\s*$")
_SOURCES_RE = re.compile(r"SOURCES:\s*([\s\S]*?)$", re.IGNORECASE)


# ---------------------------------------------------------------------------
# Spectrum slider
# ---------------------------------------------------------------------------

def viewpoint_for_slider(value: float | int | None) -> str:
    """Map a slider position (0..2) to a viewpoint; anything else → moderate."""
    try:
        index = int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return DEFAULT_VIEWPOINT
    if 0 <= index < len(VIEWPOINTS):
        return VIEWPOINTS[index]
    return DEFAULT_VIEWPOINT


def slider_value_for(viewpoint: str) -> int:
    if viewpoint in VIEWPOINTS:
        return VIEWPOINTS.index(viewpoint)
    return VIEWPOINTS.index(DEFAULT_VIEWPOINT)


# ---------------------------------------------------------------------------
# Citations
# ---------------------------------------------------------------------------

def citation_index(text: str) -> int | None:
    """Return the 0-based citation index for a trailing ``[n]`` marker."""
    m = _CITATION_MARKER_RE.search(text or "")
    return int(m.group(1)) - 1 if m else None


def resolve_citation(text: str, citations: list[Citation]) -> Citation | None:
    """Return the citation a trailing ``[n]`` marker points at, if it exists."""
    index = citation_index(text)
    if index is None or index < 0 or index >= len(citations):
        return None
    return citations[index]


def split_sources(text: str) -> tuple[str, list[Citation]]:
    """Split a ``SOURCES:`` trailer off an answer.

    Each trailer line reads ``Title - URL``; lines missing either half are
    dropped.  Text without a trailer is returned unchanged.
    """
    m = _SOURCES_RE.search(text)
    if not m:
        return text, []

    sources: list[Citation] = []
    for line in m.group(1).splitlines():
        if not line.strip():
            continue
        parts = [p.strip() for p in line.split(" - ")]
        title = parts[0]
        url = parts[1] if len(parts) > 1 else ""
        if title and url:
            sources.append(Citation(title=title, url=url))
    return text[: m.start()].strip(), sources


# ---------------------------------------------------------------------------
# Chat stream state
# ---------------------------------------------------------------------------

class StreamPhase(str, enum.Enum):
    IDLE = "idle"
    LOADING = "loading"
    STREAMING = "streaming"
    DONE = "done"


@dataclass
class ChatStreamState:
    """Accumulates one streamed chat answer.

    ``loading`` is true from ``start()`` until ``finish()``, which always
    clears it, including when the stream ended without a single answer
    frame or with an error.
    """

    phase: StreamPhase = StreamPhase.IDLE
    text: str = ""
    follow_ups: list[str] = field(default_factory=list)
    error: str | None = None

    @property
    def loading(self) -> bool:
        return self.phase in (StreamPhase.LOADING, StreamPhase.STREAMING)

    @property
    def started(self) -> bool:
        """True once the first answer fragment has arrived."""
        return bool(self.text)

    def start(self) -> None:
        self.phase = StreamPhase.LOADING
        self.text = ""
        self.follow_ups = []
        self.error = None

    def apply(self, event: dict) -> str:
        """Fold one gateway event into the state; return any new answer text."""
        kind = event.get("type")
        content = event.get("content")
        if kind == "follow_up_queries" and isinstance(content, list):
            self.follow_ups = [str(q) for q in content]
        elif kind == "answer" and content:
            self.phase = StreamPhase.STREAMING
            self.text += str(content)
            return str(content)
        return ""

    def finish(self, error: str | None = None) -> None:
        self.error = error
        self.phase = StreamPhase.DONE


# ---------------------------------------------------------------------------
# Markdown renderers
# ---------------------------------------------------------------------------

def _link(citation: Citation) -> str:
    return f"[{citation.title or citation.url}]({citation.url})"


def render_viewpoint(viewpoint: Viewpoint) -> str:
    """Render one viewpoint: summary, arguments with inline sources, source list."""
    lines = [f"## {viewpoint.title} Perspective", "", viewpoint.description, ""]

    for idx, argument in enumerate(viewpoint.arguments, 1):
        lines.append(f"**{idx}. {argument.summary}**")
        detail = _CITATION_MARKER_RE.sub("", argument.detail).strip()
        if detail:
            lines.append("")
            lines.append(detail)
        cited = resolve_citation(argument.detail, viewpoint.citations)
        if cited and cited.url:
            lines.append("")
            lines.append(f"Source: {_link(cited)}")
        lines.append("")

    sourced = [(i, c) for i, c in enumerate(viewpoint.citations, 1) if c.url]
    if sourced:
        lines.append("### Sources")
        lines.extend(f"{i}. {_link(c)}" for i, c in sourced)

    return "\n".join(lines).strip()


def render_spectrum_header(selected: str) -> str:
    """A one-line indicator of the selected position on the spectrum."""
    parts = [
        f"**{VIEWPOINT_LABELS[v]}**" if v == selected else VIEWPOINT_LABELS[v]
        for v in VIEWPOINTS
    ]
    return " · ".join(parts)


def render_author(author: AuthorInfo) -> str:
    lines = [f"### About the author: {author.name}", ""]
    if author.background:
        lines += [author.background, ""]
    if author.potential_biases:
        lines.append("**Potential biases**")
        lines.extend(f"- {b}" for b in author.potential_biases)
        lines.append("")
    if author.recent_articles:
        lines.append("**Recent articles**")
        for a in author.recent_articles:
            suffix = f" ({a.date})" if a.date else ""
            lines.append(f"- [{a.title}]({a.url}){suffix}" if a.url else f"- {a.title}{suffix}")
        lines.append("")
    sourced = [c for c in author.citations if c.url]
    if sourced:
        lines.append("**Sources**")
        lines.extend(f"- {_link(c)}" for c in sourced)
    return "\n".join(lines).strip()


def render_article(article: Article) -> str:
    """The formatted article followed by the author profile, if any."""
    parts = [article.content.strip()]
    if article.author_info:
        parts.append(render_author(article.author_info))
    parts.append(f"[Original article]({article.url})")
    return "\n\n---\n\n".join(parts)


def render_sources(sources: list[Citation]) -> str:
    if not sources:
        return ""
    return "**Sources**\n" + "\n".join(f"- {_link(c)}" for c in sources)
