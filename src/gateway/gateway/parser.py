"""Model-output parsing — JSON extraction, citation merging, query refinement.

Models are asked for strict JSON but routinely wrap it in code fences or
prose.  :func:`parse_json_object` tolerates both; everything built on top
of it only checks the *top-level* fields it needs and leaves nested shapes
to the permissive defaults in :mod:`gateway.models`.
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

from pydantic import ValidationError

from gateway.models import Argument, AuthorInfo, Citation, Viewpoint

logger = logging.getLogger(__name__)

_CODE_FENCE_RE = re.compile(r"```(?:json)?\s*|\s*```")
_MAIN_QUERY_RE = re.compile(r"MAIN QUERY:\s*([^\n]+)")
_FOLLOW_UPS_RE = re.compile(r"FOLLOW UP QUERIES:\s*([\s\S]+)$")
_NUMBERED_RE = re.compile(r"^\d+\.\s*")

FALLBACK_SUMMARY = "Unable to parse perspective"


class ResponseParseError(ValueError):
    """Model output could not be turned into the expected structure."""


# ---------------------------------------------------------------------------
# JSON
# ---------------------------------------------------------------------------


def strip_code_fences(text: str) -> str:
    """Remove Markdown code-fence markers (```` ```json ```` / ```` ``` ````)."""
    return _CODE_FENCE_RE.sub("", text).strip()


def parse_json_object(text: str) -> dict[str, Any]:
    """Parse a JSON object out of model output.

    Tries the fence-stripped text first, then the span between the first
    ``{`` and the last ``}``.
    """
    cleaned = strip_code_fences(text or "")
    candidates = [cleaned]
    start, end = cleaned.find("{"), cleaned.rfind("}")
    if start != -1 and end > start:
        candidates.append(cleaned[start:end + 1])

    for candidate in candidates:
        try:
            parsed = json.loads(candidate)
        except json.JSONDecodeError:
            continue
        if isinstance(parsed, dict):
            return parsed

    raise ResponseParseError("No JSON object found in model output")


# ---------------------------------------------------------------------------
# Citations
# ---------------------------------------------------------------------------


def _as_citation(raw: Any) -> Citation | None:
    if isinstance(raw, str):
        # Perplexity reports citations as bare URLs
        return Citation(title=raw, url=raw) if raw.strip() else None
    if not isinstance(raw, dict):
        return None
    try:
        return Citation.model_validate(raw)
    except ValidationError:
        return None


def merge_citations(*sources: Iterable[Any] | None) -> list[Citation]:
    """Concatenate citation lists, keeping entries with a title or a url.

    Order is preserved and duplicates are kept.
    """
    merged: list[Citation] = []
    for source in sources:
        for raw in source or []:
            citation = _as_citation(raw)
            if citation and (citation.title or citation.url):
                merged.append(citation)
    return merged


# ---------------------------------------------------------------------------
# Structured results
# ---------------------------------------------------------------------------


def parse_viewpoint(text: str, title: str) -> Viewpoint:
    """Build a :class:`Viewpoint` from a perspective-analysis answer.

    Requires a ``summary`` (or ``description``) and an ``arguments`` list.
    Citations missing either a title or a url are dropped.
    """
    data = parse_json_object(text)

    summary = data.get("summary") or data.get("description")
    arguments = data.get("arguments")
    if not summary or not isinstance(arguments, list):
        raise ResponseParseError("Response missing required fields")

    raw_citations = data.get("citations")
    if not isinstance(raw_citations, list):
        raw_citations = []
    citations = [c for c in merge_citations(raw_citations) if c.title and c.url]

    try:
        return Viewpoint(
            title=title,
            description=str(summary),
            arguments=[Argument.model_validate(a) for a in arguments],
            citations=citations,
        )
    except ValidationError as e:
        raise ResponseParseError(f"Malformed arguments: {e.error_count()} error(s)") from e


def fallback_viewpoint(title: str) -> Viewpoint:
    """Placeholder returned when a perspective answer cannot be parsed."""
    return Viewpoint(
        title=title,
        description=FALLBACK_SUMMARY,
        arguments=[
            Argument(
                summary="Error Processing Response",
                detail="The system encountered an error while processing this perspective. Please try again.",
            )
        ],
        citations=[],
    )


def parse_author_info(text: str, provider_citations: Iterable[Any] | None = None) -> AuthorInfo:
    """Build :class:`AuthorInfo`, merging model and provider citations."""
    try:
        data = parse_json_object(text)
        if not data.get("name"):
            raise ResponseParseError("Response missing author name")
        model_citations = data.get("citations") if isinstance(data.get("citations"), list) else []
        data["citations"] = merge_citations(model_citations, provider_citations)
        return AuthorInfo.model_validate(data)
    except (ResponseParseError, ValidationError) as e:
        logger.error("Error parsing author analysis response: %s", e)
        raise ResponseParseError("Failed to parse author information") from e


@dataclass
class RefinedQueries:
    """Output of the query-refinement pass."""

    main_query: str
    follow_up_queries: list[str] = field(default_factory=list)


def parse_refined_queries(output: str, question: str) -> RefinedQueries:
    """Read ``MAIN QUERY:`` / ``FOLLOW UP QUERIES:`` sections.

    Falls back to *question* when no main query is present.
    """
    main_match = _MAIN_QUERY_RE.search(output or "")
    main_query = main_match.group(1).strip() if main_match else question

    follow_ups: list[str] = []
    follow_match = _FOLLOW_UPS_RE.search(output or "")
    if follow_match:
        for line in follow_match.group(1).splitlines():
            line = line.strip()
            if _NUMBERED_RE.match(line):
                query = _NUMBERED_RE.sub("", line).strip()
                if query:
                    follow_ups.append(query)

    return RefinedQueries(main_query=main_query or question, follow_up_queries=follow_ups)
