"""Tests for app.views — spectrum, citations, sources trailer, stream state."""

from __future__ import annotations

import pytest

from app.models import Article, AuthorInfo, Citation, RecentArticle, Viewpoint
from app.views import (
    DEFAULT_VIEWPOINT,
    ChatStreamState,
    StreamPhase,
    citation_index,
    render_article,
    render_author,
    render_spectrum_header,
    render_viewpoint,
    resolve_citation,
    slider_value_for,
    split_sources,
    viewpoint_for_slider,
)

_CITATIONS = [Citation(title="First", url="https://1.example"), Citation(title="Second", url="https://2.example")]


# ---------------------------------------------------------------------------
# Spectrum slider
# ---------------------------------------------------------------------------

class TestSpectrum:
    """Tests for slider ↔ viewpoint mapping."""

    def test_default_is_moderate(self) -> None:
        assert DEFAULT_VIEWPOINT == "moderate"
        assert slider_value_for(DEFAULT_VIEWPOINT) == 1

    @pytest.mark.parametrize("value,expected", [(0, "progressive"), (1, "moderate"), (2, "conservative"), (2.0, "conservative")])
    def test_positions(self, value, expected) -> None:
        assert viewpoint_for_slider(value) == expected

    @pytest.mark.parametrize("value", [None, -1, 3, "left"])
    def test_out_of_range_falls_back_to_moderate(self, value) -> None:
        assert viewpoint_for_slider(value) == "moderate"

    def test_unknown_viewpoint_maps_to_centre(self) -> None:
        assert slider_value_for("libertarian") == 1

    def test_header_marks_only_selected(self) -> None:
        header = render_spectrum_header("conservative")
        assert "**Conservative**" in header
        assert "**Moderate**" not in header


# ---------------------------------------------------------------------------
# Citations
# ---------------------------------------------------------------------------

class TestCitationIndex:
    """Tests for trailing [n] markers."""

    def test_first_marker_is_index_zero(self) -> None:
        assert citation_index("Some claim [1]") == 0

    def test_marker_must_be_trailing(self) -> None:
        assert citation_index("[1] leads the sentence") is None

    def test_no_marker(self) -> None:
        assert citation_index("No marker") is None
        assert citation_index("") is None

    def test_resolves(self) -> None:
        assert resolve_citation("Claim [2]", _CITATIONS) == _CITATIONS[1]

    @pytest.mark.parametrize("text", ["Claim [0]", "Claim [3]", "Claim [99]", "Claim"])
    def test_unresolvable_returns_none(self, text: str) -> None:
        assert resolve_citation(text, _CITATIONS) is None

    def test_empty_citation_list(self) -> None:
        assert resolve_citation("Claim [1]", []) is None


class TestSplitSources:
    """Tests for the SOURCES: trailer parser."""

    def test_extracts_trailer(self) -> None:
        text = (
            "The council approved it.\n\n"
            "SOURCES:\n"
            "City Hall Minutes - https://city.example/minutes\n"
            "Local Paper - https://paper.example/story\n"
        )
        content, sources = split_sources(text)
        assert content == "The council approved it."
        assert sources == [
            Citation(title="City Hall Minutes", url="https://city.example/minutes"),
            Citation(title="Local Paper", url="https://paper.example/story"),
        ]

    def test_case_insensitive(self) -> None:
        content, sources = split_sources("Answer\nsources: A - https://a.example")
        assert content == "Answer"
        assert sources[0].url == "https://a.example"

    def test_drops_incomplete_lines(self) -> None:
        _, sources = split_sources("Answer\nSOURCES:\nNo url here\n - https://no-title.example\nOk - https://ok.example")
        assert [s.title for s in sources] == ["Ok"]

    def test_no_trailer(self) -> None:
        assert split_sources("Just an answer.") == ("Just an answer.", [])


# ---------------------------------------------------------------------------
# Chat stream state
# ---------------------------------------------------------------------------

class TestChatStreamState:
    """Tests for the idle → loading → streaming → done lifecycle."""

    def test_lifecycle(self) -> None:
        state = ChatStreamState()
        assert state.phase is StreamPhase.IDLE
        assert not state.loading

        state.start()
        assert state.loading
        assert not state.started

        state.apply({"type": "follow_up_queries", "content": ["Why?", "How?"]})
        assert state.follow_ups == ["Why?", "How?"]
        assert state.phase is StreamPhase.LOADING

        assert state.apply({"type": "answer", "content": "Hel"}) == "Hel"
        assert state.apply({"type": "answer", "content": "lo"}) == "lo"
        assert state.phase is StreamPhase.STREAMING
        assert state.started
        assert state.text == "Hello"

        state.finish()
        assert state.phase is StreamPhase.DONE
        assert not state.loading

    def test_zero_answer_frames_still_leaves_loading(self) -> None:
        state = ChatStreamState()
        state.start()
        state.apply({"type": "follow_up_queries", "content": []})

        state.finish()

        assert not state.loading
        assert state.text == ""

    def test_error_clears_loading(self) -> None:
        state = ChatStreamState()
        state.start()
        state.finish(error="Gateway unreachable")
        assert not state.loading
        assert state.error == "Gateway unreachable"

    def test_unknown_and_empty_events_ignored(self) -> None:
        state = ChatStreamState()
        state.start()
        assert state.apply({"type": "heartbeat"}) == ""
        assert state.apply({"type": "answer", "content": ""}) == ""
        assert state.phase is StreamPhase.LOADING

    def test_start_clears_previous_answer(self) -> None:
        state = ChatStreamState()
        state.start()
        state.apply({"type": "answer", "content": "old"})
        state.finish()

        state.start()
        assert state.text == ""
        assert state.follow_ups == []


# ---------------------------------------------------------------------------
# Markdown renderers
# ---------------------------------------------------------------------------

class TestRenderers:
    """Tests for Markdown output."""

    def test_viewpoint(self, perspectives_payload: dict) -> None:
        vp = Viewpoint.from_dict(perspectives_payload["perspectives"]["moderate"])
        text = render_viewpoint(vp)

        assert text.startswith("## Moderate Perspective")
        assert "Moderate summary" in text
        assert "**1. First point**" in text
        assert "Source: [Study](https://study.example)" in text
        assert text.count("Source: ") == 1
        assert "Backed by a study" in text
        assert "[1]" not in text.split("### Sources")[0]
        assert "### Sources" in text

    def test_placeholder_viewpoint_renders(self) -> None:
        vp = Viewpoint(title="Moderate", description="Unable to parse perspective")
        assert "Unable to parse perspective" in render_viewpoint(vp)

    def test_author(self) -> None:
        author = AuthorInfo(
            name="Jane Doe",
            background="Reporter.",
            potential_biases=["Leans local"],
            recent_articles=[RecentArticle(title="Earlier", url="https://e.example", date="2024-05-01")],
        )
        text = render_author(author)
        assert "Jane Doe" in text
        assert "- Leans local" in text
        assert "[Earlier](https://e.example) (2024-05-01)" in text

    def test_article_without_author(self) -> None:
        text = render_article(Article(url="https://news.example/a", title="T", content="Body"))
        assert text.startswith("Body")
        assert "About the author" not in text
        assert "(https://news.example/a)" in text
