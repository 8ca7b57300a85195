"""Shared test fixtures for web-app tests."""

import os

# Config is loaded at import time — set required env vars before any app
# modules are imported by the test collector.
os.environ.setdefault("GATEWAY_ENDPOINT", "http://gateway.test")

import pytest  # noqa: E402


@pytest.fixture
def perspectives_payload() -> dict:
    """A ``/api/perspectives`` response body as the gateway sends it."""

    def _viewpoint(label: str) -> dict:
        return {
            "title": label,
            "description": f"{label} summary",
            "arguments": [
                {"summary": "First point", "detail": "Backed by a study [1]"},
                {"summary": "Second point", "detail": "Unsourced claim"},
            ],
            "citations": [{"title": "Study", "url": "https://study.example"}],
        }

    return {
        "perspectives": {
            "progressive": _viewpoint("Progressive"),
            "moderate": _viewpoint("Moderate"),
            "conservative": _viewpoint("Conservative"),
        }
    }
