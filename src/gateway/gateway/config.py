"""Gateway configuration — loads environment variables once at import time.

Usage:
    from gateway.config import config
    print(config.perplexity_model)

Provider API keys are optional at load time.  Endpoints check
``config.missing_credentials(...)`` before any network call and answer
with a configuration error when a key they need is unset.
"""

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

PERPLEXITY = "perplexity"
OPENAI = "openai"


def _find_env_file() -> Path | None:
    """Search for .env file starting from this file's directory, then up."""
    current = Path(__file__).resolve().parent.parent  # src/gateway/
    candidates = [
        current / ".env",
        current.parent.parent / ".env",  # repo root
    ]
    for candidate in candidates:
        if candidate.exists():
            return candidate
    return None


@dataclass(frozen=True)
class Config:
    """Typed configuration loaded from environment variables."""

    # Search-augmented provider (Perplexity)
    perplexity_api_key: str
    perplexity_base_url: str
    perplexity_model: str

    # Generic chat-completion provider (OpenAI)
    openai_api_key: str
    openai_model: str

    # Applied to every outbound HTTP request (provider calls and scraping)
    request_timeout: float

    port: int = 8088

    def missing_credentials(self, *providers: str) -> list[str]:
        """Return the env var names of unset keys for *providers*."""
        keys = {
            PERPLEXITY: ("PERPLEXITY_API_KEY", self.perplexity_api_key),
            OPENAI: ("OPENAI_API_KEY", self.openai_api_key),
        }
        return [keys[p][0] for p in providers if not keys[p][1]]


def _load_config() -> Config:
    """Load configuration from environment (and the nearest ``.env``)."""
    env_file = _find_env_file()
    if env_file:
        load_dotenv(env_file, override=False)

    return Config(
        perplexity_api_key=os.environ.get("PERPLEXITY_API_KEY", ""),
        perplexity_base_url=os.environ.get("PERPLEXITY_BASE_URL", "https://api.perplexity.ai"),
        perplexity_model=os.environ.get("PERPLEXITY_MODEL", "sonar-pro"),
        openai_api_key=os.environ.get("OPENAI_API_KEY", ""),
        openai_model=os.environ.get("OPENAI_MODEL", "gpt-4o-mini"),
        request_timeout=float(os.environ.get("REQUEST_TIMEOUT_SECONDS", "120")),
        port=int(os.environ.get("PORT", "8088")),
    )


# Singleton — imported as `from gateway.config import config`
config = _load_config()
