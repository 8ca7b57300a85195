"""Web app configuration — loads environment variables and validates required settings.

Usage:
    from app.config import config
    print(config.gateway_endpoint)
"""

import os
import sys
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv


def _find_env_file() -> Path | None:
    """Search for .env file starting from this file's directory, then up."""
    current = Path(__file__).resolve().parent.parent  # src/web-app/
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

    # Gateway endpoint (local: http://localhost:8088)
    gateway_endpoint: str

    # Perspective and analyze calls fan out to several provider requests
    request_timeout: float = 120.0


def _load_config() -> Config:
    """Load and validate configuration from environment."""
    env_file = _find_env_file()
    if env_file:
        load_dotenv(env_file, override=False)

    required = {
        "GATEWAY_ENDPOINT": "gateway_endpoint",
    }

    missing = [var for var in required if not os.environ.get(var)]
    if missing:
        print(
            f"Error: Missing required environment variables: {', '.join(missing)}\n"
            f"Copy .env.sample to .env and fill in values (GATEWAY_ENDPOINT=http://localhost:8088)",
            file=sys.stderr,
        )
        sys.exit(1)

    return Config(
        gateway_endpoint=os.environ["GATEWAY_ENDPOINT"],
        request_timeout=float(os.environ.get("REQUEST_TIMEOUT_SECONDS", "120")),
    )


# Singleton — imported as `from app.config import config`
config = _load_config()
