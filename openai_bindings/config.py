"""
Configuration constants and environment lookups for openai-bindings.
"""

import os
from typing import Optional


# ─────────────────────────────────────────────────────────────────────
# DEFAULTS
# ─────────────────────────────────────────────────────────────────────

DEFAULT_BASE_URL: str = "https://api.openai.com/v1/"
DEFAULT_TIMEOUT_SECONDS: float = 60.0
DEFAULT_CHAT_MODEL: str = "gpt-3.5-turbo"
DEFAULT_EMBEDDING_MODEL: str = "text-embedding-ada-002"


# ─────────────────────────────────────────────────────────────────────
# WIRE CONSTANTS
# ─────────────────────────────────────────────────────────────────────

# Literal payload the server sends as the last SSE data field
STREAM_DONE_SENTINEL: str = "[DONE]"
EVENT_STREAM_CONTENT_TYPE: str = "text/event-stream"


# ─────────────────────────────────────────────────────────────────────
# ENVIRONMENT LOADING
# ─────────────────────────────────────────────────────────────────────

def get_api_key() -> Optional[str]:
    """
    Get the API credential from environment.

    Reads OPENAI_API_KEY, falling back to OPENAI_KEY.
    Returns None when neither is set (or both are blank).
    """
    for key in ("OPENAI_API_KEY", "OPENAI_KEY"):
        value = os.environ.get(key, "").strip()
        if value:
            return value
    return None


def get_base_url() -> str:
    """
    Get the API base URL from environment or default.

    Set OPENAI_BASE_URL in .env to target a compatible server.
    A trailing slash is enforced so relative routes resolve under it.
    """
    url = os.environ.get("OPENAI_BASE_URL", "").strip() or DEFAULT_BASE_URL
    return normalize_base_url(url)


def get_timeout_seconds() -> float:
    """
    Get HTTP timeout from environment or default.

    Set OPENAI_TIMEOUT_SECONDS in .env (default: 60).
    """
    try:
        return float(os.environ.get("OPENAI_TIMEOUT_SECONDS", DEFAULT_TIMEOUT_SECONDS))
    except ValueError:
        return DEFAULT_TIMEOUT_SECONDS


def normalize_base_url(url: str) -> str:
    """Ensure exactly one trailing slash."""
    return url.rstrip("/") + "/"
