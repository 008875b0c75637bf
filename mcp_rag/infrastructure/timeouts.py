from __future__ import annotations

from .config import env_float

DEFAULT_HTTP_TIMEOUT = 15.0


def http_timeout_seconds() -> float:
    """Per-request timeout for embedding HTTP calls (RAG_HTTP_TIMEOUT, seconds)."""
    value = env_float("RAG_HTTP_TIMEOUT", DEFAULT_HTTP_TIMEOUT)
    return value if value > 0 else DEFAULT_HTTP_TIMEOUT
