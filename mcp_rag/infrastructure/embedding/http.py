from __future__ import annotations

from typing import Dict, List, Optional
import requests

from ...domain.errors import EmbeddingError
from ...domain.interfaces import EmbeddingFunction
from ...domain.models import Vector
from ..timeouts import http_timeout_seconds


def _extract_embeddings(result: object) -> List[Vector]:
    """Accept ``{"embeddings": [...]}`` or OpenAI-style ``{"data": [{"embedding": [...]}]}``."""
    if isinstance(result, dict):
        if isinstance(result.get("embeddings"), list):
            return result["embeddings"]
        data = result.get("data")
        if isinstance(data, list) and data and isinstance(data[0], dict) and "embedding" in data[0]:
            return [row.get("embedding") for row in data]
    raise EmbeddingError("Invalid response format from HTTP embedding API.")


class HttpEmbeddingFunction(EmbeddingFunction):
    """Embedding adapter for a generic JSON endpoint taking ``{"input": [...]}``."""

    def __init__(self, url: str, headers: Optional[Dict[str, str]] = None, batch_size: int = 100) -> None:
        if batch_size <= 0:
            raise ValueError(f"batch_size must be positive, got {batch_size}")
        self._url = url.rstrip("/")
        self._headers = {"Content-Type": "application/json", **(headers or {})}
        self._batch_size = batch_size

    def generate(self, texts: List[str]) -> List[Vector]:
        if not texts:
            return []
        timeout = http_timeout_seconds()
        out: List[Vector] = []
        for start in range(0, len(texts), self._batch_size):
            batch = texts[start:start + self._batch_size]
            try:
                r = requests.post(self._url, json={"input": batch}, headers=self._headers, timeout=timeout)
            except requests.RequestException as exc:
                raise EmbeddingError(f"HTTP embedding generation failed: {exc}") from exc
            if not r.ok:
                raise EmbeddingError(
                    f"HTTP embedding generation failed: HTTP error {r.status_code}: {r.reason}. Body: {r.text}"
                )
            try:
                payload = r.json()
            except ValueError as exc:
                raise EmbeddingError(f"HTTP embedding generation failed: invalid JSON: {exc}") from exc
            vectors = _extract_embeddings(payload)
            if len(vectors) != len(batch):
                raise EmbeddingError(f"HTTP embedding count mismatch: expected {len(batch)}, got {len(vectors)}")
            out.extend([float(x) for x in vec] for vec in vectors)
        return out
