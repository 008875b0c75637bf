from __future__ import annotations

from typing import List
import requests

from ...domain.errors import EmbeddingError
from ...domain.interfaces import EmbeddingFunction
from ...domain.models import Vector
from ..timeouts import http_timeout_seconds


class OllamaEmbeddingFunction(EmbeddingFunction):
    """Embedding adapter for Ollama /api/embed."""

    def __init__(self, model_name: str = "nomic-embed-text", base_url: str = "http://localhost:11434") -> None:
        self._model = model_name
        self._base = base_url.rstrip("/")

    def generate(self, texts: List[str]) -> List[Vector]:
        if not texts:
            return []
        url = f"{self._base}/api/embed"
        timeout = http_timeout_seconds()
        try:
            r = requests.post(url, json={"model": self._model, "input": list(texts)}, timeout=timeout)
            r.raise_for_status()
            data = r.json() or {}
        except (requests.RequestException, ValueError) as exc:
            raise EmbeddingError(f"Ollama embedding request failed: {exc}") from exc
        embeddings = data.get("embeddings")
        if not isinstance(embeddings, list) or len(embeddings) != len(texts):
            got = len(embeddings) if isinstance(embeddings, list) else 0
            raise EmbeddingError(f"Ollama embedding count mismatch: expected {len(texts)}, got {got}")
        return [[float(x) for x in vec] for vec in embeddings]
