from __future__ import annotations

from typing import List, Optional, Sequence, Union

from ...domain.config import (
    EmbeddingModelConfig,
    HttpEmbeddingConfig,
    MockEmbeddingConfig,
    OllamaEmbeddingConfig,
    assert_never,
)
from ...domain.errors import EmbeddingError
from ...domain.interfaces import EmbeddingFunction
from ...domain.models import Chunk, Vector
from ..logging import get_logger
from .http import HttpEmbeddingFunction
from .mock import MockEmbeddingFunction
from .ollama import OllamaEmbeddingFunction

logger = get_logger("mcp_rag.infrastructure.embedding")


def create_embedding_function(config: EmbeddingModelConfig) -> EmbeddingFunction:
    if isinstance(config, MockEmbeddingConfig):
        return MockEmbeddingFunction(config.dimension)
    if isinstance(config, OllamaEmbeddingConfig):
        return OllamaEmbeddingFunction(config.model_name, config.base_url)
    if isinstance(config, HttpEmbeddingConfig):
        return HttpEmbeddingFunction(config.url, config.headers, config.batch_size)
    assert_never(config)


def generate_embeddings(
    chunks: Sequence[Union[Chunk, str]],
    config: EmbeddingModelConfig,
    embedding_fn: Optional[EmbeddingFunction] = None,
) -> List[Vector]:
    """Embed chunks (or raw strings) in batches of ``config.batch_size``.

    Raises:
        EmbeddingError: A batch returned a different number of vectors than texts.
    """
    texts = [c if isinstance(c, str) else c.content for c in chunks]
    if not texts:
        return []
    fn = embedding_fn or create_embedding_function(config)
    batch_size = config.batch_size if config.batch_size > 0 else 100
    out: List[Vector] = []
    for start in range(0, len(texts), batch_size):
        batch = texts[start:start + batch_size]
        vectors = fn.generate(batch)
        if len(vectors) != len(batch):
            logger.warning(
                "Embedding batch size mismatch | provider=%s | expected=%d | got=%d",
                config.provider.value,
                len(batch),
                len(vectors),
            )
            raise EmbeddingError(
                f"Embedding batch size mismatch: expected {len(batch)}, got {len(vectors)}"
            )
        out.extend(vectors)
    return out
