from __future__ import annotations

import asyncio
from typing import List, Optional

from ..dto import QueryIndexRequest
from ..index_manager import IndexManager
from ...domain.config import EmbeddingModelConfig
from ...domain.errors import EmbeddingError
from ...domain.interfaces import EmbeddingFunction
from ...domain.models import QueryResult, is_scalar
from ...infrastructure.embedding.factory import generate_embeddings


class QueryIndexUseCase:
    """Use-case: embed the query text and search the index."""

    def __init__(
        self,
        manager: IndexManager,
        embedding_config: EmbeddingModelConfig,
        embedding_fn: Optional[EmbeddingFunction] = None,
    ) -> None:
        self._manager = manager
        self._embedding_config = embedding_config
        self._embedding_fn = embedding_fn or manager.embedding_fn

    @staticmethod
    def validate(req: QueryIndexRequest) -> None:
        if not isinstance(req.query_text, str) or not req.query_text.strip():
            raise ValueError("query_text must be a non-empty string")
        if isinstance(req.top_k, bool) or not isinstance(req.top_k, int) or req.top_k < 1:
            raise ValueError(f"top_k must be a positive integer, got {req.top_k!r}")
        for key, value in (req.filter or {}).items():
            if not is_scalar(value):
                raise ValueError(f"filter value for '{key}' must be a string, number or boolean")

    async def execute(self, req: QueryIndexRequest) -> List[QueryResult]:
        self.validate(req)
        vectors = await asyncio.to_thread(
            generate_embeddings, [req.query_text], self._embedding_config, self._embedding_fn
        )
        if not vectors:
            raise EmbeddingError("Failed to generate embedding for the query.")
        return await self._manager.query_index(vectors[0], req.top_k, req.filter)
