from __future__ import annotations

import asyncio
import time
from pathlib import Path
from typing import Dict, List, Optional

from ..dto import (
    IndexContentItem,
    IndexContentRequest,
    IndexContentResult,
    IndexDirectoryRequest,
    IndexDirectoryResult,
)
from ..index_manager import IndexManager
from ...domain.config import EmbeddingModelConfig
from ...domain.errors import ChunkingError, EmbeddingError, IndexManagerError
from ...domain.interfaces import EmbeddingFunction
from ...domain.models import Chunk, ChunkingOptions, IndexedItem
from ...infrastructure.chunking.chunker import chunk_code
from ...infrastructure.chunking.languages import SupportedLanguage, detect_language, parse_language
from ...infrastructure.embedding.factory import generate_embeddings
from ...infrastructure.logging import get_logger
from ...ingestion.loader import load_documents

logger = get_logger("mcp_rag.application.index_content")


def chunk_id(base: str, index: int) -> str:
    return f"{base}-chunk-{index}"


def _suggestion_for(exc: Exception) -> str:
    if isinstance(exc, EmbeddingError):
        return "Check the embedding provider settings (EMBED_PROVIDER, OLLAMA_URL, EMBED_HTTP_URL) and that the service is reachable."
    if isinstance(exc, ChunkingError):
        return "Check chunking options: chunk_overlap must be smaller than max_chunk_size."
    if isinstance(exc, IndexManagerError):
        return "Check the vector database configuration and connectivity."
    return "Check the input content and the server logs for details."


async def embed_chunks(
    manager: IndexManager,
    embedding_config: EmbeddingModelConfig,
    chunks: List[Chunk],
    base_id: str,
    embedding_fn: Optional[EmbeddingFunction] = None,
) -> List[IndexedItem]:
    """Embed ``chunks`` and pair each with its ``{base_id}-chunk-{i}`` id."""
    fn = embedding_fn or manager.embedding_fn
    vectors = await asyncio.to_thread(generate_embeddings, chunks, embedding_config, fn)
    if len(vectors) != len(chunks):
        raise EmbeddingError("Mismatch between number of chunks and generated embeddings.")
    return [IndexedItem.from_chunk(c, chunk_id(base_id, i), v) for i, (c, v) in enumerate(zip(chunks, vectors))]


class IndexContentUseCase:
    """Use-case: chunk, embed and upsert each content item; one result per item."""

    def __init__(
        self,
        manager: IndexManager,
        embedding_config: EmbeddingModelConfig,
        embedding_fn: Optional[EmbeddingFunction] = None,
    ) -> None:
        self._manager = manager
        self._embedding_config = embedding_config
        self._embedding_fn = embedding_fn

    @staticmethod
    def validate(req: IndexContentRequest) -> None:
        for n, item in enumerate(req.items):
            if not isinstance(item.content, str):
                raise ValueError(f"items[{n}].content must be a string")
            parse_language(item.language)
        if req.chunking_options is not None:
            req.chunking_options.validate()

    async def execute(self, req: IndexContentRequest) -> List[IndexContentResult]:
        self.validate(req)
        results: List[IndexContentResult] = []
        for item in req.items:
            results.append(await self._index_one(item, req.chunking_options))
        ok = sum(1 for r in results if r.success)
        logger.info("Index content | items=%d | succeeded=%d", len(results), ok)
        return results

    async def _index_one(self, item: IndexContentItem, options: Optional[ChunkingOptions]) -> IndexContentResult:
        result = IndexContentResult(id=item.id, source=item.source)
        try:
            language: Optional[SupportedLanguage] = parse_language(item.language)
            if language is None and item.source:
                language = detect_language(item.source)
            base_meta: Dict[str, object] = {"source": item.source} if item.source else {}
            chunks = chunk_code(item.content, language, options, base_meta)
            if not chunks:
                result.success = True
                return result
            base_id = item.source or item.id or f"item-{int(time.time() * 1000)}"
            indexed = await embed_chunks(self._manager, self._embedding_config, chunks, base_id, self._embedding_fn)
            await self._manager.upsert_items(indexed)
            result.success = True
            result.chunks_upserted = len(indexed)
        except (IndexManagerError, EmbeddingError, ChunkingError, ValueError) as exc:
            logger.warning("Index content item failed | source=%s | id=%s | error=%s", item.source, item.id, exc)
            result.error = str(exc)
            result.suggestion = _suggestion_for(exc)
        return result


class IndexDirectoryUseCase:
    """Use-case: load a project tree and index every document under its relative path."""

    def __init__(
        self,
        manager: IndexManager,
        embedding_config: EmbeddingModelConfig,
        chunking_options: Optional[ChunkingOptions] = None,
        embedding_fn: Optional[EmbeddingFunction] = None,
    ) -> None:
        self._content = IndexContentUseCase(manager, embedding_config, embedding_fn)
        self._chunking_options = chunking_options

    async def execute(self, req: IndexDirectoryRequest) -> IndexDirectoryResult:
        docs = await asyncio.to_thread(
            load_documents, Path(req.root), req.include or None, req.exclude or None, req.respect_gitignore
        )
        items = [IndexContentItem(content=d.content, id=d.id, source=d.id) for d in docs]
        results = await self._content.execute(IndexContentRequest(items=items, chunking_options=self._chunking_options))
        return IndexDirectoryResult(
            files=len(docs),
            chunks_upserted=sum(r.chunks_upserted for r in results),
            failed=[r.source or r.id or "" for r in results if not r.success],
        )
