from __future__ import annotations

import asyncio
from typing import Dict, List, Optional

from ..domain.config import (
    ChromaDBConfig,
    InMemoryConfig,
    PineconeConfig,
    VectorDbConfig,
    VectorDbProvider,
    assert_never,
)
from ..domain.errors import (
    ConfigurationError,
    DeleteError,
    IndexManagerNotInitializedError,
    InitializationError,
    QueryError,
    StatusError,
    UpsertError,
)
from ..domain.interfaces import EmbeddingFunction, VectorBackend
from ..domain.models import Filter, IndexedItem, IndexStatus, QueryResult, Vector, vector_dim
from ..infrastructure.logging import get_logger
from ..infrastructure.chroma.client import ChromaVectorBackend
from ..infrastructure.memory.store import InMemoryVectorBackend
from ..infrastructure.pinecone.client import PineconeVectorBackend

logger = get_logger("mcp_rag.application.index_manager")


def _build_backend(config: VectorDbConfig, embedding_fn: Optional[EmbeddingFunction]) -> VectorBackend:
    if isinstance(config, InMemoryConfig):
        return InMemoryVectorBackend()
    if isinstance(config, PineconeConfig):
        return PineconeVectorBackend(config)
    if isinstance(config, ChromaDBConfig):
        return ChromaVectorBackend(config, embedding_fn)
    assert_never(config)


class IndexManager:
    """Backend-agnostic vector index facade.

    Construct with ``await IndexManager.create(config, embedding_fn)``. Every
    data method is a coroutine; synchronous client calls are run in a worker
    thread. Backend failures are re-raised wrapped in an operation-specific
    error with the cause chained.

    Upserts are not transactional: a failure in a later Pinecone batch leaves
    earlier batches written.
    """

    def __init__(self, config: VectorDbConfig, embedding_fn: Optional[EmbeddingFunction] = None) -> None:
        self._config = config
        self._embedding_fn = embedding_fn
        self._backend: Optional[VectorBackend] = None
        self._initialized = False
        if isinstance(config, InMemoryConfig):
            self._backend = InMemoryVectorBackend()
            self._initialized = True

    @classmethod
    async def create(
        cls, config: VectorDbConfig, embedding_fn: Optional[EmbeddingFunction] = None
    ) -> "IndexManager":
        """Build and initialize a manager.

        Raises:
            InitializationError: Configuration is incomplete or the backend
                client/collection could not be created.
        """
        manager = cls(config, embedding_fn)
        await manager._initialize()
        return manager

    @staticmethod
    def validate_config(config: VectorDbConfig, embedding_fn: Optional[EmbeddingFunction] = None) -> None:
        """Raise ConfigurationError when required provider settings are missing."""
        if isinstance(config, InMemoryConfig):
            return
        if isinstance(config, PineconeConfig):
            if not config.api_key or not config.index_name:
                raise ConfigurationError("Pinecone config requires apiKey and indexName.")
            return
        if isinstance(config, ChromaDBConfig):
            if embedding_fn is None:
                raise ConfigurationError("ChromaDB requires an embedding function.")
            if not config.path and not config.host:
                raise ConfigurationError("ChromaDB config requires either path or host.")
            return
        assert_never(config)

    async def _initialize(self) -> None:
        provider = self._config.provider.value
        if self._initialized:
            logger.info("IndexManager initialized | provider=%s", provider)
            return
        try:
            self.validate_config(self._config, self._embedding_fn)
            self._backend = await asyncio.to_thread(_build_backend, self._config, self._embedding_fn)
        except Exception as exc:
            self._backend = None
            self._initialized = False
            logger.error("IndexManager init failed | provider=%s | error=%s", provider, exc)
            raise InitializationError(f"IndexManager initialization failed: {exc}") from exc
        self._initialized = True
        logger.info("IndexManager initialized | provider=%s", provider)

    @property
    def provider(self) -> VectorDbProvider:
        return self._config.provider

    @property
    def config(self) -> VectorDbConfig:
        return self._config

    @property
    def embedding_fn(self) -> Optional[EmbeddingFunction]:
        return self._embedding_fn

    @property
    def supports_filtered_delete(self) -> bool:
        """False when ``delete_where`` is best effort (Pinecone plans without filtered delete)."""
        return self._require_backend().supports_filtered_delete

    def is_initialized(self) -> bool:
        return self._initialized

    def _require_backend(self) -> VectorBackend:
        if not self._initialized or self._backend is None:
            raise IndexManagerNotInitializedError("IndexManager not initialized. Call IndexManager.create() first.")
        return self._backend

    def reset(self) -> None:
        """Drop every item from the in-memory store."""
        backend = self._require_backend()
        if not isinstance(backend, InMemoryVectorBackend):
            raise ConfigurationError(f"reset() is only supported for the in-memory provider, not {self.provider.value}")
        backend.clear()

    async def upsert_items(self, items: List[IndexedItem]) -> None:
        backend = self._require_backend()
        if not items:
            return
        try:
            vector_dim(items)
            await asyncio.to_thread(backend.upsert, list(items))
        except Exception as exc:
            raise UpsertError(f"Upsert failed: {exc}") from exc
        logger.debug("Upserted items | provider=%s | count=%d", self.provider.value, len(items))

    async def query_index(
        self, query_vector: Vector, top_k: int = 5, filter: Optional[Filter] = None
    ) -> List[QueryResult]:
        backend = self._require_backend()
        try:
            return await asyncio.to_thread(backend.query, list(query_vector), top_k, filter or None)
        except Exception as exc:
            raise QueryError(f"Query failed: {exc}") from exc

    async def delete_items(self, ids: List[str]) -> None:
        backend = self._require_backend()
        if not ids:
            return
        try:
            await asyncio.to_thread(backend.delete, list(ids))
        except Exception as exc:
            raise DeleteError(f"Delete failed: {exc}") from exc
        logger.debug("Deleted items | provider=%s | count=%d", self.provider.value, len(ids))

    async def delete_where(self, filter: Optional[Filter]) -> None:
        """Delete every item matching ``filter``; an empty filter is refused."""
        backend = self._require_backend()
        if not filter:
            logger.warning("deleteWhere called with empty filter; refusing to delete everything")
            return
        try:
            await asyncio.to_thread(backend.delete_where, dict(filter))
        except Exception as exc:
            raise DeleteError(f"deleteWhere failed: {exc}") from exc

    async def get_all_ids(self) -> List[str]:
        backend = self._require_backend()
        try:
            return await asyncio.to_thread(backend.all_ids)
        except Exception as exc:
            raise QueryError(f"getAllIds failed: {exc}") from exc

    async def get_status(self) -> IndexStatus:
        backend = self._require_backend()
        try:
            return await asyncio.to_thread(backend.status)
        except Exception as exc:
            raise StatusError(f"getStatus failed: {exc}") from exc

    async def get_chunks_metadata_by_source(self, source: str) -> Dict[str, Dict[str, object]]:
        """Return ``{id: metadata}`` for chunks whose ``source`` metadata equals ``source``."""
        backend = self._require_backend()
        try:
            return await asyncio.to_thread(backend.metadata_where, {"source": source})
        except Exception as exc:
            raise QueryError(f"getChunksMetadata failed: {exc}") from exc
