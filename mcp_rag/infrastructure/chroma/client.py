from __future__ import annotations

from typing import Any, Dict, List, Optional
from urllib.parse import urlparse

import chromadb
from chromadb.api.types import Documents, Embeddings
from chromadb.api.types import EmbeddingFunction as ChromaEmbeddingFunction

from ...domain.config import ChromaDBConfig
from ...domain.errors import ConfigurationError
from ...domain.interfaces import EmbeddingFunction, VectorBackend
from ...domain.models import Filter, IndexedItem, IndexStatus, QueryResult, Vector, is_scalar
from ..logging import get_logger

logger = get_logger("mcp_rag.infrastructure.chroma")

DEFAULT_CHROMA_PORT = 8000
GET_PAGE_SIZE = 1000


def convert_filter_to_chroma_where(filter: Filter) -> Dict[str, Any]:
    """Translate a flat equality filter into a Chroma ``where`` clause.

    One key maps to ``{key: {"$eq": value}}``; several keys are combined
    with ``$and`` because Chroma accepts a single top-level operator.
    """
    clauses = [{key: {"$eq": value}} for key, value in filter.items()]
    if not clauses:
        return {}
    if len(clauses) == 1:
        return clauses[0]
    return {"$and": clauses}


def filter_metadata(metadata: Dict[str, object]) -> Optional[Dict[str, object]]:
    """Keep only str/int/float/bool values; Chroma rejects everything else (and empty dicts)."""
    kept = {k: v for k, v in (metadata or {}).items() if is_scalar(v)}
    return kept or None


class ChromaEmbeddingAdapter(ChromaEmbeddingFunction[Documents]):
    """Exposes an EmbeddingFunction through chromadb's embedding callback protocol."""

    def __init__(self, embedding_fn: EmbeddingFunction) -> None:
        self._embedding_fn = embedding_fn

    def __call__(self, input: Documents) -> Embeddings:
        return self._embedding_fn.generate(list(input))

    @staticmethod
    def name() -> str:
        return "mcp_rag"


def _build_client(config: ChromaDBConfig):
    if config.host:
        parsed = urlparse(config.host if "://" in config.host else f"http://{config.host}")
        ssl = parsed.scheme == "https"
        port = parsed.port or (443 if ssl else DEFAULT_CHROMA_PORT)
        logger.info("Chroma client | host=%s | port=%d | ssl=%s", parsed.hostname, port, ssl)
        return chromadb.HttpClient(host=parsed.hostname or "localhost", port=port, ssl=ssl)
    logger.info("Chroma client | path=%s", config.path)
    return chromadb.PersistentClient(path=config.path)


def _first(rows: Any) -> List[Any]:
    """Unwrap the per-query outer list of a Chroma query result column."""
    if not rows:
        return []
    return list(rows[0] or [])


class ChromaVectorBackend(VectorBackend):
    """Vector store adapter for one ChromaDB collection (local path or remote host)."""

    supports_filtered_delete = True

    def __init__(self, config: ChromaDBConfig, embedding_fn: Optional[EmbeddingFunction], client: Any = None) -> None:
        if embedding_fn is None:
            raise ConfigurationError(
                "ChromaDB provider requires an embedding function to be provided during IndexManager creation."
            )
        if not config.host and not config.path:
            raise ConfigurationError('ChromaDB config requires either a "path" or a "host".')
        self._config = config
        self._client = client or _build_client(config)
        self._collection = self._client.get_or_create_collection(
            name=config.collection_name,
            embedding_function=ChromaEmbeddingAdapter(embedding_fn),
        )
        logger.info("Chroma collection ready | name=%s", config.collection_name)

    def upsert(self, items: List[IndexedItem]) -> None:
        ids = [it.id for it in items]
        embeddings = [list(it.vector) for it in items]
        metadatas = [filter_metadata(it.metadata) for it in items]
        documents = [it.content for it in items]
        self._collection.upsert(
            ids=ids,
            embeddings=embeddings,
            metadatas=metadatas if any(m is not None for m in metadatas) else None,
            documents=documents,
        )
        logger.debug("Chroma upsert | collection=%s | size=%d", self._config.collection_name, len(items))

    def query(self, vector: Vector, top_k: int, filter: Optional[Filter] = None) -> List[QueryResult]:
        res = self._collection.query(
            query_embeddings=[list(vector)],
            n_results=top_k,
            where=convert_filter_to_chroma_where(filter) if filter else None,
            include=["metadatas", "documents", "distances"],
        )
        ids = _first(res.get("ids"))
        distances = _first(res.get("distances"))
        metadatas = _first(res.get("metadatas"))
        documents = _first(res.get("documents"))
        results: List[QueryResult] = []
        # Column i of every array describes the same hit.
        for i, item_id in enumerate(ids):
            distance = distances[i] if i < len(distances) else None
            meta = metadatas[i] if i < len(metadatas) else None
            doc = documents[i] if i < len(documents) else None
            item = IndexedItem(id=str(item_id), content=doc or "", vector=[], metadata=dict(meta or {}))
            results.append(QueryResult(item=item, score=1.0 - float(distance) if distance is not None else 0.0))
        return results

    def delete(self, ids: List[str]) -> None:
        self._collection.delete(ids=list(ids))

    def delete_where(self, filter: Filter) -> None:
        self._collection.delete(where=convert_filter_to_chroma_where(filter))
        logger.info("Chroma deleteWhere | collection=%s | filter=%s", self._config.collection_name, filter)

    def all_ids(self) -> List[str]:
        ids: List[str] = []
        offset = 0
        while True:
            page = self._collection.get(limit=GET_PAGE_SIZE, offset=offset, include=[])
            page_ids = list(page.get("ids") or [])
            ids.extend(str(i) for i in page_ids)
            if len(page_ids) < GET_PAGE_SIZE:
                return ids
            offset += GET_PAGE_SIZE

    def status(self) -> IndexStatus:
        return IndexStatus(count=int(self._collection.count()), name=str(self._collection.name))

    def metadata_where(self, filter: Filter) -> Dict[str, Dict[str, object]]:
        res = self._collection.get(where=convert_filter_to_chroma_where(filter), include=["metadatas"])
        ids = list(res.get("ids") or [])
        metadatas = list(res.get("metadatas") or [])
        return {str(i): dict((metadatas[n] if n < len(metadatas) else None) or {}) for n, i in enumerate(ids)}
