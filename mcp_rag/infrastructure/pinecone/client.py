from __future__ import annotations

from typing import Any, Dict, List, Optional

from pinecone import Pinecone

from ...domain.config import PineconeConfig
from ...domain.errors import ConfigurationError
from ...domain.interfaces import VectorBackend
from ...domain.models import Filter, IndexedItem, IndexStatus, QueryResult, Vector
from ...domain.scoring import matches_filter
from ..logging import get_logger

logger = get_logger("mcp_rag.infrastructure.pinecone")

# Limits imposed by the Pinecone data plane API.
UPSERT_BATCH_SIZE = 100
DELETE_BATCH_SIZE = 1000
FETCH_BATCH_SIZE = 100
LIST_PAGE_SIZE = 100


def _field(obj: Any, name: str, default: Any = None) -> Any:
    """Read ``name`` from an SDK response object or a plain dict."""
    if obj is None:
        return default
    if isinstance(obj, dict):
        return obj.get(name, default)
    return getattr(obj, name, default)


def to_pinecone_filter(filter: Optional[Filter]) -> Optional[Dict[str, Dict[str, object]]]:
    """Translate a flat equality filter into Pinecone's ``{key: {"$eq": value}}`` form (implicit AND)."""
    if not filter:
        return None
    return {key: {"$eq": value} for key, value in filter.items()}


class PineconeVectorBackend(VectorBackend):
    """Vector store adapter for one namespace of a Pinecone index."""

    # Filtered delete depends on the index type/plan; failures are logged, not raised.
    supports_filtered_delete = False

    def __init__(self, config: PineconeConfig, client: Optional[Pinecone] = None) -> None:
        if not config.api_key or not config.index_name:
            raise ConfigurationError("Pinecone config requires apiKey and indexName.")
        self._config = config
        self._namespace = config.namespace or ""
        self._client = client or Pinecone(api_key=config.api_key)
        # Binding does not contact the service; a missing index surfaces on first operation.
        self._index = self._client.Index(config.index_name)

    @property
    def namespace(self) -> str:
        return self._namespace

    def upsert(self, items: List[IndexedItem]) -> None:
        for start in range(0, len(items), UPSERT_BATCH_SIZE):
            batch = items[start:start + UPSERT_BATCH_SIZE]
            vectors = [{"id": it.id, "values": list(it.vector), "metadata": dict(it.metadata)} for it in batch]
            self._index.upsert(vectors=vectors, namespace=self._namespace)
            logger.debug("Pinecone upsert batch | namespace=%s | size=%d", self._namespace, len(batch))

    def query(self, vector: Vector, top_k: int, filter: Optional[Filter] = None) -> List[QueryResult]:
        response = self._index.query(
            vector=list(vector),
            top_k=top_k,
            filter=to_pinecone_filter(filter),
            include_metadata=True,
            namespace=self._namespace,
        )
        results: List[QueryResult] = []
        for match in _field(response, "matches") or []:
            # The query API returns neither content nor stored values.
            item = IndexedItem(
                id=str(_field(match, "id")),
                content="",
                vector=[],
                metadata=dict(_field(match, "metadata") or {}),
            )
            results.append(QueryResult(item=item, score=float(_field(match, "score") or 0.0)))
        return results

    def delete(self, ids: List[str]) -> None:
        for start in range(0, len(ids), DELETE_BATCH_SIZE):
            batch = ids[start:start + DELETE_BATCH_SIZE]
            self._index.delete(ids=batch, namespace=self._namespace)
            logger.debug("Pinecone delete batch | namespace=%s | size=%d", self._namespace, len(batch))

    def delete_where(self, filter: Filter) -> None:
        pinecone_filter = to_pinecone_filter(filter)
        try:
            self._index.delete(filter=pinecone_filter, namespace=self._namespace)
            logger.info("Pinecone deleteWhere | namespace=%s | filter=%s", self._namespace, filter)
        except Exception as exc:
            logger.warning(
                "Pinecone deleteWhere failed (filtered delete may be unsupported for this index) | filter=%s | error=%s",
                filter,
                exc,
            )

    def _list_ids(self, prefix: Optional[str] = None) -> List[str]:
        ids: List[str] = []
        token: Optional[str] = None
        while True:
            kwargs: Dict[str, Any] = {"limit": LIST_PAGE_SIZE, "namespace": self._namespace}
            if prefix:
                kwargs["prefix"] = prefix
            if token:
                kwargs["pagination_token"] = token
            page = self._index.list_paginated(**kwargs)
            for v in _field(page, "vectors") or []:
                vid = _field(v, "id")
                if vid:
                    ids.append(str(vid))
            token = _field(_field(page, "pagination"), "next")
            if not token:
                return ids

    def all_ids(self) -> List[str]:
        return self._list_ids()

    def status(self) -> IndexStatus:
        stats = self._index.describe_index_stats()
        namespaces = _field(stats, "namespaces") or {}
        summary = namespaces.get(self._namespace) if isinstance(namespaces, dict) else None
        count = int(_field(summary, "vector_count", 0) or 0)
        name = self._config.index_name + (f"[{self._namespace}]" if self._namespace else "")
        return IndexStatus(count=count, name=name)

    def metadata_where(self, filter: Filter) -> Dict[str, Dict[str, object]]:
        # No list-by-metadata API: narrow by the id prefix when the source is known, then fetch.
        source = filter.get("source")
        prefix = f"{source}-chunk-" if isinstance(source, str) and source else None
        ids = self._list_ids(prefix=prefix)
        out: Dict[str, Dict[str, object]] = {}
        for start in range(0, len(ids), FETCH_BATCH_SIZE):
            batch = ids[start:start + FETCH_BATCH_SIZE]
            fetched = _field(self._index.fetch(ids=batch, namespace=self._namespace), "vectors") or {}
            for vid, rec in fetched.items():
                meta = dict(_field(rec, "metadata") or {})
                if matches_filter(IndexedItem(id=str(vid), content="", vector=[], metadata=meta), filter):
                    out[str(vid)] = meta
        return out
