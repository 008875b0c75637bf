from __future__ import annotations

from typing import Dict, List, Optional

from ...domain.interfaces import VectorBackend
from ...domain.models import Filter, IndexedItem, IndexStatus, QueryResult, Vector, vector_dim
from ...domain.scoring import cosine_similarity, matches_filter
from ..logging import get_logger

logger = get_logger("mcp_rag.infrastructure.memory")

STORE_NAME = "in-memory-store"


class InMemoryVectorBackend(VectorBackend):
    """Process-local store keyed by item id, owned by one IndexManager."""

    supports_filtered_delete = True

    def __init__(self) -> None:
        self._items: Dict[str, IndexedItem] = {}
        self._dim: Optional[int] = None

    def upsert(self, items: List[IndexedItem]) -> None:
        dim = vector_dim(items)
        if self._dim is not None and dim is not None and dim != self._dim:
            raise ValueError(f"Vector dimension {dim} does not match collection dimension {self._dim}")
        for it in items:
            self._items[it.id] = it
        if self._dim is None:
            self._dim = dim
        logger.debug("In-memory upsert | items=%d | size=%d", len(items), len(self._items))

    def query(self, vector: Vector, top_k: int, filter: Optional[Filter] = None) -> List[QueryResult]:
        results = [
            QueryResult(item=it, score=cosine_similarity(vector, it.vector))
            for it in self._items.values()
            if not filter or matches_filter(it, filter)
        ]
        results.sort(key=lambda r: r.score, reverse=True)
        return results[:top_k]

    def delete(self, ids: List[str]) -> None:
        deleted = 0
        for i in ids:
            if self._items.pop(i, None) is not None:
                deleted += 1
        logger.debug("In-memory delete | requested=%d | deleted=%d | size=%d", len(ids), deleted, len(self._items))

    def matching_ids(self, filter: Filter) -> List[str]:
        return [i for i, it in self._items.items() if matches_filter(it, filter)]

    def delete_where(self, filter: Filter) -> None:
        ids = self.matching_ids(filter)
        if ids:
            self.delete(ids)
            logger.info("In-memory deleteWhere | filter=%s | deleted=%d", filter, len(ids))
        else:
            logger.info("In-memory deleteWhere | filter=%s | no matching items", filter)

    def all_ids(self) -> List[str]:
        return list(self._items.keys())

    def status(self) -> IndexStatus:
        return IndexStatus(count=len(self._items), name=STORE_NAME)

    def metadata_where(self, filter: Filter) -> Dict[str, Dict[str, object]]:
        return {i: dict(self._items[i].metadata) for i in self.matching_ids(filter)}

    def clear(self) -> None:
        self._items.clear()
        self._dim = None
