from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from .models import Filter, IndexedItem, IndexStatus, QueryResult, Vector


class EmbeddingFunction(ABC):
    """Port for embedding providers (mock, Ollama, plain HTTP)."""

    @abstractmethod
    def generate(self, texts: List[str]) -> List[Vector]:
        """Embed a batch of texts, one vector per text in input order.

        Raises:
            EmbeddingError: Provider/network failures or count mismatches.
        """
        raise NotImplementedError


class VectorBackend(ABC):
    """Port for one vector store backend behind the IndexManager.

    Implementations are synchronous; the manager offloads calls to a worker
    thread and wraps their exceptions.
    """

    #: Whether ``delete_where`` is guaranteed to be honoured by the backend.
    supports_filtered_delete: bool = True

    @abstractmethod
    def upsert(self, items: List[IndexedItem]) -> None:
        raise NotImplementedError

    @abstractmethod
    def query(self, vector: Vector, top_k: int, filter: Optional[Filter] = None) -> List[QueryResult]:
        raise NotImplementedError

    @abstractmethod
    def delete(self, ids: List[str]) -> None:
        raise NotImplementedError

    @abstractmethod
    def delete_where(self, filter: Filter) -> None:
        raise NotImplementedError

    @abstractmethod
    def all_ids(self) -> List[str]:
        raise NotImplementedError

    @abstractmethod
    def status(self) -> IndexStatus:
        raise NotImplementedError

    @abstractmethod
    def metadata_where(self, filter: Filter) -> Dict[str, Dict[str, object]]:
        """Return ``{id: metadata}`` for every stored item matching ``filter``."""
        raise NotImplementedError
