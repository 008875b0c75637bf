from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, NoReturn, Optional, Union

DEFAULT_COLLECTION_NAME = "mcp_rag_collection"


class VectorDbProvider(str, Enum):
    IN_MEMORY = "in-memory"
    PINECONE = "pinecone"
    CHROMADB = "chromadb"


@dataclass(frozen=True)
class InMemoryConfig:
    """Process-local store; no settings."""

    @property
    def provider(self) -> VectorDbProvider:
        return VectorDbProvider.IN_MEMORY


@dataclass(frozen=True)
class PineconeConfig:
    """Managed Pinecone index, scoped to one namespace ('' is the default namespace)."""
    api_key: str
    index_name: str
    namespace: Optional[str] = None

    @property
    def provider(self) -> VectorDbProvider:
        return VectorDbProvider.PINECONE


@dataclass(frozen=True)
class ChromaDBConfig:
    """ChromaDB collection, either persisted under ``path`` or served at ``host``."""
    path: Optional[str] = None
    host: Optional[str] = None
    collection_name: str = DEFAULT_COLLECTION_NAME

    @property
    def provider(self) -> VectorDbProvider:
        return VectorDbProvider.CHROMADB


VectorDbConfig = Union[InMemoryConfig, PineconeConfig, ChromaDBConfig]


def assert_never(value: object) -> NoReturn:
    """Fail loudly when a provider variant reaches a branch that does not handle it."""
    raise AssertionError(f"Unhandled provider variant: {value!r}")


class EmbeddingModelProvider(str, Enum):
    MOCK = "mock"
    OLLAMA = "ollama"
    HTTP = "http"


@dataclass(frozen=True)
class MockEmbeddingConfig:
    dimension: int = 768
    batch_size: int = 32

    @property
    def provider(self) -> EmbeddingModelProvider:
        return EmbeddingModelProvider.MOCK


@dataclass(frozen=True)
class OllamaEmbeddingConfig:
    model_name: str = "nomic-embed-text"
    base_url: str = "http://localhost:11434"
    batch_size: int = 50

    @property
    def provider(self) -> EmbeddingModelProvider:
        return EmbeddingModelProvider.OLLAMA


@dataclass(frozen=True)
class HttpEmbeddingConfig:
    url: str
    headers: Dict[str, str] = field(default_factory=dict)
    batch_size: int = 100

    @property
    def provider(self) -> EmbeddingModelProvider:
        return EmbeddingModelProvider.HTTP


EmbeddingModelConfig = Union[MockEmbeddingConfig, OllamaEmbeddingConfig, HttpEmbeddingConfig]
