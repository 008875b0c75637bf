from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Union

Scalar = Union[str, int, float, bool]
Filter = Dict[str, Scalar]
Vector = List[float]


@dataclass(frozen=True)
class Document:
    """A loaded source document before chunking.

    Fields:
        id: Stable identifier (usually the path relative to the project root).
        content: Full text of the document.
        metadata: Open mapping (filePath, lastModified, size, ...).
    """
    id: str
    content: str
    metadata: Dict[str, object] = field(default_factory=dict)


@dataclass(frozen=True)
class Chunk:
    """A unit of source content with metadata, produced by a chunker.

    Fields:
        content: Text of the chunk.
        metadata: Open mapping of string keys to scalar values
            (source, language, chunkIndex, startLine, ...).
    """
    content: str
    metadata: Dict[str, object] = field(default_factory=dict)


@dataclass(frozen=True)
class IndexedItem:
    """A chunk extended with its collection-unique id and embedding vector.

    Fields:
        id: Caller-assigned id, unique within a collection (``{source}-chunk-{i}``).
        content: Chunk text.
        metadata: Chunk metadata.
        vector: Embedding; constant length within one collection.
    """
    id: str
    content: str
    vector: Vector
    metadata: Dict[str, object] = field(default_factory=dict)

    @classmethod
    def from_chunk(cls, chunk: Chunk, id: str, vector: Vector) -> "IndexedItem":
        return cls(id=id, content=chunk.content, vector=list(vector), metadata=dict(chunk.metadata))

    def to_dict(self, include_vector: bool = False) -> Dict[str, object]:
        out: Dict[str, object] = {"id": self.id, "content": self.content, "metadata": dict(self.metadata)}
        if include_vector and self.vector:
            out["vector"] = list(self.vector)
        return out


@dataclass(frozen=True)
class QueryResult:
    """Similarity search hit.

    Fields:
        item: Stored item, or a partial reconstruction (remote backends may
            omit content and vector).
        score: Similarity, higher is more similar.
    """
    item: IndexedItem
    score: float

    def to_dict(self) -> Dict[str, object]:
        return {"item": self.item.to_dict(), "score": self.score}


@dataclass(frozen=True)
class IndexStatus:
    count: int
    name: str


@dataclass(frozen=True)
class ChunkingOptions:
    max_chunk_size: int = 16000
    chunk_overlap: int = 200

    def validate(self) -> None:
        if self.max_chunk_size <= 0:
            raise ValueError(f"max_chunk_size must be positive, got {self.max_chunk_size}")
        if self.chunk_overlap < 0:
            raise ValueError(f"chunk_overlap must be non-negative, got {self.chunk_overlap}")
        if self.chunk_overlap >= self.max_chunk_size:
            raise ValueError(
                f"chunk_overlap ({self.chunk_overlap}) must be smaller than max_chunk_size ({self.max_chunk_size})"
            )


def is_scalar(value: object) -> bool:
    return isinstance(value, (str, int, float, bool))


def vector_dim(items: List[IndexedItem]) -> Optional[int]:
    """Return the shared vector length of ``items``; raise if lengths differ."""
    dim: Optional[int] = None
    for it in items:
        n = len(it.vector)
        if dim is None:
            dim = n
        elif n != dim:
            raise ValueError(f"Inconsistent embedding dimension: item '{it.id}' has {n}, expected {dim}")
    return dim
