from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional

from ..domain.models import ChunkingOptions, Filter

# errorKind values carried by failed results
ERROR_NOT_INITIALIZED = "not_initialized"
ERROR_EMBEDDING = "embedding"
ERROR_BACKEND = "backend"
ERROR_READ = "read"
ERROR_VALIDATION = "validation"


@dataclass(frozen=True)
class IndexContentItem:
    content: str
    id: Optional[str] = None
    source: Optional[str] = None
    language: Optional[str] = None


@dataclass(frozen=True)
class IndexContentRequest:
    items: List[IndexContentItem]
    chunking_options: Optional[ChunkingOptions] = None


@dataclass
class IndexContentResult:
    """Outcome for one input item of an index-content call."""
    id: Optional[str]
    source: Optional[str]
    success: bool = False
    chunks_upserted: int = 0
    error: Optional[str] = None
    suggestion: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "source": self.source,
            "success": self.success,
            "chunksUpserted": self.chunks_upserted,
            "error": self.error,
            "suggestion": self.suggestion,
        }


@dataclass(frozen=True)
class QueryIndexRequest:
    query_text: str
    top_k: int = 5
    filter: Optional[Filter] = None


@dataclass(frozen=True)
class ManualIndexRequest:
    file_path: str
    return_chunks: bool = False
    max_chunks_to_return: int = 10


@dataclass
class ManualIndexResult:
    success: bool
    file_path: str
    message: str
    chunks_upserted: Optional[int] = None
    returned_chunks: Optional[List[Dict[str, Any]]] = None
    error: Optional[str] = None
    error_kind: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        out = {
            "success": self.success,
            "filePath": self.file_path,
            "message": self.message,
            "chunksUpserted": self.chunks_upserted,
            "returnedChunks": self.returned_chunks,
            "error": self.error,
            "errorKind": self.error_kind,
        }
        return {k: v for k, v in out.items() if v is not None}


@dataclass(frozen=True)
class IndexDirectoryRequest:
    root: str
    include: List[str] = field(default_factory=list)
    exclude: List[str] = field(default_factory=list)
    respect_gitignore: bool = True


@dataclass(frozen=True)
class IndexDirectoryResult:
    files: int
    chunks_upserted: int
    failed: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        return {"files": d["files"], "chunksUpserted": d["chunks_upserted"], "failed": d["failed"]}
