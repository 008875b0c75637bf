from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence

from ..application.dto import (
    ERROR_BACKEND,
    ERROR_EMBEDDING,
    ERROR_NOT_INITIALIZED,
    IndexContentItem,
    IndexContentRequest,
    ManualIndexRequest,
    QueryIndexRequest,
)
from ..application.index_manager import IndexManager
from ..application.use_cases.index_content import IndexContentUseCase
from ..application.use_cases.index_file import GetChunksForFileUseCase, ManualIndexFileUseCase
from ..application.use_cases.index_status import IndexStatusUseCase
from ..application.use_cases.query_index import QueryIndexUseCase
from ..domain.config import EmbeddingModelConfig
from ..domain.errors import EmbeddingError, IndexManagerError
from ..domain.models import ChunkingOptions, Filter
from ..infrastructure.config import (
    chunking_options_from_env,
    embedding_config_from_env,
    vector_db_config_from_env,
)
from ..infrastructure.embedding.factory import create_embedding_function
from ..infrastructure.logging import get_logger

logger = get_logger("mcp_rag.mcp.api")


@dataclass
class RagContext:
    """Everything a tool call needs: the manager plus embedding/chunking settings."""
    manager: IndexManager
    embedding_config: EmbeddingModelConfig
    chunking_options: ChunkingOptions
    workspace_root: Path


async def build_context(workspace_root: Optional[str] = None) -> RagContext:
    """Create an initialized IndexManager and settings from env/.env."""
    embedding_config = embedding_config_from_env()
    embedding_fn = create_embedding_function(embedding_config)
    manager = await IndexManager.create(vector_db_config_from_env(), embedding_fn)
    return RagContext(
        manager=manager,
        embedding_config=embedding_config,
        chunking_options=chunking_options_from_env(),
        workspace_root=Path(workspace_root or ".").resolve(),
    )


def _not_ready(manager: Optional[IndexManager]) -> Optional[str]:
    if manager is None or not manager.is_initialized():
        return "IndexManager is not initialized."
    return None


_NOT_READY_SUGGESTION = "Create the manager with IndexManager.create() first."


def _items_from(raw: Sequence[Mapping[str, Any]]) -> List[IndexContentItem]:
    items: List[IndexContentItem] = []
    for n, it in enumerate(raw):
        if "content" not in it:
            raise ValueError(f"items[{n}].content is required")
        items.append(
            IndexContentItem(content=it["content"], id=it.get("id"), source=it.get("source"), language=it.get("language"))
        )
    return items


async def index_content(
    manager: IndexManager,
    embedding_config: EmbeddingModelConfig,
    items: Sequence[Mapping[str, Any]],
    chunking_options: Optional[ChunkingOptions] = None,
) -> List[Dict[str, Any]]:
    """Chunk, embed and index content items. Returns one result dict per item.

    Raises:
        ValueError: An item is malformed (missing content, unknown language).
    """
    problem = _not_ready(manager)
    if problem:
        return [
            {"id": it.get("id"), "source": it.get("source"), "success": False, "chunksUpserted": 0,
             "error": problem, "suggestion": _NOT_READY_SUGGESTION}
            for it in items
        ]
    req = IndexContentRequest(items=_items_from(items), chunking_options=chunking_options)
    results = await IndexContentUseCase(manager, embedding_config).execute(req)
    return [r.to_dict() for r in results]


async def query_index(
    manager: IndexManager,
    embedding_config: EmbeddingModelConfig,
    query_text: str,
    top_k: int = 5,
    filter: Optional[Filter] = None,
) -> Dict[str, Any]:
    """Embed ``query_text`` and return ranked hits in an envelope.

    Failed envelopes carry ``errorKind``: ``embedding`` or ``backend`` when a
    service failed, ``not_initialized`` when the manager is unusable.
    """
    req = QueryIndexRequest(query_text=query_text, top_k=top_k, filter=filter)
    QueryIndexUseCase.validate(req)

    def failed(error: str, kind: str, suggestion: str) -> Dict[str, Any]:
        return {"success": False, "query": query_text, "results": [], "error": error,
                "errorKind": kind, "suggestion": suggestion}

    problem = _not_ready(manager)
    if problem:
        return failed(problem, ERROR_NOT_INITIALIZED, _NOT_READY_SUGGESTION)
    try:
        results = await QueryIndexUseCase(manager, embedding_config).execute(req)
    except EmbeddingError as exc:
        return failed(str(exc), ERROR_EMBEDDING, "Check the embedding provider configuration.")
    except IndexManagerError as exc:
        return failed(str(exc), ERROR_BACKEND, "Check the vector database connection and that the index exists.")
    return {"success": True, "query": query_text, "results": [r.to_dict() for r in results],
            "error": None, "errorKind": None, "suggestion": None}


async def index_status(manager: IndexManager) -> Dict[str, Any]:
    problem = _not_ready(manager)
    if problem:
        return {"success": False, "chunkCount": None, "collectionName": None, "error": problem,
                "errorKind": ERROR_NOT_INITIALIZED, "suggestion": _NOT_READY_SUGGESTION}
    try:
        status = await IndexStatusUseCase(manager).execute()
    except IndexManagerError as exc:
        return {"success": False, "chunkCount": None, "collectionName": None, "error": str(exc),
                "errorKind": ERROR_BACKEND, "suggestion": "Check the vector database connection and configuration."}
    return {"success": True, "chunkCount": status.count, "collectionName": status.name,
            "error": None, "errorKind": None, "suggestion": None}


async def get_chunks_for_file(manager: IndexManager, file_path: str) -> Dict[str, Any]:
    problem = _not_ready(manager)
    if problem:
        return {"success": False, "filePath": file_path, "chunks": {}, "error": problem,
                "errorKind": ERROR_NOT_INITIALIZED}
    try:
        chunks = await GetChunksForFileUseCase(manager).execute(file_path)
    except IndexManagerError as exc:
        return {"success": False, "filePath": file_path, "chunks": {}, "error": str(exc), "errorKind": ERROR_BACKEND}
    return {"success": True, "filePath": file_path, "count": len(chunks), "chunks": chunks,
            "error": None, "errorKind": None}


async def manual_index_file(
    manager: IndexManager,
    embedding_config: EmbeddingModelConfig,
    workspace_root: str,
    file_path: str,
    return_chunks: bool = False,
    max_chunks_to_return: int = 10,
    chunking_options: Optional[ChunkingOptions] = None,
) -> Dict[str, Any]:
    """Re-index one file under ``workspace_root`` (or return its chunks for inspection)."""
    problem = _not_ready(manager)
    if problem:
        return {"success": False, "filePath": file_path, "message": "IndexManager not available or not initialized.",
                "errorKind": ERROR_NOT_INITIALIZED}
    uc = ManualIndexFileUseCase(manager, embedding_config, Path(workspace_root), chunking_options)
    result = await uc.execute(
        ManualIndexRequest(file_path=file_path, return_chunks=return_chunks, max_chunks_to_return=max_chunks_to_return)
    )
    return result.to_dict()
