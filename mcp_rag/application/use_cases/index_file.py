from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Dict, Optional

from ..dto import (
    ERROR_BACKEND,
    ERROR_EMBEDDING,
    ERROR_READ,
    ERROR_VALIDATION,
    ManualIndexRequest,
    ManualIndexResult,
)
from ..index_manager import IndexManager
from .index_content import embed_chunks
from ...domain.config import EmbeddingModelConfig
from ...domain.errors import ChunkingError, EmbeddingError, IndexManagerError
from ...domain.interfaces import EmbeddingFunction
from ...domain.models import ChunkingOptions
from ...infrastructure.chunking.chunker import chunk_code
from ...infrastructure.chunking.languages import detect_language
from ...infrastructure.logging import get_logger

logger = get_logger("mcp_rag.application.index_file")


def _resolve_in_workspace(workspace_root: Path, file_path: str) -> Path:
    root = workspace_root.resolve()
    target = (root / file_path).resolve()
    if target != root and root not in target.parents:
        raise ValueError(f"filePath '{file_path}' resolves outside the workspace root")
    return target


class GetChunksForFileUseCase:
    """Use-case: list stored chunk metadata for one source file."""

    def __init__(self, manager: IndexManager) -> None:
        self._manager = manager

    async def execute(self, file_path: str) -> Dict[str, Dict[str, object]]:
        if not file_path:
            raise ValueError("filePath is required")
        return await self._manager.get_chunks_metadata_by_source(file_path)


class ManualIndexFileUseCase:
    """Use-case: re-index one workspace file, or return its chunks without indexing.

    Previous chunks of the file are removed first. Backends without reliable
    filtered delete get an explicit id delete of the chunks found by source.
    """

    def __init__(
        self,
        manager: IndexManager,
        embedding_config: EmbeddingModelConfig,
        workspace_root: Path,
        chunking_options: Optional[ChunkingOptions] = None,
        embedding_fn: Optional[EmbeddingFunction] = None,
    ) -> None:
        self._manager = manager
        self._embedding_config = embedding_config
        self._root = Path(workspace_root)
        self._options = chunking_options
        self._embedding_fn = embedding_fn

    async def _remove_previous(self, file_path: str) -> None:
        if self._manager.supports_filtered_delete:
            await self._manager.delete_where({"source": file_path})
            return
        stale = await self._manager.get_chunks_metadata_by_source(file_path)
        await self._manager.delete_items(list(stale.keys()))

    async def execute(self, req: ManualIndexRequest) -> ManualIndexResult:
        if not req.file_path:
            raise ValueError("filePath is required")
        if req.return_chunks and req.max_chunks_to_return < 1:
            raise ValueError("maxChunksToReturn must be positive when returnChunks is true")
        try:
            path = _resolve_in_workspace(self._root, req.file_path)
            content = await asyncio.to_thread(path.read_text, encoding="utf-8")
            mtime = path.stat().st_mtime
        except (OSError, UnicodeDecodeError) as exc:
            return ManualIndexResult(False, req.file_path, "Failed to read file.", error=str(exc), error_kind=ERROR_READ)

        meta: Dict[str, object] = {"source": req.file_path, "filePath": req.file_path, "fileMtime": mtime}
        try:
            chunks = chunk_code(content, detect_language(req.file_path), self._options, meta)
            if not chunks:
                return ManualIndexResult(True, req.file_path, "No chunks generated.", chunks_upserted=0)
            if req.return_chunks:
                shown = [{"content": c.content, "metadata": dict(c.metadata)} for c in chunks[: req.max_chunks_to_return]]
                return ManualIndexResult(
                    True,
                    req.file_path,
                    f"Returning {len(shown)} of {len(chunks)} generated chunks.",
                    returned_chunks=shown,
                )
            items = await embed_chunks(self._manager, self._embedding_config, chunks, req.file_path, self._embedding_fn)
            await self._remove_previous(req.file_path)
            await self._manager.upsert_items(items)
        except ChunkingError as exc:
            return ManualIndexResult(False, req.file_path, "Indexing failed.", error=str(exc), error_kind=ERROR_VALIDATION)
        except (IndexManagerError, EmbeddingError) as exc:
            logger.warning("Manual index failed | file=%s | error=%s", req.file_path, exc)
            kind = ERROR_EMBEDDING if isinstance(exc, EmbeddingError) else ERROR_BACKEND
            return ManualIndexResult(False, req.file_path, "Indexing failed.", error=str(exc), error_kind=kind)
        logger.info("Manual index | file=%s | chunks=%d", req.file_path, len(items))
        return ManualIndexResult(
            True, req.file_path, f"Successfully indexed {len(items)} chunks.", chunks_upserted=len(items)
        )
