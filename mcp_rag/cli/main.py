from __future__ import annotations

import asyncio
import json
import sys
from typing import Any, Dict, Optional, Sequence

from ..application.dto import ERROR_BACKEND, ERROR_EMBEDDING, IndexDirectoryRequest
from ..application.use_cases.index_content import IndexDirectoryUseCase
from ..domain.errors import ConfigurationError, IndexManagerError, InitializationError
from ..infrastructure.logging import get_logger
from ..mcp.api import (
    RagContext,
    build_context,
    get_chunks_for_file,
    index_status,
    manual_index_file,
    query_index,
)
from .parsers import build_parser, parse_where

logger = get_logger("mcp_rag.cli")


def _emit(payload: Dict[str, Any]) -> None:
    print(json.dumps(payload, indent=2, default=str))


def _exit_code(out: Dict[str, Any]) -> int:
    """0 on success, 3 when a backend or embedding service failed, 2 otherwise."""
    if out.get("success"):
        return 0
    return 3 if out.get("errorKind") in (ERROR_BACKEND, ERROR_EMBEDDING) else 2


async def dispatch_commands(ns, ctx: RagContext) -> int:
    """Run one subcommand against an initialized context and print its JSON result."""
    manager = ctx.manager

    if ns.cmd == "index":
        uc = IndexDirectoryUseCase(manager, ctx.embedding_config, ctx.chunking_options)
        res = await uc.execute(
            IndexDirectoryRequest(
                root=ns.path, include=list(ns.include), exclude=list(ns.exclude), respect_gitignore=not ns.no_gitignore
            )
        )
        _emit({"status": "ok", "provider": manager.provider.value, **res.to_dict()})
        return 0

    if ns.cmd == "index-file":
        out = await manual_index_file(
            manager,
            ctx.embedding_config,
            str(ctx.workspace_root),
            ns.file,
            return_chunks=ns.show_chunks,
            max_chunks_to_return=ns.max_chunks,
            chunking_options=ctx.chunking_options,
        )
        _emit(out)
        return _exit_code(out)

    if ns.cmd == "query":
        out = await query_index(manager, ctx.embedding_config, ns.q, ns.k, parse_where(ns.where))
        _emit(out)
        return _exit_code(out)

    if ns.cmd == "status":
        out = await index_status(manager)
        _emit(out)
        return _exit_code(out)

    if ns.cmd == "list-ids":
        ids = await manager.get_all_ids()
        _emit({"status": "ok", "count": len(ids), "ids": ids})
        return 0

    if ns.cmd == "chunks":
        out = await get_chunks_for_file(manager, ns.file)
        _emit(out)
        return _exit_code(out)

    if ns.cmd == "delete":
        await manager.delete_items(list(ns.ids))
        _emit({"status": "ok", "deleted": list(ns.ids)})
        return 0

    if ns.cmd == "delete-where":
        where = parse_where(ns.where)
        await manager.delete_where(where)
        _emit({"status": "ok", "where": where, "filteredDeleteSupported": manager.supports_filtered_delete})
        return 0

    _emit({"status": "error", "error": f"Unknown command: {ns.cmd}"})
    return 2


async def _run_async(ns) -> int:
    ctx = await build_context(ns.workspace)
    return await dispatch_commands(ns, ctx)


def run(argv: Optional[Sequence[str]] = None) -> int:
    ap = build_parser()
    ns = ap.parse_args(list(argv or []))
    try:
        return asyncio.run(_run_async(ns))
    except (ConfigurationError, InitializationError, ValueError, FileNotFoundError) as ex:
        _emit({"status": "error", "error": f"{type(ex).__name__}: {ex}"})
        return 2
    except IndexManagerError as ex:
        logger.error("Command failed | cmd=%s | error=%s", ns.cmd, ex)
        _emit({"status": "error", "error": f"{type(ex).__name__}: {ex}"})
        return 3


def main() -> int:
    return run(sys.argv[1:])


if __name__ == "__main__":
    raise SystemExit(main())
