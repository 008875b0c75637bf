from __future__ import annotations

import argparse
from typing import Dict, List, Optional

from ..domain.models import Filter, Scalar


def parse_scalar(raw: str) -> Scalar:
    """Coerce a CLI value: true/false to bool, then int, then float, else the string."""
    low = raw.strip().lower()
    if low in ("true", "false"):
        return low == "true"
    for cast in (int, float):
        try:
            return cast(raw)
        except ValueError:
            continue
    return raw


def parse_where(pairs: Optional[List[str]]) -> Optional[Filter]:
    """Turn repeated ``key=value`` arguments into an equality filter."""
    if not pairs:
        return None
    out: Dict[str, Scalar] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key.strip():
            raise ValueError(f"--where expects key=value, got '{pair}'")
        out[key.strip()] = parse_scalar(value)
    return out


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(description="RAG index over in-memory, Pinecone or ChromaDB stores")
    ap.add_argument("--workspace", default=".", help="Workspace root for relative file paths (default: CWD)")
    sub = ap.add_subparsers(dest="cmd", required=True)

    # Index every file under a directory
    ix = sub.add_parser("index")
    ix.add_argument("--path", required=True, help="Directory to walk")
    ix.add_argument("--include", action="append", default=[], help="Glob to include; can repeat")
    ix.add_argument("--exclude", action="append", default=[], help="Glob to exclude; can repeat")
    ix.add_argument("--no-gitignore", action="store_true", help="Do not apply .gitignore rules")

    # Re-index a single file under the workspace
    fi = sub.add_parser("index-file")
    fi.add_argument("--file", required=True, help="Path relative to --workspace")
    fi.add_argument("--show-chunks", action="store_true", help="Print generated chunks instead of indexing")
    fi.add_argument("--max-chunks", type=int, default=10)

    q = sub.add_parser("query")
    q.add_argument("--q", required=True)
    q.add_argument("--k", type=int, default=5)
    q.add_argument("--where", action="append", default=[], help="key=value metadata filter; can repeat")

    sub.add_parser("status")
    sub.add_parser("list-ids")

    ch = sub.add_parser("chunks")
    ch.add_argument("--file", required=True, help="Source path as stored in chunk metadata")

    d = sub.add_parser("delete")
    d.add_argument("--id", dest="ids", action="append", required=True, help="Item id; can repeat")

    dw = sub.add_parser("delete-where")
    dw.add_argument("--where", action="append", required=True, help="key=value metadata filter; can repeat")

    return ap
