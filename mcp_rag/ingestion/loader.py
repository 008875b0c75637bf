from __future__ import annotations

from fnmatch import fnmatch
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from ..domain.models import Document
from ..infrastructure.logging import get_logger

logger = get_logger("mcp_rag.ingestion")

DEFAULT_IGNORES = ("node_modules/", ".git/", "dist/")


def read_gitignore(root: Path) -> List[str]:
    """Return non-empty, non-comment lines of ``root/.gitignore`` (empty when absent)."""
    path = root / ".gitignore"
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return []
    except OSError as exc:
        logger.warning("Could not read .gitignore | path=%s | error=%s", path, exc)
        return []
    return [ln.strip() for ln in text.splitlines() if ln.strip() and not ln.lstrip().startswith("#")]


def _matches(rel: str, pattern: str) -> bool:
    """Match a POSIX relative path against a gitignore-style pattern.

    ``dir/`` matches anything under a directory of that name; a pattern
    without a slash matches any path component; other patterns are
    anchored at the root.
    """
    pat = pattern.strip()
    if not pat or pat.startswith("!"):
        return False
    parts = rel.split("/")
    if pat.endswith("/"):
        name = pat.rstrip("/").lstrip("/")
        if "/" in name:
            return rel.startswith(name + "/")
        return any(fnmatch(p, name) for p in parts[:-1])
    if pat.endswith("/**"):
        return _matches(rel, pat[:-2])
    if "/" not in pat.strip("/"):
        return any(fnmatch(p, pat.strip("/")) for p in parts)
    anchored = pat.lstrip("/")
    return fnmatch(rel, anchored) or rel.startswith(anchored.rstrip("/") + "/")


def _included(rel: str, include: Sequence[str]) -> bool:
    if not include:
        return True
    name = rel.rsplit("/", 1)[-1]
    for pat in include:
        pat = pat[3:] if pat.startswith("**/") else pat
        if fnmatch(rel, pat) or fnmatch(name, pat):
            return True
    return False


def load_documents(
    root: Path,
    include: Optional[Sequence[str]] = None,
    exclude: Optional[Sequence[str]] = None,
    respect_gitignore: bool = True,
) -> List[Document]:
    """Walk ``root`` and load every matching text file as a Document.

    Ids and ``filePath`` metadata are POSIX paths relative to ``root``.
    Files that cannot be decoded as UTF-8 are skipped.
    """
    root = Path(root)
    if not root.is_dir():
        raise FileNotFoundError(f"Project root not found: {root}")

    ignores: List[str] = list(exclude or []) + list(DEFAULT_IGNORES)
    if respect_gitignore:
        ignores.extend(read_gitignore(root))
    ignores = list(dict.fromkeys(ignores))

    docs: List[Document] = []
    skipped = 0
    for p in sorted(root.rglob("*")):
        if not p.is_file():
            continue
        rel = p.relative_to(root).as_posix()
        if any(_matches(rel, pat) for pat in ignores) or not _included(rel, include or []):
            continue
        try:
            text = p.read_text(encoding="utf-8")
            stat = p.stat()
        except (OSError, UnicodeDecodeError) as exc:
            skipped += 1
            logger.debug("Skipping unreadable file | path=%s | error=%s", rel, exc)
            continue
        meta: Dict[str, object] = {
            "filePath": rel,
            "lastModified": getattr(stat, "st_mtime", 0),
            "size": stat.st_size,
        }
        docs.append(Document(id=rel, content=text, metadata=meta))
    logger.info("Loaded documents | root=%s | count=%d | skipped=%d", root, len(docs), skipped)
    return docs
