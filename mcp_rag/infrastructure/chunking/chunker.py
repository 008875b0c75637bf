from __future__ import annotations

import ast
import re
from functools import lru_cache
from typing import Dict, List, Optional, Sequence, Tuple

from tree_sitter_language_pack import get_parser

from ...domain.errors import ChunkingError
from ...domain.models import Chunk, ChunkingOptions
from ..logging import get_logger
from .languages import SupportedLanguage

logger = get_logger("mcp_rag.infrastructure.chunking")

_PY_BOUNDARIES = (ast.FunctionDef, ast.AsyncFunctionDef, ast.ClassDef)
_MD_HEADING = re.compile(r"^#{1,6}\s")
_MD_FENCE = re.compile(r"^(```|~~~)")

_JS_BOUNDARIES = frozenset({
    "function_declaration",
    "generator_function_declaration",
    "class_declaration",
    "lexical_declaration",
    "variable_declaration",
    "method_definition",
    "export_statement",
})
_TS_BOUNDARIES = _JS_BOUNDARIES | {
    "abstract_class_declaration",
    "interface_declaration",
    "type_alias_declaration",
    "enum_declaration",
}
# grammar name and boundary node types per syntax-tree language
_SYNTAX_LANGUAGES = {
    SupportedLanguage.JAVASCRIPT: ("javascript", _JS_BOUNDARIES),
    SupportedLanguage.TYPESCRIPT: ("typescript", _TS_BOUNDARIES),
    SupportedLanguage.TSX: ("tsx", _TS_BOUNDARIES | {"jsx_element", "jsx_self_closing_element"}),
}

# (text, start_line, end_line, extra metadata)
_Piece = Tuple[str, int, int, Dict[str, object]]


def split_text_with_overlap(text: str, max_size: int, overlap: int) -> List[Tuple[int, int]]:
    """Return (start, end) offsets of windows of at most ``max_size`` chars, each overlapping the previous."""
    if len(text) <= max_size:
        return [(0, len(text))]
    spans: List[Tuple[int, int]] = []
    step = max(1, max_size - overlap)
    start = 0
    while start < len(text):
        end = min(start + max_size, len(text))
        spans.append((start, end))
        if end == len(text):
            break
        start += step
    return spans


def _line_of(text: str, offset: int) -> int:
    return text.count("\n", 0, offset) + 1


def _text_pieces(text: str, first_line: int, options: ChunkingOptions, extra: Dict[str, object]) -> List[_Piece]:
    pieces: List[_Piece] = []
    for start, end in split_text_with_overlap(text, options.max_chunk_size, options.chunk_overlap):
        part = text[start:end]
        if not part.strip():
            continue
        pieces.append((part, first_line + _line_of(text, start) - 1, first_line + _line_of(text, max(start, end - 1)) - 1, dict(extra)))
    return pieces


def _node_start(node: ast.AST) -> int:
    decorators = getattr(node, "decorator_list", None) or []
    return min([node.lineno] + [d.lineno for d in decorators])


def _python_pieces(lines: List[str], body: List[ast.stmt], options: ChunkingOptions) -> List[_Piece]:
    pieces: List[_Piece] = []
    pending: List[ast.stmt] = []

    def flush() -> None:
        if not pending:
            return
        start, end = _node_start(pending[0]), pending[-1].end_lineno or pending[-1].lineno
        text = "".join(lines[start - 1:end])
        if text.strip():
            pieces.extend(_text_pieces(text, start, options, {"nodeType": "Module"}))
        pending.clear()

    for node in body:
        if not isinstance(node, _PY_BOUNDARIES):
            pending.append(node)
            continue
        flush()
        start, end = _node_start(node), node.end_lineno or node.lineno
        text = "".join(lines[start - 1:end])
        node_type = type(node).__name__
        if len(text) <= options.max_chunk_size:
            pieces.append((text, start, end, {"nodeType": node_type}))
            continue
        logger.debug("Chunk boundary exceeds max size, recursing | node=%s | lines=%d-%d", node_type, start, end)
        inner = [n for n in node.body if isinstance(n, _PY_BOUNDARIES)]
        if inner:
            pieces.extend(_python_pieces(lines, node.body, options))
        else:
            pieces.extend(_text_pieces(text, start, options, {"nodeType": node_type}))
    flush()
    return pieces


@lru_cache(maxsize=None)
def _parser(grammar: str):
    return get_parser(grammar)


def _contains_boundary(node, boundaries: frozenset) -> bool:
    return any(child.type in boundaries or _contains_boundary(child, boundaries) for child in node.children)


def _syntax_pieces(source: bytes, nodes: Sequence, boundaries: frozenset, options: ChunkingOptions) -> List[_Piece]:
    """Chunk sibling syntax-tree nodes; comments directly above a boundary stay with it."""
    pieces: List[_Piece] = []
    pending: list = []

    def text_of(start: int, end: int) -> str:
        return source[start:end].decode("utf-8", errors="replace")

    def flush() -> None:
        if any(n.is_named for n in pending):
            first, last = pending[0], pending[-1]
            text = text_of(first.start_byte, last.end_byte)
            if text.strip():
                pieces.extend(_text_pieces(text, first.start_point[0] + 1, options, {"nodeType": "Module"}))
        pending.clear()

    for node in nodes:
        fits = len(text_of(node.start_byte, node.end_byte)) <= options.max_chunk_size
        if not fits and _contains_boundary(node, boundaries):
            flush()
            logger.debug("Chunk boundary exceeds max size, recursing | node=%s | line=%d", node.type, node.start_point[0] + 1)
            pieces.extend(_syntax_pieces(source, node.children, boundaries, options))
            continue
        if node.type not in boundaries:
            pending.append(node)
            continue
        lead: list = []
        while pending and pending[-1].type == "comment":
            lead.insert(0, pending.pop())
        flush()
        first = lead[0] if lead else node
        text = text_of(first.start_byte, node.end_byte)
        start, end = first.start_point[0] + 1, node.end_point[0] + 1
        if len(text) <= options.max_chunk_size:
            pieces.append((text, start, end, {"nodeType": node.type}))
        else:
            pieces.extend(_text_pieces(text, start, options, {"nodeType": node.type}))
    flush()
    return pieces


def _tree_pieces(content: str, language: SupportedLanguage, options: ChunkingOptions, original_id: str) -> List[_Piece]:
    grammar, boundaries = _SYNTAX_LANGUAGES[language]
    source = content.encode("utf-8")
    try:
        tree = _parser(grammar).parse(source)
        if tree.root_node.has_error:
            raise ValueError(f"{grammar} source has syntax errors")
    except (LookupError, ValueError) as exc:
        logger.warning("Parse failed, falling back to text split | language=%s | source=%s | error=%s", grammar, original_id, exc)
        return _text_pieces(
            content, 1, options, {"warning": "Fallback text splitting applied (parsing/chunking error)", "error": str(exc)}
        )
    pieces = _syntax_pieces(source, tree.root_node.children, boundaries, options)
    if not pieces:
        return _text_pieces(content, 1, options, {"warning": "Fallback text splitting applied (no AST chunks)"})
    return pieces


def _markdown_pieces(content: str, options: ChunkingOptions) -> List[_Piece]:
    sections: List[Tuple[int, List[str]]] = []
    in_fence = False
    for n, line in enumerate(content.splitlines(keepends=True), start=1):
        if _MD_FENCE.match(line):
            in_fence = not in_fence
        if not sections or (not in_fence and _MD_HEADING.match(line)):
            sections.append((n, []))
        sections[-1][1].append(line)
    pieces: List[_Piece] = []
    for start, sec_lines in sections:
        text = "".join(sec_lines)
        if text.strip():
            pieces.extend(_text_pieces(text, start, options, {"nodeType": "Section"}))
    return pieces


def chunk_code(
    content: str,
    language: Optional[SupportedLanguage],
    options: Optional[ChunkingOptions] = None,
    base_metadata: Optional[Dict[str, object]] = None,
) -> List[Chunk]:
    """Split ``content`` into chunks along language boundaries.

    Python is split at def/class boundaries with ``ast``. JavaScript, TypeScript
    and TSX are split at declaration boundaries of their tree-sitter syntax
    tree. Markdown is split at headings. Other languages, and any source that
    fails to parse, fall back to overlapping fixed-size windows tagged with a
    ``warning`` entry.

    Raises:
        ChunkingError: The chunking options are invalid.
    """
    options = options or ChunkingOptions()
    try:
        options.validate()
    except ValueError as exc:
        raise ChunkingError(str(exc)) from exc

    base = dict(base_metadata or {})
    original_id = str(base.get("filePath") or base.get("source") or "code_snippet")
    lang_value = language.value if language else None

    pieces: List[_Piece]
    if not content.strip():
        return []
    if language is SupportedLanguage.PYTHON:
        try:
            tree = ast.parse(content)
            pieces = _python_pieces(content.splitlines(keepends=True), tree.body, options)
            if not pieces:
                pieces = _text_pieces(content, 1, options, {"warning": "Fallback text splitting applied (no AST chunks)"})
        except (SyntaxError, ValueError) as exc:
            logger.warning("Python parse failed, falling back to text split | source=%s | error=%s", original_id, exc)
            pieces = _text_pieces(
                content,
                1,
                options,
                {"warning": "Fallback text splitting applied (parsing/chunking error)", "error": str(exc)},
            )
    elif language in _SYNTAX_LANGUAGES:
        pieces = _tree_pieces(content, language, options, original_id)
    elif language is SupportedLanguage.MARKDOWN:
        pieces = _markdown_pieces(content, options)
    else:
        reason = "no language" if language is None else f"no boundary parser for {lang_value}"
        pieces = _text_pieces(content, 1, options, {"warning": f"Fallback text splitting applied ({reason})"})

    chunks: List[Chunk] = []
    for index, (text, start_line, end_line, extra) in enumerate(pieces):
        meta: Dict[str, object] = {
            "language": lang_value,
            **base,
            "chunkIndex": index,
            "originalId": original_id,
            "startLine": start_line,
            "endLine": end_line,
            **extra,
        }
        chunks.append(Chunk(content=text, metadata={k: v for k, v in meta.items() if v is not None}))
    return chunks
