from __future__ import annotations

from enum import Enum
from pathlib import PurePath
from typing import Optional


class SupportedLanguage(str, Enum):
    JAVASCRIPT = "javascript"
    TYPESCRIPT = "typescript"
    TSX = "tsx"
    PYTHON = "python"
    MARKDOWN = "markdown"
    JSON = "json"
    CSS = "css"
    HTML = "html"
    XML = "xml"


_EXTENSIONS = {
    "js": SupportedLanguage.JAVASCRIPT,
    "jsx": SupportedLanguage.JAVASCRIPT,
    "mjs": SupportedLanguage.JAVASCRIPT,
    "ts": SupportedLanguage.TYPESCRIPT,
    "tsx": SupportedLanguage.TSX,
    "py": SupportedLanguage.PYTHON,
    "md": SupportedLanguage.MARKDOWN,
    "markdown": SupportedLanguage.MARKDOWN,
    "json": SupportedLanguage.JSON,
    "css": SupportedLanguage.CSS,
    "html": SupportedLanguage.HTML,
    "htm": SupportedLanguage.HTML,
    "xml": SupportedLanguage.XML,
}


def detect_language(file_path: str) -> Optional[SupportedLanguage]:
    """Map a file extension to a SupportedLanguage, or None when unknown."""
    ext = PurePath(file_path).suffix.lower().lstrip(".")
    return _EXTENSIONS.get(ext)


def parse_language(value: Optional[str]) -> Optional[SupportedLanguage]:
    """Accept a language name (case-insensitive) or None; raise ValueError when unsupported."""
    if value is None or isinstance(value, SupportedLanguage):
        return value
    try:
        return SupportedLanguage(str(value).strip().lower())
    except ValueError:
        choices = ", ".join(lang.value for lang in SupportedLanguage)
        raise ValueError(f"Unsupported language '{value}'; expected one of: {choices}") from None
