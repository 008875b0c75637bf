"""
Pytest configuration and fixtures for the RAG index tests.

Provides env isolation, a deterministic embedding function and a small
project tree for loader/indexing tests.
"""

import os
from pathlib import Path
from typing import List
from unittest.mock import Mock

import pytest

from mcp_rag.domain.interfaces import EmbeddingFunction
from mcp_rag.domain.models import IndexedItem


RAG_ENV_VARS = [
    "VECTOR_DB_PROVIDER",
    "PINECONE_API_KEY",
    "PINECONE_INDEX",
    "PINECONE_NAMESPACE",
    "CHROMA_PATH",
    "CHROMA_HOST",
    "CHROMA_COLLECTION",
    "EMBED_PROVIDER",
    "EMBED_MODEL",
    "OLLAMA_URL",
    "EMBED_HTTP_URL",
    "EMBED_HTTP_HEADERS",
    "EMBED_BATCH_SIZE",
    "EMBED_MOCK_DIM",
    "RAG_HTTP_TIMEOUT",
    "RAG_CHUNK_MAX_SIZE",
    "RAG_CHUNK_OVERLAP",
]


class FixedEmbeddingFunction(EmbeddingFunction):
    """Maps known texts to fixed vectors; unknown texts get ``default``."""

    def __init__(self, table=None, default=None):
        self.table = dict(table or {})
        self.default = list(default or [1.0, 0.0])
        self.calls: List[List[str]] = []

    def generate(self, texts):
        self.calls.append(list(texts))
        return [list(self.table.get(t, self.default)) for t in texts]


def make_item(id, vector, content="", **metadata) -> IndexedItem:
    return IndexedItem(id=id, content=content, vector=list(vector), metadata=dict(metadata))


@pytest.fixture
def clean_environment(tmp_path, monkeypatch):
    """Unset RAG env vars and run from an empty directory so no .env leaks in."""
    for var in RAG_ENV_VARS:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)
    yield tmp_path


@pytest.fixture
def sample_dotenv_content():
    """Sample .env file content for testing."""
    return """
# RAG configuration
VECTOR_DB_PROVIDER=chromadb
CHROMA_PATH="./chroma-data"
CHROMA_COLLECTION='docs'
EMBED_PROVIDER=ollama
EMBED_MODEL=mxbai-embed-large

# Other variables
OTHER_VAR=should_be_ignored
"""


@pytest.fixture
def fixed_embedding():
    return FixedEmbeddingFunction()


@pytest.fixture
def mock_embedding_fn():
    """Mock embedding function returning one 2-d vector per text."""
    mock = Mock(spec=EmbeddingFunction)
    mock.generate.side_effect = lambda texts: [[0.5, 0.5] for _ in texts]
    return mock


@pytest.fixture
def project_tree(tmp_path):
    """Small project with code, docs, ignored dirs and a .gitignore."""
    root = tmp_path / "project"
    (root / "src").mkdir(parents=True)
    (root / "docs").mkdir()
    (root / "node_modules" / "pkg").mkdir(parents=True)
    (root / "build").mkdir()
    (root / "src" / "app.py").write_text("def main():\n    return 1\n", encoding="utf-8")
    (root / "src" / "util.ts").write_text("export const x = 1;\n", encoding="utf-8")
    (root / "docs" / "guide.md").write_text("# Guide\n\nIntro.\n\n## Usage\n\nRun it.\n", encoding="utf-8")
    (root / "node_modules" / "pkg" / "index.js").write_text("module.exports = {};\n", encoding="utf-8")
    (root / "build" / "out.js").write_text("console.log(1);\n", encoding="utf-8")
    (root / "debug.log").write_text("noise\n", encoding="utf-8")
    (root / ".gitignore").write_text("# generated\nbuild/\n*.log\n", encoding="utf-8")
    (root / "image.bin").write_bytes(b"\xff\xfe\x00\x81binary")
    return root


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: mark test as unit test")
    config.addinivalue_line("markers", "cli: mark test as CLI command test")
    config.addinivalue_line("markers", "env: mark test as environment resolution test")
