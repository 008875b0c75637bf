"""
Unit tests for env/.env configuration resolution.
"""

from pathlib import Path

import pytest

from mcp_rag.domain.config import (
    ChromaDBConfig,
    HttpEmbeddingConfig,
    InMemoryConfig,
    MockEmbeddingConfig,
    OllamaEmbeddingConfig,
    PineconeConfig,
)
from mcp_rag.domain.errors import ConfigurationError
from mcp_rag.infrastructure.config import (
    chunking_options_from_env,
    embedding_config_from_env,
    env_get,
    env_int,
    parse_dotenv,
    vector_db_config_from_env,
)
from mcp_rag.infrastructure.timeouts import DEFAULT_HTTP_TIMEOUT, http_timeout_seconds


pytestmark = pytest.mark.env


class TestDotenvParsing:

    def test_parse_missing_file(self, tmp_path):
        assert parse_dotenv(tmp_path / ".env") == {}

    def test_parse_quotes_and_comments(self, tmp_path, sample_dotenv_content):
        path = tmp_path / ".env"
        path.write_text(sample_dotenv_content, encoding="utf-8")

        result = parse_dotenv(path)

        assert result["CHROMA_PATH"] == "./chroma-data"
        assert result["CHROMA_COLLECTION"] == "docs"
        assert result["OTHER_VAR"] == "should_be_ignored"
        assert not any(k.startswith("#") for k in result)

    def test_process_env_wins_over_dotenv(self, clean_environment, monkeypatch):
        Path(".env").write_text("EMBED_MODEL=from-file\n", encoding="utf-8")
        assert env_get("EMBED_MODEL") == "from-file"

        monkeypatch.setenv("EMBED_MODEL", "from-env")
        assert env_get("EMBED_MODEL") == "from-env"

    def test_blank_values_are_unset(self, clean_environment, monkeypatch):
        monkeypatch.setenv("EMBED_MODEL", "   ")
        assert env_get("EMBED_MODEL") is None

    def test_env_int_falls_back(self, clean_environment, monkeypatch):
        monkeypatch.setenv("EMBED_BATCH_SIZE", "lots")
        assert env_int("EMBED_BATCH_SIZE", 7) == 7


class TestVectorDbConfig:

    def test_default_in_memory(self, clean_environment):
        assert vector_db_config_from_env() == InMemoryConfig()

    def test_pinecone(self, clean_environment, monkeypatch):
        monkeypatch.setenv("VECTOR_DB_PROVIDER", "Pinecone")
        monkeypatch.setenv("PINECONE_API_KEY", "key")
        monkeypatch.setenv("PINECONE_INDEX", "docs")
        monkeypatch.setenv("PINECONE_NAMESPACE", "team")

        assert vector_db_config_from_env() == PineconeConfig(api_key="key", index_name="docs", namespace="team")

    def test_chroma_from_dotenv(self, clean_environment, sample_dotenv_content):
        Path(".env").write_text(sample_dotenv_content, encoding="utf-8")

        cfg = vector_db_config_from_env()

        assert cfg == ChromaDBConfig(path="./chroma-data", host=None, collection_name="docs")

    def test_chroma_default_collection(self, clean_environment, monkeypatch):
        monkeypatch.setenv("VECTOR_DB_PROVIDER", "chromadb")
        monkeypatch.setenv("CHROMA_HOST", "http://localhost:8000")

        cfg = vector_db_config_from_env()

        assert cfg.collection_name == "mcp_rag_collection"

    def test_unknown_provider(self, clean_environment, monkeypatch):
        monkeypatch.setenv("VECTOR_DB_PROVIDER", "weaviate")

        with pytest.raises(ConfigurationError, match="Unknown VECTOR_DB_PROVIDER"):
            vector_db_config_from_env()


class TestEmbeddingConfig:

    def test_default_mock(self, clean_environment):
        assert embedding_config_from_env() == MockEmbeddingConfig(dimension=768, batch_size=32)

    def test_ollama(self, clean_environment, monkeypatch):
        monkeypatch.setenv("EMBED_PROVIDER", "ollama")
        monkeypatch.setenv("OLLAMA_URL", "http://gpu:11434/")

        cfg = embedding_config_from_env()

        assert isinstance(cfg, OllamaEmbeddingConfig)
        assert cfg.base_url == "http://gpu:11434"
        assert cfg.model_name == "nomic-embed-text"

    def test_http_requires_url(self, clean_environment, monkeypatch):
        monkeypatch.setenv("EMBED_PROVIDER", "http")

        with pytest.raises(ConfigurationError, match="EMBED_HTTP_URL"):
            embedding_config_from_env()

    def test_http_headers(self, clean_environment, monkeypatch):
        monkeypatch.setenv("EMBED_PROVIDER", "http")
        monkeypatch.setenv("EMBED_HTTP_URL", "http://embed")
        monkeypatch.setenv("EMBED_HTTP_HEADERS", '{"Authorization": "Bearer t"}')

        cfg = embedding_config_from_env()

        assert cfg == HttpEmbeddingConfig(url="http://embed", headers={"Authorization": "Bearer t"}, batch_size=100)

    def test_http_headers_must_be_object(self, clean_environment, monkeypatch):
        monkeypatch.setenv("EMBED_PROVIDER", "http")
        monkeypatch.setenv("EMBED_HTTP_URL", "http://embed")
        monkeypatch.setenv("EMBED_HTTP_HEADERS", "[1, 2]")

        with pytest.raises(ConfigurationError):
            embedding_config_from_env()


class TestMiscSettings:

    def test_chunking_defaults(self, clean_environment):
        opts = chunking_options_from_env()
        assert (opts.max_chunk_size, opts.chunk_overlap) == (16000, 200)

    def test_timeout_override_and_fallback(self, clean_environment, monkeypatch):
        assert http_timeout_seconds() == DEFAULT_HTTP_TIMEOUT
        monkeypatch.setenv("RAG_HTTP_TIMEOUT", "2.5")
        assert http_timeout_seconds() == 2.5
        monkeypatch.setenv("RAG_HTTP_TIMEOUT", "-1")
        assert http_timeout_seconds() == DEFAULT_HTTP_TIMEOUT
