from __future__ import annotations

import contextlib
import json
import os
from pathlib import Path
from typing import Dict, Optional

from ..domain.config import (
    DEFAULT_COLLECTION_NAME,
    ChromaDBConfig,
    EmbeddingModelConfig,
    EmbeddingModelProvider,
    HttpEmbeddingConfig,
    InMemoryConfig,
    MockEmbeddingConfig,
    OllamaEmbeddingConfig,
    PineconeConfig,
    VectorDbConfig,
    VectorDbProvider,
)
from ..domain.errors import ConfigurationError
from ..domain.models import ChunkingOptions


def parse_dotenv(dotenv_path: Path) -> Dict[str, str]:
    """Parse a simple .env file (KEY=VALUE per line, '#' comments, quotes stripped)."""
    env: Dict[str, str] = {}
    if dotenv_path.exists():
        with contextlib.suppress(OSError):
            for raw in dotenv_path.read_text(encoding="utf-8", errors="ignore").splitlines():
                s = raw.strip()
                if not s or s.startswith("#") or "=" not in s:
                    continue
                k, v = s.split("=", 1)
                k = k.strip()
                v = v.strip().strip('"').strip("'")
                if k:
                    env[k] = v
    return env


def env_get(key: str) -> Optional[str]:
    """Get environment value from process env, falling back to .env in CWD."""
    v = os.getenv(key)
    if v is not None and v.strip():
        return v.strip()
    local = parse_dotenv(Path(".env"))
    v2 = local.get(key)
    return v2.strip() if v2 is not None and v2.strip() else None


def env_str(name: str, default: str) -> str:
    return env_get(name) or default


def env_int(name: str, default: int) -> int:
    try:
        return int(env_str(name, str(default)))
    except ValueError:
        return default


def env_float(name: str, default: float) -> float:
    try:
        return float(env_str(name, str(default)))
    except ValueError:
        return default


def vector_db_config_from_env() -> VectorDbConfig:
    """Build the vector DB config variant named by VECTOR_DB_PROVIDER."""
    raw = env_str("VECTOR_DB_PROVIDER", VectorDbProvider.IN_MEMORY.value).lower()
    try:
        provider = VectorDbProvider(raw)
    except ValueError:
        choices = ", ".join(p.value for p in VectorDbProvider)
        raise ConfigurationError(f"Unknown VECTOR_DB_PROVIDER '{raw}'; expected one of: {choices}") from None

    if provider is VectorDbProvider.IN_MEMORY:
        return InMemoryConfig()
    if provider is VectorDbProvider.PINECONE:
        return PineconeConfig(
            api_key=env_str("PINECONE_API_KEY", ""),
            index_name=env_str("PINECONE_INDEX", ""),
            namespace=env_get("PINECONE_NAMESPACE"),
        )
    return ChromaDBConfig(
        path=env_get("CHROMA_PATH"),
        host=env_get("CHROMA_HOST"),
        collection_name=env_str("CHROMA_COLLECTION", DEFAULT_COLLECTION_NAME),
    )


def embedding_config_from_env() -> EmbeddingModelConfig:
    """Build the embedding config variant named by EMBED_PROVIDER (default: mock)."""
    raw = env_str("EMBED_PROVIDER", EmbeddingModelProvider.MOCK.value).lower()
    try:
        provider = EmbeddingModelProvider(raw)
    except ValueError:
        choices = ", ".join(p.value for p in EmbeddingModelProvider)
        raise ConfigurationError(f"Unknown EMBED_PROVIDER '{raw}'; expected one of: {choices}") from None

    if provider is EmbeddingModelProvider.MOCK:
        return MockEmbeddingConfig(
            dimension=env_int("EMBED_MOCK_DIM", 768),
            batch_size=env_int("EMBED_BATCH_SIZE", 32),
        )
    if provider is EmbeddingModelProvider.OLLAMA:
        return OllamaEmbeddingConfig(
            model_name=env_str("EMBED_MODEL", "nomic-embed-text"),
            base_url=env_str("OLLAMA_URL", "http://localhost:11434").rstrip("/"),
            batch_size=env_int("EMBED_BATCH_SIZE", 50),
        )
    url = env_get("EMBED_HTTP_URL")
    if not url:
        raise ConfigurationError("EMBED_PROVIDER=http requires EMBED_HTTP_URL")
    headers: Dict[str, str] = {}
    raw_headers = env_get("EMBED_HTTP_HEADERS")
    if raw_headers:
        try:
            headers = {str(k): str(v) for k, v in json.loads(raw_headers).items()}
        except (ValueError, AttributeError) as exc:
            raise ConfigurationError(f"EMBED_HTTP_HEADERS must be a JSON object: {exc}") from exc
    return HttpEmbeddingConfig(url=url, headers=headers, batch_size=env_int("EMBED_BATCH_SIZE", 100))


def chunking_options_from_env() -> ChunkingOptions:
    return ChunkingOptions(
        max_chunk_size=env_int("RAG_CHUNK_MAX_SIZE", 16000),
        chunk_overlap=env_int("RAG_CHUNK_OVERLAP", 200),
    )
