from __future__ import annotations


class IndexManagerError(RuntimeError):
    """Base class for vector index failures."""


class ConfigurationError(IndexManagerError, ValueError):
    """Raised when the selected provider is missing required settings."""


class InitializationError(IndexManagerError):
    """Raised when a backend client or collection cannot be stood up."""


class IndexManagerNotInitializedError(IndexManagerError):
    """Raised when a data operation runs before successful initialization."""


class UpsertError(IndexManagerError):
    """Raised when the backend rejects an upsert."""


class QueryError(IndexManagerError):
    """Raised when the backend rejects a similarity query or an id listing."""


class DeleteError(IndexManagerError):
    """Raised when the backend rejects a delete."""


class StatusError(IndexManagerError):
    """Raised when collection statistics cannot be read."""


class EmbeddingError(RuntimeError):
    """Raised when embedding provider fails."""


class ChunkingError(ValueError):
    """Raised when content cannot be chunked with the given options."""
