"""Exception hierarchy for vault-rag.

Every error raised while indexing aborts the current run before the manifest
is written, so the previous incremental baseline stays intact.
"""


class RagError(Exception):
    """Base class for all vault-rag errors."""


class ConfigError(RagError, ValueError):
    """Missing or invalid configuration (vault path, API parameters, env values)."""


class TransportError(RagError):
    """A collaborator call failed on the wire or returned a malformed body."""


class EmbeddingError(TransportError):
    """The embeddings API call failed."""


class VectorStoreError(TransportError):
    """The vector database call failed."""


class DataError(RagError):
    """A collaborator broke its contract (count or dimension mismatch)."""


class IndexCancelled(RagError):
    """The caller cancelled an indexing run."""
