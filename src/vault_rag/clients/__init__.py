"""Network collaborators: the embeddings API and the Qdrant vector store."""

from vault_rag.clients.base import Embedder, Point, ScoredPoint, VectorStore
from vault_rag.clients.embedding import EmbeddingClient
from vault_rag.clients.qdrant import QdrantClient

__all__ = [
    "Embedder",
    "EmbeddingClient",
    "Point",
    "QdrantClient",
    "ScoredPoint",
    "VectorStore",
]
