"""Contracts the indexer and service expect from their network collaborators."""

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any, Protocol


@dataclass
class Point:
    """One vector-store record."""

    id: str
    vector: list[float]
    payload: dict[str, Any] = field(default_factory=dict)

    def as_dict(self) -> dict[str, Any]:
        return {"id": self.id, "vector": self.vector, "payload": self.payload}


@dataclass
class ScoredPoint:
    """A search hit as returned by the vector store."""

    score: float
    payload: dict[str, Any]


class Embedder(Protocol):
    """Turns texts into vectors, one vector per text, in input order."""

    @property
    def model(self) -> str: ...

    @property
    def batch_size(self) -> int: ...

    def embed_batch(self, texts: Sequence[str]) -> list[list[float]]: ...


class VectorStore(Protocol):
    """A single named collection of fixed-dimension vectors."""

    @property
    def collection(self) -> str: ...

    def ensure_collection(self, dimension: int, recreate: bool) -> None: ...

    def upsert(self, points: Sequence[Point]) -> None: ...

    def delete_by_path(self, path: str) -> None: ...

    def search(
        self, vector: Sequence[float], limit: int, min_similarity: float
    ) -> list[ScoredPoint]: ...
