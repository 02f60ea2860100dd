"""Shared fixtures: in-memory collaborators and a temporary vault."""

from pathlib import Path

import pytest

from vault_rag.clients.base import ScoredPoint
from vault_rag.config import Config, EmbeddingConfig, VectorDBConfig


class FakeEmbedder:
    """Returns a fixed-size vector per text and records every call."""

    def __init__(self, dimension: int = 4, batch_size: int = 2, model: str = "fake-embed"):
        self.dimension = dimension
        self.model = model
        self.batch_size = batch_size
        self.calls: list[list[str]] = []

    def embed_batch(self, texts):
        self.calls.append(list(texts))
        return [[float(len(t) % 7)] + [0.5] * (self.dimension - 1) for t in texts]


class FakeStore:
    """Keeps points in a dict and records every call."""

    def __init__(self, collection: str = "notes"):
        self.collection = collection
        self.points: dict[str, dict] = {}
        self.dimension: int | None = None
        self.ensure_calls: list[tuple[int, bool]] = []
        self.upsert_calls: list[list] = []
        self.deleted_paths: list[str] = []
        self.search_results: list[ScoredPoint] = []

    def ensure_collection(self, dimension, recreate):
        self.ensure_calls.append((dimension, recreate))
        if recreate or self.dimension != dimension:
            self.points.clear()
        self.dimension = dimension

    def upsert(self, points):
        self.upsert_calls.append(list(points))
        for p in points:
            self.points[p.id] = {"vector": p.vector, "payload": p.payload}

    def delete_by_path(self, path):
        self.deleted_paths.append(path)
        self.points = {
            pid: p for pid, p in self.points.items() if p["payload"]["path"] != path
        }

    def search(self, vector, limit, min_similarity):
        return self.search_results[:limit]

    def paths(self) -> set[str]:
        return {p["payload"]["path"] for p in self.points.values()}


@pytest.fixture
def embedder() -> FakeEmbedder:
    return FakeEmbedder()


@pytest.fixture
def store() -> FakeStore:
    return FakeStore()


@pytest.fixture
def vault(tmp_path: Path) -> Path:
    """Create a small vault with two notes."""
    root = tmp_path / "vault"
    (root / "projects").mkdir(parents=True)
    (root / "inbox.md").write_text("# Inbox\n\nBuy milk.\n\n## Later\n\nCall the bank.\n")
    (root / "projects" / "garden.md").write_text(
        "# Garden\n\nTomatoes need sun.\n\n## Watering\n\nWater every morning.\n"
    )
    return root


@pytest.fixture
def config(tmp_path: Path, vault: Path) -> Config:
    return Config(
        vault_path=str(vault),
        workspace=tmp_path / "workspace",
        chunk_size=200,
        chunk_overlap=0,
        embedding=EmbeddingConfig(api_base="http://embed.test/v1", model="fake-embed"),
        vector_db=VectorDBConfig(url="http://qdrant.test", collection="notes"),
    )
