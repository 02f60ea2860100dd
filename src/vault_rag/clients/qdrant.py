"""Client for the Qdrant REST API, scoped to one collection."""

import logging
from collections.abc import Sequence
from typing import Any

import httpx

from vault_rag.clients.base import Point, ScoredPoint
from vault_rag.config import VectorDBConfig
from vault_rag.errors import ConfigError, VectorStoreError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0  # seconds
DEFAULT_SEARCH_LIMIT = 5


class QdrantClient:
    """Thin wrapper over the Qdrant HTTP endpoints the indexer needs."""

    def __init__(
        self,
        config: VectorDBConfig,
        transport: httpx.BaseTransport | None = None,
    ):
        """Initialize the client.

        Args:
            config: Qdrant URL and collection name
            transport: Optional httpx transport (used by tests)

        Raises:
            ConfigError: If url or collection is missing
        """
        if not config.url:
            raise ConfigError("vector_db url is required")
        if not config.collection:
            raise ConfigError("vector_db collection is required")

        self._collection = config.collection
        timeout = config.timeout if config.timeout > 0 else DEFAULT_TIMEOUT
        self._client = httpx.Client(
            base_url=config.url.rstrip("/"),
            headers={"Content-Type": "application/json"},
            timeout=timeout,
            transport=transport,
        )

    @property
    def collection(self) -> str:
        return self._collection

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "QdrantClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def ensure_collection(self, dimension: int, recreate: bool) -> None:
        """
        Make sure the collection exists with the given vector size.

        With ``recreate`` the collection is dropped first. An existing
        collection with a different vector size is dropped and recreated.
        """
        if dimension <= 0:
            raise VectorStoreError(f"invalid vector dimension: {dimension}")

        if recreate:
            try:
                self._delete_collection()
            except VectorStoreError as e:
                logger.debug("Ignoring failure to drop %s: %s", self._collection, e)
            self._create_collection(dimension)
            return

        current = self._collection_dimension()
        if current is None:
            self._create_collection(dimension)
        elif current != dimension:
            # A size of 0 means the vectors config is unreadable (e.g. named vectors)
            logger.info(
                "Collection %s has dimension %d, recreating with %d",
                self._collection,
                current,
                dimension,
            )
            self._delete_collection()
            self._create_collection(dimension)

    def upsert(self, points: Sequence[Point]) -> None:
        if not points:
            return
        self._request(
            "PUT",
            f"/collections/{self._collection}/points",
            params={"wait": "true"},
            body={"points": [p.as_dict() for p in points]},
        )

    def delete_by_path(self, path: str) -> None:
        """Delete every point whose payload ``path`` matches. Missing data is not an error."""
        if not path:
            return
        body = {"filter": {"must": [{"key": "path", "match": {"value": path}}]}}
        try:
            self._request(
                "POST",
                f"/collections/{self._collection}/points/delete",
                params={"wait": "true"},
                body=body,
            )
        except _NotFound:
            logger.debug("Collection %s missing, nothing to delete", self._collection)

    def search(
        self, vector: Sequence[float], limit: int, min_similarity: float
    ) -> list[ScoredPoint]:
        if not vector:
            raise VectorStoreError("empty query vector")
        if limit <= 0:
            limit = DEFAULT_SEARCH_LIMIT

        body = {
            "vector": list(vector),
            "limit": limit,
            "with_payload": True,
            "score_threshold": min_similarity,
        }
        data = self._request(
            "POST", f"/collections/{self._collection}/points/search", body=body
        )

        hits = data.get("result") or []
        return [
            ScoredPoint(score=float(hit.get("score", 0.0)), payload=hit.get("payload") or {})
            for hit in hits
        ]

    def _collection_dimension(self) -> int | None:
        """Return the vector size of the collection, or None if it does not exist."""
        try:
            data = self._request("GET", f"/collections/{self._collection}")
        except _NotFound:
            return None

        vectors = (
            data.get("result", {}).get("config", {}).get("params", {}).get("vectors", {})
        )
        size = vectors.get("size") if isinstance(vectors, dict) else None
        return int(size) if size else 0

    def _create_collection(self, dimension: int) -> None:
        logger.info("Creating collection %s (dimension %d)", self._collection, dimension)
        self._request(
            "PUT",
            f"/collections/{self._collection}",
            body={"vectors": {"size": dimension, "distance": "Cosine"}},
        )

    def _delete_collection(self) -> None:
        self._request("DELETE", f"/collections/{self._collection}")

    def _request(
        self,
        method: str,
        path: str,
        params: dict[str, str] | None = None,
        body: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        try:
            response = self._client.request(method, path, params=params, json=body)
        except httpx.HTTPError as e:
            raise VectorStoreError(f"qdrant request failed: {e}") from e

        if response.status_code == 404:
            raise _NotFound(f"qdrant API error: 404 {response.text[:500]}")
        if response.status_code >= 300:
            raise VectorStoreError(
                f"qdrant API error: {response.status_code} {response.text[:500]}"
            )

        if not response.content:
            return {}
        try:
            data = response.json()
        except ValueError as e:
            raise VectorStoreError(f"failed to parse qdrant response: {e}") from e
        return data if isinstance(data, dict) else {}


class _NotFound(VectorStoreError):
    """404 from Qdrant, usually a missing collection."""
