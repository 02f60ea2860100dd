"""Client for OpenAI-compatible embeddings endpoints."""

import logging
from collections.abc import Sequence

import httpx

from vault_rag.config import EmbeddingConfig
from vault_rag.errors import ConfigError, EmbeddingError

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 16
DEFAULT_TIMEOUT = 60.0  # seconds


class EmbeddingClient:
    """Calls ``POST {api_base}/embeddings`` and returns vectors in input order."""

    def __init__(
        self,
        config: EmbeddingConfig,
        transport: httpx.BaseTransport | None = None,
    ):
        """Initialize the client.

        Args:
            config: Embedding endpoint settings
            transport: Optional httpx transport (used by tests)

        Raises:
            ConfigError: If api_base or model is missing
        """
        if not config.api_base:
            raise ConfigError("embedding api_base is required")
        if not config.model:
            raise ConfigError("embedding model is required")

        self._model = config.model
        self._batch_size = config.batch_size if config.batch_size > 0 else DEFAULT_BATCH_SIZE
        timeout = config.timeout if config.timeout > 0 else DEFAULT_TIMEOUT

        headers = {"Content-Type": "application/json"}
        if config.api_key:
            headers["Authorization"] = f"Bearer {config.api_key}"

        self._client = httpx.Client(
            base_url=config.api_base.rstrip("/"),
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    @property
    def model(self) -> str:
        return self._model

    @property
    def batch_size(self) -> int:
        return self._batch_size

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "EmbeddingClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def embed_batch(self, texts: Sequence[str]) -> list[list[float]]:
        """Embed texts in one request.

        Returns:
            One vector per input text, ordered like the input.

        Raises:
            EmbeddingError: On transport failure, non-200 status or a malformed body
        """
        if not texts:
            return []

        try:
            response = self._client.post(
                "/embeddings", json={"model": self._model, "input": list(texts)}
            )
        except httpx.HTTPError as e:
            raise EmbeddingError(f"embedding request failed: {e}") from e

        if response.status_code != 200:
            raise EmbeddingError(
                f"embedding API error: {response.status_code} {response.text[:500]}"
            )

        try:
            body = response.json()
        except ValueError as e:
            raise EmbeddingError(f"failed to parse embedding response: {e}") from e

        data = body.get("data") if isinstance(body, dict) else None
        if not data:
            raise EmbeddingError("embedding response missing data")

        embeddings: list[list[float] | None] = [None] * len(texts)
        for position, item in enumerate(data):
            if not isinstance(item, dict):
                raise EmbeddingError("embedding response item is not an object")
            index = item.get("index", position)
            if not isinstance(index, int) or not 0 <= index < len(embeddings):
                raise EmbeddingError(f"embedding response index out of range: {index}")
            try:
                embeddings[index] = [float(v) for v in item.get("embedding") or []]
            except (TypeError, ValueError) as e:
                raise EmbeddingError(f"embedding response has invalid vector: {e}") from e

        missing = [i for i, e in enumerate(embeddings) if not e]
        if missing:
            raise EmbeddingError(f"embedding response missing vectors for inputs {missing}")

        logger.debug("Embedded %d texts with %s", len(texts), self._model)
        return embeddings  # type: ignore[return-value]
