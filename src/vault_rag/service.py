"""Service façade: search, indexing, trigger decisions and result formatting."""

import logging
import threading

from vault_rag.clients import EmbeddingClient, QdrantClient
from vault_rag.clients.base import Embedder, VectorStore
from vault_rag.config import Config
from vault_rag.errors import ConfigError, EmbeddingError
from vault_rag.indexer import Indexer, IndexSummary, SearchResult
from vault_rag.trigger import TriggerDecision, decide_trigger

logger = logging.getLogger(__name__)

CONTEXT_HEADER = (
    "## Knowledge Base Notes\n"
    "Use the notes below to answer the question. "
    "If the notes do not contain the answer, say so explicitly.\n\n"
)
CONTEXT_FOOTER = (
    "When you answer, cite sources like [1], [2] and include a Sources section "
    "listing the cited entries.\n"
)
TRUNCATION_MARKER = "...(truncated)"


def format_source(result: SearchResult) -> str:
    """Render a citation target: ``path#heading Lstart-Lend``."""
    if result.heading:
        return f"{result.path}#{result.heading} L{result.start_line}-L{result.end_line}"
    return f"{result.path} L{result.start_line}-L{result.end_line}"


class RagService:
    """
    Entry point for callers. Collaborators are built once and injected.

    The service owns the collaborators it is given and closes them in close()
    when they support it.
    """

    def __init__(self, config: Config, embedder: Embedder, store: VectorStore):
        self.config = config
        self.embedder = embedder
        self.store = store

    def close(self) -> None:
        for client in (self.embedder, self.store):
            close = getattr(client, "close", None)
            if callable(close):
                close()

    def trigger_decision(self, message: str) -> TriggerDecision:
        return decide_trigger(message, self.config.trigger)

    def search(self, query: str) -> list[SearchResult]:
        """
        Embed the query and return the closest chunks.

        Results come back in the order the vector store ranks them.
        """
        query = query.strip()
        if not query:
            return []

        embeddings = self.embedder.embed_batch([query])
        if not embeddings or not embeddings[0]:
            raise EmbeddingError("embedding returned empty vector")

        hits = self.store.search(embeddings[0], self.config.top_k, self.config.min_similarity)
        logger.debug("Query matched %d chunks", len(hits))
        return [SearchResult.from_payload(hit.payload, hit.score) for hit in hits]

    def index(
        self, reindex_all: bool = False, cancel: threading.Event | None = None
    ) -> IndexSummary:
        indexer = Indexer(self.config, self.embedder, self.store)
        return indexer.run(reindex_all=reindex_all, cancel=cancel)

    def format_context(self, results: list[SearchResult]) -> str:
        """Render results as a numbered notes block for a prompt."""
        if not results:
            return ""

        parts = [CONTEXT_HEADER]
        limit = self.config.snippet_max_chars
        for label, result in enumerate(results, start=1):
            parts.append(f"[{label}] {format_source(result)}\n")
            snippet = result.content.strip()
            if limit > 0 and len(snippet) > limit:
                snippet = snippet[:limit] + TRUNCATION_MARKER
            parts.append(snippet)
            parts.append("\n\n")
        parts.append(CONTEXT_FOOTER)
        return "".join(parts)

    def format_sources(self, results: list[SearchResult]) -> str:
        if not results:
            return ""
        lines = ["Sources:"]
        for label, result in enumerate(results, start=1):
            lines.append(f"[{label}] {format_source(result)}")
        return "\n".join(lines)

    def context_for_message(self, message: str) -> tuple[TriggerDecision, str]:
        """
        Run the trigger decision and, when it says so, the lookup.

        Returns:
            Tuple of (decision, formatted context). The context is empty when
            no search ran or nothing matched.
        """
        decision = self.trigger_decision(message)
        if not decision.should_search or not decision.cleaned_message:
            return decision, ""
        results = self.search(decision.cleaned_message)
        return decision, self.format_context(results)


def create_service(config: Config) -> RagService:
    """Build a service with HTTP collaborators from configuration.

    Raises:
        ConfigError: If RAG is disabled or an endpoint is misconfigured
    """
    if not config.enabled:
        raise ConfigError("rag is disabled")

    embedder = EmbeddingClient(config.embedding)
    try:
        store = QdrantClient(config.vector_db)
    except ConfigError:
        embedder.close()
        raise
    return RagService(config, embedder, store)
