"""Main indexer that synchronizes the vault with the vector store."""

import logging
import threading
import uuid
from dataclasses import dataclass
from pathlib import Path

from vault_rag.clients.base import Embedder, Point, VectorStore
from vault_rag.config import Config
from vault_rag.errors import ConfigError, DataError, IndexCancelled, RagError
from vault_rag.indexer.chunker import chunk_markdown
from vault_rag.indexer.manifest import (
    IndexManifest,
    load_manifest,
    needs_full_rebuild,
    save_manifest,
)
from vault_rag.indexer.models import Chunk, FileEntry, IndexSummary
from vault_rag.indexer.walker import expand_home, list_markdown_files

logger = logging.getLogger(__name__)


def hash_point_id(path: str, start_line: int, end_line: int) -> str:
    """Deterministic point id, so re-indexing the same chunk overwrites it."""
    return str(uuid.uuid5(uuid.NAMESPACE_URL, f"{path}:{start_line}:{end_line}"))


@dataclass
class _RunState:
    """Mutable state owned by a single indexing run."""

    manifest: IndexManifest
    previous_files: dict[str, int]
    reindex_all: bool
    summary: IndexSummary
    cancel: threading.Event | None = None
    # Unset until known from the manifest, the config or the first embedding
    dimension: int | None = None
    expected_dimension: int = 0


class Indexer:
    """
    Indexer that syncs a Markdown vault with a vector store.

    The filesystem is the source of truth. The manifest records which files
    (and which mtimes) the store currently holds vectors for, so unchanged
    files can be skipped on the next run.

    Not safe for concurrent runs over the same workspace.
    """

    def __init__(self, config: Config, embedder: Embedder, store: VectorStore):
        """
        Initialize the indexer.

        Args:
            config: Application configuration
            embedder: Embedding collaborator
            store: Vector-store collaborator
        """
        self.config = config
        self.embedder = embedder
        self.store = store

    @property
    def manifest_path(self) -> Path:
        return self.config.manifest_path

    def run(
        self, reindex_all: bool = False, cancel: threading.Event | None = None
    ) -> IndexSummary:
        """
        Index the vault, incrementally unless a full rebuild is needed.

        Args:
            reindex_all: Force a full rebuild
            cancel: Optional event; once set, the run stops before its next
                network call and the manifest is left untouched. A request
                already in flight is not interrupted, so stopping can take up
                to the embedding or vector-store client timeout.

        Returns:
            IndexSummary with per-run counters.

        Raises:
            ConfigError: If the vault path is missing or not a directory
            TransportError: If an embedding or vector-store call fails
            DataError: If the embedding collaborator breaks its contract
            IndexCancelled: If ``cancel`` was set during the run
        """
        vault_root = self._resolve_vault_root()
        cfg = self.config

        files = list_markdown_files(vault_root, cfg.include_patterns, cfg.exclude_patterns)

        manifest = load_manifest(self.manifest_path)
        full = needs_full_rebuild(
            manifest,
            requested=reindex_all,
            collection=self.store.collection,
            embedding_model=self.embedder.model,
            chunk_size=cfg.chunk_size,
            chunk_overlap=cfg.chunk_overlap,
            include_patterns=cfg.include_patterns,
            exclude_patterns=cfg.exclude_patterns,
        )
        if manifest is None:
            manifest = IndexManifest()

        state = _RunState(
            manifest=manifest,
            previous_files=dict(manifest.files),
            reindex_all=full,
            summary=IndexSummary(total_files=len(files)),
            cancel=cancel,
            expected_dimension=cfg.embedding.dimension,
        )
        logger.info(
            "Indexing %s: %d files (%s)",
            vault_root,
            len(files),
            "full rebuild" if full else "incremental",
        )

        # A recorded dimension is only trusted when the old vectors are kept
        dimension = manifest.embedding_dimension if not full else 0
        if dimension <= 0:
            dimension = cfg.embedding.dimension
        if dimension > 0:
            self._ensure_collection(state, dimension)

        if full:
            manifest.files = {}
            if state.dimension is None:
                manifest.embedding_dimension = 0

        self._remove_missing(state, {f.relative_path for f in files})

        for entry in files:
            self._index_file(state, entry)

        manifest.collection = self.store.collection
        manifest.embedding_model = self.embedder.model
        manifest.chunk_size = cfg.chunk_size
        manifest.chunk_overlap = cfg.chunk_overlap
        manifest.include_patterns = list(cfg.include_patterns)
        manifest.exclude_patterns = list(cfg.exclude_patterns)
        save_manifest(self.manifest_path, manifest)

        s = state.summary
        logger.info(
            "Index complete: %d total, %d new, %d updated, %d removed, %d skipped, %d chunks",
            s.total_files,
            s.indexed_files,
            s.updated_files,
            s.removed_files,
            s.skipped_files,
            s.chunks,
        )
        return s

    def _resolve_vault_root(self) -> Path:
        raw = expand_home(self.config.vault_path.strip())
        if not raw:
            raise ConfigError("vault path is required (set RAG_VAULT_PATH)")
        root = Path(raw)
        if not root.is_dir():
            raise ConfigError(f"vault path not found: {root}")
        return root.resolve()

    def _check_cancelled(self, state: _RunState) -> None:
        if state.cancel is not None and state.cancel.is_set():
            raise IndexCancelled("indexing cancelled")

    def _ensure_collection(self, state: _RunState, dimension: int) -> None:
        """Resolve the run's dimension and ensure the collection. Happens once per run."""
        if dimension <= 0:
            raise DataError(f"invalid embedding dimension: {dimension}")
        if state.dimension is not None:
            raise DataError(
                f"embedding dimension already resolved to {state.dimension}"
            )
        self._check_cancelled(state)
        self.store.ensure_collection(dimension, state.reindex_all)
        state.dimension = dimension
        state.manifest.embedding_dimension = dimension

    def _remove_missing(self, state: _RunState, current_paths: set[str]) -> None:
        """Delete vectors of files that were indexed before but are gone now."""
        for path in sorted(state.previous_files):
            if path in current_paths:
                continue
            self._check_cancelled(state)
            self.store.delete_by_path(path)
            state.manifest.files.pop(path, None)
            state.summary.removed_files += 1
            logger.debug("Removed %s", path)

    def _index_file(self, state: _RunState, entry: FileEntry) -> None:
        """Chunk, embed and upsert one file, or skip it if unchanged."""
        manifest = state.manifest
        if not state.reindex_all and manifest.files.get(entry.relative_path) == entry.mtime_ns:
            state.summary.skipped_files += 1
            logger.debug("Skipping unchanged %s", entry.relative_path)
            return

        try:
            content = entry.path.read_text(encoding="utf-8", errors="replace")
        except OSError as e:
            raise RagError(f"failed to read {entry.path}: {e}") from e

        chunks = chunk_markdown(
            entry.relative_path, content, self.config.chunk_size, self.config.chunk_overlap
        )
        if not chunks:
            # Record it anyway so an empty file is not reprocessed every run
            manifest.files[entry.relative_path] = entry.mtime_ns
            logger.debug("No content in %s", entry.relative_path)
            return

        self._check_cancelled(state)
        self.store.delete_by_path(entry.relative_path)

        batch_size = max(1, self.embedder.batch_size)
        for start in range(0, len(chunks), batch_size):
            self._embed_and_upsert(state, entry, chunks[start : start + batch_size])

        if entry.relative_path in state.previous_files:
            state.summary.updated_files += 1
        else:
            state.summary.indexed_files += 1
        manifest.files[entry.relative_path] = entry.mtime_ns
        logger.debug("Indexed %s (%d chunks)", entry.relative_path, len(chunks))

    def _embed_and_upsert(
        self, state: _RunState, entry: FileEntry, batch: list[Chunk]
    ) -> None:
        self._check_cancelled(state)
        embeddings = self.embedder.embed_batch([c.content for c in batch])
        if len(embeddings) != len(batch):
            raise DataError(
                f"embedding result size mismatch: got {len(embeddings)} for {len(batch)} chunks"
            )

        dimensions = {len(vector) for vector in embeddings}
        if len(dimensions) != 1:
            raise DataError(f"embedding vectors have mixed dimensions: {sorted(dimensions)}")
        dimension = dimensions.pop()

        if state.dimension is None:
            if state.expected_dimension > 0 and state.expected_dimension != dimension:
                raise DataError(
                    f"embedding dimension mismatch: got {dimension} "
                    f"expected {state.expected_dimension}"
                )
            self._ensure_collection(state, dimension)
        elif dimension != state.dimension:
            raise DataError(
                f"embedding dimension mismatch: got {dimension} expected {state.dimension}"
            )

        points = [
            Point(
                id=hash_point_id(entry.relative_path, chunk.start_line, chunk.end_line),
                vector=vector,
                payload={
                    "path": chunk.path,
                    "heading": chunk.heading,
                    "start_line": chunk.start_line,
                    "end_line": chunk.end_line,
                    "content": chunk.content,
                    "mtime": entry.mtime_ns,
                },
            )
            for chunk, vector in zip(batch, embeddings)
        ]

        self._check_cancelled(state)
        self.store.upsert(points)
        state.summary.chunks += len(points)
