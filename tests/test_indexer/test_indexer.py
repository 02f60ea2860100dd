"""Tests for the main Indexer class."""

import json
import os
import threading
import uuid
from dataclasses import replace
from pathlib import Path

import pytest

from vault_rag.errors import ConfigError, DataError, IndexCancelled
from vault_rag.indexer import Indexer, hash_point_id, load_manifest


def touch_later(path: Path, seconds: int = 10) -> None:
    """Bump a file's mtime so the change is visible regardless of clock resolution."""
    mtime = path.stat().st_mtime_ns + seconds * 1_000_000_000
    os.utime(path, ns=(mtime, mtime))


class TestHashPointId:
    def test_deterministic(self):
        assert hash_point_id("a.md", 1, 10) == hash_point_id("a.md", 1, 10)

    def test_distinguishes_inputs(self):
        ids = {
            hash_point_id("a.md", 1, 10),
            hash_point_id("a.md", 1, 11),
            hash_point_id("a.md", 2, 10),
            hash_point_id("b.md", 1, 10),
        }
        assert len(ids) == 4

    def test_is_a_uuid(self):
        assert uuid.UUID(hash_point_id("a.md", 1, 2))


class TestIndexerFirstRun:
    def test_full_index_on_missing_manifest(self, config, embedder, store):
        summary = Indexer(config, embedder, store).run()

        assert summary.total_files == 2
        assert summary.indexed_files == 2
        assert summary.updated_files == 0
        assert summary.skipped_files == 0
        assert summary.removed_files == 0
        assert summary.chunks == len(store.points)
        assert store.paths() == {"inbox.md", "projects/garden.md"}

    def test_lazily_resolves_dimension(self, config, embedder, store):
        Indexer(config, embedder, store).run()

        # Collection is ensured exactly once, after the first embedding batch
        assert store.ensure_calls == [(embedder.dimension, True)]
        manifest = load_manifest(config.manifest_path)
        assert manifest.embedding_dimension == embedder.dimension

    def test_configured_dimension_ensures_before_embedding(self, config, embedder, store):
        config.embedding.dimension = embedder.dimension
        Indexer(config, embedder, store).run()

        assert store.ensure_calls == [(embedder.dimension, True)]

    def test_writes_manifest(self, config, embedder, store, vault):
        config.include_patterns = ["**/*.md", "*.md"]
        config.exclude_patterns = ["private/**"]
        Indexer(config, embedder, store).run()

        data = json.loads(config.manifest_path.read_text())
        assert data["collection"] == "notes"
        assert data["embedding_model"] == "fake-embed"
        assert data["chunk_size"] == config.chunk_size
        assert data["chunk_overlap"] == config.chunk_overlap
        assert data["include_patterns"] == ["**/*.md", "*.md"]
        assert data["exclude_patterns"] == ["private/**"]
        assert data["files"] == {
            "inbox.md": (vault / "inbox.md").stat().st_mtime_ns,
            "projects/garden.md": (vault / "projects" / "garden.md").stat().st_mtime_ns,
        }

    def test_payload_and_ids(self, config, embedder, store, vault):
        Indexer(config, embedder, store).run()

        mtime = (vault / "inbox.md").stat().st_mtime_ns
        inbox = [p for p in store.points.items() if p[1]["payload"]["path"] == "inbox.md"]
        assert inbox
        for point_id, point in inbox:
            payload = point["payload"]
            assert set(payload) == {
                "path",
                "heading",
                "start_line",
                "end_line",
                "content",
                "mtime",
            }
            assert payload["mtime"] == mtime
            assert point_id == hash_point_id("inbox.md", payload["start_line"], payload["end_line"])
            assert len(point["vector"]) == embedder.dimension

    def test_batches_follow_embedder_batch_size(self, config, embedder, store, vault):
        config.chunk_size = 20  # Small chunks, several batches per file
        (vault / "long.md").write_text("\n".join(f"paragraph {i}" for i in range(9)))

        summary = Indexer(config, embedder, store).run()

        assert all(len(call) <= embedder.batch_size for call in embedder.calls)
        assert sum(len(call) for call in embedder.calls) == summary.chunks
        assert sum(len(call) for call in store.upsert_calls) == summary.chunks

    def test_empty_file_recorded_without_embedding(self, config, embedder, store, vault):
        (vault / "empty.md").write_text("\n  \n")

        Indexer(config, embedder, store).run()

        assert "empty.md" in load_manifest(config.manifest_path).files
        assert "empty.md" not in store.paths()
        assert all("empty.md" != p for p in store.deleted_paths)


class TestIndexerIncremental:
    def test_unchanged_vault_is_skipped(self, config, embedder, store):
        indexer = Indexer(config, embedder, store)
        indexer.run()
        embedder.calls.clear()
        store.upsert_calls.clear()

        summary = indexer.run()

        assert summary.skipped_files == 2
        assert summary.chunks == 0
        assert embedder.calls == []
        assert store.upsert_calls == []

    def test_one_modified_one_unchanged(self, config, embedder, store, vault):
        indexer = Indexer(config, embedder, store)
        indexer.run()
        embedder.calls.clear()
        store.deleted_paths.clear()

        garden = vault / "projects" / "garden.md"
        garden.write_text("# Garden\n\nPeppers too.\n")
        touch_later(garden)

        summary = indexer.run()

        assert summary.total_files == 2
        assert summary.skipped_files == 1
        assert summary.updated_files == 1
        assert summary.indexed_files == 0
        assert summary.chunks == 1
        assert store.deleted_paths == ["projects/garden.md"]
        garden_points = [p for p in store.points.values() if p["payload"]["path"] == "projects/garden.md"]
        assert [p["payload"]["content"] for p in garden_points] == ["# Garden\n\nPeppers too."]

    def test_incremental_reuses_recorded_dimension(self, config, embedder, store):
        indexer = Indexer(config, embedder, store)
        indexer.run()
        store.ensure_calls.clear()

        indexer.run()

        assert store.ensure_calls == [(embedder.dimension, False)]

    def test_new_file_counted_as_new(self, config, embedder, store, vault):
        indexer = Indexer(config, embedder, store)
        indexer.run()

        (vault / "fresh.md").write_text("# Fresh\n\nNew note.\n")
        summary = indexer.run()

        assert summary.indexed_files == 1
        assert summary.skipped_files == 2
        assert "fresh.md" in store.paths()

    def test_removed_file_is_deleted_once(self, config, embedder, store, vault):
        indexer = Indexer(config, embedder, store)
        indexer.run()
        store.deleted_paths.clear()

        (vault / "inbox.md").unlink()
        summary = indexer.run()

        assert summary.removed_files == 1
        assert summary.total_files == 1
        assert store.deleted_paths == ["inbox.md"]
        assert "inbox.md" not in store.paths()
        assert "inbox.md" not in load_manifest(config.manifest_path).files

    def test_rerun_overwrites_same_points(self, config, embedder, store, vault):
        indexer = Indexer(config, embedder, store)
        indexer.run()
        before = set(store.points)

        indexer.run(reindex_all=True)

        assert set(store.points) == before


class TestIndexerRebuildPolicy:
    def test_chunk_size_drift_forces_full_rebuild(self, config, embedder, store):
        Indexer(config, embedder, store).run()
        store.ensure_calls.clear()

        changed = replace(config, chunk_size=config.chunk_size + 50)
        summary = Indexer(changed, embedder, store).run()

        assert summary.skipped_files == 0
        assert summary.updated_files == 2
        assert store.ensure_calls == [(embedder.dimension, True)]

    def test_model_drift_forces_full_rebuild(self, config, embedder, store):
        Indexer(config, embedder, store).run()

        embedder.model = "another-model"
        summary = Indexer(config, embedder, store).run()

        assert summary.skipped_files == 0
        assert load_manifest(config.manifest_path).embedding_model == "another-model"

    def test_explicit_request(self, config, embedder, store):
        indexer = Indexer(config, embedder, store)
        indexer.run()

        summary = indexer.run(reindex_all=True)

        assert summary.skipped_files == 0
        assert summary.updated_files == 2

    def test_corrupt_manifest_forces_full_rebuild(self, config, embedder, store):
        indexer = Indexer(config, embedder, store)
        indexer.run()
        config.manifest_path.write_text("garbage")

        summary = indexer.run()

        assert summary.skipped_files == 0
        assert summary.indexed_files == 2


class TestIndexerErrors:
    def test_missing_vault_path(self, config, embedder, store):
        config.vault_path = ""
        with pytest.raises(ConfigError, match="vault path is required"):
            Indexer(config, embedder, store).run()

    def test_vault_not_a_directory(self, config, embedder, store, tmp_path):
        config.vault_path = str(tmp_path / "missing")
        with pytest.raises(ConfigError, match="vault path not found"):
            Indexer(config, embedder, store).run()

    def test_relative_vault_path_is_made_absolute(self, config, embedder, store, vault, monkeypatch):
        monkeypatch.chdir(vault.parent)
        config.vault_path = vault.name
        indexer = Indexer(config, embedder, store)

        root = indexer._resolve_vault_root()
        assert root.is_absolute()
        assert root == vault.resolve()
        assert indexer.run().total_files == 2

    def test_count_mismatch_is_fatal_and_keeps_manifest(self, config, embedder, store):
        indexer = Indexer(config, embedder, store)
        indexer.run(reindex_all=True)
        saved = config.manifest_path.read_text()

        embedder.embed_batch = lambda texts: [[0.1] * embedder.dimension] * (len(texts) + 1)
        with pytest.raises(DataError, match="size mismatch"):
            indexer.run(reindex_all=True)

        assert config.manifest_path.read_text() == saved

    def test_configured_dimension_mismatch(self, config, embedder, store):
        config.embedding.dimension = embedder.dimension + 1
        with pytest.raises(DataError, match="dimension mismatch"):
            Indexer(config, embedder, store).run()
        assert not config.manifest_path.exists()

    def test_mixed_dimensions(self, config, embedder, store):
        embedder.embed_batch = lambda texts: [[0.1] * (i + 1) for i in range(len(texts))]
        config.chunk_size = 10
        with pytest.raises(DataError):
            Indexer(config, embedder, store).run()

    def test_transport_error_propagates_without_saving(self, config, embedder, store):
        from vault_rag.errors import VectorStoreError

        def fail(points):
            raise VectorStoreError("qdrant API error: 500")

        store.upsert = fail
        with pytest.raises(VectorStoreError):
            Indexer(config, embedder, store).run()
        assert not config.manifest_path.exists()

    def test_cancelled_run_does_not_save(self, config, embedder, store):
        cancel = threading.Event()
        cancel.set()
        with pytest.raises(IndexCancelled):
            Indexer(config, embedder, store).run(cancel=cancel)
        assert not config.manifest_path.exists()
        assert embedder.calls == []

    def test_cancel_mid_run(self, config, embedder, store):
        cancel = threading.Event()
        original = embedder.embed_batch

        def embed_then_cancel(texts):
            cancel.set()
            return original(texts)

        embedder.embed_batch = embed_then_cancel
        with pytest.raises(IndexCancelled):
            Indexer(config, embedder, store).run(cancel=cancel)
        assert not config.manifest_path.exists()
        # The in-flight embedding call finishes, but its vectors are never stored
        assert len(embedder.calls) == 1
        assert store.upsert_calls == []
