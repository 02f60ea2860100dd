"""Tests for the index manifest."""

import json
from pathlib import Path

import pytest

from vault_rag.indexer.manifest import (
    MANIFEST_VERSION,
    IndexManifest,
    load_manifest,
    needs_full_rebuild,
    save_manifest,
)


def make_manifest(**overrides) -> IndexManifest:
    values = dict(
        collection="notes",
        embedding_model="fake-embed",
        embedding_dimension=4,
        chunk_size=800,
        chunk_overlap=100,
        include_patterns=["**/*.md"],
        exclude_patterns=["private/**"],
        files={"a.md": 123},
    )
    values.update(overrides)
    return IndexManifest(**values)


def current(**overrides) -> dict:
    values = dict(
        requested=False,
        collection="notes",
        embedding_model="fake-embed",
        chunk_size=800,
        chunk_overlap=100,
        include_patterns=["**/*.md"],
        exclude_patterns=["private/**"],
    )
    values.update(overrides)
    return values


class TestLoadSave:
    def test_missing_file_is_absent(self, tmp_path: Path):
        assert load_manifest(tmp_path / "nope.json") is None

    def test_corrupt_file_is_absent(self, tmp_path: Path):
        path = tmp_path / "index_state.json"
        path.write_text("{not json")
        assert load_manifest(path) is None

    def test_non_object_is_absent(self, tmp_path: Path):
        path = tmp_path / "index_state.json"
        path.write_text("[1, 2, 3]")
        assert load_manifest(path) is None

    def test_unknown_version_is_absent(self, tmp_path: Path):
        path = tmp_path / "index_state.json"
        path.write_text(json.dumps({"version": MANIFEST_VERSION + 1, "files": {}}))
        assert load_manifest(path) is None

    def test_missing_files_map_loads_empty(self, tmp_path: Path):
        path = tmp_path / "index_state.json"
        path.write_text(json.dumps({"version": MANIFEST_VERSION, "collection": "notes"}))
        manifest = load_manifest(path)
        assert manifest is not None
        assert manifest.files == {}
        assert manifest.collection == "notes"

    def test_save_creates_directories_and_stamps_time(self, tmp_path: Path):
        path = tmp_path / "workspace" / "rag" / "index_state.json"
        manifest = make_manifest()

        save_manifest(path, manifest)

        assert path.exists()
        assert manifest.updated_at
        data = json.loads(path.read_text())
        assert data["version"] == MANIFEST_VERSION
        assert data["files"] == {"a.md": 123}
        assert data["updated_at"] == manifest.updated_at
        assert set(data) == {
            "version",
            "updated_at",
            "collection",
            "embedding_model",
            "embedding_dimension",
            "chunk_size",
            "chunk_overlap",
            "include_patterns",
            "exclude_patterns",
            "files",
        }

    def test_save_leaves_no_temp_files(self, tmp_path: Path):
        path = tmp_path / "index_state.json"
        save_manifest(path, make_manifest())
        save_manifest(path, make_manifest(files={"b.md": 1}))

        assert [p.name for p in tmp_path.iterdir()] == ["index_state.json"]
        assert load_manifest(path).files == {"b.md": 1}

    def test_saved_manifest_loads_back(self, tmp_path: Path):
        path = tmp_path / "index_state.json"
        original = make_manifest()
        save_manifest(path, original)

        assert load_manifest(path) == original


class TestNeedsFullRebuild:
    def test_absent_manifest(self):
        assert needs_full_rebuild(None, **current())

    def test_requested(self):
        assert needs_full_rebuild(make_manifest(), **current(requested=True))

    def test_unchanged(self):
        assert not needs_full_rebuild(make_manifest(), **current())

    @pytest.mark.parametrize(
        "change",
        [
            {"embedding_model": "other-model"},
            {"chunk_size": 400},
            {"chunk_overlap": 0},
            {"include_patterns": []},
            {"exclude_patterns": ["private/**", "drafts/**"]},
            {"collection": "other"},
        ],
    )
    def test_drift(self, change):
        assert needs_full_rebuild(make_manifest(), **current(**change))

    def test_pattern_order_matters(self):
        manifest = make_manifest(exclude_patterns=["a/**", "b/**"])
        assert needs_full_rebuild(manifest, **current(exclude_patterns=["b/**", "a/**"]))
