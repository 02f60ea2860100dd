"""Persisted record of what the vector store holds for this workspace."""

import json
import logging
import os
import tempfile
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from pathlib import Path

logger = logging.getLogger(__name__)

MANIFEST_VERSION = 1


@dataclass
class IndexManifest:
    """
    Collection identity, configuration fingerprint and per-file markers.

    ``files`` maps relative paths to the mtime (ns) that was indexed. A path
    missing from ``files`` has no vectors in the store.
    """

    version: int = MANIFEST_VERSION
    updated_at: str = ""
    collection: str = ""
    embedding_model: str = ""
    embedding_dimension: int = 0
    chunk_size: int = 0
    chunk_overlap: int = 0
    include_patterns: list[str] = field(default_factory=list)
    exclude_patterns: list[str] = field(default_factory=list)
    files: dict[str, int] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict) -> "IndexManifest":
        files = data.get("files") or {}
        return cls(
            version=int(data.get("version", 0)),
            updated_at=str(data.get("updated_at") or ""),
            collection=str(data.get("collection") or ""),
            embedding_model=str(data.get("embedding_model") or ""),
            embedding_dimension=int(data.get("embedding_dimension") or 0),
            chunk_size=int(data.get("chunk_size") or 0),
            chunk_overlap=int(data.get("chunk_overlap") or 0),
            include_patterns=[str(p) for p in data.get("include_patterns") or []],
            exclude_patterns=[str(p) for p in data.get("exclude_patterns") or []],
            files={str(k): int(v) for k, v in files.items()},
        )


def load_manifest(path: Path) -> IndexManifest | None:
    """
    Load the manifest, or None when it is missing or unusable.

    None means the caller must perform a full rebuild, so load problems are
    logged rather than raised.
    """
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return None
    except (OSError, ValueError) as e:
        logger.debug("Ignoring unreadable manifest %s: %s", path, e)
        return None

    if not isinstance(raw, dict):
        logger.debug("Ignoring manifest %s: not a JSON object", path)
        return None

    try:
        manifest = IndexManifest.from_dict(raw)
    except (TypeError, ValueError, AttributeError) as e:
        logger.debug("Ignoring malformed manifest %s: %s", path, e)
        return None

    if manifest.version != MANIFEST_VERSION:
        logger.info(
            "Manifest version %d is not supported (expected %d)",
            manifest.version,
            MANIFEST_VERSION,
        )
        return None
    return manifest


def save_manifest(path: Path, manifest: IndexManifest) -> None:
    """Stamp ``updated_at`` and atomically write the manifest as JSON."""
    manifest.updated_at = datetime.now(timezone.utc).isoformat()
    data = json.dumps(asdict(manifest), indent=2, sort_keys=False)

    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=".index_state.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(data)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


def needs_full_rebuild(
    manifest: IndexManifest | None,
    *,
    requested: bool,
    collection: str,
    embedding_model: str,
    chunk_size: int,
    chunk_overlap: int,
    include_patterns: list[str],
    exclude_patterns: list[str],
) -> bool:
    """
    Decide whether previously stored vectors can be reused.

    Any change to the model, chunk boundaries, file selection or target
    collection makes old vectors incomparable with new ones.
    """
    if manifest is None or requested:
        return True

    reasons = []
    if manifest.embedding_model != embedding_model:
        reasons.append("embedding model")
    if manifest.chunk_size != chunk_size or manifest.chunk_overlap != chunk_overlap:
        reasons.append("chunk parameters")
    if list(manifest.include_patterns) != list(include_patterns):
        reasons.append("include patterns")
    if list(manifest.exclude_patterns) != list(exclude_patterns):
        reasons.append("exclude patterns")
    if manifest.collection != collection:
        reasons.append("collection")

    if reasons:
        logger.info("Configuration changed (%s), full rebuild required", ", ".join(reasons))
        return True
    return False
