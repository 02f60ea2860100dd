"""Data models for the indexer."""

from dataclasses import asdict, dataclass
from pathlib import Path


@dataclass
class FileEntry:
    """A Markdown file discovered in the vault."""

    path: Path  # Absolute path
    relative_path: str  # Relative to the vault root, slash-separated
    mtime_ns: int


@dataclass(frozen=True)
class Chunk:
    """A heading-scoped window of lines from one document."""

    path: str
    heading: str
    start_line: int  # 1-based, inclusive
    end_line: int  # 1-based, inclusive
    content: str


@dataclass
class IndexSummary:
    """Counters produced once per indexing run."""

    total_files: int = 0
    indexed_files: int = 0  # New files
    updated_files: int = 0
    removed_files: int = 0
    skipped_files: int = 0
    chunks: int = 0

    def as_dict(self) -> dict[str, int]:
        return asdict(self)


@dataclass
class SearchResult:
    """A chunk returned by a knowledge base query."""

    path: str
    heading: str
    start_line: int
    end_line: int
    content: str
    score: float

    @classmethod
    def from_payload(cls, payload: dict, score: float) -> "SearchResult":
        """Build a result from a stored point payload, tolerating missing keys."""
        return cls(
            path=str(payload.get("path") or ""),
            heading=str(payload.get("heading") or ""),
            start_line=int(payload.get("start_line") or 0),
            end_line=int(payload.get("end_line") or 0),
            content=str(payload.get("content") or ""),
            score=float(score),
        )

    def as_dict(self) -> dict:
        return asdict(self)
