"""
Indexer module for vault-rag.

This module keeps a vector store in sync with a directory of Markdown notes.
It is the core component of the system: discovery, change detection,
chunking, embedding and reconciliation all live here.
"""

from vault_rag.indexer.chunker import chunk_markdown
from vault_rag.indexer.indexer import Indexer, hash_point_id
from vault_rag.indexer.manifest import IndexManifest, load_manifest, save_manifest
from vault_rag.indexer.models import Chunk, FileEntry, IndexSummary, SearchResult
from vault_rag.indexer.walker import glob_to_regex, list_markdown_files

__all__ = [
    "Chunk",
    "FileEntry",
    "IndexManifest",
    "IndexSummary",
    "Indexer",
    "SearchResult",
    "chunk_markdown",
    "glob_to_regex",
    "hash_point_id",
    "list_markdown_files",
    "load_manifest",
    "save_manifest",
]
