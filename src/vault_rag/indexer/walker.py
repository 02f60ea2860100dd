"""File walker for discovering Markdown files in the vault."""

import os
import re
from pathlib import Path

from vault_rag.indexer.models import FileEntry

# Characters with a regex meaning that are literal in a glob
_REGEX_SPECIAL = set(".+()[]{}|^$\\")


def expand_home(path: str) -> str:
    """Expand a leading ``~`` to the user's home directory."""
    if not path:
        return path
    return os.path.expanduser(path)


def glob_to_regex(pattern: str) -> re.Pattern[str]:
    """
    Translate a glob pattern into an anchored regular expression.

    ``**`` matches across path segments, ``*`` matches within one segment,
    ``?`` matches any single character. Everything else is literal.
    Backslashes are treated as path separators.
    """
    pattern = pattern.replace("\\", "/")
    parts = ["^"]
    i = 0
    while i < len(pattern):
        ch = pattern[i]
        if ch == "*":
            if i + 1 < len(pattern) and pattern[i + 1] == "*":
                parts.append(".*")
                i += 1
            else:
                parts.append("[^/]*")
        elif ch == "?":
            parts.append(".")
        elif ch in _REGEX_SPECIAL:
            parts.append("\\" + ch)
        else:
            parts.append(ch)
        i += 1
    parts.append("$")
    return re.compile("".join(parts))


def compile_patterns(patterns: list[str]) -> list[re.Pattern[str]]:
    """Compile glob patterns, ignoring blank entries."""
    return [glob_to_regex(p.strip()) for p in patterns if p.strip()]


def matches_any(path: str, patterns: list[re.Pattern[str]]) -> bool:
    return any(p.match(path) for p in patterns)


def is_included(
    relative_path: str,
    include: list[re.Pattern[str]],
    exclude: list[re.Pattern[str]],
) -> bool:
    """Exclude wins over include; an empty include list admits everything."""
    if matches_any(relative_path, exclude):
        return False
    return not include or matches_any(relative_path, include)


def list_markdown_files(
    root: Path,
    include_patterns: list[str],
    exclude_patterns: list[str],
) -> list[FileEntry]:
    """
    Walk the vault and return every ``.md`` file that passes the filters.

    Files are returned in sorted relative-path order so runs are deterministic.
    """
    include = compile_patterns(include_patterns)
    exclude = compile_patterns(exclude_patterns)

    entries: list[FileEntry] = []
    for file_path in root.rglob("*.md"):
        if not file_path.is_file():
            continue

        relative_path = file_path.relative_to(root).as_posix()
        if not is_included(relative_path, include, exclude):
            continue

        entries.append(
            FileEntry(
                path=file_path,
                relative_path=relative_path,
                mtime_ns=file_path.stat().st_mtime_ns,
            )
        )

    entries.sort(key=lambda e: e.relative_path)
    return entries
