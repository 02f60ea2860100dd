"""Chunking logic for splitting Markdown documents into overlapping windows."""

from pathlib import PurePosixPath

from vault_rag.indexer.models import Chunk

# Character budget per chunk when none is configured
DEFAULT_CHUNK_SIZE = 800

# Markdown supports heading levels 1 to 6
MAX_HEADING_LEVEL = 6

HEADING_SEPARATOR = " > "


def normalize_chunk_params(chunk_size: int, chunk_overlap: int) -> tuple[int, int]:
    """Apply defaults and clamp overlap so every chunk makes forward progress."""
    if chunk_size <= 0:
        chunk_size = DEFAULT_CHUNK_SIZE
    if chunk_overlap < 0:
        chunk_overlap = 0
    if chunk_overlap >= chunk_size:
        chunk_overlap = chunk_size // 2
    return chunk_size, chunk_overlap


def headings_by_line(lines: list[str]) -> list[str]:
    """
    Compute the active heading path for every line.

    A heading of depth N replaces level N of the stack and clears every deeper
    level. Headings with no title text are ignored.
    """
    stack = [""] * MAX_HEADING_LEVEL
    headings: list[str] = []

    for line in lines:
        stripped = line.strip()
        if stripped.startswith("#"):
            level = len(stripped) - len(stripped.lstrip("#"))
            if level <= MAX_HEADING_LEVEL:
                title = stripped[level:].strip()
                if title:
                    stack[level - 1] = title
                    for deeper in range(level, MAX_HEADING_LEVEL):
                        stack[deeper] = ""
        headings.append(HEADING_SEPARATOR.join(h for h in stack if h))

    return headings


def chunk_markdown(
    path: str, content: str, chunk_size: int, chunk_overlap: int
) -> list[Chunk]:
    """
    Split a document into size-bounded chunks.

    Rules:
    1. Each line costs its length plus one for the newline
    2. Lines accumulate while the running cost fits in chunk_size
    3. A chunk always takes at least one line, even an oversized one
    4. The next chunk restarts far enough back to share chunk_overlap characters,
       but never so far that it would add no unread line
    5. Whitespace-only chunks are dropped

    Args:
        path: Relative path of the document, used for the fallback heading
        content: Full document text
        chunk_size: Character budget per chunk (<= 0 uses the default)
        chunk_overlap: Characters shared between consecutive chunks

    Returns:
        Chunks in document order with 1-based inclusive line numbers.
    """
    chunk_size, chunk_overlap = normalize_chunk_params(chunk_size, chunk_overlap)

    lines = content.split("\n")
    headings = headings_by_line(lines)
    fallback_heading = PurePosixPath(path).stem

    chunks: list[Chunk] = []
    i = 0
    while i < len(lines):
        start = i
        char_count = 0
        while i < len(lines):
            line_len = len(lines[i]) + 1
            if char_count > 0 and char_count + line_len > chunk_size:
                break
            char_count += line_len
            i += 1

        end = i - 1
        text = "\n".join(lines[start:i]).strip()
        if text:
            chunks.append(
                Chunk(
                    path=path,
                    heading=headings[start] or fallback_heading,
                    start_line=start + 1,
                    end_line=end + 1,
                    content=text,
                )
            )

        if i >= len(lines):
            break

        if chunk_overlap > 0:
            # Walk back from the last accepted line until the overlap is covered
            overlap_chars = 0
            j = end
            while j > start:
                overlap_chars += len(lines[j]) + 1
                if overlap_chars >= chunk_overlap:
                    break
                j -= 1
            # Never restart at the same line, or the loop would not advance
            j = max(j, start + 1)
            # The next chunk must still fit at least one unread line
            carried = sum(len(line) + 1 for line in lines[j:i])
            next_len = len(lines[i]) + 1
            while j < i and carried + next_len > chunk_size:
                carried -= len(lines[j]) + 1
                j += 1
            i = j

    return chunks
