from __future__ import annotations

from typing import Iterator


# Chunking constants keep ingestion deterministic across runs.
CHUNK_SIZE_CHARS = 1000
CHUNK_OVERLAP_CHARS = 100


def iter_windows(text: str, max_size: int, overlap: int) -> Iterator[tuple[str, int, int]]:
    """Yield ``(chunk, start, end)`` sliding windows over ``text``.

    Each window starts ``overlap`` characters before the previous window's end.
    When ``overlap >= max_size`` the next start would not move forward, so the
    window advances to the previous end instead; every call terminates and the
    windows always cover the full input.
    """
    if max_size <= 0:
        raise ValueError("max_size must be positive")
    overlap = max(0, overlap)
    start = 0
    length = len(text)
    while start < length:
        end = min(length, start + max_size)
        yield text[start:end], start, end
        if end == length:
            break
        next_start = end - overlap
        if next_start <= start:
            next_start = end
        start = next_start


def chunk_text(
    text: str,
    max_size: int = CHUNK_SIZE_CHARS,
    overlap: int = CHUNK_OVERLAP_CHARS,
) -> list[str]:
    return [chunk for chunk, _start, _end in iter_windows(text, max_size, overlap)]


def split_documents(raw: str) -> list[str]:
    # Bulk uploads separate documents with two blank lines.
    return [doc.strip() for doc in raw.split("\n\n\n") if doc.strip()]
