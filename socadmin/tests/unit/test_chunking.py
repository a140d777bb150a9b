from __future__ import annotations

import pytest

from socadmin.ingestion.chunking import chunk_text, iter_windows, split_documents


def test_empty_text_yields_no_chunks() -> None:
    assert chunk_text("") == []


def test_short_text_is_a_single_chunk() -> None:
    assert chunk_text("short document") == ["short document"]


def test_long_text_overlaps_consecutive_chunks() -> None:
    text = "".join(chr(ord("a") + i % 26) for i in range(2500))
    windows = list(iter_windows(text, 1000, 100))

    assert [(start, end) for _chunk, start, end in windows] == [(0, 1000), (900, 1900), (1800, 2500)]
    assert [len(chunk) for chunk, _s, _e in windows] == [1000, 1000, 700]
    # The tail of each chunk is repeated at the head of the next.
    assert windows[0][0][-100:] == windows[1][0][:100]


def test_overlap_not_smaller_than_size_still_terminates() -> None:
    chunks = chunk_text("x" * 25, max_size=10, overlap=10)
    assert chunks == ["x" * 10, "x" * 10, "x" * 5]


def test_non_positive_size_is_rejected() -> None:
    with pytest.raises(ValueError):
        chunk_text("abc", max_size=0)


def test_split_documents_uses_double_blank_lines() -> None:
    raw = "first doc\nline two\n\n\n  \n\n\nsecond doc  "
    assert split_documents(raw) == ["first doc\nline two", "second doc"]
