"""Tests for the recursive text splitter."""

from __future__ import annotations

import pytest

from rag_chat.rag.splitter import RecursiveTextSplitter, create_documents, split_text


def test_short_text_is_one_chunk() -> None:
    """Text under the chunk size is returned whole."""
    assert split_text("hello world", chunk_size=100, chunk_overlap=10) == ["hello world"]


def test_empty_text() -> None:
    """Empty input yields no chunks."""
    assert split_text("", chunk_size=100, chunk_overlap=10) == []


def test_chunks_respect_size() -> None:
    """Word-separated text is packed up to the chunk size."""
    text = " ".join(f"word{i}" for i in range(200))
    chunks = split_text(text, chunk_size=50, chunk_overlap=10)
    assert len(chunks) > 1
    assert all(len(chunk) <= 50 for chunk in chunks)


def test_chunks_overlap() -> None:
    """Neighbouring chunks share words when overlap is configured."""
    text = " ".join(f"w{i:03d}" for i in range(100))
    chunks = split_text(text, chunk_size=40, chunk_overlap=15)
    for prev, nxt in zip(chunks, chunks[1:], strict=False):
        assert prev.split()[-1] in nxt.split()


def test_no_overlap_covers_text_once() -> None:
    """Without overlap every word appears exactly once."""
    words = [f"w{i}" for i in range(60)]
    chunks = split_text(" ".join(words), chunk_size=30, chunk_overlap=0)
    assert " ".join(chunks).split() == words


def test_prefers_paragraph_boundaries() -> None:
    """Paragraphs that fit stay intact."""
    text = "first paragraph here\n\nsecond paragraph here"
    chunks = split_text(text, chunk_size=25, chunk_overlap=0)
    assert chunks == ["first paragraph here", "second paragraph here"]


def test_long_word_is_split_by_characters() -> None:
    """A word longer than the chunk size is cut into characters."""
    chunks = split_text("x" * 25, chunk_size=10, chunk_overlap=0)
    assert "".join(chunks) == "x" * 25
    assert all(len(chunk) <= 10 for chunk in chunks)


def test_invalid_overlap() -> None:
    """Overlap must be smaller than the chunk size."""
    with pytest.raises(ValueError, match="chunk_overlap"):
        RecursiveTextSplitter(chunk_size=10, chunk_overlap=10)


def test_create_documents_copies_metadata() -> None:
    """Each chunk carries its source text's metadata."""
    splitter = RecursiveTextSplitter(chunk_size=20, chunk_overlap=0)
    docs = splitter.create_documents(["alpha beta gamma delta epsilon"], [{"source": "a"}])
    assert len(docs) > 1
    assert all(doc["metadata"] == {"source": "a"} for doc in docs)
    docs[0]["metadata"]["source"] = "changed"
    assert docs[1]["metadata"] == {"source": "a"}


def test_create_documents_default_metadata() -> None:
    """Documents without metadata get an empty mapping."""
    docs = create_documents(["short"], chunk_size=100, chunk_overlap=0)
    assert docs == [{"page_content": "short", "metadata": {}}]
