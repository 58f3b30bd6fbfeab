"""Tests for the Chroma store functions."""

from __future__ import annotations

from typing import Any
from unittest.mock import AsyncMock, patch

import pytest

from rag_chat.config import StoreOptions
from rag_chat.rag import store



def _embed(texts: list[str]) -> list[list[float]]:
    return [[float(len(t)), float(t.count("a"))] for t in texts]


@pytest.mark.asyncio
async def test_add_documents_with_vectors(fake_client: Any) -> None:
    """Given vectors are stored without calling the embedder."""
    with patch("rag_chat.rag.store.embed_documents", AsyncMock()) as mock_embed:
        ids = await store.add_documents(
            ["one", "two"],
            [{"source": "a"}, {"source": "b"}],
            collection_name="c",
            embeddings=[[1.0, 0.0], [0.0, 1.0]],
        )
    mock_embed.assert_not_called()
    assert len(ids) == 2
    assert len(set(ids)) == 2
    assert all(doc_id.startswith("doc-") for doc_id in ids)
    records = fake_client.collections["c"].records
    assert records[ids[0]]["metadata"] == {"source": "a"}
    assert records[ids[1]]["embedding"] == [0.0, 1.0]


@pytest.mark.asyncio
async def test_add_documents_embeds_and_defaults_metadata(fake_client: Any) -> None:
    """Missing vectors are computed and default metadata is attached."""
    with patch(
        "rag_chat.rag.store.embed_documents",
        AsyncMock(side_effect=lambda texts, *_: _embed(texts)),
    ) as mock_embed:
        ids = await store.add_documents(["aa", "b"], collection_name="c", embedding_type="ollama")

    mock_embed.assert_awaited_once()
    meta = fake_client.collections["c"].records[ids[1]]["metadata"]
    assert meta["index"] == 1
    assert isinstance(meta["timestamp"], int)


@pytest.mark.asyncio
async def test_add_documents_length_mismatch(fake_client: Any) -> None:
    """The number of vectors must match the number of texts."""
    with pytest.raises(ValueError, match="embeddings"):
        await store.add_documents(["a", "b"], collection_name="c", embeddings=[[1.0]])
    assert "c" not in fake_client.collections


@pytest.mark.asyncio
async def test_add_documents_empty(fake_client: Any) -> None:
    """Nothing is written for an empty batch."""
    assert await store.add_documents([], collection_name="c") == []
    assert fake_client.collections == {}


@pytest.mark.asyncio
async def test_search_similar_documents(fake_client: Any) -> None:
    """Nearest records come back first, as text and metadata."""
    await store.add_documents(
        ["near", "far"],
        [{"rank": 1}, {"rank": 2}],
        collection_name="c",
        embeddings=[[1.0, 1.0], [9.0, 9.0]],
    )
    with patch("rag_chat.rag.store.embed_query", AsyncMock(return_value=[1.0, 1.1])):
        docs = await store.search_similar_documents("q", k=2, collection_name="c")

    assert [d.content for d in docs] == ["near", "far"]
    assert docs[0].metadata == {"rank": 1}


@pytest.mark.asyncio
async def test_search_fills_missing_fields() -> None:
    """Missing text and metadata default to empty values."""

    class SparseCollection:
        async def query(self, **_: Any) -> dict[str, Any]:
            return {"ids": [["a", "b"]], "documents": [[None]], "metadatas": None}

    class SparseClient:
        async def get_collection(self, **_: Any) -> SparseCollection:
            return SparseCollection()

    with (
        patch("rag_chat.rag.store.get_client", AsyncMock(return_value=SparseClient())),
        patch("rag_chat.rag.store.embed_query", AsyncMock(return_value=[0.0])),
    ):
        docs = await store.search_similar_documents("q", k=2)

    assert [(d.content, d.metadata) for d in docs] == [("", {}), ("", {})]


@pytest.mark.asyncio
async def test_search_propagates_errors(fake_client: Any) -> None:
    """A missing collection is not hidden from the caller."""
    with (
        patch("rag_chat.rag.store.embed_query", AsyncMock(return_value=[0.0])),
        pytest.raises(ValueError, match="does not exist"),
    ):
        await store.search_similar_documents("q", collection_name="missing")


@pytest.mark.asyncio
async def test_get_all_and_delete(fake_client: Any) -> None:
    """Records can be listed and deleted by id."""
    ids = await store.add_documents(
        ["a", "b"],
        collection_name="c",
        embeddings=[[1, 2], [3, 4]],
    )
    snapshot = await store.get_all_documents("c")
    assert snapshot.count == 2
    assert snapshot.documents == ["a", "b"]
    assert snapshot.embeddings == [[1.0, 2.0], [3.0, 4.0]]

    await store.delete_documents([ids[0]], "c")
    snapshot = await store.get_all_documents("c", include_embeddings=False)
    assert snapshot.ids == [ids[1]]
    assert snapshot.embeddings is None


@pytest.mark.asyncio
async def test_get_client_uses_options() -> None:
    """The HTTP client is built from the resolved host and port."""
    with patch("rag_chat.rag.store.chromadb.AsyncHttpClient", AsyncMock()) as mock_http:
        await store.get_client(StoreOptions(host="db", port=1234))
    mock_http.assert_awaited_once_with(host="db", port=1234)
