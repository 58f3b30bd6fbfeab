"""Fixtures for RAG tests."""

from __future__ import annotations

import math
from typing import TYPE_CHECKING, Any
from unittest.mock import AsyncMock, patch

import pytest

if TYPE_CHECKING:
    from collections.abc import Generator


class FakeAsyncCollection:
    """In-memory stand-in for an async Chroma collection."""

    def __init__(self) -> None:
        self.records: dict[str, dict[str, Any]] = {}

    async def add(
        self,
        ids: list[str],
        documents: list[str],
        metadatas: list[dict[str, Any]],
        embeddings: list[list[float]],
    ) -> None:
        for i, doc_id in enumerate(ids):
            self.records[doc_id] = {
                "document": documents[i],
                "metadata": metadatas[i],
                "embedding": embeddings[i],
            }

    async def query(
        self,
        query_embeddings: list[list[float]],
        n_results: int,
        include: list[str],
    ) -> dict[str, Any]:
        target = query_embeddings[0]
        ranked = sorted(self.records.items(), key=lambda kv: math.dist(kv[1]["embedding"], target))
        top = ranked[:n_results]
        return {
            "ids": [[doc_id for doc_id, _ in top]],
            "documents": [[rec["document"] for _, rec in top]],
            "metadatas": [[rec["metadata"] for _, rec in top]],
            "distances": [[math.dist(rec["embedding"], target) for _, rec in top]],
        }

    async def get(self, include: list[str]) -> dict[str, Any]:
        result: dict[str, Any] = {
            "ids": list(self.records),
            "documents": [rec["document"] for rec in self.records.values()],
            "metadatas": [rec["metadata"] for rec in self.records.values()],
        }
        if "embeddings" in include:
            result["embeddings"] = [rec["embedding"] for rec in self.records.values()]
        return result

    async def delete(self, ids: list[str]) -> None:
        for doc_id in ids:
            self.records.pop(doc_id, None)


class FakeAsyncClient:
    """Async Chroma client holding fake collections."""

    def __init__(self) -> None:
        self.collections: dict[str, FakeAsyncCollection] = {}

    async def get_or_create_collection(self, name: str, **_: Any) -> FakeAsyncCollection:
        return self.collections.setdefault(name, FakeAsyncCollection())

    async def get_collection(self, name: str, **_: Any) -> FakeAsyncCollection:
        if name not in self.collections:
            msg = f"Collection {name} does not exist."
            raise ValueError(msg)
        return self.collections[name]


@pytest.fixture
def fake_client() -> Generator[FakeAsyncClient, None, None]:
    """Patch the store to use an in-memory Chroma client."""
    client = FakeAsyncClient()
    with patch("rag_chat.rag.store.get_client", AsyncMock(return_value=client)):
        yield client
