"""ChromaDB functional interface."""

from __future__ import annotations

import logging
import time
import uuid
from typing import TYPE_CHECKING, Any

import chromadb

from rag_chat import constants
from rag_chat.config import StoreOptions
from rag_chat.rag.embedding import embed_documents, embed_query
from rag_chat.rag.models import CollectionSnapshot, RetrievedDocument

if TYPE_CHECKING:
    from chromadb.api import AsyncClientAPI

    from rag_chat.config import EmbeddingType

LOGGER = logging.getLogger(__name__)


async def get_client(options: StoreOptions | None = None) -> AsyncClientAPI:
    """Connect to the Chroma server described by ``options``."""
    options = options or StoreOptions()
    return await chromadb.AsyncHttpClient(
        host=options.resolved_host(),
        port=options.resolved_port(),
    )


def new_document_id() -> str:
    """Generate a record identifier."""
    return f"doc-{uuid.uuid4().hex}"


async def add_documents(
    texts: list[str],
    metadatas: list[dict[str, Any]] | None = None,
    collection_name: str = constants.DEFAULT_COLLECTION_NAME,
    embedding_type: EmbeddingType = "openai",
    options: StoreOptions | None = None,
    embeddings: list[list[float]] | None = None,
) -> list[str]:
    """Insert texts into the collection, creating it if needed.

    Vectors are computed with ``embedding_type`` unless ``embeddings`` is given.

    Returns:
        The generated record ids, in input order.

    """
    if not texts:
        return []
    if embeddings is None:
        embeddings = await embed_documents(texts, embedding_type, options)
    if len(embeddings) != len(texts):
        msg = f"Got {len(embeddings)} embeddings for {len(texts)} texts"
        raise ValueError(msg)

    timestamp = int(time.time() * 1000)
    records_meta = [
        (metadatas[i] if metadatas and i < len(metadatas) and metadatas[i] else None)
        or {"index": i, "timestamp": timestamp}
        for i in range(len(texts))
    ]
    ids = [new_document_id() for _ in texts]

    client = await get_client(options)
    collection = await client.get_or_create_collection(
        name=collection_name,
        embedding_function=None,
    )
    await collection.add(
        ids=ids,
        documents=texts,
        metadatas=records_meta,
        embeddings=embeddings,
    )
    LOGGER.info("Added %d documents to collection '%s'", len(ids), collection_name)
    return ids


async def search_similar_documents(
    query: str,
    k: int = constants.DEFAULT_TOP_K,
    collection_name: str = constants.DEFAULT_COLLECTION_NAME,
    embedding_type: EmbeddingType = "openai",
    options: StoreOptions | None = None,
) -> list[RetrievedDocument]:
    """Return the ``k`` documents nearest to ``query``, most similar first."""
    try:
        query_embedding = await embed_query(query, embedding_type, options)

        client = await get_client(options)
        collection = await client.get_collection(name=collection_name, embedding_function=None)
        results = await collection.query(
            query_embeddings=[query_embedding],
            n_results=k,
            include=["documents", "metadatas", "distances"],
        )
    except Exception:
        LOGGER.exception(
            "Similarity search failed (query=%r, k=%d, collection=%s)",
            query[:50],
            k,
            collection_name,
        )
        raise

    ids = (results.get("ids") or [[]])[0]
    docs = (results.get("documents") or [[]])[0] or []
    metas = (results.get("metadatas") or [[]])[0] or []

    documents = []
    for i in range(len(ids)):
        content = docs[i] if i < len(docs) else None
        metadata = metas[i] if i < len(metas) else None
        documents.append(
            RetrievedDocument(content=content or "", metadata=dict(metadata or {})),
        )
    return documents


async def delete_documents(
    ids: list[str],
    collection_name: str = constants.DEFAULT_COLLECTION_NAME,
    options: StoreOptions | None = None,
) -> None:
    """Delete records by id."""
    if not ids:
        return
    client = await get_client(options)
    collection = await client.get_collection(name=collection_name, embedding_function=None)
    await collection.delete(ids=ids)
    LOGGER.info("Deleted %d documents from collection '%s'", len(ids), collection_name)


async def get_all_documents(
    collection_name: str = constants.DEFAULT_COLLECTION_NAME,
    options: StoreOptions | None = None,
    *,
    include_embeddings: bool = True,
) -> CollectionSnapshot:
    """Return every record in the collection."""
    client = await get_client(options)
    collection = await client.get_collection(name=collection_name, embedding_function=None)
    include = ["documents", "metadatas"]
    if include_embeddings:
        include.append("embeddings")
    result = await collection.get(include=include)

    ids = list(result.get("ids") or [])
    raw_embeddings = result.get("embeddings")
    embeddings = (
        [[float(x) for x in vector] for vector in raw_embeddings]
        if raw_embeddings is not None
        else None
    )
    return CollectionSnapshot(
        ids=ids,
        documents=[doc or "" for doc in result.get("documents") or []],
        metadatas=[dict(meta or {}) for meta in result.get("metadatas") or []],
        embeddings=embeddings,
        count=len(ids),
    )
