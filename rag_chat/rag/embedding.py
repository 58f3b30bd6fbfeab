"""Embedding providers: turn text into vectors via Ollama or OpenAI."""

from __future__ import annotations

import logging
import os
from typing import TYPE_CHECKING, Protocol

import httpx

from rag_chat import constants
from rag_chat.rag.models import EmbeddedChunk

if TYPE_CHECKING:
    from openai import AsyncOpenAI

    from rag_chat.config import EmbeddingType, StoreOptions

LOGGER = logging.getLogger(__name__)


class EmbeddingError(RuntimeError):
    """The embedding backend rejected a request."""


class EmbeddingModelNotFoundError(EmbeddingError):
    """The requested Ollama embedding model has not been pulled."""


class Embeddings(Protocol):
    """Minimal interface shared by the embedding backends."""

    model: str

    async def embed_query(self, text: str) -> list[float]:
        """Embed a single query string."""

    async def embed_documents(self, texts: list[str]) -> list[list[float]]:
        """Embed a batch of documents, preserving order."""


class OllamaEmbeddings:
    """Embeddings served by a local Ollama instance."""

    def __init__(self, model: str, base_url: str, request_timeout: float = 120.0) -> None:
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.request_timeout = request_timeout

    async def _embed(self, inputs: list[str]) -> list[list[float]]:
        async with httpx.AsyncClient(timeout=self.request_timeout) as client:
            response = await client.post(
                f"{self.base_url}/api/embed",
                json={"model": self.model, "input": inputs},
            )
        if response.status_code != 200:  # noqa: PLR2004
            try:
                detail = response.json().get("error") or response.text
            except ValueError:
                detail = response.text
            msg = f"Ollama embedding request failed ({response.status_code}): {detail}"
            raise EmbeddingError(msg)
        return response.json()["embeddings"]

    async def embed_query(self, text: str) -> list[float]:
        return (await self._embed([text]))[0]

    async def embed_documents(self, texts: list[str]) -> list[list[float]]:
        if not texts:
            return []
        return await self._embed(texts)


class OpenAIEmbeddings:
    """Embeddings from the OpenAI API (or any compatible endpoint)."""

    def __init__(self, model: str, api_key: str, base_url: str | None = None) -> None:
        from openai import AsyncOpenAI  # noqa: PLC0415

        self.model = model
        self.client: AsyncOpenAI = AsyncOpenAI(api_key=api_key, base_url=base_url)

    async def embed_query(self, text: str) -> list[float]:
        return (await self.embed_documents([text]))[0]

    async def embed_documents(self, texts: list[str]) -> list[list[float]]:
        if not texts:
            return []
        response = await self.client.embeddings.create(model=self.model, input=texts)
        ordered = sorted(response.data, key=lambda item: item.index)
        return [item.embedding for item in ordered]


def _ollama_model_name(model: str | None) -> str:
    return (
        model
        or os.getenv("OLLAMA_EMBEDDING_MODEL")
        or constants.DEFAULT_OLLAMA_EMBEDDING_MODEL
    )


def create_embeddings(
    embedding_type: EmbeddingType = "openai",
    *,
    api_key: str | None = None,
    model: str | None = None,
    base_url: str | None = None,
) -> Embeddings:
    """Create the embedding backend for ``embedding_type``.

    Raises:
        ValueError: If the OpenAI backend is selected without an API key.

    """
    if embedding_type == "ollama":
        return OllamaEmbeddings(
            model=_ollama_model_name(model),
            base_url=base_url or os.getenv("OLLAMA_BASE_URL") or constants.DEFAULT_OLLAMA_BASE_URL,
        )

    key = api_key or os.getenv("OPENAI_API_KEY")
    if not key:
        msg = "OpenAI API key is not set."
        raise ValueError(msg)
    return OpenAIEmbeddings(
        model=model or constants.DEFAULT_OPENAI_EMBEDDING_MODEL,
        api_key=key,
        base_url=base_url,
    )


def embeddings_from_options(
    embedding_type: EmbeddingType,
    options: StoreOptions | None = None,
) -> Embeddings:
    """Create the embedding backend from vector store options."""
    if options is None:
        return create_embeddings(embedding_type)
    return create_embeddings(
        embedding_type,
        api_key=options.api_key,
        model=options.model,
        base_url=options.base_url,
    )


async def embed_query(
    text: str,
    embedding_type: EmbeddingType = "openai",
    options: StoreOptions | None = None,
) -> list[float]:
    """Embed a single text."""
    return await embeddings_from_options(embedding_type, options).embed_query(text)


async def embed_documents(
    texts: list[str],
    embedding_type: EmbeddingType = "openai",
    options: StoreOptions | None = None,
) -> list[list[float]]:
    """Embed several texts.

    Raises:
        EmbeddingModelNotFoundError: If Ollama reports that the model is missing.

    """
    try:
        return await embeddings_from_options(embedding_type, options).embed_documents(texts)
    except EmbeddingError as e:
        if embedding_type == "ollama" and "not found" in str(e).lower():
            model_name = _ollama_model_name(options.model if options else None)
            msg = (
                f'Ollama embedding model "{model_name}" not found. '
                f"Run `ollama pull {model_name}` first, "
                "or use another model such as `ollama pull all-minilm`."
            )
            raise EmbeddingModelNotFoundError(msg) from e
        raise


async def embed_chunks(
    chunks: list[str],
    embedding_type: EmbeddingType = "openai",
    options: StoreOptions | None = None,
) -> list[EmbeddedChunk]:
    """Embed chunks and keep each vector next to its text and index."""
    vectors = await embed_documents(chunks, embedding_type, options)
    return [
        EmbeddedChunk(text=text, embedding=vector, index=index)
        for index, (text, vector) in enumerate(zip(chunks, vectors, strict=True))
    ]
