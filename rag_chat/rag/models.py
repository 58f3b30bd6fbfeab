"""RAG data models."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class Message(BaseModel):
    """Chat message model."""

    role: Literal["user", "assistant"]
    content: str


class ChatRequest(BaseModel):
    """Body of a chat route request."""

    model_config = ConfigDict(extra="allow")

    messages: list[Message]


class StreamChunk(BaseModel):
    """One incremental piece of a streamed answer."""

    type: Literal["content", "thinking", "error"]
    content: str | None = None
    error: str | None = None


class RetrievedDocument(BaseModel):
    """A passage returned by a similarity search."""

    content: str
    metadata: dict[str, Any] = Field(default_factory=dict)


class EmbeddedChunk(BaseModel):
    """A text chunk with its embedding and position in the source."""

    text: str
    embedding: list[float]
    index: int


class CollectionSnapshot(BaseModel):
    """Full contents of a vector store collection."""

    ids: list[str] = Field(default_factory=list)
    documents: list[str] = Field(default_factory=list)
    metadatas: list[dict[str, Any]] = Field(default_factory=list)
    embeddings: list[list[float]] | None = None
    count: int = 0


class RetrievalResult(BaseModel):
    """Result of a one-shot retrieval chain."""

    query: str
    retrieved_documents: list[RetrievedDocument]
    answer: str


class RetrievalProgress(BaseModel):
    """Chunk emitted by the streaming retrieval chain."""

    type: Literal["retrieval", "content", "error"]
    content: str | None = None
    error: str | None = None
    documents: list[RetrievedDocument] | None = None
