"""One-shot retrieval chain: search, build the prompt, ask the model."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from rag_chat.config import RetrievalChainOptions
from rag_chat.rag._prompt import RETRIEVAL_CHAIN_FAILED, RETRIEVAL_FINISHED, RETRIEVAL_STARTED
from rag_chat.rag.models import Message, RetrievalProgress, RetrievalResult
from rag_chat.rag.retriever import build_prompt, search

if TYPE_CHECKING:
    from collections.abc import Callable

    from rag_chat.models.chat import ChatModel
    from rag_chat.rag.models import StreamChunk

LOGGER = logging.getLogger(__name__)


def _default_model() -> ChatModel:
    from rag_chat.models.chat import ChatModelClient  # noqa: PLC0415

    return ChatModelClient()


async def execute_retrieval_chain(
    query: str,
    options: RetrievalChainOptions | None = None,
    model: ChatModel | None = None,
) -> RetrievalResult:
    """Answer ``query`` from retrieved documents and return the full answer.

    Raises:
        RuntimeError: If the model reports an error while answering.

    """
    options = options or RetrievalChainOptions()
    model = model or _default_model()

    docs = await search(query, options)
    prompt = build_prompt(query, docs)

    parts: list[str] = []
    errors: list[str] = []

    def on_chunk(chunk: StreamChunk) -> None:
        if chunk.type == "content":
            parts.append(chunk.content or "")
        elif chunk.type == "error":
            errors.append(chunk.error or RETRIEVAL_CHAIN_FAILED)

    await model.stream_chat([Message(role="user", content=prompt)], on_chunk)
    if errors:
        raise RuntimeError(errors[0])

    return RetrievalResult(query=query, retrieved_documents=docs, answer="".join(parts))


async def execute_retrieval_chain_stream(
    query: str,
    on_chunk: Callable[[RetrievalProgress], None],
    options: RetrievalChainOptions | None = None,
    model: ChatModel | None = None,
) -> None:
    """Stream retrieval progress followed by the model's answer.

    Failures are reported as a single ``error`` chunk; nothing is raised.
    """
    options = options or RetrievalChainOptions()
    try:
        model = model or _default_model()
        on_chunk(RetrievalProgress(type="retrieval", content=RETRIEVAL_STARTED))

        docs = await search(query, options)
        on_chunk(
            RetrievalProgress(
                type="retrieval",
                content=RETRIEVAL_FINISHED.format(count=len(docs)),
                documents=docs,
            ),
        )

        def forward(chunk: StreamChunk) -> None:
            if chunk.type == "content":
                on_chunk(RetrievalProgress(type="content", content=chunk.content))
            elif chunk.type == "error":
                on_chunk(RetrievalProgress(type="error", error=chunk.error))

        prompt = build_prompt(query, docs)
        await model.stream_chat([Message(role="user", content=prompt)], forward)
    except Exception as e:
        LOGGER.exception("Retrieval chain failed")
        on_chunk(RetrievalProgress(type="error", error=str(e) or RETRIEVAL_CHAIN_FAILED))
