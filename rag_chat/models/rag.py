"""Chat model decorator that augments the latest user turn with retrieved context."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from rag_chat.config import RAGOptions
from rag_chat.rag.retriever import build_prompt, search

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Awaitable, Callable, Sequence

    from rag_chat.models.chat import ChatModel
    from rag_chat.rag.models import Message, RetrievedDocument, StreamChunk

    SearchFn = Callable[[str, RAGOptions], Awaitable[list[RetrievedDocument]]]

LOGGER = logging.getLogger(__name__)


class RAGChatModel:
    """Wraps a chat model and rewrites the last user message before dispatch.

    Retrieval failures never block the chat: the original message is used instead.
    """

    def __init__(
        self,
        base: ChatModel,
        options: RAGOptions | None = None,
        *,
        search_fn: SearchFn | None = None,
    ) -> None:
        self.base = base
        self.options = options or RAGOptions()
        self._search = search_fn or search

    def should_use_rag(self, message: str) -> bool:
        """Decide whether ``message`` gets retrieved context."""
        if not self.options.enable_rag:
            return False
        if self.options.rag_threshold > 0:
            return len(message) >= self.options.rag_threshold
        return True

    async def enhance_message(self, message: str) -> str:
        """Return ``message`` wrapped with retrieved passages.

        Falls back to ``message`` unchanged when nothing is found or retrieval fails.
        """
        try:
            docs = await self._search(message, self.options)
            docs = [doc for doc in docs if doc.content]
            if not docs:
                LOGGER.info("No relevant documents found, using original message")
                return message
            LOGGER.info("Enhancing message with %d retrieved documents", len(docs))
            return build_prompt(message, docs)
        except Exception:
            LOGGER.exception("Retrieval failed, continuing without context")
            return message

    async def _augment(self, messages: Sequence[Message]) -> list[Message]:
        history = list(messages)
        if not history:
            return history
        last = history[-1]
        if last.role != "user" or not self.should_use_rag(last.content):
            return history
        enhanced = await self.enhance_message(last.content)
        history[-1] = last.model_copy(update={"content": enhanced})
        return history

    def update_options(self, **changes: Any) -> None:
        """Replace selected options, validating the result.

        Raises:
            ValueError: If a name is not a known option.

        """
        unknown = set(changes) - set(RAGOptions.model_fields)
        if unknown:
            msg = f"Unknown RAG option(s): {', '.join(sorted(unknown))}"
            raise ValueError(msg)
        self.options = RAGOptions.model_validate({**self.options.model_dump(), **changes})

    async def stream_chat(
        self,
        messages: Sequence[Message],
        on_chunk: Callable[[StreamChunk], None],
    ) -> None:
        """Augment the history, then stream through the wrapped model."""
        await self.base.stream_chat(await self._augment(messages), on_chunk)

    async def create_streaming_response(self, messages: Sequence[Message]) -> AsyncIterator[bytes]:
        """Augment the history, then return the wrapped model's SSE body."""
        return await self.base.create_streaming_response(await self._augment(messages))
