"""Chat model clients."""

from __future__ import annotations

from rag_chat.models.chat import ChatModel, ChatModelClient
from rag_chat.models.rag import RAGChatModel

__all__ = ["ChatModel", "ChatModelClient", "RAGChatModel"]
