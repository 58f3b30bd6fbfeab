"""Retrieval and prompt assembly for RAG."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from rag_chat.rag._prompt import DOCUMENT_SECTION, RAG_PROMPT_TEMPLATE
from rag_chat.rag.store import search_similar_documents

if TYPE_CHECKING:
    from collections.abc import Sequence

    from rag_chat.config import RetrievalChainOptions
    from rag_chat.rag.models import RetrievedDocument

LOGGER = logging.getLogger(__name__)


async def search(query: str, options: RetrievalChainOptions) -> list[RetrievedDocument]:
    """Embed ``query`` and fetch its ``options.k`` nearest documents.

    Errors from the embedding provider or the vector store propagate unchanged.
    """
    return await search_similar_documents(
        query,
        options.k,
        options.collection_name,
        options.embedding_type,
        options.store_options(),
    )


def build_prompt(query: str, docs: Sequence[RetrievedDocument]) -> str:
    """Wrap ``query`` with the retrieved passages, keeping retrieval order.

    Returns ``query`` untouched when there is nothing to add.
    """
    if not docs:
        return query

    context = "\n\n".join(
        DOCUMENT_SECTION.format(index=i, content=doc.content) for i, doc in enumerate(docs, 1)
    )
    return RAG_PROMPT_TEMPLATE.format(context=context, query=query)
