"""FastAPI application factory for the chat server."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Literal

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, StreamingResponse

from rag_chat.config import ChatModelConfig, Settings
from rag_chat.models import ChatModelClient, RAGChatModel
from rag_chat.rag.models import ChatRequest
from rag_chat.rag.store import get_all_documents

if TYPE_CHECKING:
    from collections.abc import Callable

    from rag_chat.models import ChatModel

LOGGER = logging.getLogger(__name__)

Provider = Literal["ollama", "deepseek"]

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
}


def default_model_factory(settings: Settings) -> Callable[[Provider], ChatModel]:
    """Build chat models per request from resolved settings.

    The local route retrieves context before answering; the DeepSeek route
    talks to the hosted model directly.
    """

    def factory(provider: Provider) -> ChatModel:
        if provider == "deepseek":
            return ChatModelClient(
                ChatModelConfig.deepseek_from_env(),
                system_prompt=settings.system_prompt,
            )
        base = ChatModelClient(settings.chat, system_prompt=settings.system_prompt)
        return RAGChatModel(base, settings.rag)

    return factory


def create_app(
    settings: Settings | None = None,
    model_factory: Callable[[Provider], ChatModel] | None = None,
) -> FastAPI:
    """Create the FastAPI app."""
    settings = settings or Settings.from_env()
    factory = model_factory or default_model_factory(settings)

    app = FastAPI(title="RAG Chat")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    async def stream_chat(request: Request, provider: Provider) -> Any:
        try:
            chat_request = ChatRequest.model_validate(await request.json())
            model = factory(provider)
            body = await model.create_streaming_response(chat_request.messages)
        except Exception as e:
            LOGGER.exception("Chat request failed")
            return JSONResponse({"error": str(e)}, status_code=500)

        return StreamingResponse(body, media_type="text/event-stream", headers=SSE_HEADERS)

    @app.post("/api/chat")
    async def chat(request: Request) -> Any:
        """Stream an answer from the local model, with retrieved context."""
        return await stream_chat(request, "ollama")

    @app.post("/api/deepseek")
    async def deepseek(request: Request) -> Any:
        """Stream an answer from DeepSeek."""
        return await stream_chat(request, "deepseek")

    @app.get("/api/documents")
    async def list_documents() -> Any:
        """List the records in the configured collection."""
        try:
            snapshot = await get_all_documents(
                settings.rag.collection_name,
                settings.rag.store_options(),
                include_embeddings=False,
            )
        except Exception as e:
            LOGGER.exception("Failed to list documents")
            return JSONResponse({"error": str(e)}, status_code=500)
        return snapshot.model_dump(exclude={"embeddings"})

    @app.get("/health")
    def health() -> dict[str, Any]:
        return {
            "status": "ok",
            "model": settings.chat.model,
            "rag_enabled": settings.rag.enable_rag,
            "collection": settings.rag.collection_name,
        }

    return app
