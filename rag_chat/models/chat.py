"""Chat model client with tool calling and SSE streaming."""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import TYPE_CHECKING, Protocol

from pydantic_ai.direct import model_request, model_request_stream
from pydantic_ai.messages import (
    ModelMessage,
    ModelRequest,
    ModelResponse,
    PartDeltaEvent,
    PartStartEvent,
    SystemPromptPart,
    TextPart,
    TextPartDelta,
    ThinkingPart,
    ThinkingPartDelta,
    ToolCallPart,
    ToolReturnPart,
    UserPromptPart,
)
from pydantic_ai.models import ModelRequestParameters
from pydantic_ai.models.openai import OpenAIChatModel
from pydantic_ai.providers.openai import OpenAIProvider
from pydantic_ai.settings import ModelSettings

from rag_chat import constants
from rag_chat.config import ChatModelConfig
from rag_chat.core.sse import encode_chunk, encode_done
from rag_chat.rag.models import StreamChunk
from rag_chat.tools import ToolError, get_tools, tool_definitions, tool_map

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator, AsyncIterator, Callable, Sequence

    from pydantic_ai.messages import ModelResponseStreamEvent
    from pydantic_ai.models import Model

    from rag_chat.rag.models import Message
    from rag_chat.tools import ChatTool

LOGGER = logging.getLogger(__name__)


class ChatModel(Protocol):
    """What the HTTP layer and decorators need from a chat backend."""

    async def stream_chat(
        self,
        messages: Sequence[Message],
        on_chunk: Callable[[StreamChunk], None],
    ) -> None:
        """Stream an answer, reporting each chunk to ``on_chunk``."""

    async def create_streaming_response(self, messages: Sequence[Message]) -> AsyncIterator[bytes]:
        """Return the SSE byte stream answering ``messages``."""


def build_model(config: ChatModelConfig) -> Model:
    """Construct the pydantic-ai model for an OpenAI-compatible backend.

    Raises:
        ValueError: If a hosted provider is selected without an API key.

    """
    if config.provider == "deepseek":
        if not config.api_key:
            msg = "DEEP_SEEK_API_KEY is not set"
            raise ValueError(msg)
        provider = OpenAIProvider(base_url=config.base_url, api_key=config.api_key)
    else:
        # Ollama ignores the key but the client needs one
        provider = OpenAIProvider(
            base_url=f"{config.base_url.rstrip('/')}/v1",
            api_key=config.api_key or "dummy",
        )
    return OpenAIChatModel(model_name=config.model, provider=provider)


def _event_to_chunk(event: ModelResponseStreamEvent) -> StreamChunk | None:
    """Map a streamed model event to a content or thinking chunk.

    Reasoning arrives in its own ``ThinkingPart``, so a thinking chunk never
    repeats the text of a content chunk.
    """
    if isinstance(event, PartStartEvent):
        part = event.part
        if isinstance(part, TextPart) and part.content:
            return StreamChunk(type="content", content=part.content)
        if isinstance(part, ThinkingPart) and part.content:
            return StreamChunk(type="thinking", content=part.content)
    elif isinstance(event, PartDeltaEvent):
        delta = event.delta
        if isinstance(delta, TextPartDelta) and delta.content_delta:
            return StreamChunk(type="content", content=delta.content_delta)
        if isinstance(delta, ThinkingPartDelta) and delta.content_delta:
            return StreamChunk(type="thinking", content=delta.content_delta)
    return None


def _answered_turn(
    response: ModelResponse,
    tool_returns: list[ToolReturnPart],
) -> list[ModelMessage]:
    """Pair the tool-call message with its results.

    OpenAI-compatible backends reject a tool call without a matching result,
    so calls to skipped tools are dropped from the assistant message.
    """
    answered = {r.tool_call_id for r in tool_returns}
    parts = [
        p for p in response.parts if not isinstance(p, ToolCallPart) or p.tool_call_id in answered
    ]
    turn: list[ModelMessage] = []
    if parts:
        turn.append(replace(response, parts=parts))
    if tool_returns:
        turn.append(ModelRequest(parts=tool_returns))
    return turn


class ChatModelClient:
    """Talks to the chat model and frames its answer for the HTTP layer."""

    def __init__(
        self,
        config: ChatModelConfig | None = None,
        *,
        system_prompt: str = constants.DEFAULT_SYSTEM_PROMPT,
        tools: list[ChatTool] | None = None,
        model: Model | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            config: Backend selection and credentials. Defaults to Ollama from the environment.
            system_prompt: Instruction placed before every conversation.
            tools: Tools the model may call. Defaults to ``get_tools()``.
            model: Pre-built pydantic-ai model, overriding ``config``.

        """
        self.config = config or ChatModelConfig.ollama_from_env()
        self.system_prompt = system_prompt
        self.tools = get_tools() if tools is None else tools
        self.tool_map = tool_map(self.tools)
        self.model: Model = model or build_model(self.config)
        self.model_settings = ModelSettings(temperature=self.config.temperature)
        self._request_parameters = ModelRequestParameters(
            function_tools=tool_definitions(self.tools),
        )

    def convert_messages(self, messages: Sequence[Message]) -> list[ModelMessage]:
        """Convert chat history to model messages, system prompt first."""
        history: list[ModelMessage] = [
            ModelRequest(parts=[SystemPromptPart(content=self.system_prompt)]),
        ]
        for m in messages:
            if m.role == "user":
                history.append(ModelRequest(parts=[UserPromptPart(content=m.content)]))
            elif m.role == "assistant":
                history.append(ModelResponse(parts=[TextPart(content=m.content)]))
        return history

    async def _invoke(self, history: list[ModelMessage]) -> ModelResponse:
        return await model_request(
            self.model,
            history,
            model_settings=self.model_settings,
            model_request_parameters=self._request_parameters,
        )

    async def _stream_chunks(self, history: list[ModelMessage]) -> AsyncGenerator[StreamChunk, None]:
        async with model_request_stream(
            self.model,
            history,
            model_settings=self.model_settings,
            model_request_parameters=self._request_parameters,
        ) as stream:
            async for event in stream:
                chunk = _event_to_chunk(event)
                if chunk is not None:
                    yield chunk

    async def execute_tool_calls(self, tool_calls: Sequence[ToolCallPart]) -> list[ToolReturnPart]:
        """Run requested tools one after another.

        Unknown tool names are skipped. A failing tool yields an ``Error: ...`` result.
        """
        results: list[ToolReturnPart] = []
        for call in tool_calls:
            tool = self.tool_map.get(call.tool_name)
            if tool is None:
                LOGGER.warning("Model requested unknown tool '%s', skipping", call.tool_name)
                continue
            try:
                content = await tool.invoke(call.args_as_dict())
            except (ToolError, ValueError) as e:
                LOGGER.warning("Tool '%s' failed: %s", call.tool_name, e)
                content = f"Error: {e}"
            results.append(
                ToolReturnPart(
                    tool_name=call.tool_name,
                    content=content,
                    tool_call_id=call.tool_call_id,
                ),
            )
        return results

    async def stream_chat(
        self,
        messages: Sequence[Message],
        on_chunk: Callable[[StreamChunk], None],
    ) -> None:
        """Stream an answer to ``on_chunk``.

        A failure is reported as a single ``error`` chunk; nothing is raised.
        """
        history = self.convert_messages(messages)
        try:
            async for chunk in self._stream_chunks(history):
                on_chunk(chunk)
        except Exception as e:
            LOGGER.exception("Stream error")
            on_chunk(StreamChunk(type="error", error=str(e)))

    async def create_streaming_response(self, messages: Sequence[Message]) -> AsyncIterator[bytes]:
        """Return the SSE body answering ``messages``.

        The model is asked once without streaming. If it requests tools, they
        are run and the follow-up answer is streamed; otherwise the original
        conversation is streamed. The body ends with ``[DONE]`` on success or
        a single ``error`` chunk on failure.
        """
        return self._response_stream(self.convert_messages(messages))

    async def _response_stream(self, history: list[ModelMessage]) -> AsyncGenerator[bytes, None]:
        try:
            response = await self._invoke(history)
            tool_calls = [p for p in response.parts if isinstance(p, ToolCallPart)]

            if tool_calls:
                LOGGER.info("Model requested %d tool call(s)", len(tool_calls))
                tool_returns = await self.execute_tool_calls(tool_calls)
                history = [*history, *_answered_turn(response, tool_returns)]

            async for chunk in self._stream_chunks(history):
                yield encode_chunk(chunk)

            yield encode_done()
        except Exception as e:
            LOGGER.exception("Stream error")
            yield encode_chunk(StreamChunk(type="error", error=str(e)))
