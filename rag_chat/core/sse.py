"""Server-Sent Events framing for chat streams."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from pydantic import ValidationError

from rag_chat.rag.models import StreamChunk

if TYPE_CHECKING:
    from collections.abc import Iterable

DONE_SENTINEL = "[DONE]"
_DATA_PREFIX = "data: "


def format_chunk(chunk: StreamChunk) -> str:
    """Render a chunk as a single ``data:`` frame."""
    payload = chunk.model_dump(exclude_none=True)
    return f"{_DATA_PREFIX}{json.dumps(payload, ensure_ascii=False)}\n\n"


def format_done() -> str:
    """Render the end-of-stream sentinel frame."""
    return f"{_DATA_PREFIX}{DONE_SENTINEL}\n\n"


def encode_chunk(chunk: StreamChunk) -> bytes:
    """Frame and UTF-8 encode a chunk for a response body."""
    return format_chunk(chunk).encode("utf-8")


def encode_done() -> bytes:
    """Frame and UTF-8 encode the end-of-stream sentinel."""
    return format_done().encode("utf-8")


def parse_chunk(line: str) -> StreamChunk | None:
    """Parse one SSE frame into a chunk.

    Returns ``None`` for non-data lines, the ``[DONE]`` sentinel and
    payloads that are not valid chunk JSON.
    """
    line = line.strip()
    if not line.startswith("data:"):
        return None
    payload = line[5:].strip()
    if payload == DONE_SENTINEL:
        return None
    try:
        return StreamChunk.model_validate(json.loads(payload))
    except (json.JSONDecodeError, ValidationError):
        return None


def is_done(line: str) -> bool:
    """Return True if the frame is the end-of-stream sentinel."""
    line = line.strip()
    return line.startswith("data:") and line[5:].strip() == DONE_SENTINEL


@dataclass
class AssistantMessageAccumulator:
    """Fold decoded chunks into the in-progress assistant message."""

    content_chunks: list[str] = field(default_factory=list)
    thinking_chunks: list[str] = field(default_factory=list)
    error: str | None = None
    done: bool = False

    def feed(self, line: str) -> None:
        """Consume one SSE frame."""
        if is_done(line):
            self.done = True
            return
        chunk = parse_chunk(line)
        if chunk is None:
            return
        if chunk.type == "content":
            self.content_chunks.append(chunk.content or "")
        elif chunk.type == "thinking":
            self.thinking_chunks.append(chunk.content or "")
        else:
            self.error = chunk.error or "unknown error"

    @property
    def content(self) -> str:
        return "".join(self.content_chunks)

    @property
    def thinking(self) -> str:
        return "".join(self.thinking_chunks)


def split_frames(buffer: str) -> tuple[list[str], str]:
    """Split a text buffer into complete frames and the incomplete remainder."""
    *frames, rest = buffer.split("\n\n")
    return [f for f in frames if f], rest


def accumulate_chunks(frames: Iterable[str]) -> AssistantMessageAccumulator:
    """Decode a sequence of frames into one assistant message."""
    acc = AssistantMessageAccumulator()
    for frame in frames:
        acc.feed(frame)
        if acc.done:
            break
    return acc
