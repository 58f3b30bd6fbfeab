"""Recursive character text splitting with overlap."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from rag_chat import constants

DEFAULT_SEPARATORS = ("\n\n", "\n", " ", "")


@dataclass
class RecursiveTextSplitter:
    """Split text on the coarsest separator that yields small enough pieces."""

    chunk_size: int = constants.DEFAULT_CHUNK_SIZE
    chunk_overlap: int = constants.DEFAULT_CHUNK_OVERLAP
    separators: tuple[str, ...] = field(default=DEFAULT_SEPARATORS)

    def __post_init__(self) -> None:
        if self.chunk_size <= 0:
            msg = f"chunk_size must be positive, got {self.chunk_size}"
            raise ValueError(msg)
        if self.chunk_overlap < 0 or self.chunk_overlap >= self.chunk_size:
            msg = (
                f"chunk_overlap ({self.chunk_overlap}) must be non-negative "
                f"and smaller than chunk_size ({self.chunk_size})"
            )
            raise ValueError(msg)

    def split_text(self, text: str) -> list[str]:
        """Split ``text`` into chunks of at most ``chunk_size`` characters where possible."""
        return self._split(text, list(self.separators))

    def create_documents(
        self,
        texts: list[str],
        metadatas: list[dict[str, Any]] | None = None,
    ) -> list[dict[str, Any]]:
        """Split several texts, copying each text's metadata onto its chunks."""
        documents = []
        for i, text in enumerate(texts):
            metadata = metadatas[i] if metadatas else {}
            documents.extend(
                {"page_content": chunk, "metadata": dict(metadata)}
                for chunk in self.split_text(text)
            )
        return documents

    def _split(self, text: str, separators: list[str]) -> list[str]:
        separator = separators[-1]
        remaining: list[str] = []
        for i, candidate in enumerate(separators):
            if candidate == "":
                separator = candidate
                break
            if candidate in text:
                separator = candidate
                remaining = separators[i + 1 :]
                break

        splits = text.split(separator) if separator else list(text)

        chunks: list[str] = []
        small: list[str] = []
        for piece in splits:
            if not piece:
                continue
            if len(piece) < self.chunk_size:
                small.append(piece)
                continue
            if small:
                chunks.extend(self._merge(small, separator))
                small = []
            if remaining:
                chunks.extend(self._split(piece, remaining))
            else:
                chunks.append(piece)
        if small:
            chunks.extend(self._merge(small, separator))
        return chunks

    def _merge(self, pieces: list[str], separator: str) -> list[str]:
        sep_len = len(separator)
        chunks: list[str] = []
        current: list[str] = []
        total = 0

        for piece in pieces:
            piece_len = len(piece)
            if total + piece_len + (sep_len if current else 0) > self.chunk_size and current:
                chunk = separator.join(current).strip()
                if chunk:
                    chunks.append(chunk)
                # Drop from the front until what is left fits the overlap budget
                while total > self.chunk_overlap or (
                    total > 0 and total + piece_len + (sep_len if current else 0) > self.chunk_size
                ):
                    total -= len(current[0]) + (sep_len if len(current) > 1 else 0)
                    current.pop(0)
            current.append(piece)
            total += piece_len + (sep_len if len(current) > 1 else 0)

        chunk = separator.join(current).strip()
        if chunk:
            chunks.append(chunk)
        return chunks


def create_text_splitter(
    chunk_size: int = constants.DEFAULT_CHUNK_SIZE,
    chunk_overlap: int = constants.DEFAULT_CHUNK_OVERLAP,
) -> RecursiveTextSplitter:
    """Create a splitter with the given chunk size and overlap."""
    return RecursiveTextSplitter(chunk_size=chunk_size, chunk_overlap=chunk_overlap)


def split_text(
    text: str,
    chunk_size: int = constants.DEFAULT_CHUNK_SIZE,
    chunk_overlap: int = constants.DEFAULT_CHUNK_OVERLAP,
) -> list[str]:
    """Split text into overlapping chunks."""
    return create_text_splitter(chunk_size, chunk_overlap).split_text(text)


def create_documents(
    texts: list[str],
    chunk_size: int = constants.DEFAULT_CHUNK_SIZE,
    chunk_overlap: int = constants.DEFAULT_CHUNK_OVERLAP,
) -> list[dict[str, Any]]:
    """Split texts into ``{"page_content", "metadata"}`` documents."""
    return create_text_splitter(chunk_size, chunk_overlap).create_documents(texts)
