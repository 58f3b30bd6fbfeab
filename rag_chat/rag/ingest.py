"""Load a JSON document, split it, embed it and store it in Chroma."""

from __future__ import annotations

import json
import logging
from pathlib import Path

from rag_chat import constants
from rag_chat.config import RetrievalChainOptions
from rag_chat.rag.embedding import embed_chunks
from rag_chat.rag.splitter import split_text
from rag_chat.rag.store import add_documents

LOGGER = logging.getLogger(__name__)

_CONNECTION_MARKERS = ("connect", "refused")


class IngestError(RuntimeError):
    """A document could not be ingested."""


def load_json_text(path: Path) -> str:
    """Read a JSON file and re-serialize it with two-space indentation.

    Raises:
        IngestError: If the file is missing or not valid JSON.

    """
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except OSError as e:
        msg = f"Cannot read {path}: {e}"
        raise IngestError(msg) from e
    except json.JSONDecodeError as e:
        msg = f"{path} is not valid JSON: {e}"
        raise IngestError(msg) from e
    return json.dumps(data, ensure_ascii=False, indent=2)


async def ingest_json_file(
    path: Path | str = constants.DEFAULT_DOCUMENTS_PATH,
    options: RetrievalChainOptions | None = None,
    chunk_size: int = constants.INGEST_CHUNK_SIZE,
    chunk_overlap: int = constants.INGEST_CHUNK_OVERLAP,
) -> list[str]:
    """Ingest a JSON file into the configured collection.

    Returns:
        The ids of the stored chunks.

    Raises:
        IngestError: If reading, embedding or storing fails.

    """
    options = options or RetrievalChainOptions()
    path = Path(path)
    text = load_json_text(path)

    chunks = split_text(text, chunk_size, chunk_overlap)
    LOGGER.info("Split %s into %d chunks", path, len(chunks))
    if not chunks:
        return []

    store_options = options.store_options()
    try:
        embedded = await embed_chunks(chunks, options.embedding_type, store_options)
        LOGGER.info("Embedded %d chunks with %s", len(embedded), options.embedding_type)

        metadatas = [
            {
                "index": chunk.index,
                "text_length": len(chunk.text),
                "embedding_dimension": len(chunk.embedding),
            }
            for chunk in embedded
        ]
        ids = await add_documents(
            [chunk.text for chunk in embedded],
            metadatas,
            options.collection_name,
            options.embedding_type,
            store_options,
            embeddings=[chunk.embedding for chunk in embedded],
        )
    except Exception as e:
        if any(marker in str(e).lower() for marker in _CONNECTION_MARKERS):
            LOGGER.error(  # noqa: TRY400
                "Cannot connect to Chroma at %s:%s. Start it with: "
                "docker run -p 8000:8000 chromadb/chroma",
                options.chroma_host,
                options.chroma_port,
            )
        msg = f"Failed to ingest {path}: {e}"
        raise IngestError(msg) from e

    LOGGER.info("Stored %d chunks in collection '%s'", len(ids), options.collection_name)
    return ids
