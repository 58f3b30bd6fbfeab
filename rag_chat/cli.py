"""Command line interface for the RAG chat server and its document store."""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path  # noqa: TC003
from typing import Annotated

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from rag_chat import constants
from rag_chat.config import RetrievalChainOptions, Settings, load_config

console = Console()

app = typer.Typer(
    name="rag-chat",
    help="Retrieval-augmented chat server backed by Ollama and ChromaDB.",
    add_completion=True,
)

LOG_LEVEL = typer.Option(
    "INFO",
    "--log-level",
    help="Set the log level (e.g., DEBUG, INFO, WARNING).",
)


def setup_logging(log_level: str) -> None:
    """Route all logging through Rich and quiet chatty libraries."""
    logging.basicConfig(
        level=log_level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
        force=True,
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("chromadb").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


def set_config_defaults(ctx: typer.Context, config_file: str | None) -> None:
    """Set per-command defaults from the config file.

    Keys under ``[defaults]`` apply to every command; a ``[<command>]`` table
    overrides them for that command.
    """
    config = load_config(config_file)
    wildcard_config = config.get("defaults", {})
    commands = getattr(ctx.command, "commands", {})
    ctx.default_map = {
        name: {**wildcard_config, **config.get(name, {})} for name in commands
    }


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    config_file: Annotated[
        str | None,
        typer.Option("--config", "-c", help="Path to a custom config file."),
    ] = None,
) -> None:
    """Retrieval-augmented chat tools."""
    if ctx.invoked_subcommand is None:
        console.print("[bold red]No command specified.[/bold red]")
        console.print("[bold yellow]Running --help for your convenience.[/bold yellow]")
        console.print(ctx.get_help())
        raise typer.Exit
    import dotenv  # noqa: PLC0415

    dotenv.load_dotenv()
    set_config_defaults(ctx, config_file)


@app.command("serve")
def serve(
    host: str = typer.Option(constants.DEFAULT_SERVER_HOST, help="Host to bind to"),
    port: int = typer.Option(constants.DEFAULT_SERVER_PORT, help="Port to bind to"),
    system_prompt: Path | None = typer.Option(  # noqa: B008
        None,
        "--system-prompt",
        help="Markdown file holding the system prompt.",
    ),
    log_level: str = LOG_LEVEL,
) -> None:
    """Start the chat HTTP server."""
    setup_logging(log_level)
    import uvicorn  # noqa: PLC0415

    from rag_chat.api import create_app  # noqa: PLC0415

    settings = Settings.from_env(system_prompt)
    console.print(f"[bold green]Starting RAG chat server on {host}:{port}[/bold green]")
    console.print(f"  🤖 Model: [blue]{settings.chat.model}[/blue] at {settings.chat.base_url}")
    console.print(
        f"  💾 Chroma: [blue]{settings.rag.chroma_host}:{settings.rag.chroma_port}[/blue]"
        f" collection [blue]{settings.rag.collection_name}[/blue]",
    )
    console.print(
        f"  🔍 RAG: [blue]{'on' if settings.rag.enable_rag else 'off'}[/blue],"
        f" k={settings.rag.k}, threshold={settings.rag.rag_threshold}",
    )

    uvicorn.run(create_app(settings), host=host, port=port, log_config=None)


@app.command("ingest")
def ingest(
    path: Path = typer.Argument(  # noqa: B008
        Path(constants.DEFAULT_DOCUMENTS_PATH),
        help="JSON file to ingest.",
    ),
    chunk_size: int = typer.Option(constants.INGEST_CHUNK_SIZE, help="Characters per chunk."),
    chunk_overlap: int = typer.Option(
        constants.INGEST_CHUNK_OVERLAP,
        help="Characters shared by neighbouring chunks.",
    ),
    log_level: str = LOG_LEVEL,
) -> None:
    """Split, embed and store a JSON document."""
    setup_logging(log_level)
    from rag_chat.rag.ingest import IngestError, ingest_json_file  # noqa: PLC0415

    options = RetrievalChainOptions()
    try:
        ids = asyncio.run(ingest_json_file(path, options, chunk_size, chunk_overlap))
    except (IngestError, ValueError) as e:
        console.print(f"[bold red]{e}[/bold red]")
        raise typer.Exit(1) from e
    console.print(
        f"[bold green]Stored {len(ids)} chunks in '{options.collection_name}'[/bold green]",
    )


@app.command("ask")
def ask(
    query: str = typer.Argument(..., help="Question to answer from the documents."),
    k: int = typer.Option(constants.DEFAULT_TOP_K, help="Number of documents to retrieve."),
    log_level: str = LOG_LEVEL,
) -> None:
    """Answer a question from retrieved documents, streaming the answer."""
    setup_logging(log_level)
    from rag_chat.rag.chain import execute_retrieval_chain_stream  # noqa: PLC0415
    from rag_chat.rag.models import RetrievalProgress  # noqa: PLC0415

    failed = False

    def on_chunk(chunk: RetrievalProgress) -> None:
        nonlocal failed
        if chunk.type == "retrieval":
            console.print(f"[dim]{chunk.content}[/dim]")
        elif chunk.type == "content":
            console.print(chunk.content or "", end="", markup=False, highlight=False)
        else:
            failed = True
            console.print(f"\n[bold red]Error: {chunk.error}[/bold red]")

    options = RetrievalChainOptions(k=k)
    asyncio.run(execute_retrieval_chain_stream(query, on_chunk, options))
    console.print()
    if failed:
        raise typer.Exit(1)


@app.command("documents")
def documents(
    log_level: str = LOG_LEVEL,
) -> None:
    """List the records stored in the collection."""
    setup_logging(log_level)
    from rag_chat.rag.store import get_all_documents  # noqa: PLC0415

    options = RetrievalChainOptions()
    snapshot = asyncio.run(
        get_all_documents(
            options.collection_name,
            options.store_options(),
            include_embeddings=False,
        ),
    )

    table = Table(title=f"{options.collection_name} ({snapshot.count} records)")
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Text")
    table.add_column("Metadata", style="dim")
    for doc_id, text, metadata in zip(
        snapshot.ids,
        snapshot.documents,
        snapshot.metadatas,
        strict=False,
    ):
        preview = text if len(text) <= 80 else f"{text[:77]}..."  # noqa: PLR2004
        table.add_row(doc_id, preview, json.dumps(metadata, ensure_ascii=False))
    console.print(table)


@app.command("delete")
def delete(
    ids: list[str] = typer.Argument(..., help="Record ids to delete."),  # noqa: B008
    log_level: str = LOG_LEVEL,
) -> None:
    """Delete records from the collection by id."""
    setup_logging(log_level)
    from rag_chat.rag.store import delete_documents  # noqa: PLC0415

    options = RetrievalChainOptions()
    asyncio.run(delete_documents(ids, options.collection_name, options.store_options()))
    console.print(f"[bold green]Deleted {len(ids)} records[/bold green]")
