"""
Course RAG - CLI Entry Point
-----------------------------
Typer commands around DocumentRetriever for indexing course documents
and inspecting the vector store.

Usage:
    python -m course_rag.main index syllabus.txt --id cs101
    python -m course_rag.main query "grading policy" --document cs101
    python -m course_rag.main augment "Write 5 quiz questions." --query "week 3" --document cs101
    python -m course_rag.main topics cs101
    python -m course_rag.main stats
"""
from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Optional

import typer
from loguru import logger
from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from course_rag.config import DEFAULT_CONFIG_PATH, ConfigError, RAGConfig, load_config
from course_rag.retrieval.retriever import DocumentRetriever
from course_rag.retrieval.topics import extract_topics
from course_rag.utils.helpers import truncate_text
from course_rag.utils.logger import setup_logger

app = typer.Typer(
    name="course-rag",
    help="Course document RAG - index, retrieve, augment",
    add_completion=False,
)
console = Console()

ConfigOption = typer.Option(DEFAULT_CONFIG_PATH, "--config", "-c", help="Path to config YAML")


# --- Helpers ------------------------------------------------------------------

def _bootstrap(config_path: str) -> tuple[RAGConfig, DocumentRetriever]:
    try:
        cfg = load_config(config_path)
    except ConfigError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(2)

    setup_logger(log_level=cfg.logging.level, log_file=cfg.logging.file)
    return cfg, DocumentRetriever.from_config(cfg)


# --- Commands -----------------------------------------------------------------

@app.command()
def index(
    file: Path = typer.Argument(..., exists=True, dir_okay=False, help="UTF-8 text file to index"),
    document_id: Optional[str] = typer.Option(
        None, "--id", help="Document id (defaults to the file stem)"
    ),
    content_type: str = typer.Option("text/plain", "--content-type", help="Recorded in metadata"),
    config: str = ConfigOption,
) -> None:
    """Chunk, embed and store a document, replacing any previous version."""
    _, retriever = _bootstrap(config)
    doc_id = document_id or file.stem
    text = file.read_text(encoding="utf-8", errors="replace")

    with console.status(f"[cyan]Indexing {file.name}...[/cyan]"):
        result = asyncio.run(
            retriever.index_document(
                doc_id, text, {"source": file.name, "contentType": content_type}
            )
        )

    if not result.success:
        reason = result.error or "no chunks produced (text shorter than min_chunk_size?)"
        console.print(f"[red]Indexing failed for {doc_id}:[/red] {reason}")
        raise typer.Exit(1)

    usage = retriever.embedder.usage_summary()
    console.print(
        f"[green][OK] {doc_id}[/green] | {result.chunk_count} chunks "
        f"| remote={usage['remote_calls']} fallback={usage['fallback_calls']}"
    )


@app.command()
def query(
    text: str = typer.Argument(..., help="Query text"),
    top_k: Optional[int] = typer.Option(None, "--top-k", "-k", help="Maximum results"),
    document: Optional[str] = typer.Option(None, "--document", "-d", help="Limit to one document"),
    json_out: bool = typer.Option(False, "--json", help="Print results as JSON"),
    config: str = ConfigOption,
) -> None:
    """Retrieve the chunks most similar to a query."""
    _, retriever = _bootstrap(config)
    results = asyncio.run(retriever.retrieve(text, top_k, document))

    if json_out:
        console.print_json(json.dumps([r.to_dict() for r in results]))
        return

    if not results:
        console.print("[yellow]No results.[/yellow]")
        return

    table = Table("No.", "Document", "Chunk", "Score", "Text", box=box.SIMPLE, header_style="bold dim")
    for i, r in enumerate(results, start=1):
        table.add_row(str(i), r.document_id, r.chunk_id, f"{r.similarity:.3f}", truncate_text(r.text, 80))
    console.print(table)


@app.command()
def augment(
    prompt: str = typer.Argument(..., help="Base prompt to extend"),
    query_text: str = typer.Option(..., "--query", "-q", help="Query used to find context"),
    document: str = typer.Option(..., "--document", "-d", help="Document to search"),
    chunks: Optional[int] = typer.Option(None, "--chunks", help="Context chunks to include"),
    config: str = ConfigOption,
) -> None:
    """Print a prompt extended with retrieved document context."""
    cfg, retriever = _bootstrap(config)
    count = chunks or cfg.retrieval.context_chunks
    console.print(asyncio.run(retriever.augment_prompt(prompt, query_text, document, count)), markup=False)


@app.command()
def topics(
    document: str = typer.Argument(..., help="Indexed document id"),
    count: Optional[int] = typer.Option(None, "--count", "-n", help="Number of key sentences"),
    config: str = ConfigOption,
) -> None:
    """List key topic sentences of an indexed document."""
    cfg, retriever = _bootstrap(config)
    found = asyncio.run(
        extract_topics(
            retriever,
            document,
            count=count or cfg.retrieval.key_sentence_count,
            results_per_query=cfg.retrieval.topic_results_per_query,
        )
    )
    if not found:
        console.print(f"[yellow]No topics found for {document}.[/yellow]")
        return
    for i, sentence in enumerate(found, start=1):
        console.print(f"{i:>2}. {sentence}", markup=False)


@app.command()
def stats(config: str = ConfigOption) -> None:
    """Show document and chunk counts for the store."""
    cfg, retriever = _bootstrap(config)
    s = retriever.store.get_stats()
    console.print(
        Panel(
            f"Store     : {cfg.store.path}\n"
            f"Documents : [green]{s.document_count}[/green]\n"
            f"Chunks    : [green]{s.total_chunks}[/green]",
            title="[bold cyan]Vector Store[/bold cyan]",
            box=box.ROUNDED,
            expand=False,
        )
    )


@app.command()
def show(
    document: str = typer.Argument(..., help="Document id"),
    config: str = ConfigOption,
) -> None:
    """Show one document's metadata and chunks."""
    _, retriever = _bootstrap(config)
    doc = retriever.store.get_document(document)
    if doc is None:
        console.print(f"[yellow]Document {document} not found.[/yellow]")
        raise typer.Exit(1)

    console.print_json(json.dumps(doc.metadata, default=str))
    table = Table("Chunk", "Chars", "Embedding", "Text", box=box.SIMPLE, header_style="bold dim")
    for chunk in doc.chunks:
        dims = f"{len(chunk.embedding)}d {chunk.embedding_model or ''}" if chunk.embedding else "-"
        table.add_row(chunk.id, str(len(chunk.text)), dims, truncate_text(chunk.text, 60))
    console.print(table)


@app.command()
def delete(
    document: str = typer.Argument(..., help="Document id"),
    config: str = ConfigOption,
) -> None:
    """Delete a document from the store."""
    _, retriever = _bootstrap(config)
    if retriever.store.delete_document(document):
        console.print(f"[green][OK] Deleted {document}[/green]")
    else:
        console.print(f"[yellow]Document {document} not found.[/yellow]")


@app.command()
def clear(
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
    config: str = ConfigOption,
) -> None:
    """Remove every document from the store."""
    _, retriever = _bootstrap(config)
    if not yes and not typer.confirm(f"Delete all {len(retriever.store)} documents?"):
        raise typer.Exit(1)
    retriever.store.clear()
    logger.info("Store cleared from CLI")
    console.print("[green][OK] Store cleared[/green]")


# --- Entry Point --------------------------------------------------------------

if __name__ == "__main__":
    app()
