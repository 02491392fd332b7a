import asyncio
from pathlib import Path

import click
from rich.console import Console
from rich.progress import Progress
from rich.table import Table

from scribble.config import Config
from scribble.logging import UVICORN_LOG_CONFIG, configure_logging

console = Console()


def _require_config(ctx) -> Config:
    if "config_error" in ctx.obj:
        console.print(f"[red]Error:[/red] {ctx.obj['config_error']}")
        raise SystemExit(1)
    return ctx.obj["config"]


@click.group(invoke_without_command=True)
@click.pass_context
def main(ctx):
    """scribble - hybrid search over your notes"""
    ctx.ensure_object(dict)
    try:
        ctx.obj["config"] = Config()
        configure_logging(ctx.obj["config"].log_level)
    except ValueError as e:
        ctx.obj["config_error"] = str(e)

    if ctx.invoked_subcommand is None:
        console.print("[bold]scribble[/bold] - hybrid search over your notes\n")
        console.print("Run [cyan]scribble index PATH --owner ID[/cyan] to index a notes folder.")
        console.print("\nUse [cyan]scribble --help[/cyan] for all commands.")


@main.command()
@click.pass_context
def status(ctx):
    """Show configuration and index size."""
    config = _require_config(ctx)
    stats = asyncio.run(_stats(config))

    console.print("[bold]scribble status[/bold]")
    console.print()
    console.print(f"Search db: [cyan]{config.search_db_path}[/cyan]")
    console.print(f"Embedding model: {config.embedding_model or '[yellow]not configured (lexical only)[/yellow]'}")
    console.print(f"Documents indexed: {stats['documents']}")
    console.print(f"RRF k={config.rrf_k}, weights lexical={config.lexical_weight} vector={config.vector_weight}")


async def _stats(config: Config) -> dict:
    from scribble.search.service import SearchService

    service = SearchService(config)
    await service.connect()
    try:
        return await service.get_stats()
    finally:
        await service.close()


@main.command()
@click.option("--host", default="127.0.0.1", help="Host to bind to")
@click.option("--port", default=8000, help="Port to bind to")
@click.option("--reload", is_flag=True, help="Enable auto-reload for development")
@click.pass_context
def serve(ctx, host: str, port: int, reload: bool):
    """Start the search API server."""
    _require_config(ctx)

    import uvicorn

    console.print(f"[bold]scribble server[/bold] starting on http://{host}:{port}")
    console.print("[dim]Press Ctrl+C to stop[/dim]")
    console.print()

    uvicorn.run(
        "scribble.server.app:app",
        host=host,
        port=port,
        reload=reload,
        log_config=UVICORN_LOG_CONFIG,
    )


@main.command()
@click.argument("path", type=click.Path(exists=True, file_okay=False, path_type=Path))
@click.option("--owner", "owner_id", required=True, help="Owner the notes belong to")
@click.option("--source", default="notes", show_default=True, help="Source label stored with each note")
@click.pass_context
def index(ctx, path: Path, owner_id: str, source: str):
    """Index every markdown file under PATH."""
    config = _require_config(ctx)
    indexed, total = asyncio.run(_index(config, path, owner_id, source))
    color = "green" if indexed == total else "yellow"
    console.print(f"[{color}]Indexed {indexed}/{total} notes[/{color}] for owner [cyan]{owner_id}[/cyan]")


async def _index(config: Config, path: Path, owner_id: str, source: str) -> tuple[int, int]:
    from scribble.search.service import SearchService
    from scribble.sources.markdown import MarkdownSource

    docs = await MarkdownSource(path, owner_id, source).scan()

    service = SearchService(config)
    await service.connect()
    try:
        with Progress(console=console, transient=True) as progress:
            task = progress.add_task("Indexing", total=len(docs))
            indexed = await service.bulk_index(
                docs, progress_callback=lambda done, total: progress.update(task, completed=done)
            )
    finally:
        await service.close()
    return indexed, len(docs)


@main.command()
@click.argument("query")
@click.option("--owner", "owner_id", required=True, help="Only search this owner's notes")
@click.option("-n", "--limit", default=10, show_default=True, type=click.IntRange(min=1))
@click.option("--source", "sources", multiple=True, help="Restrict to a source (repeatable)")
@click.pass_context
def search(ctx, query: str, owner_id: str, limit: int, sources: tuple[str, ...]):
    """Run a hybrid search and print ranked results."""
    config = _require_config(ctx)
    results = asyncio.run(_search(config, query, owner_id, limit, set(sources) or None))

    if not results:
        console.print("[dim]No results[/dim]")
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("#", justify="right")
    table.add_column("Score", justify="right")
    table.add_column("Title")
    table.add_column("Excerpt", overflow="fold")
    for i, r in enumerate(results, 1):
        table.add_row(str(i), f"{r.score:.5f}", r.title, r.excerpt.replace("\n", " "))
    console.print(table)


async def _search(config: Config, query: str, owner_id: str, limit: int, sources: set[str] | None):
    from scribble.search.service import SearchService

    service = SearchService(config)
    await service.connect()
    try:
        return await service.hybrid_search(query, owner_id, limit, sources)
    finally:
        await service.close()


if __name__ == "__main__":
    main()
