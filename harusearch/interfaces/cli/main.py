"""
CLI Main - Typer-based command-line interface.

Usage:
    harusearch init
    harusearch search "romance" --user user_123
    harusearch chat-search chat_456 "dinner plans" --user user_123
    harusearch tags --query rom
    harusearch history --user user_123
    harusearch serve
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

import typer
from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

app = typer.Typer(
    name="harusearch",
    help="HaruSearch - Companion platform search",
    add_completion=False,
)
console = Console()


@app.callback()
def _configure(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
) -> None:
    """Configure logging for every command."""
    from harusearch.config import get_settings

    level = "DEBUG" if verbose else get_settings().log_level
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _repository(db_path: Path | None = None):
    """Build a repository from settings."""
    from harusearch.adapters.sqlite import SQLiteRepository
    from harusearch.config import get_settings

    settings = get_settings()
    return SQLiteRepository(
        db_path or settings.db_path,
        pool_size=settings.db_pool_size,
        query_timeout=settings.db_query_timeout,
    )


@app.command()
def search(
    query: str = typer.Argument(..., help="Search query"),
    user: str = typer.Option(..., "--user", "-u", help="Caller user ID"),
) -> None:
    """Search companions, users, messages and checkpoints."""
    asyncio.run(_search_async(query, user))


async def _search_async(query: str, user: str) -> None:
    """Async global search implementation."""
    from harusearch.config import get_settings
    from harusearch.domains.search import GlobalSearchOrchestrator

    repo = _repository()

    try:
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=console,
            transient=True,
        ) as progress:
            progress.add_task("Searching...", total=None)
            orchestrator = GlobalSearchOrchestrator.from_repository(repo, get_settings())
            results = await orchestrator.global_search(query, user)

        console.print(f"\n[yellow]Results for:[/yellow] {query}  [dim]({results.total} total)[/dim]\n")

        if results.companions:
            table = Table(title="Companions")
            table.add_column("Name", style="cyan")
            table.add_column("Tags", style="magenta")
            table.add_column("Public")
            table.add_column("Creator", style="dim")
            for c in results.companions:
                table.add_row(
                    c.name,
                    ", ".join(t.name for t in c.tags),
                    "yes" if c.is_public else "no",
                    c.creator.display_name or c.creator.username or "",
                )
            console.print(table)

        if results.users:
            table = Table(title="Users")
            table.add_column("Username", style="cyan")
            table.add_column("Display Name")
            table.add_column("Bio", style="dim")
            for u in results.users:
                table.add_row(u.username or "", u.display_name or "", (u.bio or "")[:60])
            console.print(table)

        if results.messages:
            table = Table(title="Messages")
            table.add_column("Chat", style="cyan")
            table.add_column("Companion")
            table.add_column("Content")
            table.add_column("Sent", style="dim")
            for m in results.messages:
                table.add_row(
                    m.chat.title or m.chat.id,
                    m.chat.companion.name,
                    m.content[:80],
                    m.created_at.strftime("%Y-%m-%d %H:%M"),
                )
            console.print(table)

        if results.checkpoints:
            table = Table(title="Checkpoints")
            table.add_column("Title", style="cyan")
            table.add_column("Uses", justify="right")
            table.add_column("Public")
            for cp in results.checkpoints:
                table.add_row(cp.title, str(cp.usage_count), "yes" if cp.is_public else "no")
            console.print(table)

        if not results.total:
            console.print("[dim]No results.[/dim]")

    finally:
        await repo.close()


@app.command("chat-search")
def chat_search(
    chat_id: str = typer.Argument(..., help="Chat ID"),
    query: str = typer.Argument(..., help="Search query"),
    user: str = typer.Option(..., "--user", "-u", help="Caller user ID (must own the chat)"),
) -> None:
    """Search messages within one chat."""
    asyncio.run(_chat_search_async(chat_id, query, user))


async def _chat_search_async(chat_id: str, query: str, user: str) -> None:
    """Async chat search implementation."""
    from harusearch.config import HaruSearchError, get_settings
    from harusearch.domains.search import ChatScopedSearcher

    repo = _repository()

    try:
        searcher = ChatScopedSearcher(repo, limit=get_settings().chat_search_limit)
        results = await searcher.search_within_chat(chat_id, query, user)

        table = Table(title=f"Messages in {chat_id}")
        table.add_column("Sender", style="cyan")
        table.add_column("Content")
        table.add_column("Sent", style="dim")
        for m in results:
            table.add_row(
                m.sender.display_name or m.sender.username or m.sender.id,
                m.content[:100],
                m.created_at.strftime("%Y-%m-%d %H:%M"),
            )
        console.print(table)

    except HaruSearchError as e:
        console.print(f"[red]Error:[/red] {e.message}")
        raise typer.Exit(1)
    finally:
        await repo.close()


@app.command()
def tags(
    query: str | None = typer.Option(None, "--query", "-q", help="Filter by name"),
) -> None:
    """List tags with companion counts."""
    asyncio.run(_tags_async(query))


async def _tags_async(query: str | None) -> None:
    """Async tag listing implementation."""
    from harusearch.config import get_settings
    from harusearch.domains.tags import TagCatalogService

    repo = _repository()

    try:
        catalog = TagCatalogService(repo, prefix_limit=get_settings().tag_search_limit)
        results = (
            await catalog.search_tags_by_prefix(query)
            if query is not None
            else await catalog.list_all_tags()
        )

        table = Table(title="Tags")
        table.add_column("Name", style="cyan")
        table.add_column("Companions", justify="right", style="green")
        table.add_column("Description", style="dim")
        for tag in results:
            table.add_row(tag.name, str(tag.companion_count), tag.description or "")
        console.print(table)

    finally:
        await repo.close()


@app.command()
def history(
    user: str = typer.Option(..., "--user", "-u", help="Caller user ID"),
    clear: bool = typer.Option(False, "--clear", help="Clear the history"),
) -> None:
    """Show or clear a caller's search history."""
    asyncio.run(_history_async(user, clear))


async def _history_async(user: str, clear: bool) -> None:
    """Async history implementation."""
    from harusearch.config import get_settings
    from harusearch.domains.search import SearchHistoryService

    settings = get_settings()
    repo = _repository()

    try:
        service = SearchHistoryService(
            repo,
            max_entries=settings.search_history_max_entries,
            recent_limit=settings.search_recent_limit,
        )

        if clear:
            removed = await service.clear(user)
            console.print(f"[green]Removed {removed} entries[/green]")
            return

        entries = await service.entries(user)
        table = Table(title=f"Search history for {user}")
        table.add_column("Query", style="cyan")
        table.add_column("Category")
        table.add_column("When", style="dim")
        for entry in entries:
            table.add_row(
                entry.query,
                entry.category.value if entry.category else "",
                entry.created_at.strftime("%Y-%m-%d %H:%M"),
            )
        console.print(table)

    finally:
        await repo.close()


@app.command()
def serve(
    host: str | None = typer.Option(None, "--host", "-h", help="Host to bind (default: api_host)"),
    port: int | None = typer.Option(None, "--port", "-p", help="Port to bind (default: api_port)"),
    reload: bool = typer.Option(False, "--reload", "-r", help="Enable auto-reload"),
) -> None:
    """Start the API server."""
    import uvicorn

    from harusearch.config import get_settings

    settings = get_settings()
    host = host or settings.api_host
    port = port or settings.api_port

    console.print("\n[green]Starting HaruSearch API server[/green]")
    console.print(f"[dim]http://{host}:{port}[/dim]\n")

    uvicorn.run(
        "harusearch.interfaces.api:create_app",
        host=host,
        port=port,
        reload=reload,
        factory=True,
    )


@app.command()
def init(
    db_path: Path | None = typer.Option(None, "--db", "-d", help="Database file"),
) -> None:
    """Create the database schema and search indexes."""
    asyncio.run(_init_async(db_path))


async def _init_async(db_path: Path | None) -> None:
    """Async initialization."""
    repo = _repository(db_path)

    try:
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=console,
        ) as progress:
            progress.add_task("Initializing SQLite database...", total=None)
            await repo.initialize()
    finally:
        await repo.close()

    console.print("\n[green]Initialization complete![/green]")
    console.print(f"[dim]Database: {repo.db_path}[/dim]")


@app.command()
def version() -> None:
    """Show version information."""
    from harusearch import __version__

    console.print(f"HaruSearch v{__version__}")


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
