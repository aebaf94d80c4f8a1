"""Feed source management commands."""

import asyncio
from typing import Optional

import httpx
import typer
from rich.table import Table

from ..config import Config, SourceConfig, load_sources, save_sources
from ..db.sources import SourceManager
from ..ingestion import FeedSource
from ..runtime import Runtime
from .common import console, load_config, run_with_runtime

sources_app = typer.Typer(help="Manage feed sources")


def _load_or_exit(config: Config) -> list:
    try:
        return load_sources(config.sources_path)
    except FileNotFoundError:
        console.print("[red]Sources file not found. Run 'newsdesk init' first.[/red]")
        raise typer.Exit(1)


@sources_app.command("list")
def sources_list() -> None:
    """List configured sources."""
    sources = _load_or_exit(Config())

    if not sources:
        console.print("[yellow]No sources configured.[/yellow]")
        return

    table = Table(title="Configured Sources")
    table.add_column("Name", style="cyan")
    table.add_column("Kind", style="magenta")
    table.add_column("Weight", style="green")
    table.add_column("Enabled", style="yellow")
    table.add_column("URL", style="blue")

    for source in sources:
        table.add_row(
            source.name,
            source.kind,
            f"{source.weight:.1f}",
            "✓" if source.enabled else "✗",
            source.url,
        )

    console.print(table)


@sources_app.command("add")
def sources_add(
    name: str = typer.Option(..., "--name", "-n", help="Source name"),
    url: str = typer.Option(..., "--url", "-u", help="Feed URL"),
    kind: str = typer.Option("rss", "--kind", "-k", help="Source kind"),
    weight: float = typer.Option(
        1.0,
        "--weight",
        "-w",
        help="Default relevance score for items from this source (0.0-1.0)",
        min=0.0,
        max=1.0,
    ),
) -> None:
    """Add a feed source."""
    config = Config()
    try:
        sources = load_sources(config.sources_path)
    except FileNotFoundError:
        sources = []

    if any(s.name == name or s.url == url for s in sources):
        console.print(f"[red]Source '{name}' or URL already exists.[/red]")
        raise typer.Exit(1)

    sources.append(SourceConfig(name=name, url=url, kind=kind, weight=weight, enabled=True))
    save_sources(sources, config.sources_path)

    console.print(f"[green]✅ Added source: {name}[/green]")


@sources_app.command("remove")
def sources_remove(
    name: str = typer.Argument(..., help="Source name to remove"),
) -> None:
    """Remove a source."""
    config = Config()
    sources = _load_or_exit(config)

    remaining = [s for s in sources if s.name != name]
    if len(remaining) == len(sources):
        console.print(f"[red]Source '{name}' not found.[/red]")
        raise typer.Exit(1)

    save_sources(remaining, config.sources_path)
    console.print(f"[green]✅ Removed source: {name}[/green]")


@sources_app.command("test")
def sources_test(
    name: Optional[str] = typer.Argument(None, help="Source name to test (or test all)"),
    timeout: float = typer.Option(10.0, "--timeout", help="Seconds per feed"),
) -> None:
    """Fetch each feed and report how many entries parse."""
    sources = _load_or_exit(Config())

    if name:
        sources = [s for s in sources if s.name == name]
        if not sources:
            console.print(f"[red]Source '{name}' not found.[/red]")
            raise typer.Exit(1)

    fetcher = FeedSource([], timeout=timeout)

    async def check(source: SourceConfig) -> Optional[str]:
        try:
            candidates = await fetcher.fetch_feed(source)
        except (httpx.HTTPError, ValueError) as e:
            return str(e) or e.__class__.__name__
        console.print(f"[green]✅ {source.name}: {len(candidates)} entries[/green]")
        return None

    failed = 0
    for source in sources:
        if not source.enabled:
            console.print(f"[yellow]⚠️  {source.name}: Disabled[/yellow]")
            continue
        if source.kind != "rss":
            console.print(f"[yellow]⚠️  {source.name}: {source.kind} sources are not feeds[/yellow]")
            continue
        error = asyncio.run(check(source))
        if error:
            failed += 1
            console.print(f"[red]❌ {source.name}: Failed - {error}[/red]")

    if failed:
        raise typer.Exit(1)


@sources_app.command("sync")
def sources_sync() -> None:
    """Copy sources.yaml into the database sources table."""
    sources = _load_or_exit(load_config())

    async def action(runtime: Runtime):
        manager = SourceManager(runtime.store.pool)
        await manager.sync_sources(sources)
        return await manager.get_sources()

    stored = run_with_runtime(action)

    table = Table(title="Database Sources")
    table.add_column("Name", style="cyan")
    table.add_column("Kind", style="magenta")
    table.add_column("Enabled", style="yellow")
    table.add_column("Id", style="dim")
    for source in stored:
        table.add_row(source.name, source.kind, "✓" if source.enabled else "✗", source.id or "")
    console.print(table)
    console.print(f"[green]✅ Synced {len(sources)} sources[/green]")
