"""Content item commands: backfills, workflow transitions and document import."""

from pathlib import Path
from typing import List, Optional

import pendulum
import typer
from rich.progress import BarColumn, MofNCompleteColumn, Progress, TextColumn

from ..errors import ItemNotFoundError, ValidationError
from ..ingestion import import_document
from ..models import DraftContent, ItemStatus
from ..runtime import Runtime
from .common import console, print_result, run_with_runtime

items_app = typer.Typer(help="Work with content items")

ACTIONS = {
    "approve": ItemStatus.APPROVED_FOR_EDITING,
    "draft": ItemStatus.DRAFTED,
    "schedule": ItemStatus.SCHEDULED,
    "publish": ItemStatus.PUBLISHED,
    "dismiss": ItemStatus.DISMISSED,
}


@items_app.command("backfill")
def items_backfill(
    operation: str = typer.Option(
        ..., "--operation", "-o", help="word-count, clean-content or sync"
    ),
    status: Optional[str] = typer.Option(None, "--status", "-s", help="Only items in this status"),
    batch_size: Optional[int] = typer.Option(None, "--batch-size", "-b", min=1, help="Items per group"),
    limit: Optional[int] = typer.Option(None, "--limit", "-n", min=1, help="Process at most N items"),
) -> None:
    """Apply a batch operation to stored items."""
    try:
        wanted = ItemStatus.from_legacy(status) if status else None
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)

    with Progress(
        TextColumn("[bold blue]{task.description}"),
        BarColumn(),
        MofNCompleteColumn(),
        console=console,
    ) as progress:
        task = progress.add_task(operation, total=None)

        def on_progress(done: int, total: int) -> None:
            progress.update(task, completed=done, total=total)

        async def action(runtime: Runtime):
            op = runtime.operations.get(operation)
            if op is None:
                available = ", ".join(sorted(runtime.operations))
                raise ValidationError(f"Unknown operation '{operation}' (available: {available})")
            items = await runtime.store.filter_items(status=wanted, limit=limit)
            return await runtime.processor.run(items, op, batch_size)

        result = run_with_runtime(action, on_progress=on_progress)

    print_result(result)


@items_app.command("transition")
def items_transition(
    item_id: str = typer.Argument(..., help="Item id"),
    action: str = typer.Argument(..., help="approve, draft, schedule, publish or dismiss"),
    title: Optional[str] = typer.Option(None, "--title", help="Draft title"),
    summary: Optional[str] = typer.Option(None, "--summary", help="Draft summary"),
    cta: Optional[str] = typer.Option(None, "--cta", help="Draft call to action"),
    content_file: Optional[Path] = typer.Option(
        None, "--content-file", exists=True, dir_okay=False, help="File holding the full draft"
    ),
    destination: List[str] = typer.Option(
        [], "--destination", "-d", help="Destination (mpdaily, magazine, website); repeatable"
    ),
    publish_at: Optional[str] = typer.Option(None, "--at", help="Publish time (ISO 8601)"),
    slot: Optional[str] = typer.Option(None, "--slot", help="Scheduled slot name"),
    confirm: List[str] = typer.Option(
        [], "--confirm", help="Destination that confirmed publication; repeatable"
    ),
) -> None:
    """Move an item to the next workflow state."""
    target = ACTIONS.get(action.lower())
    if target is None:
        console.print(f"[red]Unknown action '{action}'. Use: {', '.join(ACTIONS)}[/red]")
        raise typer.Exit(1)

    payload = {}
    if target == ItemStatus.DRAFTED:
        payload["draft"] = DraftContent(
            title=title or "",
            summary=summary or "",
            cta=cta or "",
            full_content=content_file.read_text() if content_file else "",
        )
        payload["destinations"] = destination
    elif target == ItemStatus.SCHEDULED:
        payload["publish_at"] = pendulum.parse(publish_at) if publish_at else None
        payload["slot"] = slot
    elif target == ItemStatus.PUBLISHED:
        payload["confirmed_destinations"] = confirm

    async def run(runtime: Runtime):
        return await runtime.workflow.transition(item_id, target, **payload)

    item = run_with_runtime(run)
    console.print(f"[green]✅ {item.id}: {item.status}[/green]")


@items_app.command("show")
def items_show(item_id: str = typer.Argument(..., help="Item id")) -> None:
    """Show one item."""

    async def action(runtime: Runtime):
        item = await runtime.store.get_item(item_id)
        if item is None:
            raise ItemNotFoundError(item_id)
        return item

    item = run_with_runtime(action)
    console.print(f"[bold cyan]{item.headline or '(no headline)'}[/bold cyan]")
    console.print(f"  Id: {item.id}")
    console.print(f"  Status: {item.status}")
    console.print(f"  Source: {item.source or '-'}   URL: {item.url or '-'}")
    console.print(f"  Words: {item.word_count}   Hash: {item.content_hash or '-'}")
    if item.duplicate_of:
        console.print(f"  [yellow]Duplicate of {item.duplicate_of}[/yellow]")
    if item.destinations:
        console.print(f"  Destinations: {', '.join(d.value for d in item.destinations)}")
    if item.publish_at or item.scheduled_slot:
        console.print(f"  Scheduled: {item.publish_at or ''} {item.scheduled_slot or ''}".rstrip())
    if item.clean_content:
        preview = item.clean_content[:300]
        console.print(f"\n{preview}{'…' if len(item.clean_content) > 300 else ''}")


@items_app.command("import-document")
def items_import_document(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="Text, Markdown or HTML file"),
    headline: Optional[str] = typer.Option(None, "--headline", help="Headline (default: first line)"),
    url: Optional[str] = typer.Option(None, "--url", help="Canonical URL (default: file URI)"),
) -> None:
    """Ingest a document as a discovered item."""

    async def action(runtime: Runtime):
        return await import_document(
            path, runtime.ingest_operation(min_score=0.0), headline=headline, url=url
        )

    try:
        result = run_with_runtime(action)
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)

    if result.outcome == "duplicate":
        console.print(f"[yellow]Duplicate of {result.canonical_id}; not stored.[/yellow]")
    else:
        console.print(f"[green]✅ Imported as {result.item_id}[/green]")
