"""Helpers shared by CLI commands."""

import asyncio
from typing import Any, Awaitable, Callable, TypeVar

import typer
from rich.console import Console
from rich.table import Table

from ..config import Config
from ..errors import NewsdeskError
from ..models import BatchOperationResult
from ..runtime import Runtime

console = Console()

T = TypeVar("T")


def load_config() -> Config:
    """Load config or exit with a hint to run init."""
    config = Config()
    try:
        config.config
    except FileNotFoundError:
        console.print(f"[red]Config not found at {config.config_path}. Run 'newsdesk init' first.[/red]")
        raise typer.Exit(1)
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)
    return config


def run_with_runtime(action: Callable[[Runtime], Awaitable[T]], **runtime_kwargs: Any) -> T:
    """Run ``action`` inside a :class:`Runtime`, mapping domain errors to exit code 1."""
    config = load_config()

    async def _main() -> T:
        async with Runtime(config, **runtime_kwargs) as runtime:
            return await action(runtime)

    try:
        return asyncio.run(_main())
    except NewsdeskError as e:
        console.print(f"[red]❌ {e}[/red]")
        raise typer.Exit(1)
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted by user[/yellow]")
        raise typer.Exit(1)


def print_result(result: BatchOperationResult, max_errors: int = 20) -> None:
    """Summarize a batch run."""
    colour = "green" if result.ok else "yellow"
    console.print(
        f"[{colour}]{result.operation}: {result.success_count} succeeded, "
        f"{result.error_count} failed[/{colour}]"
    )

    if result.outcomes:
        table = Table(title="Outcomes")
        table.add_column("Outcome", style="cyan")
        table.add_column("Items", style="green", justify="right")
        for outcome, count in sorted(result.outcomes.items()):
            table.add_row(outcome, str(count))
        console.print(table)

    if result.errors:
        console.print("\n[bold red]Failed items:[/bold red]")
        for error in result.errors[:max_errors]:
            console.print(f"  - {error.item_id}: {error.reason}")
        if len(result.errors) > max_errors:
            console.print(f"  ... and {len(result.errors) - max_errors} more")
