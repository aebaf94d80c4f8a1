"""Scheduler command."""

from typing import Optional

import typer

from ..runtime import Runtime
from .common import console, load_config, print_result, run_with_runtime


def scheduler_command(
    once: bool = typer.Option(False, "--once", help="Run due jobs once and exit"),
    interval: Optional[float] = typer.Option(
        None, "--interval", "-i", min=1.0, help="Polling interval in seconds"
    ),
) -> None:
    """Run enabled jobs when their cron schedule comes due."""
    poll = interval or load_config().config.scheduler.poll_interval_seconds

    async def action(runtime: Runtime):
        if once:
            return await runtime.scheduler.run_due()
        console.print(f"[bold]Scheduler running[/bold] (every {poll:.0f}s, Ctrl+C to stop)")
        await runtime.scheduler.run_forever(poll)

    results = run_with_runtime(action)
    if once:
        if not results:
            console.print("[dim]No jobs due.[/dim]")
        for name, result in results.items():
            console.print(f"\n[bold cyan]{name}[/bold cyan]")
            if result is None:
                console.print("[red]❌ Failed; see logs[/red]")
            else:
                print_result(result)
