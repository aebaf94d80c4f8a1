"""Scheduled job commands."""

import json
from typing import List, Optional

import typer
from rich.table import Table

from ..errors import JobNotFoundError
from ..models import JobSettings
from ..runtime import Runtime
from .common import console, print_result, run_with_runtime

jobs_app = typer.Typer(help="Manage scheduled jobs")


def _format_time(value) -> str:
    return value.strftime("%Y-%m-%d %H:%M") if value else "never"


def _parse_params(values: List[str]) -> dict:
    """Parse KEY=VALUE pairs; values are read as JSON when possible."""
    params = {}
    for pair in values:
        if "=" not in pair:
            console.print(f"[red]Expected KEY=VALUE, got '{pair}'[/red]")
            raise typer.Exit(1)
        key, raw = pair.split("=", 1)
        try:
            params[key.strip()] = json.loads(raw)
        except json.JSONDecodeError:
            params[key.strip()] = raw
    return params


@jobs_app.command("list")
def jobs_list() -> None:
    """List scheduled jobs."""

    async def action(runtime: Runtime):
        return await runtime.registry.list()

    jobs = run_with_runtime(action)
    if not jobs:
        console.print("[yellow]No jobs configured.[/yellow]")
        return

    table = Table(title="Scheduled Jobs")
    table.add_column("Name", style="cyan")
    table.add_column("Type", style="magenta")
    table.add_column("Schedule", style="green")
    table.add_column("Enabled", style="yellow")
    table.add_column("Last run", style="blue")

    for job in jobs:
        table.add_row(
            job.name,
            job.job_type,
            job.schedule,
            "✓" if job.is_enabled else "✗",
            _format_time(job.last_run),
        )

    console.print(table)


@jobs_app.command("show")
def jobs_show(name: str = typer.Argument(..., help="Job name")) -> None:
    """Show one job's definition and last result."""

    async def action(runtime: Runtime):
        return await runtime.registry.get(name)

    job = run_with_runtime(action)
    console.print(f"[bold cyan]{job.name}[/bold cyan] ({job.job_type})")
    console.print(f"  Schedule: {job.schedule}")
    console.print(f"  Enabled: {'yes' if job.is_enabled else 'no'}")
    console.print(f"  Parameters: {json.dumps(job.parameters, sort_keys=True)}")
    console.print(f"  Last run: {_format_time(job.last_run)}")
    if job.last_run_result:
        console.print(f"  Last result: {json.dumps(job.last_run_result, sort_keys=True)}")


@jobs_app.command("upsert")
def jobs_upsert(
    name: str = typer.Argument(..., help="Job name"),
    schedule: Optional[str] = typer.Option(None, "--schedule", "-s", help="Cron expression"),
    job_type: Optional[str] = typer.Option(None, "--type", "-t", help="Job type"),
    enabled: Optional[bool] = typer.Option(None, "--enabled/--disabled", help="Enable or disable"),
    param: List[str] = typer.Option([], "--param", "-p", help="Parameter as KEY=VALUE (repeatable)"),
    replace_params: bool = typer.Option(
        False, "--replace-params", help="Replace stored parameters instead of merging"
    ),
) -> None:
    """Create a job or update it in place."""
    new_params = _parse_params(param)

    async def action(runtime: Runtime):
        parameters = None
        if new_params or replace_params:
            parameters = {}
            if not replace_params:
                try:
                    parameters.update((await runtime.registry.get(name)).parameters)
                except JobNotFoundError:
                    pass
            parameters.update(new_params)
        settings = JobSettings(
            job_type=job_type, schedule=schedule, is_enabled=enabled, parameters=parameters
        )
        return await runtime.registry.upsert(name, settings)

    job = run_with_runtime(action)
    console.print(f"[green]✅ Saved job '{job.name}' ({job.schedule})[/green]")


@jobs_app.command("toggle")
def jobs_toggle(
    name: str = typer.Argument(..., help="Job name"),
    enabled: Optional[bool] = typer.Option(None, "--on/--off", help="Set explicitly instead of flipping"),
) -> None:
    """Enable or disable schedule-driven runs."""

    async def action(runtime: Runtime):
        return await runtime.registry.toggle(name, enabled)

    job = run_with_runtime(action)
    state = "[green]enabled[/green]" if job.is_enabled else "[yellow]disabled[/yellow]"
    console.print(f"Job '{job.name}' {state}")


@jobs_app.command("run")
def jobs_run(name: str = typer.Argument(..., help="Job name")) -> None:
    """Run a job now, even if it is disabled."""

    async def action(runtime: Runtime):
        return await runtime.registry.trigger(name, triggered_by="manual")

    result = run_with_runtime(action)
    print_result(result)


@jobs_app.command("delete")
def jobs_delete(
    name: str = typer.Argument(..., help="Job name"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
) -> None:
    """Delete a job definition."""
    if not yes:
        typer.confirm(f"Delete job '{name}'?", abort=True)

    async def action(runtime: Runtime):
        return await runtime.registry.delete(name)

    if not run_with_runtime(action):
        console.print(f"[red]Job '{name}' not found.[/red]")
        raise typer.Exit(1)
    console.print(f"[green]✅ Deleted job: {name}[/green]")


@jobs_app.command("history")
def jobs_history(
    name: Optional[str] = typer.Argument(None, help="Job name (default: all jobs)"),
    limit: int = typer.Option(20, "--limit", "-n", min=1, help="Executions to show"),
) -> None:
    """Show recent job executions."""

    async def action(runtime: Runtime):
        return await runtime.registry.history(name, limit)

    executions = run_with_runtime(action)
    if not executions:
        console.print("[yellow]No executions recorded.[/yellow]")
        return

    styles = {"success": "green", "partial": "yellow", "error": "red", "running": "blue"}
    table = Table(title="Job Executions")
    table.add_column("Job", style="cyan")
    table.add_column("Started")
    table.add_column("Trigger", style="magenta")
    table.add_column("Status")
    table.add_column("Details")

    for execution in executions:
        style = styles.get(execution.status, "white")
        details = execution.error_message or (
            json.dumps(execution.summary, sort_keys=True) if execution.summary else ""
        )
        table.add_row(
            execution.job_name,
            _format_time(execution.started_at),
            execution.triggered_by,
            f"[{style}]{execution.status}[/{style}]",
            details,
        )

    console.print(table)
