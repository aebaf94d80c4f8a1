"""Init command implementation."""

import asyncio
from pathlib import Path
from typing import List, Tuple

import typer
from rich.panel import Panel

from ..config import (
    Config,
    ConfigModel,
    JobConfig,
    SourceConfig,
    load_jobs,
    save_config,
    save_jobs,
    save_sources,
)
from ..config.loader import DEFAULT_CONFIG_DIR
from ..db import init_database, validate_connection
from ..db.sources import SourceManager
from ..errors import NewsdeskError
from ..models import JobSettings
from ..runtime import Runtime
from .common import console


def create_default_sources() -> List[SourceConfig]:
    """Default mortgage and housing news feeds."""
    return [
        SourceConfig(
            name="HousingWire",
            url="https://www.housingwire.com/feed/",
            weight=1.0,
        ),
        SourceConfig(
            name="Mortgage News Daily",
            url="https://www.mortgagenewsdaily.com/rss/news",
            weight=0.9,
        ),
        SourceConfig(
            name="Calculated Risk",
            url="https://www.calculatedriskblog.com/feeds/posts/default",
            weight=0.8,
        ),
    ]


def create_default_jobs() -> List[JobConfig]:
    """Seed jobs: a daily search import plus disabled weekly backfills."""
    return [
        JobConfig(
            name="news-import-daily",
            job_type="news_import",
            schedule="0 8 * * *",
            parameters={
                "min_score": 0.6,
                "limit": 10,
                "keywords": ["mortgage rates", "housing market"],
            },
        ),
        JobConfig(
            name="word-count-backfill",
            job_type="word_count_backfill",
            schedule="0 3 * * 0",
            is_enabled=False,
        ),
        JobConfig(
            name="clean-content-backfill",
            job_type="clean_content_backfill",
            schedule="30 3 * * 0",
            is_enabled=False,
        ),
    ]


async def seed_database(
    config: Config, sources: List[SourceConfig], jobs: List[JobConfig]
) -> Tuple[int, int]:
    """Sync sources and upsert seed jobs; jobs whose type is unavailable are skipped."""
    seeded = 0
    async with Runtime(config) as runtime:
        synced = await SourceManager(runtime.store.pool).sync_sources(sources)
        for job in jobs:
            if job.job_type not in runtime.registry.handlers:
                console.print(f"[yellow]⚠️  Skipping '{job.name}': job type {job.job_type} unavailable[/yellow]")
                continue
            await runtime.registry.upsert(
                job.name,
                JobSettings(
                    job_type=job.job_type,
                    schedule=job.schedule,
                    is_enabled=job.is_enabled,
                    parameters=job.parameters,
                ),
            )
            seeded += 1
    return len(synced), seeded


def init_command(
    config_dir: Path = typer.Option(
        DEFAULT_CONFIG_DIR,
        "--config-dir",
        "-c",
        help="Configuration directory",
    ),
    db_host: str = typer.Option("localhost", "--db-host", help="Postgres host"),
    db_port: int = typer.Option(5432, "--db-port", help="Postgres port"),
    db_name: str = typer.Option("newsdesk", "--db-name", help="Database name"),
    db_user: str = typer.Option("newsdesk", "--db-user", help="Database user"),
    seed: bool = typer.Option(
        True,
        "--seed/--no-seed",
        help="Seed default feed sources and scheduled jobs",
    ),
) -> None:
    """Initialize newsdesk configuration and database."""
    console.print(Panel.fit("📰 Newsdesk - Initialization", style="bold blue"))

    config_dir.mkdir(parents=True, exist_ok=True)
    config_path = config_dir / "config.yaml"
    sources_path = config_dir / "sources.yaml"
    jobs_path = config_dir / "jobs.yaml"

    config_model = ConfigModel(
        postgres={
            "host": db_host,
            "port": db_port,
            "database": db_name,
            "user": db_user,
            "password_env": "NEWSDESK_DB_PASSWORD",
        },
    )
    save_config(config_model, config_path)
    console.print(f"✅ Created config: {config_path}")

    sources = create_default_sources() if seed else []
    save_sources(sources, sources_path)
    console.print(f"✅ Created sources: {sources_path} ({len(sources)} sources)")

    if not jobs_path.exists():
        save_jobs(create_default_jobs() if seed else [], jobs_path)
        console.print(f"✅ Created jobs: {jobs_path}")
    else:
        console.print(f"Keeping existing jobs file: {jobs_path}")

    console.print("\n[bold]Testing database connection...[/bold]")
    db_config = Config(config_path).get_db_config()

    if not asyncio.run(validate_connection(db_config)):
        console.print(
            "[red]❌ Database connection failed![/red]\n"
            "Please ensure Postgres is running and credentials are correct.\n"
            "Set the password via environment variable: [bold]export NEWSDESK_DB_PASSWORD=your_password[/bold]"
        )
        raise typer.Exit(1)

    console.print("✅ Database connection successful")

    console.print("\n[bold]Initializing database schema...[/bold]")
    try:
        asyncio.run(init_database(db_config))
        console.print("✅ Database schema initialized")
    except Exception as e:
        console.print(f"[red]❌ Failed to initialize database: {e}[/red]")
        raise typer.Exit(1)

    try:
        synced, seeded = asyncio.run(
            seed_database(Config(config_path), sources, load_jobs(jobs_path))
        )
    except (NewsdeskError, ValueError) as e:
        console.print(f"[red]❌ Failed to seed database: {e}[/red]")
        raise typer.Exit(1)
    console.print(f"✅ Synced {synced} sources and seeded {seeded} scheduled jobs")

    console.print(
        Panel(
            f"[green]✅ Newsdesk initialized successfully![/green]\n\n"
            f"Configuration: {config_path}\n"
            f"Sources: {sources_path}\n"
            f"Jobs: {jobs_path}\n\n"
            f"Next steps:\n"
            f"1. Set database password: [bold]export NEWSDESK_DB_PASSWORD=your_password[/bold]\n"
            f"2. Set search API key: [bold]export PERPLEXITY_API_KEY=your_key[/bold]\n"
            f"3. Run: [bold]newsdesk jobs run news-import-daily[/bold]",
            style="green",
        )
    )
