"""Main CLI application."""

from pathlib import Path

import typer
from dotenv import load_dotenv

# Load .env file if it exists
load_dotenv()

from ..config import Config
from ..logging_config import setup_logging
from .init import init_command
from .items import items_app
from .jobs import jobs_app
from .scheduler import scheduler_command
from .sources import sources_app

app = typer.Typer(
    name="newsdesk",
    help="Newsdesk - editorial content pipeline for news items and articles",
    no_args_is_help=True,
)


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log at DEBUG level"),
) -> None:
    """Configure logging from the config file when one exists."""
    config = Config()
    level, log_dir, retention_days = "INFO", None, 30
    if config.config_path.exists():
        try:
            logging_config = config.config.logging
        except ValueError:
            # Commands that need the config report the problem themselves.
            logging_config = None
        if logging_config is not None:
            level = logging_config.level
            log_dir = Path(logging_config.log_dir).expanduser() if logging_config.log_dir else None
            retention_days = logging_config.retention_days
    setup_logging("DEBUG" if verbose else level, log_dir, retention_days)


# Register commands
app.command("init")(init_command)
app.command("scheduler")(scheduler_command)
app.add_typer(jobs_app, name="jobs", help="Manage scheduled jobs")
app.add_typer(items_app, name="items", help="Work with content items")
app.add_typer(sources_app, name="sources", help="Manage feed sources")


if __name__ == "__main__":
    app()
