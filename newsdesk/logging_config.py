"""Logging configuration for newsdesk."""

import logging
import logging.handlers
from datetime import datetime, timedelta
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler


def setup_logging(
    level: str = "INFO",
    log_dir: Optional[Path] = None,
    retention_days: int = 30,
    console: Optional[Console] = None,
) -> logging.Logger:
    """Configure console logging through rich, plus a daily file when log_dir is set.

    Args:
        level: Console log level name
        log_dir: Directory for log files (created if missing)
        retention_days: How many days of logs to keep
        console: Rich console to render to (stderr by default)
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)

    # Remove existing handlers (avoid duplicates)
    root_logger.handlers.clear()

    console_handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=False,
        rich_tracebacks=True,
    )
    console_handler.setLevel(getattr(logging, level.upper(), logging.INFO))
    console_handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))
    root_logger.addHandler(console_handler)

    if log_dir is not None:
        log_dir.mkdir(parents=True, exist_ok=True)
        cleanup_old_logs(log_dir, retention_days)

        log_file = log_dir / f"{datetime.now().strftime('%Y-%m-%d')}.log"
        file_handler = logging.handlers.TimedRotatingFileHandler(
            filename=log_file,
            when="midnight",
            interval=1,
            backupCount=retention_days,
            encoding="utf-8",
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(
            logging.Formatter(
                "%(asctime)s.%(msecs)03d [%(levelname)s] %(name)s: %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
        root_logger.addHandler(file_handler)

    # Third-party clients are chatty at DEBUG.
    for name in ("httpx", "httpcore", "openai", "psycopg.pool", "trafilatura"):
        logging.getLogger(name).setLevel(logging.WARNING)

    return root_logger


def cleanup_old_logs(log_dir: Path, retention_days: int) -> None:
    """Delete log files older than retention_days."""
    if not log_dir.exists():
        return

    cutoff_date = datetime.now() - timedelta(days=retention_days)

    for log_file in log_dir.glob("*.log"):
        try:
            # Parse YYYY-MM-DD.log format
            file_date = datetime.strptime(log_file.stem, "%Y-%m-%d")
            if file_date < cutoff_date:
                log_file.unlink()
                logging.debug("Deleted old log file: %s", log_file.name)
        except (ValueError, OSError):
            continue
