"""Configuration management for newsdesk."""

from .loader import (
    Config,
    load_config,
    load_jobs,
    load_sources,
    save_config,
    save_jobs,
    save_sources,
)
from .models import (
    BatchConfig,
    ConfigModel,
    IngestionConfig,
    JobConfig,
    LoggingConfig,
    PostgresConfig,
    SchedulerConfig,
    SourceConfig,
    WordPressConfig,
)

__all__ = [
    "BatchConfig",
    "Config",
    "ConfigModel",
    "IngestionConfig",
    "JobConfig",
    "LoggingConfig",
    "PostgresConfig",
    "SchedulerConfig",
    "SourceConfig",
    "WordPressConfig",
    "load_config",
    "load_jobs",
    "load_sources",
    "save_config",
    "save_jobs",
    "save_sources",
]
