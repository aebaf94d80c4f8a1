"""Scheduled job registry, handlers and scheduler."""

from .handlers import BackfillHandler, JobHandler, NewsImportHandler
from .registry import DEFAULT_IMPORT_SCHEDULE, JobRegistry, validate_parameters, validate_schedule
from .scheduler import JobScheduler

__all__ = [
    "BackfillHandler",
    "DEFAULT_IMPORT_SCHEDULE",
    "JobHandler",
    "JobRegistry",
    "JobScheduler",
    "NewsImportHandler",
    "validate_parameters",
    "validate_schedule",
]
