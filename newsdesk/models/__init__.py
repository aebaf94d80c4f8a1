"""Data models for the editorial content pipeline."""

from .batch import BatchOperationResult, ItemError
from .content_item import ContentItem, Destination, DraftContent, ItemStatus
from .scheduled_job import JobExecution, JobParameters, JobSettings, PromptDefinition, ScheduledJob
from .source import Source

__all__ = [
    "BatchOperationResult",
    "ContentItem",
    "Destination",
    "DraftContent",
    "ItemError",
    "ItemStatus",
    "JobExecution",
    "JobParameters",
    "JobSettings",
    "PromptDefinition",
    "ScheduledJob",
    "Source",
]
