"""Batch processing over content items."""

from .operations import (
    BatchOperation,
    CleanContentOperation,
    SyncOperation,
    WordCountOperation,
)
from .processor import BatchProcessor, partition

__all__ = [
    "BatchOperation",
    "BatchProcessor",
    "CleanContentOperation",
    "SyncOperation",
    "WordCountOperation",
    "partition",
]
