"""Storage for the editorial content pipeline."""

from .base import ContentStore, JobStore
from .connection import get_connection, open_pool
from .init import init_database, validate_connection
from .memory import MemoryStore, new_id
from .postgres import PostgresStore

__all__ = [
    "ContentStore",
    "JobStore",
    "MemoryStore",
    "PostgresStore",
    "get_connection",
    "init_database",
    "new_id",
    "open_pool",
    "validate_connection",
]
