"""PostgreSQL-backed store combining content and job storage."""

from typing import Any, Dict

from psycopg_pool import AsyncConnectionPool

from .connection import open_pool
from .items import PostgresContentStore
from .jobs import PostgresJobStore


class PostgresStore(PostgresContentStore, PostgresJobStore):
    """Both store interfaces over one connection pool."""

    def __init__(self, pool: AsyncConnectionPool) -> None:
        self.pool = pool

    @classmethod
    async def connect(cls, config: Dict[str, Any]) -> "PostgresStore":
        """Open a pool from a postgres config dict."""
        return cls(await open_pool(config))

    async def close(self) -> None:
        await self.pool.close()
