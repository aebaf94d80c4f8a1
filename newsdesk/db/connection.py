"""Database connection management."""

import os
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict

import psycopg
from psycopg.rows import dict_row
from psycopg_pool import AsyncConnectionPool


class DatabaseConfig:
    """Database configuration."""

    def __init__(self, config: Dict[str, Any]) -> None:
        """Initialize database config from dict."""
        self.host = config.get("host", "localhost")
        self.port = config.get("port", 5432)
        self.database = config.get("database", "newsdesk")
        self.user = config.get("user", "newsdesk")
        self.min_size = config.get("pool_min_size", 1)
        self.max_size = config.get("pool_max_size", 10)

        # Handle password from environment variable if specified
        password_env = config.get("password_env")
        if password_env and os.environ.get(password_env):
            self.password = os.environ[password_env]
        else:
            self.password = config.get("password") or ""

    @property
    def connection_string(self) -> str:
        """Get psycopg connection string."""
        return f"postgresql://{self.user}:{self.password}@{self.host}:{self.port}/{self.database}"


async def open_pool(config: Dict[str, Any]) -> AsyncConnectionPool:
    """Create and open an async connection pool.

    The caller owns the pool and must close it on shutdown.
    """
    db_config = DatabaseConfig(config)
    pool = AsyncConnectionPool(
        db_config.connection_string,
        min_size=db_config.min_size,
        max_size=db_config.max_size,
        kwargs={"row_factory": dict_row},
        open=False,
    )
    await pool.open()
    return pool


@asynccontextmanager
async def get_connection(config: Dict[str, Any]) -> AsyncGenerator[psycopg.AsyncConnection, None]:
    """Open a short-lived pool and yield one connection from it."""
    pool = await open_pool(config)
    try:
        async with pool.connection() as conn:
            yield conn
    finally:
        await pool.close()
