"""Source management in database."""

from typing import Dict, List

from psycopg_pool import AsyncConnectionPool

from ..config import SourceConfig
from ..models import Source
from .memory import new_id


class SourceManager:
    """Manage ingestion sources in database."""

    def __init__(self, pool: AsyncConnectionPool) -> None:
        self.pool = pool

    async def sync_sources(self, sources: List[SourceConfig]) -> Dict[str, str]:
        """
        Sync sources from config to database.

        Returns:
            Mapping of source name to database ID
        """
        source_map = {}

        async with self.pool.connection() as conn:
            async with conn.cursor() as cur:
                for source in sources:
                    await cur.execute(
                        """
                        INSERT INTO sources (id, name, url, kind, weight, enabled)
                        VALUES (%s, %s, %s, %s, %s, %s)
                        ON CONFLICT (name) DO UPDATE SET
                            url = EXCLUDED.url,
                            kind = EXCLUDED.kind,
                            weight = EXCLUDED.weight,
                            enabled = EXCLUDED.enabled,
                            updated_at = CURRENT_TIMESTAMP
                        RETURNING id
                        """,
                        (
                            new_id(),
                            source.name,
                            source.url,
                            source.kind,
                            source.weight,
                            source.enabled,
                        ),
                    )
                    row = await cur.fetchone()
                    source_map[source.name] = row["id"]

        return source_map

    async def get_sources(self) -> List[Source]:
        """Get all sources from database."""
        async with self.pool.connection() as conn:
            async with conn.cursor() as cur:
                await cur.execute("SELECT * FROM sources ORDER BY name")
                rows = await cur.fetchall()
        return [Source.model_validate(row) for row in rows]
