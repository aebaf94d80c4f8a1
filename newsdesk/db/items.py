"""Content item storage in PostgreSQL."""

from typing import Any, Dict, Iterable, List, Optional

from psycopg import sql
from psycopg_pool import AsyncConnectionPool

from ..errors import ConcurrentUpdateError, ItemNotFoundError
from ..models import ContentItem, ItemStatus
from .base import ContentStore, ItemPredicate, check_item_fields
from ._rows import to_db_row
from .memory import new_id


class PostgresContentStore(ContentStore):
    """Content items and the content-hash table backed by PostgreSQL."""

    def __init__(self, pool: AsyncConnectionPool) -> None:
        """Initialize with an open connection pool."""
        self.pool = pool

    async def get_item(self, item_id: str) -> Optional[ContentItem]:
        async with self.pool.connection() as conn:
            async with conn.cursor() as cur:
                await cur.execute("SELECT * FROM content_items WHERE id = %s", (item_id,))
                row = await cur.fetchone()
        return ContentItem.model_validate(row) if row else None

    async def filter_items(
        self,
        status: Optional[ItemStatus] = None,
        ids: Optional[Iterable[str]] = None,
        predicate: Optional[ItemPredicate] = None,
        limit: Optional[int] = None,
    ) -> List[ContentItem]:
        conditions = []
        params: List[Any] = []
        if status is not None:
            conditions.append("status = %s")
            params.append(ItemStatus(status).value)
        if ids is not None:
            conditions.append("id = ANY(%s)")
            params.append(list(ids))

        query = "SELECT * FROM content_items"
        if conditions:
            query += " WHERE " + " AND ".join(conditions)
        query += " ORDER BY created_at, id"
        # The predicate runs client-side, so only push the limit down without one.
        if limit is not None and predicate is None:
            query += " LIMIT %s"
            params.append(limit)

        async with self.pool.connection() as conn:
            async with conn.cursor() as cur:
                await cur.execute(query, params)
                rows = await cur.fetchall()

        items = [ContentItem.model_validate(row) for row in rows]
        if predicate is not None:
            items = [item for item in items if predicate(item)]
            if limit is not None:
                items = items[:limit]
        return items

    async def insert_item(self, item: ContentItem) -> ContentItem:
        data = item.model_dump(exclude={"created_at", "updated_at"})
        data["id"] = data["id"] or new_id()
        row = to_db_row(data)
        columns = list(row)
        query = sql.SQL("INSERT INTO content_items ({}) VALUES ({}) RETURNING *").format(
            sql.SQL(", ").join(map(sql.Identifier, columns)),
            sql.SQL(", ").join(sql.Placeholder() * len(columns)),
        )
        async with self.pool.connection() as conn:
            async with conn.cursor() as cur:
                await cur.execute(query, [row[c] for c in columns])
                stored = await cur.fetchone()
        return ContentItem.model_validate(stored)

    async def update_item(
        self,
        item_id: str,
        fields: Dict[str, Any],
        expected_status: Optional[ItemStatus] = None,
    ) -> ContentItem:
        check_item_fields(fields)
        row = to_db_row(fields)
        assignments = [
            sql.SQL("{} = {}").format(sql.Identifier(column), sql.Placeholder())
            for column in row
        ]
        assignments.append(sql.SQL("updated_at = CURRENT_TIMESTAMP"))
        params: List[Any] = list(row.values()) + [item_id]

        where = sql.SQL("id = %s")
        if expected_status is not None:
            where = sql.SQL("id = %s AND status = %s")
            params.append(ItemStatus(expected_status).value)

        query = sql.SQL("UPDATE content_items SET {} WHERE {} RETURNING *").format(
            sql.SQL(", ").join(assignments), where
        )

        async with self.pool.connection() as conn:
            async with conn.cursor() as cur:
                await cur.execute(query, params)
                updated = await cur.fetchone()
                if updated is None:
                    await cur.execute("SELECT status FROM content_items WHERE id = %s", (item_id,))
                    existing = await cur.fetchone()
        if updated is not None:
            return ContentItem.model_validate(updated)
        if existing is None:
            raise ItemNotFoundError(item_id)
        raise ConcurrentUpdateError(item_id, str(expected_status), existing["status"])

    async def delete_item(self, item_id: str) -> bool:
        async with self.pool.connection() as conn:
            async with conn.cursor() as cur:
                await cur.execute("DELETE FROM content_items WHERE id = %s", (item_id,))
                return cur.rowcount > 0

    async def claim_hash(self, content_hash: str, item_id: str) -> Optional[str]:
        async with self.pool.connection() as conn:
            async with conn.cursor() as cur:
                await cur.execute(
                    """
                    INSERT INTO content_hashes (content_hash, item_id)
                    VALUES (%s, %s)
                    ON CONFLICT (content_hash) DO NOTHING
                    RETURNING item_id
                    """,
                    (content_hash, item_id),
                )
                if await cur.fetchone() is not None:
                    return None
                await cur.execute(
                    "SELECT item_id FROM content_hashes WHERE content_hash = %s",
                    (content_hash,),
                )
                owner = await cur.fetchone()
        if owner is None or owner["item_id"] == item_id:
            return None
        return owner["item_id"]

    async def release_hash(self, content_hash: str, item_id: str) -> None:
        async with self.pool.connection() as conn:
            await conn.execute(
                "DELETE FROM content_hashes WHERE content_hash = %s AND item_id = %s",
                (content_hash, item_id),
            )

    async def get_canonical_id(self, content_hash: str) -> Optional[str]:
        async with self.pool.connection() as conn:
            async with conn.cursor() as cur:
                await cur.execute(
                    "SELECT item_id FROM content_hashes WHERE content_hash = %s",
                    (content_hash,),
                )
                row = await cur.fetchone()
        return row["item_id"] if row else None
