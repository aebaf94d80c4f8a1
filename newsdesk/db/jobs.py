"""Scheduled job, execution history and prompt storage in PostgreSQL."""

from datetime import datetime
from typing import Any, Dict, List, Optional

from psycopg.types.json import Jsonb
from psycopg_pool import AsyncConnectionPool

from ..errors import JobNotFoundError
from ..models import JobExecution, PromptDefinition, ScheduledJob
from .base import JobStore
from .memory import new_id


class PostgresJobStore(JobStore):
    """Manage scheduled jobs in database."""

    def __init__(self, pool: AsyncConnectionPool) -> None:
        """Initialize with an open connection pool."""
        self.pool = pool

    async def _fetch_one(self, query: str, params: tuple) -> Optional[Dict[str, Any]]:
        async with self.pool.connection() as conn:
            async with conn.cursor() as cur:
                await cur.execute(query, params)
                return await cur.fetchone()

    async def _fetch_all(self, query: str, params: tuple = ()) -> List[Dict[str, Any]]:
        async with self.pool.connection() as conn:
            async with conn.cursor() as cur:
                await cur.execute(query, params)
                return await cur.fetchall()

    async def get_job(self, name: str) -> Optional[ScheduledJob]:
        row = await self._fetch_one("SELECT * FROM scheduled_jobs WHERE name = %s", (name,))
        return ScheduledJob.model_validate(row) if row else None

    async def list_jobs(self) -> List[ScheduledJob]:
        rows = await self._fetch_all("SELECT * FROM scheduled_jobs ORDER BY name")
        return [ScheduledJob.model_validate(row) for row in rows]

    async def upsert_job(self, job: ScheduledJob) -> ScheduledJob:
        row = await self._fetch_one(
            """
            INSERT INTO scheduled_jobs (id, name, job_type, schedule, is_enabled, parameters)
            VALUES (%s, %s, %s, %s, %s, %s)
            ON CONFLICT (name) DO UPDATE SET
                job_type = EXCLUDED.job_type,
                schedule = EXCLUDED.schedule,
                is_enabled = EXCLUDED.is_enabled,
                parameters = EXCLUDED.parameters,
                updated_at = CURRENT_TIMESTAMP
            RETURNING *
            """,
            (
                job.id or new_id(),
                job.name,
                job.job_type,
                job.schedule,
                job.is_enabled,
                Jsonb(job.parameters),
            ),
        )
        return ScheduledJob.model_validate(row)

    async def set_enabled(self, name: str, enabled: bool) -> ScheduledJob:
        row = await self._fetch_one(
            """
            UPDATE scheduled_jobs
            SET is_enabled = %s, updated_at = CURRENT_TIMESTAMP
            WHERE name = %s
            RETURNING *
            """,
            (enabled, name),
        )
        if row is None:
            raise JobNotFoundError(name)
        return ScheduledJob.model_validate(row)

    async def record_run(
        self,
        name: str,
        timestamp: datetime,
        result: Optional[Dict[str, Any]] = None,
    ) -> ScheduledJob:
        row = await self._fetch_one(
            """
            UPDATE scheduled_jobs
            SET last_run = %s, last_run_result = %s, updated_at = CURRENT_TIMESTAMP
            WHERE name = %s
            RETURNING *
            """,
            (timestamp, Jsonb(result) if result is not None else None, name),
        )
        if row is None:
            raise JobNotFoundError(name)
        return ScheduledJob.model_validate(row)

    async def delete_job(self, name: str) -> bool:
        async with self.pool.connection() as conn:
            async with conn.cursor() as cur:
                await cur.execute("DELETE FROM scheduled_jobs WHERE name = %s", (name,))
                return cur.rowcount > 0

    async def add_execution(self, execution: JobExecution) -> JobExecution:
        row = await self._fetch_one(
            """
            INSERT INTO job_executions (id, job_name, started_at, status, triggered_by)
            VALUES (%s, %s, %s, %s, %s)
            RETURNING *
            """,
            (
                execution.id or new_id(),
                execution.job_name,
                execution.started_at,
                execution.status,
                execution.triggered_by,
            ),
        )
        return JobExecution.model_validate(row)

    async def finish_execution(
        self,
        execution_id: str,
        status: str,
        finished_at: datetime,
        summary: Optional[Dict[str, Any]] = None,
        error_message: Optional[str] = None,
    ) -> None:
        async with self.pool.connection() as conn:
            await conn.execute(
                """
                UPDATE job_executions
                SET status = %s, finished_at = %s, summary = %s, error_message = %s,
                    updated_at = CURRENT_TIMESTAMP
                WHERE id = %s
                """,
                (
                    status,
                    finished_at,
                    Jsonb(summary) if summary is not None else None,
                    error_message,
                    execution_id,
                ),
            )

    async def list_executions(
        self, job_name: Optional[str] = None, limit: int = 20
    ) -> List[JobExecution]:
        if job_name is None:
            rows = await self._fetch_all(
                "SELECT * FROM job_executions ORDER BY started_at DESC LIMIT %s", (limit,)
            )
        else:
            rows = await self._fetch_all(
                """
                SELECT * FROM job_executions
                WHERE job_name = %s
                ORDER BY started_at DESC
                LIMIT %s
                """,
                (job_name, limit),
            )
        return [JobExecution.model_validate(row) for row in rows]

    async def get_prompt(self, prompt_id: str) -> Optional[PromptDefinition]:
        row = await self._fetch_one("SELECT * FROM prompt_definitions WHERE id = %s", (prompt_id,))
        return PromptDefinition.model_validate(row) if row else None

    async def list_prompts(self, active_only: bool = True) -> List[PromptDefinition]:
        query = "SELECT * FROM prompt_definitions"
        if active_only:
            query += " WHERE is_active"
        rows = await self._fetch_all(query + " ORDER BY name")
        return [PromptDefinition.model_validate(row) for row in rows]

    async def save_prompt(self, prompt: PromptDefinition) -> PromptDefinition:
        row = await self._fetch_one(
            """
            INSERT INTO prompt_definitions (id, name, prompt_text, model, schedule, is_active, parameters)
            VALUES (%s, %s, %s, %s, %s, %s, %s)
            ON CONFLICT (id) DO UPDATE SET
                name = EXCLUDED.name,
                prompt_text = EXCLUDED.prompt_text,
                model = EXCLUDED.model,
                schedule = EXCLUDED.schedule,
                is_active = EXCLUDED.is_active,
                parameters = EXCLUDED.parameters,
                updated_at = CURRENT_TIMESTAMP
            RETURNING *
            """,
            (
                prompt.id or new_id(),
                prompt.name,
                prompt.prompt_text,
                prompt.model,
                prompt.schedule,
                prompt.is_active,
                Jsonb(prompt.parameters),
            ),
        )
        return PromptDefinition.model_validate(row)
