"""In-process store used by tests and single-process tooling."""

import asyncio
import uuid
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Optional

import pendulum

from ..errors import ConcurrentUpdateError, ItemNotFoundError, JobNotFoundError
from ..models import ContentItem, ItemStatus, JobExecution, PromptDefinition, ScheduledJob
from .base import ContentStore, ItemPredicate, JobStore, check_item_fields


def new_id() -> str:
    """Generate an opaque record id."""
    return str(uuid.uuid4())


class MemoryStore(ContentStore, JobStore):
    """Dict-backed implementation of both store interfaces.

    Every mutation happens under one asyncio lock, so each call is atomic with
    respect to other coroutines on the same loop.
    """

    def __init__(self, clock: Optional[Callable[[], datetime]] = None) -> None:
        self.clock = clock or (lambda: pendulum.now("UTC"))
        self._items: Dict[str, ContentItem] = {}
        self._hashes: Dict[str, str] = {}
        self._jobs: Dict[str, ScheduledJob] = {}
        self._executions: Dict[str, JobExecution] = {}
        self._prompts: Dict[str, PromptDefinition] = {}
        self._lock = asyncio.Lock()

    # Content items

    async def get_item(self, item_id: str) -> Optional[ContentItem]:
        item = self._items.get(item_id)
        return item.model_copy(deep=True) if item else None

    async def filter_items(
        self,
        status: Optional[ItemStatus] = None,
        ids: Optional[Iterable[str]] = None,
        predicate: Optional[ItemPredicate] = None,
        limit: Optional[int] = None,
    ) -> List[ContentItem]:
        wanted = set(ids) if ids is not None else None
        results = []
        for item in self._items.values():
            if status is not None and item.status != status:
                continue
            if wanted is not None and item.id not in wanted:
                continue
            if predicate is not None and not predicate(item):
                continue
            results.append(item.model_copy(deep=True))
            if limit is not None and len(results) >= limit:
                break
        return results

    async def insert_item(self, item: ContentItem) -> ContentItem:
        async with self._lock:
            now = self.clock()
            stored = item.model_copy(
                update={"id": item.id or new_id(), "created_at": now, "updated_at": now},
                deep=True,
            )
            if stored.id in self._items:
                raise ValueError(f"Duplicate item id: {stored.id}")
            self._items[stored.id] = stored
            return stored.model_copy(deep=True)

    async def update_item(
        self,
        item_id: str,
        fields: Dict[str, Any],
        expected_status: Optional[ItemStatus] = None,
    ) -> ContentItem:
        check_item_fields(fields)
        async with self._lock:
            current = self._items.get(item_id)
            if current is None:
                raise ItemNotFoundError(item_id)
            if expected_status is not None and current.status != expected_status:
                raise ConcurrentUpdateError(item_id, str(expected_status), str(current.status))
            data = current.model_dump()
            data.update(fields)
            data["updated_at"] = self.clock()
            # Validate the whole record before swapping it in.
            updated = ContentItem.model_validate(data)
            self._items[item_id] = updated
            return updated.model_copy(deep=True)

    async def delete_item(self, item_id: str) -> bool:
        async with self._lock:
            return self._items.pop(item_id, None) is not None

    async def claim_hash(self, content_hash: str, item_id: str) -> Optional[str]:
        async with self._lock:
            owner = self._hashes.setdefault(content_hash, item_id)
            return None if owner == item_id else owner

    async def release_hash(self, content_hash: str, item_id: str) -> None:
        async with self._lock:
            if self._hashes.get(content_hash) == item_id:
                del self._hashes[content_hash]

    async def get_canonical_id(self, content_hash: str) -> Optional[str]:
        return self._hashes.get(content_hash)

    # Scheduled jobs

    async def get_job(self, name: str) -> Optional[ScheduledJob]:
        job = self._jobs.get(name)
        return job.model_copy(deep=True) if job else None

    async def list_jobs(self) -> List[ScheduledJob]:
        return [self._jobs[name].model_copy(deep=True) for name in sorted(self._jobs)]

    async def upsert_job(self, job: ScheduledJob) -> ScheduledJob:
        async with self._lock:
            now = self.clock()
            existing = self._jobs.get(job.name)
            if existing is None:
                stored = job.model_copy(
                    update={"id": job.id or new_id(), "created_at": now, "updated_at": now},
                    deep=True,
                )
            else:
                stored = existing.model_copy(
                    update={
                        "job_type": job.job_type,
                        "schedule": job.schedule,
                        "is_enabled": job.is_enabled,
                        "parameters": dict(job.parameters),
                        "updated_at": now,
                    },
                    deep=True,
                )
            self._jobs[job.name] = stored
            return stored.model_copy(deep=True)

    async def _update_job(self, name: str, **fields: Any) -> ScheduledJob:
        async with self._lock:
            existing = self._jobs.get(name)
            if existing is None:
                raise JobNotFoundError(name)
            fields["updated_at"] = self.clock()
            stored = existing.model_copy(update=fields, deep=True)
            self._jobs[name] = stored
            return stored.model_copy(deep=True)

    async def set_enabled(self, name: str, enabled: bool) -> ScheduledJob:
        return await self._update_job(name, is_enabled=enabled)

    async def record_run(
        self,
        name: str,
        timestamp: datetime,
        result: Optional[Dict[str, Any]] = None,
    ) -> ScheduledJob:
        return await self._update_job(name, last_run=timestamp, last_run_result=result)

    async def delete_job(self, name: str) -> bool:
        async with self._lock:
            return self._jobs.pop(name, None) is not None

    async def add_execution(self, execution: JobExecution) -> JobExecution:
        async with self._lock:
            stored = execution.model_copy(update={"id": execution.id or new_id()}, deep=True)
            self._executions[stored.id] = stored
            return stored.model_copy(deep=True)

    async def finish_execution(
        self,
        execution_id: str,
        status: str,
        finished_at: datetime,
        summary: Optional[Dict[str, Any]] = None,
        error_message: Optional[str] = None,
    ) -> None:
        async with self._lock:
            execution = self._executions[execution_id]
            self._executions[execution_id] = execution.model_copy(
                update={
                    "status": status,
                    "finished_at": finished_at,
                    "summary": summary,
                    "error_message": error_message,
                }
            )

    async def list_executions(
        self, job_name: Optional[str] = None, limit: int = 20
    ) -> List[JobExecution]:
        executions = [
            e for e in self._executions.values() if job_name is None or e.job_name == job_name
        ]
        executions.sort(key=lambda e: e.started_at, reverse=True)
        return [e.model_copy(deep=True) for e in executions[:limit]]

    # Prompt definitions

    async def get_prompt(self, prompt_id: str) -> Optional[PromptDefinition]:
        prompt = self._prompts.get(prompt_id)
        return prompt.model_copy(deep=True) if prompt else None

    async def list_prompts(self, active_only: bool = True) -> List[PromptDefinition]:
        prompts = [p for p in self._prompts.values() if p.is_active or not active_only]
        return [p.model_copy(deep=True) for p in sorted(prompts, key=lambda p: p.name)]

    async def save_prompt(self, prompt: PromptDefinition) -> PromptDefinition:
        async with self._lock:
            stored = prompt.model_copy(update={"id": prompt.id or new_id()}, deep=True)
            self._prompts[stored.id] = stored
            return stored.model_copy(deep=True)
