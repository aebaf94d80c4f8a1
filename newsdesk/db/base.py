"""Storage interfaces the pipeline depends on."""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Optional

from ..models import ContentItem, ItemStatus, JobExecution, PromptDefinition, ScheduledJob

ItemPredicate = Callable[[ContentItem], bool]

# Set at ingestion and never rewritten.
PROVENANCE_FIELDS = frozenset({"source", "url", "timestamp"})

# Fields a caller may write through ``update_item``.
ITEM_FIELDS = frozenset(
    name
    for name in ContentItem.model_fields
    if name not in ("id", "created_at", "updated_at") and name not in PROVENANCE_FIELDS
)


class ContentStore(ABC):
    """Content items plus the content-hash -> canonical id table."""

    @abstractmethod
    async def get_item(self, item_id: str) -> Optional[ContentItem]:
        """Return the item or None."""

    @abstractmethod
    async def filter_items(
        self,
        status: Optional[ItemStatus] = None,
        ids: Optional[Iterable[str]] = None,
        predicate: Optional[ItemPredicate] = None,
        limit: Optional[int] = None,
    ) -> List[ContentItem]:
        """Return items matching every given filter, oldest first."""

    @abstractmethod
    async def insert_item(self, item: ContentItem) -> ContentItem:
        """Persist a new item, assigning an id when it has none."""

    @abstractmethod
    async def update_item(
        self,
        item_id: str,
        fields: Dict[str, Any],
        expected_status: Optional[ItemStatus] = None,
    ) -> ContentItem:
        """Write ``fields`` in a single atomic operation.

        When ``expected_status`` is given the write only happens if the stored
        status still equals it; otherwise ConcurrentUpdateError is raised.
        Raises ItemNotFoundError for unknown ids.
        """

    @abstractmethod
    async def delete_item(self, item_id: str) -> bool:
        """Delete an item; True if it existed."""

    @abstractmethod
    async def claim_hash(self, content_hash: str, item_id: str) -> Optional[str]:
        """Compare-and-set the canonical owner of ``content_hash``.

        Returns None when ``item_id`` now owns (or already owned) the hash,
        otherwise the id of the existing owner.
        """

    @abstractmethod
    async def release_hash(self, content_hash: str, item_id: str) -> None:
        """Drop the claim if ``item_id`` holds it."""

    @abstractmethod
    async def get_canonical_id(self, content_hash: str) -> Optional[str]:
        """Owner of ``content_hash`` or None."""


class JobStore(ABC):
    """Scheduled job definitions, execution history and prompt definitions."""

    @abstractmethod
    async def get_job(self, name: str) -> Optional[ScheduledJob]:
        """Return the job or None."""

    @abstractmethod
    async def list_jobs(self) -> List[ScheduledJob]:
        """All jobs ordered by name."""

    @abstractmethod
    async def upsert_job(self, job: ScheduledJob) -> ScheduledJob:
        """Insert, or update job_type/schedule/is_enabled/parameters in place.

        Never modifies ``last_run`` or ``last_run_result`` of an existing job.
        """

    @abstractmethod
    async def set_enabled(self, name: str, enabled: bool) -> ScheduledJob:
        """Flip only ``is_enabled``. Raises JobNotFoundError."""

    @abstractmethod
    async def record_run(
        self,
        name: str,
        timestamp: datetime,
        result: Optional[Dict[str, Any]] = None,
    ) -> ScheduledJob:
        """Set ``last_run`` (and its result) in one write. Raises JobNotFoundError."""

    @abstractmethod
    async def delete_job(self, name: str) -> bool:
        """Delete a job; True if it existed."""

    @abstractmethod
    async def add_execution(self, execution: JobExecution) -> JobExecution:
        """Record the start of a trigger."""

    @abstractmethod
    async def finish_execution(
        self,
        execution_id: str,
        status: str,
        finished_at: datetime,
        summary: Optional[Dict[str, Any]] = None,
        error_message: Optional[str] = None,
    ) -> None:
        """Close an execution record."""

    @abstractmethod
    async def list_executions(
        self, job_name: Optional[str] = None, limit: int = 20
    ) -> List[JobExecution]:
        """Most recent executions first."""

    @abstractmethod
    async def get_prompt(self, prompt_id: str) -> Optional[PromptDefinition]:
        """Return the prompt definition or None."""

    @abstractmethod
    async def list_prompts(self, active_only: bool = True) -> List[PromptDefinition]:
        """Prompt definitions ordered by name."""

    @abstractmethod
    async def save_prompt(self, prompt: PromptDefinition) -> PromptDefinition:
        """Insert or replace a prompt definition."""


def check_item_fields(fields: Dict[str, Any]) -> None:
    """Reject writes to unknown, identity or provenance columns."""
    frozen = set(fields) & PROVENANCE_FIELDS
    if frozen:
        raise ValueError(f"Fields are immutable after ingestion: {', '.join(sorted(frozen))}")
    unknown = set(fields) - ITEM_FIELDS
    if unknown:
        raise ValueError(f"Cannot update item fields: {', '.join(sorted(unknown))}")
