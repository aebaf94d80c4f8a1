"""Handlers that run a scheduled job's backing operation."""

from abc import ABC, abstractmethod
from typing import Mapping, Optional

from ..batch import BatchOperation, BatchProcessor
from ..db.base import ContentStore
from ..dedup import DeduplicationIndex
from ..ingestion import CandidateSource, IngestCandidateOperation, run_import
from ..models import BatchOperationResult, ItemStatus, JobParameters, ScheduledJob


class JobHandler(ABC):
    """Runs one kind of job (``job_type``) through the batch processor."""

    job_type: str = ""

    @abstractmethod
    async def run(self, job: ScheduledJob, parameters: JobParameters) -> BatchOperationResult:
        """Raising means the job failed before producing per-item results."""


class NewsImportHandler(JobHandler):
    """Fetch candidates from a source and ingest them as ``discovered`` items."""

    job_type = "news_import"

    def __init__(
        self,
        store: ContentStore,
        dedup: DeduplicationIndex,
        processor: BatchProcessor,
        sources: Mapping[str, CandidateSource],
        default_source: str = "search",
        batch_size: Optional[int] = None,
    ) -> None:
        self.store = store
        self.dedup = dedup
        self.processor = processor
        self.sources = dict(sources)
        self.default_source = default_source
        self.batch_size = batch_size

    async def run(self, job: ScheduledJob, parameters: JobParameters) -> BatchOperationResult:
        name = parameters.source or self.default_source
        source = self.sources.get(name)
        if source is None:
            available = ", ".join(sorted(self.sources)) or "none configured"
            raise ValueError(f"Unknown candidate source '{name}' (available: {available})")

        operation = IngestCandidateOperation(
            self.store, self.dedup, min_score=parameters.min_score, batch_size=self.batch_size
        )
        return await run_import(source, parameters, operation, self.processor)


class BackfillHandler(JobHandler):
    """Apply a batch operation to stored items, optionally filtered by status."""

    def __init__(
        self,
        job_type: str,
        store: ContentStore,
        processor: BatchProcessor,
        operation: BatchOperation,
    ) -> None:
        self.job_type = job_type
        self.store = store
        self.processor = processor
        self.operation = operation

    async def run(self, job: ScheduledJob, parameters: JobParameters) -> BatchOperationResult:
        status = ItemStatus.from_legacy(parameters.status) if parameters.status else None
        items = await self.store.filter_items(status=status)
        return await self.processor.run(items, self.operation, parameters.batch_size)
