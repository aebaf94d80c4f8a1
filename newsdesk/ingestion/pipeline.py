"""Turn candidates into stored, deduplicated ``discovered`` items."""

import logging
from datetime import datetime
from typing import Callable, List, Optional, Sequence, Tuple

import pendulum
from pydantic import BaseModel, Field

from ..batch import BatchOperation, BatchProcessor
from ..db import new_id
from ..db.base import ContentStore
from ..dedup import DeduplicationIndex
from ..errors import ValidationError
from ..models import BatchOperationResult, ContentItem, ItemStatus, JobParameters
from ..normalization import normalize
from .models import CandidateItem
from .sources import CandidateSource

logger = logging.getLogger(__name__)


class IngestResult(BaseModel):
    """What happened to one candidate."""

    outcome: str = Field(..., description="new, duplicate or low_score")
    item_id: Optional[str] = Field(None, description="Stored item, when new")
    canonical_id: Optional[str] = Field(None, description="Existing item, when a duplicate")


def passes_score(candidate: CandidateItem, min_score: float) -> bool:
    # Unscored candidates are never filtered out.
    return candidate.score is None or candidate.score >= min_score


def select_candidates(
    candidates: Sequence[CandidateItem],
    min_score: float,
    limit: Optional[int],
) -> Tuple[List[CandidateItem], int]:
    """Drop low scorers, then keep at most ``limit``. Returns (kept, dropped low scorers)."""
    kept = [c for c in candidates if passes_score(c, min_score)]
    low = len(candidates) - len(kept)
    if limit is not None and limit > 0:
        kept = kept[:limit]
    return kept, low


class IngestCandidateOperation(BatchOperation):
    """Validate, normalize, dedup and insert one candidate.

    Candidates without a headline or URL fail with ValidationError. A
    duplicate is reported and not stored. A new item is stored as
    ``discovered`` with its fingerprint already claimed.
    """

    name = "ingest"
    default_batch_size = 10

    def __init__(
        self,
        store: ContentStore,
        dedup: DeduplicationIndex,
        min_score: float = 0.0,
        batch_size: Optional[int] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.store = store
        self.dedup = dedup
        self.min_score = min_score
        self.clock = clock or (lambda: pendulum.now("UTC"))
        if batch_size is not None:
            self.default_batch_size = batch_size

    async def apply(self, item: CandidateItem) -> str:
        return (await self.ingest(item)).outcome

    async def ingest(self, candidate: CandidateItem) -> IngestResult:
        missing = candidate.missing_fields()
        if missing:
            raise ValidationError(f"Candidate missing required fields: {', '.join(missing)}")
        if not passes_score(candidate, self.min_score):
            return IngestResult(outcome="low_score")

        normalized = normalize(candidate.body)
        if normalized.is_empty:
            raise ValidationError(f"Candidate {candidate.key} has no text content")

        now = self.clock()
        item = ContentItem(
            id=new_id(),
            headline=candidate.headline.strip(),
            summary=candidate.summary,
            raw_content=candidate.content or candidate.summary or "",
            clean_content=normalized.clean_content,
            content_hash=normalized.content_hash,
            word_count=normalized.word_count,
            status=ItemStatus.DISCOVERED,
            status_changed_at=now,
            score=candidate.score,
            external_id=candidate.external_id,
            source=candidate.source,
            url=candidate.url.strip(),
            timestamp=candidate.timestamp or now,
        )

        registration = await self.dedup.register(item)
        if registration.is_duplicate:
            return IngestResult(outcome="duplicate", canonical_id=registration.canonical_id)

        try:
            stored = await self.store.insert_item(item)
        except Exception:
            await self.dedup.unregister(item)
            raise
        return IngestResult(outcome="new", item_id=stored.id)


async def run_import(
    source: CandidateSource,
    parameters: JobParameters,
    operation: IngestCandidateOperation,
    processor: BatchProcessor,
) -> BatchOperationResult:
    """Fetch candidates from ``source`` and ingest them as one batch run.

    Low scorers are dropped before ``limit`` is applied and counted under
    the ``low_score`` outcome.
    """
    candidates = await source.fetch_candidates(parameters)
    selected, low = select_candidates(candidates, parameters.min_score, parameters.limit)
    logger.info(
        "%s offered %d candidates, ingesting %d (%d below score %.2f)",
        source.name, len(candidates), len(selected), low, parameters.min_score,
    )

    result = await processor.run(selected, operation, parameters.batch_size)
    if low:
        result.outcomes["low_score"] = result.outcomes.get("low_score", 0) + low
    return result
