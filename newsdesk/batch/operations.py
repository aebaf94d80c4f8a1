"""Operations the batch processor can apply to stored content items."""

from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Dict, Optional

from ..db.base import ContentStore
from ..dedup import DeduplicationIndex
from ..models import ContentItem
from ..normalization import count_words, normalize, select_source_text

RemoteFetcher = Callable[[ContentItem], Awaitable[Optional[str]]]


class BatchOperation(ABC):
    """A per-item operation with a default group size.

    ``apply`` persists its own result and returns an outcome label that the
    processor tallies; raising marks the item as failed.
    """

    name: str = "operation"
    default_batch_size: int = 10

    @abstractmethod
    async def apply(self, item: Any) -> Optional[str]:
        """Process one item."""


class WordCountOperation(BatchOperation):
    """Recompute ``word_count`` for stored items.

    Items not yet cleaned are counted from their normalized source text, so
    ``word_count`` can be non-zero while ``clean_content`` is still None. A
    later clean-content pass recomputes it from the stored clean text.
    """

    name = "word_count"
    default_batch_size = 10

    def __init__(self, store: ContentStore, batch_size: Optional[int] = None) -> None:
        self.store = store
        if batch_size is not None:
            self.default_batch_size = batch_size

    async def apply(self, item: ContentItem) -> str:
        if item.clean_content is not None:
            word_count = count_words(item.clean_content)
        else:
            word_count = normalize(select_source_text(item)).word_count

        if word_count == item.word_count:
            return "unchanged"
        await self.store.update_item(item.id, {"word_count": word_count})
        return "updated"


class CleanContentOperation(BatchOperation):
    """Normalize stored items and persist clean text, hash and word count together.

    With a deduplication index, the new fingerprint is registered and items
    that lose to an earlier one are marked with ``duplicate_of``.
    """

    name = "clean_content"
    default_batch_size = 5

    def __init__(
        self,
        store: ContentStore,
        dedup: Optional[DeduplicationIndex] = None,
        batch_size: Optional[int] = None,
    ) -> None:
        self.store = store
        self.dedup = dedup
        if batch_size is not None:
            self.default_batch_size = batch_size

    async def apply(self, item: ContentItem) -> str:
        return await self.normalize_and_store(item, select_source_text(item))

    async def normalize_and_store(
        self,
        item: ContentItem,
        source_text: str,
        extra_fields: Optional[Dict[str, Any]] = None,
    ) -> str:
        normalized = normalize(source_text)
        fields: Dict[str, Any] = dict(extra_fields or {})
        fields.update(
            clean_content=normalized.clean_content,
            content_hash=normalized.content_hash,
            word_count=normalized.word_count,
        )

        outcome = "normalized"
        claimed = False
        if normalized.is_empty:
            outcome = "empty"
        elif self.dedup is not None:
            candidate = item.model_copy(update={"content_hash": normalized.content_hash})
            registration = await self.dedup.register(candidate)
            if registration.is_duplicate:
                fields["duplicate_of"] = registration.canonical_id
                outcome = "duplicate"
            else:
                fields["duplicate_of"] = None
                claimed = item.content_hash != normalized.content_hash

        try:
            await self.store.update_item(item.id, fields)
        except Exception:
            if claimed:
                await self.dedup.store.release_hash(normalized.content_hash, item.id)
            raise

        # A changed fingerprint frees the old one for whoever registers it next.
        if self.dedup is not None and item.content_hash and item.content_hash != normalized.content_hash:
            await self.dedup.unregister(item)
        return outcome


class SyncOperation(CleanContentOperation):
    """Pull fresh content from an external system, then normalize it.

    The fetched payload is stored as a content variant (``wordpress_content``
    by default), which takes priority when the item's clean text is derived.
    """

    name = "sync"
    default_batch_size = 5

    def __init__(
        self,
        store: ContentStore,
        fetch_remote: RemoteFetcher,
        dedup: Optional[DeduplicationIndex] = None,
        variant: str = "wordpress_content",
        batch_size: Optional[int] = None,
    ) -> None:
        super().__init__(store, dedup=dedup, batch_size=batch_size)
        self.fetch_remote = fetch_remote
        self.variant = variant

    async def apply(self, item: ContentItem) -> str:
        remote = await self.fetch_remote(item)
        if remote is None:
            raise LookupError(f"No matching content found for item {item.id}")

        variants = dict(item.content_variants)
        variants[self.variant] = {"content": remote}
        return await self.normalize_and_store(item, remote, {"content_variants": variants})
