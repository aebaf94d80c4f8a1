"""Deduplication index mapping content fingerprints to canonical item ids."""

import logging
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from ..db.base import ContentStore
from ..errors import NotNormalizedError
from ..models import ContentItem
from ..normalization import EMPTY_CONTENT_HASH

logger = logging.getLogger(__name__)


class RegistrationStatus(str, Enum):
    NEW = "new"
    DUPLICATE = "duplicate"

    def __str__(self) -> str:
        return self.value


class RegistrationResult(BaseModel):
    """Outcome of registering an item's fingerprint."""

    status: RegistrationStatus
    canonical_id: Optional[str] = Field(None, description="First-registered item, for duplicates")

    @property
    def is_new(self) -> bool:
        return self.status == RegistrationStatus.NEW

    @property
    def is_duplicate(self) -> bool:
        return self.status == RegistrationStatus.DUPLICATE


class DeduplicationIndex:
    """Registers normalized items and reports duplicates.

    The hash table lives in the injected store, whose ``claim_hash`` is a
    compare-and-set: of any number of concurrent registrations for one hash,
    exactly one observes ``new``.
    """

    def __init__(self, store: ContentStore) -> None:
        self.store = store

    async def register(self, item: ContentItem) -> RegistrationResult:
        """Claim the item's hash, or report the item that already holds it.

        Re-registering the canonical item itself is idempotent and reports ``new``.
        The caller decides what to do with duplicates.
        """
        if not item.id:
            raise ValueError("Item must have an id before registration")
        if not item.content_hash or item.content_hash == EMPTY_CONTENT_HASH:
            raise NotNormalizedError(
                f"Item {item.id} has no content fingerprint; normalize before registering"
            )

        owner = await self.store.claim_hash(item.content_hash, item.id)
        if owner is None:
            return RegistrationResult(status=RegistrationStatus.NEW)

        logger.debug("Item %s duplicates %s", item.id, owner)
        return RegistrationResult(status=RegistrationStatus.DUPLICATE, canonical_id=owner)

    async def lookup(self, content_hash: str) -> Optional[str]:
        """Canonical id for a fingerprint, if registered."""
        return await self.store.get_canonical_id(content_hash)

    async def unregister(self, item: ContentItem) -> None:
        """Release the item's claim, e.g. when persisting it failed."""
        if item.content_hash and item.id:
            await self.store.release_hash(item.content_hash, item.id)
