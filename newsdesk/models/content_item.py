"""Content item model for ingested news items and articles."""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from .base import DBModel


class ItemStatus(str, Enum):
    """Lifecycle states of a content item."""

    DISCOVERED = "discovered"
    APPROVED_FOR_EDITING = "approved_for_editing"
    DRAFTED = "drafted"
    SCHEDULED = "scheduled"
    PUBLISHED = "published"
    DISMISSED = "dismissed"

    @property
    def is_terminal(self) -> bool:
        return self in (ItemStatus.PUBLISHED, ItemStatus.DISMISSED)

    @classmethod
    def from_legacy(cls, value: str) -> "ItemStatus":
        """Map a status from the older dashboard vocabulary onto the lifecycle."""
        key = (value or "").strip().lower()
        try:
            return cls(key)
        except ValueError:
            pass
        if key in LEGACY_STATUS_MAP:
            return LEGACY_STATUS_MAP[key]
        if key.startswith("drafted_"):
            return cls.DRAFTED
        raise ValueError(f"Unknown status: {value!r}")

    def __str__(self) -> str:
        return self.value


LEGACY_STATUS_MAP: Dict[str, ItemStatus] = {
    "pending": ItemStatus.DISCOVERED,
    "new": ItemStatus.DISCOVERED,
    "approved": ItemStatus.APPROVED_FOR_EDITING,
    "draft": ItemStatus.DRAFTED,
    "ready": ItemStatus.SCHEDULED,
    "rejected": ItemStatus.DISMISSED,
}


class Destination(str, Enum):
    """Publication channels a drafted item can target."""

    MPDAILY = "mpdaily"
    MAGAZINE = "magazine"
    WEBSITE = "website"

    def __str__(self) -> str:
        return self.value


class DraftContent(BaseModel):
    """Editorial draft fields written when an item is drafted."""

    title: str = Field("", description="Draft headline")
    summary: str = Field("", description="Short summary / dek")
    cta: str = Field("", description="Call to action")
    full_content: str = Field("", description="Full article body")

    def missing_fields(self) -> List[str]:
        """Return names of required fields that are blank."""
        return [
            name
            for name in ("title", "summary", "cta", "full_content")
            if not (getattr(self, name) or "").strip()
        ]


class ContentItem(DBModel):
    """One ingested unit: a news item or an article."""

    headline: str = Field("", description="Headline as ingested")
    summary: Optional[str] = Field(None, description="Summary or excerpt from the source")
    raw_content: str = Field("", description="Original text or HTML payload")
    clean_content: Optional[str] = Field(None, description="Normalized plain text")
    content_hash: Optional[str] = Field(None, description="Fingerprint of clean_content")
    word_count: int = Field(0, ge=0, description="Words in clean_content")
    content_variants: Dict[str, Any] = Field(
        default_factory=dict,
        description="Alternate renditions keyed by origin (e.g. wordpress_content)",
    )
    status: ItemStatus = Field(ItemStatus.DISCOVERED, description="Workflow state")
    destinations: List[Destination] = Field(default_factory=list, description="Target channels")
    draft: Optional[DraftContent] = Field(None, description="Draft fields once drafted")
    publish_at: Optional[datetime] = Field(None, description="Planned publication time")
    scheduled_slot: Optional[str] = Field(None, description="Scheduled job or calendar slot")
    published_destinations: List[Destination] = Field(
        default_factory=list, description="Channels that confirmed publication"
    )
    status_changed_at: Optional[datetime] = Field(None, description="Last status change")
    duplicate_of: Optional[str] = Field(None, description="Canonical item id if a duplicate")
    score: Optional[float] = Field(None, description="Relevance score from ingestion")
    external_id: Optional[str] = Field(None, description="Id in the external system (e.g. WordPress)")
    source: Optional[str] = Field(None, description="Source name or outlet")
    url: Optional[str] = Field(None, description="Canonical URL")
    timestamp: Optional[datetime] = Field(None, description="Publication / discovery time")

    @property
    def is_normalized(self) -> bool:
        return self.content_hash is not None and self.clean_content is not None
