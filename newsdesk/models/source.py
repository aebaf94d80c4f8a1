"""Source model for ingestion source definitions."""

from pydantic import Field

from .base import DBModel


class Source(DBModel):
    """Ingestion source (RSS feed, search prompt endpoint, WordPress site)."""

    name: str = Field(..., description="Source name")
    url: str = Field(..., description="Feed or API URL")
    kind: str = Field("rss", description="Source kind (rss, search, wordpress)")
    weight: float = Field(1.0, description="Default score for items from this source", ge=0.0, le=1.0)
    enabled: bool = Field(True, description="Whether the source is enabled")
