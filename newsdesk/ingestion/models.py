"""Data models for ingestion."""

from datetime import datetime
from typing import Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class CandidateItem(BaseModel):
    """A news item offered by a source, before validation and dedup."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    headline: str = Field(
        "",
        validation_alias=AliasChoices("headline", "title"),
        description="Headline / title",
    )
    url: str = Field("", validation_alias=AliasChoices("url", "link"), description="Article URL")
    summary: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("summary", "description", "excerpt"),
        description="Summary from the source",
    )
    content: Optional[str] = Field(None, description="Full text or HTML, when the source has it")
    source: Optional[str] = Field(None, description="Outlet or feed name")
    score: Optional[float] = Field(
        None,
        validation_alias=AliasChoices("score", "relevance_score"),
        description="Relevance score, when the source provides one",
    )
    timestamp: Optional[datetime] = Field(
        None,
        validation_alias=AliasChoices("timestamp", "published", "date"),
        description="Publication date",
    )
    external_id: Optional[str] = Field(None, description="Id in the originating system")

    @property
    def key(self) -> str:
        """Identifier used in error reports."""
        return self.url or self.headline or "<unnamed candidate>"

    @property
    def body(self) -> str:
        """Text the normalizer fingerprints: content, else summary, else headline."""
        return self.content or self.summary or self.headline

    def missing_fields(self) -> list:
        missing = []
        if not self.headline.strip():
            missing.append("headline")
        if not self.url.strip():
            missing.append("url")
        return missing
