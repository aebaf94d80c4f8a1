"""Scheduled job models."""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .base import DBModel


class JobParameters(BaseModel):
    """Parameters understood by the built-in job handlers.

    Unknown keys are preserved so handlers registered later can read them.
    """

    model_config = ConfigDict(extra="allow")

    min_score: float = Field(0.0, ge=0.0, description="Drop candidates scoring below this")
    limit: int = Field(20, ge=1, le=1000, description="Maximum candidates per run")
    model_override: Optional[str] = Field(None, description="Model to use instead of the prompt's")
    keywords: List[str] = Field(default_factory=list, description="Search keywords")
    prompt_id: Optional[str] = Field(None, description="Prompt definition driving the search")
    batch_size: Optional[int] = Field(None, ge=1, description="Override the operation batch size")
    status: Optional[str] = Field(None, description="Restrict backfills to items in this status")
    source: Optional[str] = Field(None, description="Candidate source for imports (search, feeds, wordpress)")


class ScheduledJob(DBModel):
    """A recurring task definition."""

    name: str = Field(..., min_length=1, description="Unique job name")
    job_type: str = Field("news_import", description="Handler that runs this job")
    schedule: str = Field(..., description="Cron expression")
    is_enabled: bool = Field(True, description="Whether schedule-driven runs may fire")
    parameters: Dict[str, Any] = Field(default_factory=dict, description="Handler parameters")
    last_run: Optional[datetime] = Field(None, description="Last completed run")
    last_run_result: Optional[Dict[str, Any]] = Field(None, description="Counts from the last run")


class JobSettings(BaseModel):
    """Fields accepted by an upsert; omitted fields keep their stored value."""

    job_type: Optional[str] = None
    schedule: Optional[str] = None
    is_enabled: Optional[bool] = None
    parameters: Optional[Dict[str, Any]] = None


class JobExecution(DBModel):
    """Execution history entry for a job trigger."""

    job_name: str = Field(..., description="Job that ran")
    started_at: datetime = Field(..., description="When the trigger started")
    finished_at: Optional[datetime] = Field(None, description="When it finished")
    status: str = Field("running", description="running, success, partial or error")
    triggered_by: str = Field("manual", description="manual or schedule")
    summary: Optional[Dict[str, Any]] = Field(None, description="Result counts")
    error_message: Optional[str] = Field(None, description="Failure message")


class PromptDefinition(DBModel):
    """Search prompt configuration that can provision an import job."""

    name: str = Field(..., description="Prompt name")
    prompt_text: str = Field("", description="Prompt sent to the search model")
    model: Optional[str] = Field(None, description="Default model for this prompt")
    schedule: Optional[str] = Field(None, description="Cron expression for automatic runs")
    is_active: bool = Field(True, description="Whether the prompt is active")
    parameters: Dict[str, Any] = Field(default_factory=dict, description="Extra job parameters")

    @property
    def job_name(self) -> str:
        slug = "-".join(self.name.lower().split())
        return f"news-import-{slug}"
