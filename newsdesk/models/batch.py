"""Batch operation result models."""

from typing import Dict, List

from pydantic import BaseModel, Field


class ItemError(BaseModel):
    """A single item's failure inside a batch."""

    item_id: str = Field(..., description="Id (or key) of the failing item")
    reason: str = Field(..., description="Failure message")


class BatchOperationResult(BaseModel):
    """Aggregate outcome of one batch run."""

    operation: str = Field("", description="Operation name")
    success_count: int = Field(0, ge=0)
    error_count: int = Field(0, ge=0)
    errors: List[ItemError] = Field(default_factory=list)
    outcomes: Dict[str, int] = Field(
        default_factory=dict, description="Successful items counted by outcome label"
    )

    @property
    def total(self) -> int:
        return self.success_count + self.error_count

    @property
    def ok(self) -> bool:
        return self.error_count == 0

    def summary(self) -> Dict[str, int]:
        """Counts suitable for storing as a job's last-run result."""
        counts = {"success": self.success_count, "errors": self.error_count}
        counts.update(self.outcomes)
        return counts
