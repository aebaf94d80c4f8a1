"""Error taxonomy for the editorial content pipeline."""

from typing import Iterable, Optional


class NewsdeskError(Exception):
    """Base class for all newsdesk errors."""


class ValidationError(NewsdeskError):
    """A request was rejected; never retried automatically."""


class TransitionError(ValidationError):
    """Illegal or stale workflow status transition."""

    def __init__(self, from_state: str, to_state: str, reason: Optional[str] = None) -> None:
        self.from_state = str(from_state)
        self.to_state = str(to_state)
        self.reason = reason
        message = f"Illegal transition {self.from_state} -> {self.to_state}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class DraftIncompleteError(ValidationError):
    """Draft is missing one or more required fields."""

    def __init__(self, missing: Iterable[str]) -> None:
        self.missing = sorted(missing)
        super().__init__(f"Draft is missing required fields: {', '.join(self.missing)}")


class InvalidJobParametersError(ValidationError):
    """Job schedule or parameters failed validation."""


class NotNormalizedError(ValidationError):
    """Content must be normalized before it can be registered."""


class ItemNotFoundError(NewsdeskError):
    """No content item with the given id."""

    def __init__(self, item_id: str) -> None:
        self.item_id = item_id
        super().__init__(f"Content item not found: {item_id}")


class JobNotFoundError(NewsdeskError):
    """No scheduled job with the given name."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Scheduled job not found: {name}")


class ConcurrentUpdateError(NewsdeskError):
    """Compare-and-set on an item's status lost to another writer."""

    def __init__(self, item_id: str, expected_status: str, actual_status: Optional[str]) -> None:
        self.item_id = item_id
        self.expected_status = expected_status
        self.actual_status = actual_status
        super().__init__(
            f"Item {item_id} status changed concurrently "
            f"(expected {expected_status}, found {actual_status})"
        )


class TriggerError(NewsdeskError):
    """A job's backing operation failed before producing per-item results."""

    def __init__(self, job_name: str, message: str) -> None:
        self.job_name = job_name
        super().__init__(f"Job '{job_name}' failed: {message}")
