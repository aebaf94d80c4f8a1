"""Content-hash deduplication."""

from .index import DeduplicationIndex, RegistrationResult, RegistrationStatus

__all__ = ["DeduplicationIndex", "RegistrationResult", "RegistrationStatus"]
