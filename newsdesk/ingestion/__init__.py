"""Candidate sources and ingestion into the content store."""

from .documents import DocumentExtractor, TextFileExtractor, import_document
from .models import CandidateItem
from .pipeline import IngestCandidateOperation, IngestResult, run_import, select_candidates
from .sources import (
    CandidateSource,
    FeedSource,
    SearchPromptSource,
    WordPressClient,
    parse_search_response,
)

__all__ = [
    "CandidateItem",
    "CandidateSource",
    "DocumentExtractor",
    "FeedSource",
    "IngestCandidateOperation",
    "IngestResult",
    "SearchPromptSource",
    "TextFileExtractor",
    "WordPressClient",
    "import_document",
    "parse_search_response",
    "run_import",
    "select_candidates",
]
