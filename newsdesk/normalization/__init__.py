"""Content normalization: clean text, fingerprint and word count."""

from .normalizer import (
    EMPTY_CONTENT_HASH,
    NormalizedContent,
    compute_content_hash,
    count_words,
    extract_clean_content,
    normalize,
    select_source_text,
    strip_markup,
)

__all__ = [
    "EMPTY_CONTENT_HASH",
    "NormalizedContent",
    "compute_content_hash",
    "count_words",
    "extract_clean_content",
    "normalize",
    "select_source_text",
    "strip_markup",
]
