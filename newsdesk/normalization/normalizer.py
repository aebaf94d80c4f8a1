"""Derive clean text, a content fingerprint and a word count from raw payloads.

Everything here is pure: no I/O, no shared state, safe to call concurrently.
Applying :func:`normalize` to its own ``clean_content`` returns the same result.
"""

import hashlib
import json
import logging
import re
from typing import Any, Mapping, Optional, Union

import trafilatura
from bs4 import BeautifulSoup
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

_WHITESPACE_RE = re.compile(r"\s+")
_MARKUP_RE = re.compile(r"<[a-zA-Z!/?][^>]*>|&[#a-zA-Z0-9]+;")
_DOCUMENT_RE = re.compile(r"<\s*(html|body)\b", re.IGNORECASE)
_NON_CONTENT_TAGS = ("script", "style", "noscript", "template", "iframe", "svg")


def compute_content_hash(text: str) -> str:
    """SHA-256 hex digest of already-clean text."""
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


EMPTY_CONTENT_HASH = compute_content_hash("")


class NormalizedContent(BaseModel):
    """Output of :func:`normalize`."""

    clean_content: str = Field(..., description="Plain text with collapsed whitespace")
    content_hash: str = Field(..., description="SHA-256 of clean_content")
    word_count: int = Field(..., ge=0, description="Whitespace-delimited tokens")

    @property
    def is_empty(self) -> bool:
        return self.content_hash == EMPTY_CONTENT_HASH


def count_words(text: Optional[str]) -> int:
    """Count whitespace-delimited non-empty tokens."""
    if not text or not isinstance(text, str):
        return 0
    return len(text.split())


def _collapse(text: str) -> str:
    return _WHITESPACE_RE.sub(" ", text).strip()


def _extract_document(raw: str) -> Optional[str]:
    """Boilerplate-aware extraction for full HTML pages."""
    try:
        return trafilatura.extract(
            raw,
            include_comments=False,
            include_tables=False,
            favor_precision=True,
        )
    except Exception as e:
        logger.debug("trafilatura could not extract document: %s", e)
        return None


def _extract_fragment(raw: str) -> str:
    soup = BeautifulSoup(raw, "html.parser")
    for tag in soup(_NON_CONTENT_TAGS):
        tag.decompose()
    return soup.get_text(" ")


_MAX_STRIP_PASSES = 10


def _strip_once(raw: str) -> str:
    if not _MARKUP_RE.search(raw):
        return _collapse(raw)

    text = None
    if _DOCUMENT_RE.search(raw):
        text = _extract_document(raw)
    if not text:
        text = _extract_fragment(raw)
    return _collapse(text)


def strip_markup(raw: Union[str, bytes, None]) -> str:
    """Strip markup and collapse whitespace; empty string for unusable input.

    Escaped markup (``&lt;b&gt;``) and double-escaped entities (``&amp;amp;``)
    decode into text that is itself markup, so passes repeat until the text
    stops changing. The result is a fixed point: stripping it again is a no-op.
    """
    if raw is None:
        return ""
    if isinstance(raw, bytes):
        raw = raw.decode("utf-8", errors="replace")
    if not isinstance(raw, str) or not raw.strip():
        return ""

    text = _strip_once(raw)
    for _ in range(_MAX_STRIP_PASSES):
        stripped = _strip_once(text)
        if stripped == text:
            break
        text = stripped
    return text


def normalize(raw: Union[str, bytes, None]) -> NormalizedContent:
    """Normalize a raw text/HTML payload.

    Empty or unusable input yields empty ``clean_content`` and the fixed
    :data:`EMPTY_CONTENT_HASH` sentinel rather than a missing hash.
    """
    clean = strip_markup(raw)
    return NormalizedContent(
        clean_content=clean,
        content_hash=compute_content_hash(clean),
        word_count=count_words(clean),
    )


def _field(item: Any, name: str) -> Any:
    if isinstance(item, Mapping):
        return item.get(name)
    return getattr(item, name, None)


def _wordpress_content(item: Any) -> Optional[str]:
    variants = _field(item, "content_variants")
    if isinstance(variants, str):
        try:
            variants = json.loads(variants)
        except ValueError:
            return None
    if not isinstance(variants, Mapping):
        return None
    wordpress = variants.get("wordpress_content")
    if isinstance(wordpress, Mapping):
        return wordpress.get("content") or None
    return None


def select_source_text(item: Any) -> str:
    """Pick the best raw text for an item.

    Priority: WordPress content variant, existing clean content, raw content,
    then the summary/excerpt.
    """
    for candidate in (
        _wordpress_content(item),
        _field(item, "clean_content"),
        _field(item, "raw_content"),
        _field(item, "summary"),
        _field(item, "excerpt"),
    ):
        if candidate and isinstance(candidate, (str, bytes)):
            return candidate
    return ""


def extract_clean_content(item: Any) -> str:
    """Clean text for an item, following :func:`select_source_text` priority."""
    return strip_markup(select_source_text(item))
