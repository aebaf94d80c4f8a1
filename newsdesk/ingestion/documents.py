"""Import uploaded documents as news items."""

from pathlib import Path
from typing import Optional, Protocol, Union

from ..normalization import strip_markup
from .models import CandidateItem
from .pipeline import IngestCandidateOperation, IngestResult


class DocumentExtractor(Protocol):
    """Pulls plain text out of a document file."""

    def extract_text(self, path: Path) -> str:
        ...


class TextFileExtractor:
    """Reads text, Markdown and HTML files."""

    suffixes = (".txt", ".md", ".markdown", ".html", ".htm")

    def __init__(self, encoding: str = "utf-8") -> None:
        self.encoding = encoding

    def extract_text(self, path: Path) -> str:
        if path.suffix.lower() not in self.suffixes:
            raise ValueError(f"Unsupported document type: {path.suffix or path.name}")
        return path.read_text(encoding=self.encoding, errors="replace")


def _first_line(text: str) -> str:
    for line in text.splitlines():
        line = strip_markup(line)
        if line:
            return line[:200]
    return ""


async def import_document(
    path: Union[str, Path],
    operation: IngestCandidateOperation,
    extractor: Optional[DocumentExtractor] = None,
    headline: Optional[str] = None,
    url: Optional[str] = None,
) -> IngestResult:
    """Extract a document's text and ingest it like any other candidate.

    The headline defaults to the first non-empty line and the URL to the
    file's ``file://`` URI.
    """
    path = Path(path).expanduser().resolve()
    text = (extractor or TextFileExtractor()).extract_text(path)

    candidate = CandidateItem(
        headline=headline or _first_line(text) or path.stem,
        url=url or path.as_uri(),
        content=text,
        source="document",
    )
    return await operation.ingest(candidate)
