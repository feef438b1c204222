"""Document data models."""
from dataclasses import dataclass, field
from typing import List, Optional


@dataclass(frozen=True)
class Page:
    """Represents a single page (or chapter) extracted from a document."""
    page_number: int  # 1-indexed
    text: str
    word_count: int


@dataclass
class Document:
    """Represents an uploaded document split into pages."""
    filename: str
    doc_type: str  # "pdf", "docx" or "epub"
    pages: List[Page]
    total_pages: int
    chapters: Optional[List[str]] = field(default=None)  # EPUB chapter titles, aligned with pages

    @property
    def page_texts(self) -> List[str]:
        return [page.text for page in self.pages]

    @property
    def text(self) -> str:
        return "\n\n".join(self.page_texts).strip()
