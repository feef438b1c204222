"""Document loading service for PDF, DOCX and EPUB uploads."""
import io
import logging
import os
import re
import tempfile
from typing import List, Optional, Tuple

import docx
import ebooklib
import fitz  # PyMuPDF
from bs4 import BeautifulSoup
from ebooklib import epub

from config import DOCX_PAGE_CHARS
from models.document import Document, Page
from services.errors import ExtractionError, NoTextFound, UnsupportedFormat

logger = logging.getLogger(__name__)


class DocumentLoader:
    """Extracts ordered page texts from uploaded documents."""

    SUPPORTED_FORMATS = ("pdf", "docx", "epub")

    def __init__(self, docx_page_chars: int = DOCX_PAGE_CHARS):
        """
        Initialize DocumentLoader.

        Args:
            docx_page_chars: Characters per pseudo-page for DOCX files
        """
        self.docx_page_chars = docx_page_chars

    @classmethod
    def detect_format(cls, filename: Optional[str]) -> str:
        """
        Map a filename to a supported format by extension.

        Raises:
            UnsupportedFormat: For anything other than .pdf, .docx or .epub
        """
        extension = os.path.splitext((filename or "").lower())[1].lstrip(".")
        if extension not in cls.SUPPORTED_FORMATS:
            raise UnsupportedFormat(
                "Unsupported file type. Please upload a PDF, DOCX, or EPUB file."
            )
        return extension

    def extract(self, data: bytes, declared_format: str, filename: str = "upload") -> Document:
        """
        Extract page texts from an uploaded file.

        Args:
            data: Raw file bytes
            declared_format: "pdf", "docx" or "epub"
            filename: Original filename, for logging

        Returns:
            Document with 1-indexed pages in reading order

        Raises:
            UnsupportedFormat: Unknown declared format
            NoTextFound: The file contains no text
            ExtractionError: The file could not be parsed
        """
        doc_type = (declared_format or "").lower()
        if doc_type not in self.SUPPORTED_FORMATS:
            raise UnsupportedFormat(f"Unsupported document format: {declared_format!r}")
        if not data:
            raise NoTextFound(f"No {doc_type.upper()} file uploaded.")

        chapters: Optional[List[str]] = None
        if doc_type == "pdf":
            texts = self._load_pdf(data)
        elif doc_type == "docx":
            texts = self._load_docx(data)
        else:
            texts, chapters = self._load_epub(data)

        if not any(text.strip() for text in texts):
            raise NoTextFound(f"No text content found in {doc_type.upper()} file.")

        pages = [
            Page(page_number=i, text=text, word_count=len(text.split()))
            for i, text in enumerate(texts, start=1)
        ]
        logger.info(f"Extracted {filename}: {len(pages)} pages ({doc_type})")
        return Document(
            filename=filename,
            doc_type=doc_type,
            pages=pages,
            total_pages=len(pages),
            chapters=chapters
        )

    def _load_pdf(self, data: bytes) -> List[str]:
        """One entry per PDF page, empty pages kept so numbering stays aligned."""
        try:
            pdf_document = fitz.open(stream=data, filetype="pdf")
        except (fitz.FileDataError, RuntimeError, ValueError) as e:
            logger.error(f"Failed to open PDF: {str(e)}")
            raise ExtractionError(f"Failed to extract text from the PDF: {e}") from e

        try:
            return [page.get_text().strip() for page in pdf_document]
        finally:
            pdf_document.close()

    def _load_docx(self, data: bytes) -> List[str]:
        """DOCX has no page layout, so the raw text is cut into fixed-size pseudo-pages."""
        try:
            document = docx.Document(io.BytesIO(data))
        except Exception as e:
            logger.error(f"Failed to open DOCX: {str(e)}")
            raise ExtractionError("Failed to extract DOCX file.") from e

        full_text = "\n\n".join(p.text for p in document.paragraphs).strip()
        size = max(self.docx_page_chars, 1)
        return [full_text[i:i + size] for i in range(0, len(full_text), size)]

    def _load_epub(self, data: bytes) -> Tuple[List[str], List[str]]:
        """One page per non-empty spine document, titled by its first heading."""
        # ebooklib reads from a path
        with tempfile.NamedTemporaryFile(suffix=".epub", delete=False) as handle:
            handle.write(data)
            path = handle.name
        try:
            book = epub.read_epub(path, options={"ignore_ncx": True})
        except Exception as e:
            logger.error(f"Failed to open EPUB: {str(e)}")
            raise ExtractionError("Failed to extract EPUB file.") from e
        finally:
            os.remove(path)

        texts: List[str] = []
        titles: List[str] = []
        for idref, _ in book.spine:
            item = book.get_item_with_id(idref)
            if item is None or isinstance(item, epub.EpubNav):
                continue
            if item.get_type() != ebooklib.ITEM_DOCUMENT:
                continue

            soup = BeautifulSoup(item.get_body_content(), "lxml")
            for br in soup.find_all("br"):
                br.replace_with("\n")
            text = re.sub(r"\n{3,}", "\n\n", soup.get_text("\n")).strip()
            if not text:
                continue

            heading = soup.find(["h1", "h2", "h3"])
            texts.append(text)
            titles.append(heading.get_text(" ", strip=True) if heading else "")

        return texts, titles
