"""
PDF text extraction module for the CAS extraction engine.

This module decrypts (when a password is given) and flattens statement PDFs
into text using pdfplumber, preserving the line structure that the format
extractors rely on. Table layouts degrade to whitespace-separated text.
"""

import io
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Tuple, Type

import pdfplumber
from pdfminer.pdfdocument import PDFPasswordIncorrect

from cas_engine.config import EngineConfig
from cas_engine.exceptions import (
    CASEngineError,
    IncorrectPassword,
    PasswordRequired,
    UnreadableDocument,
)

logger = logging.getLogger(__name__)

# PDF headers may be preceded by junk, but only within the first kilobyte.
PDF_HEADER = b"%PDF-"
HEADER_SEARCH_WINDOW = 1024


@dataclass
class PageContent:
    """
    Represents extracted content from a single PDF page.

    Attributes:
        page_number: 1-indexed page number
        raw_text: Complete raw text of the page
    """
    page_number: int
    raw_text: str = ""


@dataclass
class ExtractedDocument:
    """
    Represents the complete extracted content from a PDF document.

    Attributes:
        pages: List of page contents
        total_pages: Total number of pages in the document
    """
    pages: List[PageContent] = field(default_factory=list)
    total_pages: int = 0

    def get_all_text(self) -> str:
        """
        Get complete text from all pages.

        Returns:
            Complete text content of the document with line breaks preserved.
        """
        return "\n".join(page.raw_text for page in self.pages)

    def has_text(self) -> bool:
        """Return True if any page yielded non-whitespace text."""
        return any(page.raw_text.strip() for page in self.pages)


class PDFExtractor:
    """
    Extracts text content from statement PDFs held in memory.

    Each call opens its own pdfplumber document, so one extractor can serve
    concurrent parses.
    """

    def __init__(self, config: Optional[EngineConfig] = None):
        """
        Initialize the PDF extractor.

        Args:
            config: Extraction tolerances (default: EngineConfig()).
        """
        self.config = config or EngineConfig()

    def extract(self, data: bytes, password: Optional[str] = None) -> ExtractedDocument:
        """
        Extract text content from PDF bytes.

        Args:
            data: Raw PDF content.
            password: Optional password for encrypted PDFs.

        Returns:
            ExtractedDocument containing all extracted text.

        Raises:
            PasswordRequired: If the PDF is encrypted and no password was given.
            IncorrectPassword: If the given password does not open the PDF.
            UnreadableDocument: If the bytes are not a readable PDF.
        """
        if not isinstance(data, (bytes, bytearray, memoryview)):
            raise UnreadableDocument(
                f"Expected PDF bytes, got {type(data).__name__}"
            )
        data = bytes(data)
        if not data:
            raise UnreadableDocument("Document is empty")
        if PDF_HEADER not in data[:HEADER_SEARCH_WINDOW]:
            raise UnreadableDocument("Document is not a PDF (missing %PDF header)")

        logger.info(f"Extracting text from PDF ({len(data)} bytes)")

        document = ExtractedDocument()

        try:
            with pdfplumber.open(io.BytesIO(data), password=password or "") as pdf:
                document.total_pages = len(pdf.pages)
                logger.info(f"PDF has {document.total_pages} pages")

                for page_num, page in enumerate(pdf.pages, start=1):
                    page_content = self._extract_page(page, page_num)
                    document.pages.append(page_content)
                    logger.debug(
                        f"Page {page_num}: extracted {len(page_content.raw_text)} characters"
                    )

        except CASEngineError:
            raise
        except Exception as e:
            raise self._translate_error(e, password) from e

        if not document.has_text():
            raise UnreadableDocument(
                "No text could be extracted; the PDF may be a scanned image"
            )

        return document

    def _translate_error(self, error: Exception, password: Optional[str]) -> CASEngineError:
        """
        Map a pdfplumber/pdfminer failure onto the engine's error types.

        pdfplumber wraps pdfminer exceptions, so the password error is looked
        up through the exception's args and cause chain.
        """
        if _find_in_chain(error, (PDFPasswordIncorrect,)) is not None:
            if password:
                logger.warning("PDF password was rejected")
                return IncorrectPassword("The supplied password does not open this PDF")
            logger.warning("PDF is encrypted and no password was supplied")
            return PasswordRequired("This PDF is password protected")

        logger.error(f"Failed to read PDF: {error!r}")
        return UnreadableDocument(f"Failed to read PDF: {error}")

    def _extract_page(self, page, page_number: int) -> PageContent:
        """
        Extract text from a single PDF page.

        Args:
            page: pdfplumber page object.
            page_number: 1-indexed page number.

        Returns:
            PageContent with the raw text.
        """
        content = PageContent(page_number=page_number)

        raw_text = None

        # Simple extraction keeps character sequences intact
        try:
            raw_text = page.extract_text(
                x_tolerance=self.config.x_tolerance,
                y_tolerance=self.config.y_tolerance,
            )
        except Exception as e:
            logger.debug(f"Simple extraction failed on page {page_number}: {e}")

        # Layout-aware extraction as fallback
        if not raw_text or len(raw_text.strip()) < self.config.layout_fallback_min_chars:
            try:
                raw_text_layout = page.extract_text(
                    layout=True,
                    x_tolerance=self.config.layout_x_tolerance,
                    y_tolerance=self.config.layout_y_tolerance,
                )
                if raw_text_layout and len(raw_text_layout.strip()) > len((raw_text or "").strip()):
                    raw_text = raw_text_layout
            except Exception as e:
                logger.debug(f"Layout extraction failed on page {page_number}: {e}")

        if raw_text:
            content.raw_text = raw_text
        else:
            logger.warning(f"No text extracted from page {page_number}")

        return content


def _find_in_chain(
    error: BaseException, types: Tuple[Type[BaseException], ...]
) -> Optional[BaseException]:
    """Search an exception, its args and its cause/context chain for a type."""
    seen = set()
    pending = [error]
    while pending:
        current = pending.pop()
        if id(current) in seen:
            continue
        seen.add(id(current))
        if isinstance(current, types):
            return current
        pending.extend(arg for arg in current.args if isinstance(arg, BaseException))
        if current.__cause__ is not None:
            pending.append(current.__cause__)
        if current.__context__ is not None:
            pending.append(current.__context__)
    return None


def extract_text_from_pdf(
    data: bytes,
    password: Optional[str] = None,
    config: Optional[EngineConfig] = None,
) -> str:
    """
    Convenience function to extract flattened text from PDF bytes.

    Args:
        data: Raw PDF content.
        password: Optional password for encrypted PDFs.
        config: Optional extraction settings.

    Returns:
        Text of all pages joined by newlines.
    """
    extractor = PDFExtractor(config=config)
    return extractor.extract(data, password=password).get_all_text()
