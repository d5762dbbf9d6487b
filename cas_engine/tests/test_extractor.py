"""Tests for PDF extractor."""

from unittest.mock import MagicMock, patch

import pytest
from pdfminer.pdfdocument import PDFPasswordIncorrect

from cas_engine.config import EngineConfig
from cas_engine.exceptions import IncorrectPassword, PasswordRequired, UnreadableDocument
from cas_engine.extractor import (
    ExtractedDocument,
    PageContent,
    PDFExtractor,
    extract_text_from_pdf,
)


class TestExtractedDocument:
    """Tests for ExtractedDocument dataclass."""

    def test_create_empty_document(self):
        """Test creating an empty document."""
        doc = ExtractedDocument()

        assert len(doc.pages) == 0
        assert doc.total_pages == 0
        assert not doc.has_text()

    def test_get_all_text_keeps_line_breaks(self):
        page1 = PageContent(page_number=1, raw_text="Page 1\ntext")
        page2 = PageContent(page_number=2, raw_text="Page 2 text")

        doc = ExtractedDocument(pages=[page1, page2], total_pages=2)

        assert doc.get_all_text() == "Page 1\ntext\nPage 2 text"


class TestInputChecks:
    """Inputs rejected before pdfplumber is involved."""

    @pytest.mark.parametrize("data", [b"", b"hello world", b"PK\x03\x04 zip archive"])
    def test_not_a_pdf(self, data):
        with pytest.raises(UnreadableDocument):
            PDFExtractor().extract(data)

    def test_not_bytes(self):
        with pytest.raises(UnreadableDocument, match="str"):
            PDFExtractor().extract("%PDF-1.4")

    @patch("cas_engine.extractor.pdfplumber")
    def test_header_after_leading_junk(self, mock_pdfplumber, fake_pdf):
        mock_pdfplumber.open.return_value = fake_pdf(["Line 1"])

        doc = PDFExtractor().extract(b"\x00\x00junk%PDF-1.7 ...")

        assert doc.total_pages == 1


class TestPDFExtractor:
    """Tests for PDFExtractor class."""

    @patch("cas_engine.extractor.pdfplumber")
    def test_extract_with_mock(self, mock_pdfplumber, fake_pdf, pdf_bytes):
        """Test extraction with mocked pdfplumber."""
        mock_pdfplumber.open.return_value = fake_pdf(["Line 1\n  Line   2\n\nLine 3", "Page two"])

        doc = PDFExtractor().extract(pdf_bytes)

        assert doc.total_pages == 2
        assert doc.pages[0].raw_text == "Line 1\n  Line   2\n\nLine 3"
        assert doc.pages[1].page_number == 2
        assert "Page two" in doc.get_all_text()

    @patch("cas_engine.extractor.pdfplumber")
    def test_password_passed_through(self, mock_pdfplumber, fake_pdf, pdf_bytes):
        mock_pdfplumber.open.return_value = fake_pdf(["text"])

        PDFExtractor().extract(pdf_bytes, password="ABCDE1234F")

        assert mock_pdfplumber.open.call_args.kwargs["password"] == "ABCDE1234F"

    @patch("cas_engine.extractor.pdfplumber")
    def test_layout_fallback_for_sparse_pages(self, mock_pdfplumber, pdf_bytes):
        page = MagicMock()
        page.extract_text.side_effect = lambda **kwargs: (
            "Full layout text with many more characters" if kwargs.get("layout") else "short"
        )
        pdf = MagicMock()
        pdf.pages = [page]
        pdf.__enter__ = MagicMock(return_value=pdf)
        pdf.__exit__ = MagicMock(return_value=False)
        mock_pdfplumber.open.return_value = pdf

        doc = PDFExtractor(EngineConfig(layout_fallback_min_chars=10)).extract(pdf_bytes)

        assert doc.pages[0].raw_text == "Full layout text with many more characters"

    @patch("cas_engine.extractor.pdfplumber")
    def test_no_text_is_unreadable(self, mock_pdfplumber, fake_pdf, pdf_bytes):
        """Scanned PDFs have no text layer."""
        mock_pdfplumber.open.return_value = fake_pdf([None, ""])

        with pytest.raises(UnreadableDocument, match="scanned"):
            PDFExtractor().extract(pdf_bytes)

    @patch("cas_engine.extractor.pdfplumber")
    def test_broken_pdf_is_unreadable(self, mock_pdfplumber, pdf_bytes):
        mock_pdfplumber.open.side_effect = ValueError("No /Root object!")

        with pytest.raises(UnreadableDocument) as exc_info:
            PDFExtractor().extract(pdf_bytes)

        assert isinstance(exc_info.value.__cause__, ValueError)


class TestEncryptedPDF:
    """Password handling for encrypted statements."""

    @patch("cas_engine.extractor.pdfplumber")
    def test_missing_password(self, mock_pdfplumber, pdf_bytes):
        mock_pdfplumber.open.side_effect = PDFPasswordIncorrect()

        with pytest.raises(PasswordRequired):
            PDFExtractor().extract(pdf_bytes)

    @patch("cas_engine.extractor.pdfplumber")
    def test_wrong_password(self, mock_pdfplumber, pdf_bytes):
        mock_pdfplumber.open.side_effect = PDFPasswordIncorrect()

        with pytest.raises(IncorrectPassword):
            PDFExtractor().extract(pdf_bytes, password="wrong")

    @patch("cas_engine.extractor.pdfplumber")
    def test_wrapped_password_error(self, mock_pdfplumber, pdf_bytes):
        """pdfplumber wraps pdfminer errors in its own exception type."""
        mock_pdfplumber.open.side_effect = Exception(PDFPasswordIncorrect())

        with pytest.raises(IncorrectPassword):
            PDFExtractor().extract(pdf_bytes, password="wrong")

    @patch("cas_engine.extractor.pdfplumber")
    def test_chained_password_error(self, mock_pdfplumber, pdf_bytes):
        def raise_chained(*args, **kwargs):
            try:
                raise PDFPasswordIncorrect()
            except PDFPasswordIncorrect as e:
                raise RuntimeError("open failed") from e

        mock_pdfplumber.open.side_effect = raise_chained

        with pytest.raises(PasswordRequired):
            PDFExtractor().extract(pdf_bytes)


class TestConvenienceFunction:
    """Tests for extract_text_from_pdf convenience function."""

    @patch("cas_engine.extractor.pdfplumber")
    def test_returns_text(self, mock_pdfplumber, fake_pdf, pdf_bytes):
        mock_pdfplumber.open.return_value = fake_pdf(["Hello", "World"])

        assert extract_text_from_pdf(pdf_bytes) == "Hello\nWorld"

    def test_rejects_garbage(self):
        with pytest.raises(UnreadableDocument):
            extract_text_from_pdf(b"garbage")
