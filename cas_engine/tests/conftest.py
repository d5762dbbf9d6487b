"""
Shared statement texts and helpers for the engine tests.

The sample statements below mirror the layouts of real CDSL, NSDL, CAMS
and KFintech statements after text extraction, with made-up investors.
"""

from unittest.mock import MagicMock

import pytest

from cas_engine.extractor import ExtractedDocument, PageContent

CDSL_TEXT = """\
Central Depository Services (India) Limited
Consolidated Account Statement
Statement Period : 01/04/2024 to 30/04/2024
Name : RAHUL SHARMA
PAN : ABCDE1234F
Address : 12 Park Street, Kolkata 700016
Email : rahul.sharma@example.com
Mobile : 9876543210
DP Name : ZERODHA BROKING LIMITED
DP ID: 12345678 CLIENT ID: 87654321
Equity Shares
INE040A01034 HDFC BANK LTD 100 1,234.57 ₹1,23,456.78
Mutual Funds
HDFC Mutual Fund
Folio No: 1234567/89
HDFC Flexi Cap Fund - Growth 100.000 500.00 ₹50,000.00
"""

NSDL_TEXT = """\
NATIONAL SECURITIES DEPOSITORY LIMITED
Consolidated Account Statement
Statement Period : 01/04/2024 to 30/04/2024
Name : PRIYA MEHTA
PAN : ABCPM1234K
Address : 12 MG Road, Bengaluru 560001
Email : priya@example.com
DP : ZERODHA BROKING LIMITED
IN30012345678901
INE002A01018 RELIANCE INDUSTRIES LTD 10 2,500.00 25,000.00
INE467B01029 TATA CONSULTANCY SERVICES LTD 5 3,800.00 19,000.00
DP : ICICI SECURITIES LIMITED
IN30098765432109
No Holdings
Mutual Fund Statement
Axis Mutual Fund
Folio No : 9988776655
INF846K01EW2 AXIS BLUECHIP FUND DIRECT GROWTH 100.000 50.00 5,000.00
Nippon India Mutual Fund
Folio No : 4455667788
"""

CAMS_TEXT = """\
Consolidated Account Statement
Computer Age Management Services Ltd (CAMS)
01-Apr-2024 To 30-Apr-2024
Email Id: anita.desai@example.com
Mobile: +919876543210
ANITA DESAI
Address : 45 Lake Road, Pune 411001
PAN: ABCDE1234F
HDFC Mutual Fund
Folio No: 12345678 / 90 KYC: OK PAN: OK
B123-HDFC Flexi Cap Fund - Direct Plan - Growth - ISIN: INF179K01UT0 Registrar : CAMS
Closing Unit Balance: 1,234.567 NAV on 30-Apr-2024: INR 1,500.25 Total Cost Value: 1,50,000.00 Market Value on 30-Apr-2024: INR 18,52,168.94
Axis Mutual Fund
Folio No: 910111213
AXIS LONG TERM EQUITY FUND 150.500 75.20 11,317.60
"""

KFINTECH_TEXT = """\
KFintech Consolidated Account Statement
15-Mar-2024 To 15-Apr-2024
Name : VIKRAM RAO
PAN : AAAPR5678Q
Email : vikram.rao@example.com
Mirae Asset Mutual Fund
Folio No: 77889900
MAEF-Mirae Asset Large Cap Fund - Regular Growth - ISIN: INF769K01010
Closing Unit Balance: 200.000 NAV on 15-Apr-2024: INR 100.00 Market Value on 15-Apr-2024: INR 20,000.00
"""

UNRELATED_TEXT = """\
Quarterly Newsletter
Welcome to our community garden update.
Tomato season starts in June.
"""


def make_document(text: str) -> ExtractedDocument:
    """Wrap statement text in a one-page ExtractedDocument."""
    page = PageContent(
        page_number=1,
        raw_text=text,
    )
    return ExtractedDocument(pages=[page], total_pages=1)


class StubExtractor:
    """PDF extractor double that returns fixed text or raises."""

    def __init__(self, text: str = "", error: Exception = None):
        self.text = text
        self.error = error
        self.calls = []

    def extract(self, data, password=None):
        self.calls.append((data, password))
        if self.error is not None:
            raise self.error
        return make_document(self.text)


def mock_pdf(pages_text):
    """Build a pdfplumber.open() return value with one page per text."""
    pages = []
    for text in pages_text:
        page = MagicMock()
        page.extract_text.return_value = text
        pages.append(page)

    pdf = MagicMock()
    pdf.pages = pages
    pdf.__enter__ = MagicMock(return_value=pdf)
    pdf.__exit__ = MagicMock(return_value=False)
    return pdf


@pytest.fixture
def cdsl_text():
    return CDSL_TEXT


@pytest.fixture
def nsdl_text():
    return NSDL_TEXT


@pytest.fixture
def cams_text():
    return CAMS_TEXT


@pytest.fixture
def kfintech_text():
    return KFINTECH_TEXT


@pytest.fixture
def unrelated_text():
    return UNRELATED_TEXT


@pytest.fixture
def stub_extractor():
    """Factory for StubExtractor instances."""
    return StubExtractor


@pytest.fixture
def fake_pdf():
    """Factory for mocked pdfplumber documents."""
    return mock_pdf


@pytest.fixture
def pdf_bytes():
    return b"%PDF-1.4 dummy content"
