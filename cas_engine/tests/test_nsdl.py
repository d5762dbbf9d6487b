"""Tests for the NSDL statement extractor."""

from datetime import date
from decimal import Decimal

import pytest

from cas_engine.formats.nsdl import NSDLExtractor


@pytest.fixture
def extractor():
    return NSDLExtractor()


class TestInvestorInfo:
    """Tests for investor extraction."""

    def test_labelled_fields(self, extractor, nsdl_text):
        investor = extractor.extract_investor_info(nsdl_text)

        assert investor.name == "PRIYA MEHTA"
        assert investor.tax_id == "ABCPM1234K"
        assert investor.address == "12 MG Road, Bengaluru 560001"
        assert investor.email == "priya@example.com"
        assert investor.mobile is None

    def test_wrapped_address(self, extractor):
        text = "Address : 4th Floor, Trade Centre\nBandra Kurla Complex\nMumbai 400051\nEmail : a@b.com"
        investor = extractor.extract_investor_info(text)

        assert investor.address == "4th Floor, Trade Centre Bandra Kurla Complex Mumbai 400051"

    def test_address_without_following_label(self, extractor):
        investor = extractor.extract_investor_info("Address : 1 Hill Road, Shimla")
        assert investor.address == "1 Hill Road, Shimla"

    def test_tax_id_label(self, extractor):
        investor = extractor.extract_investor_info("Tax ID : ABCPM1234K")
        assert investor.tax_id == "ABCPM1234K"

    def test_name_stops_before_pan(self, extractor):
        investor = extractor.extract_investor_info("Client Name : PRIYA MEHTA PAN ABCPM1234K")

        assert investor.name == "PRIYA MEHTA"
        assert investor.tax_id == "ABCPM1234K"


class TestAccounts:
    """Tests for demat account extraction."""

    def test_accounts_with_dp_names(self, extractor, nsdl_text):
        accounts = extractor.extract_accounts(nsdl_text)

        assert [(a.participant_id, a.client_id) for a in accounts] == [
            ("IN300123", "45678901"),
            ("IN300987", "65432109"),
        ]
        assert accounts[0].dp_name == "ZERODHA BROKING LIMITED"
        assert accounts[1].dp_name == "ICICI SECURITIES LIMITED"
        assert all(a.depository == "NSDL" for a in accounts)

    def test_repeated_account_id_kept_once(self, extractor):
        text = "IN30012345678901\nsomething\nIN30012345678901"
        assert len(extractor.extract_accounts(text)) == 1

    def test_dp_name_outside_window(self, extractor):
        text = "DP : FAR AWAY BROKER\na\nb\nc\nd\nIN30012345678901"
        assert extractor.extract_accounts(text)[0].dp_name is None

    def test_depository_participant_label(self, extractor):
        text = "Depository Participant : HDFC BANK LIMITED\nIN30012345678901"
        assert extractor.extract_accounts(text)[0].dp_name == "HDFC BANK LIMITED"


class TestHoldings:
    """Tests for holdings extraction."""

    def test_holdings_attached_to_first_account(self, extractor, nsdl_text):
        holdings = extractor.extract_holdings(nsdl_text)

        assert [h.security_id for h in holdings] == ["INE002A01018", "INE467B01029"]
        assert [h.current_value for h in holdings] == [Decimal("25000.00"), Decimal("19000.00")]
        assert holdings[0].name == "RELIANCE INDUSTRIES LTD"
        assert holdings[0].quantity == Decimal("10")
        assert all(h.account_key == "IN300123/45678901" for h in holdings)
        assert all(h.category == "Equity" for h in holdings)

    def test_rows_before_first_account_go_to_first_account(self, extractor):
        text = (
            "INE002A01018 RELIANCE INDUSTRIES LTD 10 2,500.00 25,000.00\n"
            "IN30012345678901\n"
            "INE467B01029 TATA CONSULTANCY SERVICES LTD 5 3,800.00 19,000.00\n"
        )
        holdings = extractor.extract_holdings(text)

        assert [h.account_key for h in holdings] == ["IN300123/45678901", "IN300123/45678901"]

    def test_isin_without_values_skipped(self, extractor):
        text = "IN30012345678901\nINE002A01018 RELIANCE INDUSTRIES LTD\n"
        assert extractor.extract_holdings(text) == []

    def test_fund_rows_not_read_as_holdings(self, extractor, nsdl_text):
        holdings = extractor.extract_holdings(nsdl_text)
        assert "INF846K01EW2" not in [h.security_id for h in holdings]


class TestFunds:
    """Tests for mutual fund extraction."""

    def test_folio_with_scheme(self, extractor, nsdl_text):
        funds = extractor.extract_funds(nsdl_text)

        assert len(funds) == 1
        folio = funds[0]
        assert folio.amc == "Axis Mutual Fund"
        assert folio.folio_number == "9988776655"
        scheme = folio.schemes[0]
        assert scheme.isin == "INF846K01EW2"
        assert scheme.scheme_name == "AXIS BLUECHIP FUND DIRECT GROWTH"
        assert scheme.units == Decimal("100.000")
        assert scheme.nav == Decimal("50.00")
        assert scheme.current_value == Decimal("5000.00")

    def test_folio_without_schemes_skipped(self, extractor, nsdl_text):
        funds = extractor.extract_funds(nsdl_text)
        assert "4455667788" not in [f.folio_number for f in funds]

    def test_no_fund_section(self, extractor):
        assert extractor.extract_funds("IN30012345678901") == []


class TestStatementPeriod:
    def test_period(self, extractor, nsdl_text):
        period = extractor.extract_statement_period(nsdl_text)

        assert period.start == date(2024, 4, 1)
        assert period.end == date(2024, 4, 30)
