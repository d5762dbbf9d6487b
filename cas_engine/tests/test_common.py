"""Tests for helpers shared by the format extractors."""

import re
from datetime import date
from decimal import Decimal

import pytest

from cas_engine.exceptions import ExtractionIncomplete
from cas_engine.formats.common import (
    FolioBuilder,
    categorize_security,
    extract_statement_period,
    first_match,
    parse_amount,
    parse_currency,
    parse_quantity,
    parse_statement_date,
    require_investor,
    scheme_from_values,
    split_label_and_values,
    split_lines,
)
from cas_engine.models import InvestorInfo, SchemeValuation


class TestParseAmount:
    """Tests for currency parsing."""

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("₹1,23,456.78", Decimal("123456.78")),
            ("Rs. 50,000.00", Decimal("50000.00")),
            ("INR 1,500.255", Decimal("1500.26")),
            ("16500", Decimal("16500.00")),
            ("-250.50", Decimal("-250.50")),
        ],
    )
    def test_parses_amounts(self, raw, expected):
        assert parse_amount(raw) == expected

    @pytest.mark.parametrize("raw", ["N/A", "", "--", "1.2.3", None])
    def test_unparsable_gives_zero(self, raw):
        assert parse_amount(raw) == Decimal("0.00")

    def test_currency_clamps_negative(self):
        assert parse_currency("-250.50") == Decimal("0.00")

    def test_quantity_keeps_precision(self):
        assert parse_quantity("1,234.5678") == Decimal("1234.5678")
        assert parse_quantity("nil") == Decimal("0")


class TestLineHelpers:
    """Tests for line tokenization."""

    def test_split_lines_joins_currency_symbol(self):
        lines = split_lines("  HDFC BANK   LTD  10 ₹ 1,650.00\n\n   \nNext")
        assert lines == ["HDFC BANK LTD 10 ₹1,650.00", "Next"]

    def test_split_label_and_values(self):
        values = split_label_and_values("HDFC BANK LTD 10 1,650.00 16,500.00")

        assert values.label == "HDFC BANK LTD"
        assert values.fields == ("10", "1,650.00", "16,500.00")
        assert values.first == "10"
        assert values.last == "16,500.00"

    def test_malformed_trailing_fields_kept(self):
        values = split_label_and_values("RELIANCE INDUSTRIES 10 2,500.00 N/A")
        assert values.last == "N/A"

    def test_no_numbers(self):
        values = split_label_and_values("Equity Shares")
        assert values.label == "Equity Shares"
        assert values.fields == ()
        assert values.last is None

    def test_first_match_tries_patterns_in_order(self):
        patterns = [re.compile(r"Missing:\s*(\w+)"), re.compile(r"Name:\s*(\w+)")]
        assert first_match("Name: Rahul", patterns) == "Rahul"
        assert first_match("nothing here", patterns) is None


class TestCategorizeSecurity:
    """Tests for security categorization."""

    @pytest.mark.parametrize(
        "isin,name,expected",
        [
            ("INE040A01034", "HDFC BANK LTD", "Equity"),
            ("INF846K01EW2", "AXIS BLUECHIP", "Mutual Fund"),
            ("INE001A07RS3", "HDFC 7.5% NCD", "Bonds"),
            ("INE752E07OF3", "POWER GRID BOND 2030", "Bonds"),
            ("IN0020230036", "GOI 7.18% 2033", "Government Securities"),
            ("", "NIFTY BEES ETF", "Mutual Fund"),
            ("US0378331005", "APPLE INC", "Other"),
        ],
    )
    def test_categories(self, isin, name, expected):
        assert categorize_security(isin, name) == expected

    def test_substrings_do_not_match(self):
        """A word like 'Bondada' is not a bond."""
        assert categorize_security("", "BONDADA ENGINEERING") == "Other"


class TestStatementPeriod:
    """Tests for statement period parsing."""

    def test_slash_dates_are_day_first(self):
        assert parse_statement_date("01/04/2024") == date(2024, 4, 1)

    def test_month_name_dates(self):
        assert parse_statement_date("30-Apr-2024") == date(2024, 4, 30)

    def test_invalid_date(self):
        assert parse_statement_date("31/02/2024") is None

    @pytest.mark.parametrize(
        "text",
        [
            "Statement Period : 01/04/2024 to 30/04/2024",
            "From : 01/04/2024 To : 30/04/2024",
            "Period : 01-APR-2024 to 30-APR-2024",
            "01-Apr-2024 To 30-Apr-2024",
        ],
    )
    def test_period_layouts(self, text):
        period = extract_statement_period(text)
        assert period.start == date(2024, 4, 1)
        assert period.end == date(2024, 4, 30)

    def test_no_period(self):
        period = extract_statement_period("no dates here")
        assert period.start is None and period.end is None


class TestRequireInvestor:
    """Tests for the investor completeness check."""

    def test_passes_with_any_field(self):
        investor = InvestorInfo(tax_id="ABCDE1234F")
        assert require_investor(investor, "CDSL") is investor

    def test_raises_without_fields(self):
        with pytest.raises(ExtractionIncomplete, match="CDSL"):
            require_investor(InvestorInfo(email="a@b.com"), "CDSL")


class TestSchemeFromValues:
    """Tests for scheme column mapping."""

    def test_units_nav_value(self):
        scheme = scheme_from_values(
            split_label_and_values("AXIS BLUECHIP FUND 100.000 50.00 5,000.00"),
            isin="INF846K01EW2",
        )
        assert scheme.scheme_name == "AXIS BLUECHIP FUND"
        assert scheme.units == Decimal("100.000")
        assert scheme.nav == Decimal("50.00")
        assert scheme.current_value == Decimal("5000.00")
        assert scheme.isin == "INF846K01EW2"

    def test_value_only(self):
        scheme = scheme_from_values(split_label_and_values("Liquid Fund ₹1,000.00"))
        assert scheme.units is None
        assert scheme.nav is None
        assert scheme.current_value == Decimal("1000.00")

    def test_folio_builder_defaults_amc(self):
        builder = FolioBuilder(folio_number="123")
        builder.schemes.append(SchemeValuation("A Fund", Decimal("1")))

        folio = builder.build()

        assert folio.amc == "Unknown AMC"
        assert folio.schemes[0].scheme_name == "A Fund"
