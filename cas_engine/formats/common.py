"""
Helpers shared by the format extractors.

Numeric cleanup, label lookups, line tokenization and statement-period
parsing live here so each issuer module only carries its own layout rules.
"""

import logging
import re
from dataclasses import dataclass, field
from datetime import date
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Iterable, List, Optional, Sequence, Tuple

from dateutil import parser as date_parser

from cas_engine.exceptions import ExtractionIncomplete
from cas_engine.models import (
    DEFAULT_CATEGORY,
    InvestorInfo,
    MutualFundFolio,
    SchemeValuation,
    StatementPeriod,
)

logger = logging.getLogger(__name__)

TWO_PLACES = Decimal("0.01")
ZERO = Decimal("0.00")
UNKNOWN_AMC = "Unknown AMC"

# Everything except digits, decimal point and minus sign is dropped
NON_NUMERIC = re.compile(r"[^\d.\-]")

# Stripped before NON_NUMERIC; "Rs." would otherwise leave a stray dot
CURRENCY_MARKER = re.compile(r"₹|Rs\.?|INR", re.IGNORECASE)

# A whitespace-separated token that is a number, optionally with a currency
NUMERIC_TOKEN = re.compile(r"^(?:₹|Rs\.?|INR)?-?\d[\d,]*(?:\.\d+)?$", re.IGNORECASE)

# "₹ 1,000" -> "₹1,000" so the symbol stays attached to its number
CURRENCY_GAP = re.compile(r"(₹|\bRs\.?|\bINR)\s+(?=\d)", re.IGNORECASE)

ISIN_PATTERN = re.compile(r"\b([A-Z]{2}[A-Z0-9]{9}[0-9])\b")
PAN_PATTERN = re.compile(r"\b([A-Z]{5}[0-9]{4}[A-Z])\b")
EMAIL_PATTERN = re.compile(
    r"E-?mail\s*(?:Id)?\s*:?\s*([a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,})",
    re.IGNORECASE,
)
MOBILE_PATTERN = re.compile(
    r"(?:Mobile|Phone|Contact)\s*(?:No\.?)?\s*:?\s*\+?(\d{10,13})\b",
    re.IGNORECASE,
)

# Category keywords, matched on whole words of the lower-cased name
BOND_WORDS = re.compile(r"\b(?:bonds?|debentures?|ncds?)\b")
GOVERNMENT_WORDS = re.compile(r"\b(?:government|goi|sdl|t-bills?|treasury)\b")
EQUITY_WORDS = re.compile(r"\b(?:equity|shares)\b")
FUND_WORDS = re.compile(r"\b(?:etf|fund)\b")

# Statement period layouts seen across issuers
PERIOD_PATTERNS: Tuple[re.Pattern, ...] = (
    re.compile(
        r"Statement\s+Period\s*:?\s*(\d{2}/\d{2}/\d{4})\s*to\s*(\d{2}/\d{2}/\d{4})",
        re.IGNORECASE,
    ),
    re.compile(
        r"From\s*:?\s*(\d{2}/\d{2}/\d{4})\s*To\s*:?\s*(\d{2}/\d{2}/\d{4})",
        re.IGNORECASE,
    ),
    re.compile(
        r"Period\s*(?:from)?\s*:?\s*(\d{2}-[A-Z]{3}-\d{4})\s*to\s*(\d{2}-[A-Z]{3}-\d{4})",
        re.IGNORECASE,
    ),
    re.compile(
        r"(\d{2}-[A-Za-z]{3}-\d{4})\s*To\s*(\d{2}-[A-Za-z]{3}-\d{4})",
        re.IGNORECASE,
    ),
)


@dataclass(frozen=True)
class LineValues:
    """
    A statement line split into its descriptive text and trailing numbers.

    Attributes:
        label: Leading text (security or scheme name)
        fields: Tokens from the first numeric token onwards
    """
    label: str
    fields: Tuple[str, ...]

    @property
    def last(self) -> Optional[str]:
        return self.fields[-1] if self.fields else None

    @property
    def first(self) -> Optional[str]:
        return self.fields[0] if self.fields else None


def parse_amount(raw) -> Decimal:
    """
    Parse a currency string such as "₹1,23,456.78" into a Decimal.

    All characters except digits, "." and "-" are stripped and the result is
    rounded to 2 places. Anything unparsable gives 0 so that a single bad
    line never aborts a whole statement.

    Args:
        raw: Value as printed in the statement.

    Returns:
        Decimal rounded to 2 places (may be negative).
    """
    if raw is None:
        return ZERO
    cleaned = NON_NUMERIC.sub("", CURRENCY_MARKER.sub("", str(raw)))
    try:
        value = Decimal(cleaned)
    except InvalidOperation:
        return ZERO
    if not value.is_finite():
        return ZERO
    return value.quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def parse_currency(raw) -> Decimal:
    """Parse a market value; negative amounts are treated as zero."""
    value = parse_amount(raw)
    if value < 0:
        logger.debug(f"Negative market value {raw!r} clamped to 0")
        return ZERO
    return value


def parse_quantity(raw) -> Decimal:
    """
    Parse a share/unit count without rounding.

    Returns:
        Decimal quantity, or 0 when the text is not a number.
    """
    if raw is None:
        return Decimal("0")
    cleaned = NON_NUMERIC.sub("", CURRENCY_MARKER.sub("", str(raw)))
    try:
        value = Decimal(cleaned)
    except InvalidOperation:
        return Decimal("0")
    if not value.is_finite():
        return Decimal("0")
    return value


def clean_text(text: Optional[str]) -> str:
    """Collapse runs of whitespace into single spaces."""
    if not text:
        return ""
    return " ".join(text.split())


def first_match(text: str, patterns: Iterable[re.Pattern], group: int = 1) -> Optional[str]:
    """
    Return the first non-empty capture from the first pattern that matches.

    Args:
        text: Text to search.
        patterns: Compiled patterns tried in order.
        group: Capture group to return.

    Returns:
        Stripped capture, or None.
    """
    for pattern in patterns:
        match = pattern.search(text)
        if match and match.group(group):
            value = clean_text(match.group(group))
            if value:
                return value
    return None


def split_lines(text: str) -> List[str]:
    """Split raw text into whitespace-normalized, non-empty lines."""
    lines = []
    for line in text.splitlines():
        normalized = clean_text(CURRENCY_GAP.sub(r"\1", line))
        if normalized:
            lines.append(normalized)
    return lines


def split_label_and_values(text: str) -> LineValues:
    """
    Split "HDFC BANK LTD 10 1,650.00 16,500.00" into label and numbers.

    The label runs up to the first numeric token; every token after that is
    kept as a field, including malformed ones such as "N/A", so callers can
    pick columns by position.

    Args:
        text: Line text with any leading identifier already removed.

    Returns:
        LineValues with the label and trailing fields.
    """
    tokens = text.split()
    for index, token in enumerate(tokens):
        if NUMERIC_TOKEN.match(token):
            return LineValues(
                label=" ".join(tokens[:index]).strip(" -:"),
                fields=tuple(tokens[index:]),
            )
    return LineValues(label=" ".join(tokens).strip(" -:"), fields=())


def has_numeric_token(text: str) -> bool:
    """Return True if any whitespace-separated token is a number."""
    return any(NUMERIC_TOKEN.match(token) for token in text.split())


def categorize_security(isin: str, name: str) -> str:
    """
    Derive an asset category from the ISIN and security name.

    Args:
        isin: ISIN (may be empty).
        name: Security name.

    Returns:
        Category label; DEFAULT_CATEGORY when nothing identifies the asset.
    """
    lowered = (name or "").lower()
    isin = isin or ""

    if BOND_WORDS.search(lowered):
        return "Bonds"
    if GOVERNMENT_WORDS.search(lowered):
        return "Government Securities"
    if isin.startswith("INE") or EQUITY_WORDS.search(lowered):
        return "Equity"
    if isin.startswith("INF") or FUND_WORDS.search(lowered):
        return "Mutual Fund"
    return DEFAULT_CATEGORY


def parse_statement_date(raw: str) -> Optional[date]:
    """
    Parse a statement date in dd/mm/yyyy or dd-MMM-yyyy form.

    Returns:
        date, or None if the text is not a valid date.
    """
    try:
        return date_parser.parse(raw, dayfirst=True).date()
    except (ValueError, OverflowError):
        logger.debug(f"Could not parse statement date {raw!r}")
        return None


def extract_statement_period(
    text: str, patterns: Sequence[re.Pattern] = PERIOD_PATTERNS
) -> StatementPeriod:
    """
    Find the statement coverage period.

    Args:
        text: Statement text.
        patterns: Period patterns with (from, to) capture groups.

    Returns:
        StatementPeriod, empty when no period is printed.
    """
    for pattern in patterns:
        match = pattern.search(text)
        if match:
            return StatementPeriod(
                start=parse_statement_date(match.group(1)),
                end=parse_statement_date(match.group(2)),
            )
    return StatementPeriod()


def extract_contact_details(text: str) -> Tuple[Optional[str], Optional[str]]:
    """
    Extract email and mobile number from labelled fields.

    Returns:
        Tuple of (email, mobile).
    """
    return first_match(text, [EMAIL_PATTERN]), first_match(text, [MOBILE_PATTERN])


def require_investor(investor: InvestorInfo, format_name: str) -> InvestorInfo:
    """
    Ensure at least one investor field was found.

    Raises:
        ExtractionIncomplete: If name, tax id and address are all missing.
    """
    if not investor.has_any_field():
        raise ExtractionIncomplete(
            f"{format_name} statement has no investor name, PAN or address; "
            f"the document may be truncated or partially rendered"
        )
    return investor


@dataclass
class FolioBuilder:
    """Mutable accumulator for a folio while its scheme lines are read."""
    amc: Optional[str] = None
    folio_number: str = ""
    registrar: Optional[str] = None
    schemes: List[SchemeValuation] = field(default_factory=list)

    def build(self) -> MutualFundFolio:
        return MutualFundFolio(
            amc=self.amc or UNKNOWN_AMC,
            folio_number=self.folio_number,
            schemes=tuple(self.schemes),
            registrar=self.registrar,
        )


def scheme_from_values(values: LineValues, isin: Optional[str] = None) -> SchemeValuation:
    """
    Build a scheme valuation from "name units nav value" columns.

    With three or more numbers the first two are units and NAV and the last
    is the value; with two, units and value; with one, just the value.
    """
    fields = values.fields
    units = nav = None
    if len(fields) >= 3:
        units, nav = parse_quantity(fields[0]), parse_quantity(fields[1])
    elif len(fields) == 2:
        units = parse_quantity(fields[0])
    return SchemeValuation(
        scheme_name=values.label,
        current_value=parse_currency(values.last),
        isin=isin,
        units=units,
        nav=nav,
    )
