"""
Data models for the CAS extraction engine.

This module defines the canonical, immutable structures produced by a parse:
- Investor information
- Demat accounts and the holdings they carry
- Mutual fund folios and scheme valuations
- Summary statistics and parse metadata
- Validation results
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, List, Optional, Tuple

DEFAULT_CATEGORY = "Other"
ZERO = Decimal("0.00")


class FormatType(Enum):
    """
    Issuer families whose statement layouts the engine understands.

    CDSL and NSDL are depositories; CAMS and KFintech are registrars that
    share one statement layout. UNKNOWN is returned by detection when no
    signature matches and never appears on a successful parse.
    """
    CDSL = "CDSL"
    NSDL = "NSDL"
    CAMS = "CAMS"
    KFINTECH = "KFINTECH"
    UNKNOWN = "UNKNOWN"


def _as_decimal(value: Any) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def _money(value: Decimal) -> float:
    return float(value)


@dataclass(frozen=True)
class InvestorInfo:
    """
    Investor personal information from the statement.

    Every field is optional. A statement is only considered incomplete when
    none of name, tax id or address could be located.

    Attributes:
        name: Full name of the investor
        tax_id: Permanent Account Number (10-character alphanumeric)
        address: Registered address
        email: Email address
        mobile: Mobile phone number
    """
    name: Optional[str] = None
    tax_id: Optional[str] = None
    address: Optional[str] = None
    email: Optional[str] = None
    mobile: Optional[str] = None

    def __post_init__(self):
        """Normalize investor data."""
        if self.name:
            object.__setattr__(self, "name", " ".join(self.name.split()))
        if self.tax_id:
            object.__setattr__(self, "tax_id", self.tax_id.strip().upper())
        if self.address:
            object.__setattr__(self, "address", " ".join(self.address.split()))
        if self.email:
            object.__setattr__(self, "email", self.email.strip().lower())

    def has_any_field(self) -> bool:
        """Return True if at least one identifying field was found."""
        return bool(self.name or self.tax_id or self.address)


@dataclass(frozen=True)
class Holding:
    """
    A security held in a demat account.

    Attributes:
        security_id: ISIN of the security
        name: Display name of the security
        quantity: Number of shares/units held
        current_value: Market value on the statement date (never negative)
        category: Asset category label, "Other" when the text gives none
        account_key: "<participant id>/<client id>" of the owning account
        id: Stable identifier assigned during aggregation
    """
    security_id: str
    name: str
    quantity: Decimal
    current_value: Decimal
    category: str = DEFAULT_CATEGORY
    account_key: str = ""
    id: str = ""

    def __post_init__(self):
        """Normalize holding data."""
        object.__setattr__(self, "security_id", (self.security_id or "").strip().upper())
        object.__setattr__(self, "name", " ".join((self.name or "").split()))
        object.__setattr__(self, "quantity", _as_decimal(self.quantity))
        object.__setattr__(self, "current_value", _as_decimal(self.current_value))
        if not self.category:
            object.__setattr__(self, "category", DEFAULT_CATEGORY)
        if self.current_value < 0:
            raise ValueError(f"Holding value cannot be negative: {self.current_value}")


@dataclass(frozen=True)
class DematAccount:
    """
    A dematerialized securities account held at a depository.

    Attributes:
        depository: Depository name (CDSL, NSDL)
        participant_id: Depository Participant ID
        client_id: Client / beneficial owner ID with the DP
        dp_name: Name of the Depository Participant, when printed
        holding_ids: Identifiers of the holdings in this account
    """
    depository: str
    participant_id: str
    client_id: str
    dp_name: Optional[str] = None
    holding_ids: Tuple[str, ...] = ()

    @property
    def key(self) -> str:
        """Key used to link holdings to this account."""
        return f"{self.participant_id}/{self.client_id}"


@dataclass(frozen=True)
class SchemeValuation:
    """A single scheme line inside a mutual fund folio."""
    scheme_name: str
    current_value: Decimal
    isin: Optional[str] = None
    units: Optional[Decimal] = None
    nav: Optional[Decimal] = None

    def __post_init__(self):
        object.__setattr__(self, "scheme_name", " ".join((self.scheme_name or "").split()))
        object.__setattr__(self, "current_value", _as_decimal(self.current_value))
        if self.current_value < 0:
            raise ValueError(f"Scheme value cannot be negative: {self.current_value}")


@dataclass(frozen=True)
class MutualFundFolio:
    """
    A folio held with one fund house.

    Attributes:
        amc: Asset Management Company name
        folio_number: Folio number with the AMC
        schemes: Scheme valuations in this folio
        registrar: Registrar and Transfer Agent (CAMS, KFintech), when known
    """
    amc: str
    folio_number: str
    schemes: Tuple[SchemeValuation, ...] = ()
    registrar: Optional[str] = None

    @property
    def value(self) -> Decimal:
        """Total value of all schemes in the folio."""
        return sum((s.current_value for s in self.schemes), ZERO)


@dataclass(frozen=True)
class Summary:
    """
    Aggregate statistics for a parsed statement.

    total_value is always holdings_value + mutual_funds_value. categories
    holds (name, value) pairs in first-seen order; a mapping is accepted
    and converted.
    """
    total_value: Decimal
    holdings_value: Decimal
    mutual_funds_value: Decimal
    holdings_count: int
    funds_count: int
    categories: Tuple[Tuple[str, Decimal], ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "categories", tuple(dict(self.categories).items()))

    def to_dict(self) -> dict:
        return {
            "totalValue": _money(self.total_value),
            "holdingsValue": _money(self.holdings_value),
            "mutualFundsValue": _money(self.mutual_funds_value),
            "holdingsCount": self.holdings_count,
            "fundsCount": self.funds_count,
            "categories": {name: _money(v) for name, v in self.categories},
        }


@dataclass(frozen=True)
class StatementPeriod:
    """Statement coverage dates, when the statement prints them."""
    start: Optional[date] = None
    end: Optional[date] = None

    def to_dict(self) -> Optional[dict]:
        if self.start is None and self.end is None:
            return None
        return {
            "from": self.start.isoformat() if self.start else None,
            "to": self.end.isoformat() if self.end else None,
        }


@dataclass(frozen=True)
class Metadata:
    """Information about the parse itself rather than the portfolio."""
    cas_type: FormatType
    tracking_id: str
    parser_version: str
    parsed_at: datetime
    statement_period: StatementPeriod = field(default_factory=StatementPeriod)
    warnings: Tuple[str, ...] = ()

    def __post_init__(self):
        if self.cas_type is None:
            raise ValueError("cas_type is required")


@dataclass(frozen=True)
class StatementBody:
    """Normalized entities of a statement, before metadata is attached."""
    investor: InvestorInfo
    accounts: Tuple[DematAccount, ...] = ()
    holdings: Tuple[Holding, ...] = ()
    mutual_funds: Tuple[MutualFundFolio, ...] = ()


@dataclass(frozen=True)
class ParsedStatement:
    """
    Complete parsed statement.

    This is the root aggregate handed back by a successful parse. It is a
    point-in-time snapshot; getting fresh data means parsing again.
    """
    investor: InvestorInfo
    accounts: Tuple[DematAccount, ...]
    holdings: Tuple[Holding, ...]
    mutual_funds: Tuple[MutualFundFolio, ...]
    summary: Summary
    meta: Metadata

    def __post_init__(self):
        if self.meta.cas_type is FormatType.UNKNOWN:
            raise ValueError("A parsed statement cannot have an unknown format")

    def get_holdings_for_account(self, account: DematAccount) -> List[Holding]:
        """Get all holdings belonging to an account."""
        return [h for h in self.holdings if h.account_key == account.key]

    def get_folio(self, folio_number: str) -> Optional[MutualFundFolio]:
        """Get a folio by its number."""
        for folio in self.mutual_funds:
            if folio.folio_number == folio_number:
                return folio
        return None

    def to_dict(self) -> dict:
        """
        Convert the statement to a dictionary for JSON serialization.

        Returns:
            Dictionary in the canonical output structure.
        """
        return {
            "investor": {
                "name": self.investor.name,
                "taxId": self.investor.tax_id,
                "address": self.investor.address,
                "email": self.investor.email,
                "mobile": self.investor.mobile,
            },
            "accounts": [
                {
                    "depository": a.depository,
                    "participantId": a.participant_id,
                    "clientId": a.client_id,
                    "dpName": a.dp_name,
                    "holdingIds": list(a.holding_ids),
                }
                for a in self.accounts
            ],
            "holdings": [
                {
                    "id": h.id,
                    "securityId": h.security_id,
                    "name": h.name,
                    "quantity": float(h.quantity),
                    "currentValue": _money(h.current_value),
                    "category": h.category,
                }
                for h in self.holdings
            ],
            "mutualFunds": [
                {
                    "amc": f.amc,
                    "folioNumber": f.folio_number,
                    "registrar": f.registrar,
                    "schemes": [
                        {
                            "schemeName": s.scheme_name,
                            "isin": s.isin,
                            "units": float(s.units) if s.units is not None else None,
                            "nav": float(s.nav) if s.nav is not None else None,
                            "currentValue": _money(s.current_value),
                        }
                        for s in f.schemes
                    ],
                }
                for f in self.mutual_funds
            ],
            "summary": self.summary.to_dict(),
            "meta": {
                "casType": self.meta.cas_type.value,
                "trackingId": self.meta.tracking_id,
                "parserVersion": self.meta.parser_version,
                "parsedAt": self.meta.parsed_at.isoformat(),
                "statementPeriod": self.meta.statement_period.to_dict(),
                "warnings": list(self.meta.warnings),
            },
        }

    def content_dict(self) -> dict:
        """to_dict() without the per-call tracking id and timestamp."""
        data = self.to_dict()
        del data["meta"]["trackingId"]
        del data["meta"]["parsedAt"]
        return data


@dataclass
class ValidationResult:
    """
    Findings from validation checks on parsed statement data.

    Validation never fails a parse; every finding is a warning that ends up
    in the statement metadata.
    """
    warnings: List[str] = field(default_factory=list)

    def add_warning(self, message: str) -> None:
        """Add a non-critical warning."""
        self.warnings.append(message)

    def merge(self, other: "ValidationResult") -> None:
        """Merge another validation result into this one."""
        self.warnings.extend(other.warnings)
