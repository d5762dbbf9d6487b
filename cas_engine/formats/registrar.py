"""
Extractor for registrar statements (CAMS and KFintech).

Both registrars print the same consolidated layout: an investor header,
then one block per AMC with "Folio No" lines, a scheme line carrying the
ISIN, and a closing balance line with units, NAV and market value.
Registrar statements carry no demat accounts.
"""

import logging
import re
from typing import List, Optional, Tuple

from cas_engine.formats.common import (
    FolioBuilder,
    extract_contact_details,
    extract_statement_period,
    first_match,
    has_numeric_token,
    parse_currency,
    parse_quantity,
    scheme_from_values,
    split_label_and_values,
    split_lines,
)
from cas_engine.models import (
    DematAccount,
    FormatType,
    Holding,
    InvestorInfo,
    MutualFundFolio,
    SchemeValuation,
    StatementPeriod,
)

logger = logging.getLogger(__name__)


class RegistrarExtractor:
    """
    Shared extractor for the registrar layout.

    Subclasses set the format type and the registrar name recorded on
    folios that do not print their own "Registrar :" field.
    """

    format_type = FormatType.CAMS
    registrar_name = "CAMS"

    NAME_PATTERNS = [
        re.compile(r"^\s*(?:Investor\s+|Client\s+)?Name\s*:\s*(.+?)\s*$", re.IGNORECASE | re.MULTILINE),
    ]
    PAN_PATTERNS = [
        re.compile(r"\bPAN\s*:\s*([A-Z]{5}[0-9]{4}[A-Z])", re.IGNORECASE),
        re.compile(r"Permanent\s+Account\s+Number\s*:\s*([A-Z]{5}[0-9]{4}[A-Z])", re.IGNORECASE),
    ]
    ADDRESS_PATTERN = re.compile(r"^\s*Address\s*:\s*(.+)$", re.IGNORECASE | re.MULTILINE)

    AMC_PATTERN = re.compile(r"^([A-Za-z&.\s]+(?:Mutual\s+Fund|MF))\s*$", re.IGNORECASE)
    FOLIO_PATTERN = re.compile(
        r"Folio\s*No\.?\s*:\s*([A-Z0-9/\s]+?)(?:\s+(?:KYC|PAN)\b|$)", re.IGNORECASE
    )
    SCHEME_ISIN_PATTERN = re.compile(
        r"^(?:[A-Z0-9]+-)?(.+?)\s*-\s*ISIN\s*:\s*(INF[A-Z0-9]{9})"
    )
    REGISTRAR_PATTERN = re.compile(r"Registrar\s*:\s*(\w+)", re.IGNORECASE)
    UNITS_PATTERN = re.compile(r"Closing\s*Unit\s*Balance\s*:\s*(\S+)", re.IGNORECASE)
    NAV_PATTERN = re.compile(r"\bNAV\s*on[^:]*:\s*(?:INR|Rs\.?|₹)?\s*(\S+)", re.IGNORECASE)
    MARKET_VALUE_PATTERN = re.compile(
        r"Market\s*Value[^:]*:\s*(?:INR|Rs\.?|₹)?\s*(\S+)", re.IGNORECASE
    )
    SCHEME_WORDS = re.compile(r"(?i)\b(?:fund|scheme)\b")

    # Header words that are never the investor's name
    NAME_SKIP_WORDS = (
        "consolidated", "statement", "portfolio", "mutual fund", "investor",
        "summary", "cams", "kfintech", "karvy",
    )
    LETTERS_ONLY = re.compile(r"^[A-Za-z][A-Za-z.\s]{2,48}$")

    def extract_investor_info(self, text: str) -> InvestorInfo:
        email, mobile = extract_contact_details(text)
        name = first_match(text, self.NAME_PATTERNS) or self._name_after_email(text)
        investor = InvestorInfo(
            name=name,
            tax_id=first_match(text, self.PAN_PATTERNS),
            address=first_match(text, [self.ADDRESS_PATTERN]),
            email=email,
            mobile=mobile,
        )
        logger.debug(
            f"{self.registrar_name} investor: name={'found' if investor.name else 'missing'}, "
            f"pan={'found' if investor.tax_id else 'missing'}"
        )
        return investor

    def extract_accounts(self, text: str) -> List[DematAccount]:
        return []

    def extract_holdings(self, text: str) -> List[Holding]:
        return []

    def extract_funds(self, text: str) -> List[MutualFundFolio]:
        """
        Extract folios grouped under their AMC headers.

        A scheme line with an ISIN is held until its closing balance or
        market value line arrives. Simple "Scheme Fund units nav value"
        lines become schemes directly.

        Args:
            text: Statement text.

        Returns:
            Folios with at least one scheme, in statement order.
        """
        builders: List[FolioBuilder] = []
        current: Optional[FolioBuilder] = None
        amc: Optional[str] = None
        pending: Optional[Tuple[str, Optional[str]]] = None

        for line in split_lines(text):
            amc_match = self.AMC_PATTERN.match(line)
            if amc_match:
                amc = " ".join(amc_match.group(1).split())
                current = None
                pending = None
                logger.debug(f"AMC: {amc}")
                continue

            folio_match = self.FOLIO_PATTERN.search(line)
            if folio_match:
                folio_number = "".join(folio_match.group(1).split())
                if current is None or current.folio_number != folio_number:
                    current = FolioBuilder(
                        amc=amc, folio_number=folio_number, registrar=self.registrar_name
                    )
                    builders.append(current)
                continue

            registrar_match = self.REGISTRAR_PATTERN.search(line)
            if registrar_match and current is not None:
                current.registrar = registrar_match.group(1)

            scheme_match = self.SCHEME_ISIN_PATTERN.match(line)
            if scheme_match:
                pending = (scheme_match.group(1).strip(" -"), scheme_match.group(2))
                continue

            scheme = self._parse_valuation(line, pending)
            if scheme is None:
                continue

            if current is None:
                current = FolioBuilder(amc=amc, registrar=self.registrar_name)
                builders.append(current)
            current.schemes.append(scheme)
            pending = None

        folios = [b.build() for b in builders if b.schemes]
        logger.info(f"{self.registrar_name}: parsed {len(folios)} mutual fund folios")
        return folios

    def extract_statement_period(self, text: str) -> StatementPeriod:
        return extract_statement_period(text)

    def _parse_valuation(
        self, line: str, pending: Optional[Tuple[str, Optional[str]]]
    ) -> Optional[SchemeValuation]:
        """Turn a closing balance, market value or simple scheme line into a valuation."""
        value_match = self.MARKET_VALUE_PATTERN.search(line)
        if value_match:
            if pending is not None:
                name, isin = pending
            else:
                name, isin = line[:value_match.start()], None
                name = self.UNITS_PATTERN.split(name)[0]
            units_match = self.UNITS_PATTERN.search(line)
            nav_match = self.NAV_PATTERN.search(line)
            return SchemeValuation(
                scheme_name=name.strip(" -:"),
                current_value=parse_currency(value_match.group(1)),
                isin=isin,
                units=parse_quantity(units_match.group(1)) if units_match else None,
                nav=parse_quantity(nav_match.group(1)) if nav_match else None,
            )

        if self.SCHEME_WORDS.search(line) and has_numeric_token(line):
            values = split_label_and_values(line)
            if values.label and len(values.fields) >= 3:
                return scheme_from_values(values)
        return None

    def _name_after_email(self, text: str) -> Optional[str]:
        """Fall back to the first plain-letters line after the email line."""
        seen_email = False
        for line in split_lines(text):
            lowered = line.lower()
            if "email" in lowered or "e-mail" in lowered:
                seen_email = True
                continue
            if not seen_email:
                continue
            if any(word in lowered for word in self.NAME_SKIP_WORDS):
                continue
            if self.LETTERS_ONLY.match(line):
                return line
        return None


class CAMSExtractor(RegistrarExtractor):
    """Statements issued by Computer Age Management Services."""

    format_type = FormatType.CAMS
    registrar_name = "CAMS"


class KFintechExtractor(RegistrarExtractor):
    """Statements issued by KFin Technologies (formerly Karvy)."""

    format_type = FormatType.KFINTECH
    registrar_name = "KFintech"
