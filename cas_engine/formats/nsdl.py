"""
Extractor for NSDL (National Securities Depository) consolidated statements.

NSDL accounts are printed as a single 16-character id ("IN" + 14 digits)
whose first 8 characters are the DP ID. Holdings follow each account id as
"ISIN name quantity price value" rows. Non-demat mutual fund folios come
after the "Mutual Fund Statement" heading.
"""

import logging
import re
from dataclasses import replace
from typing import Dict, List, Optional

from cas_engine.formats.common import (
    ISIN_PATTERN,
    FolioBuilder,
    categorize_security,
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
    StatementPeriod,
)

logger = logging.getLogger(__name__)


class NSDLExtractor:
    """Extracts investor, accounts, holdings and folios from NSDL text."""

    format_type = FormatType.NSDL
    depository = "NSDL"

    NAME_PATTERNS = [
        re.compile(
            r"^\s*(?:Investor\s+|Client\s+)?Name\s*:\s*(.+?)(?=\s+(?:PAN|Folio)\b|\s*$)",
            re.IGNORECASE | re.MULTILINE,
        ),
        re.compile(
            r"^\s*Account\s+Holder\s*:\s*(.+?)(?=\s+(?:PAN|Folio)\b|\s*$)",
            re.IGNORECASE | re.MULTILINE,
        ),
    ]
    PAN_PATTERNS = [
        re.compile(r"\bPAN\s*:?\s*([A-Z]{5}[0-9]{4}[A-Z])\b"),
        re.compile(r"Permanent\s+Account\s+Number\s*:?\s*([A-Z]{5}[0-9]{4}[A-Z])\b", re.IGNORECASE),
        re.compile(r"Tax\s+ID\s*:?\s*([A-Z]{5}[0-9]{4}[A-Z])\b", re.IGNORECASE),
    ]
    # The address may wrap over several lines before the next labelled field
    ADDRESS_PATTERNS = [
        re.compile(
            r"(?:Correspondence\s+)?Address\s*:\s*(.{1,200}?)(?=\b(?:E-?mail|Mobile|Phone|PAN|Folio)\b)",
            re.IGNORECASE | re.DOTALL,
        ),
        re.compile(r"^\s*Address\s*:\s*(.+)$", re.IGNORECASE | re.MULTILINE),
    ]

    ACCOUNT_PATTERN = re.compile(r"\b(IN\d{14})\b")
    DP_NAME_PATTERNS = [
        re.compile(r"^\s*DP\s*:\s*(.+)$", re.IGNORECASE),
        re.compile(r"^\s*Depository\s+Participant\s*:\s*(.+)$", re.IGNORECASE),
    ]
    DP_NAME_WINDOW = 3

    MF_STATEMENT_MARKER = re.compile(r"Mutual\s+Fund\s+Statement", re.IGNORECASE)
    AMC_LINE = re.compile(r"^(.+?\s(?:Mutual\s+Fund|Asset\s+Management)\b.*)$", re.IGNORECASE)
    FOLIO_PATTERN = re.compile(r"\bFolio\s+No\.?\s*:?\s*([\dA-Z/]+)", re.IGNORECASE)

    def extract_investor_info(self, text: str) -> InvestorInfo:
        """
        Extract investor details.

        Args:
            text: Statement text.

        Returns:
            InvestorInfo; missing fields are None.
        """
        email, mobile = extract_contact_details(text)
        investor = InvestorInfo(
            name=first_match(text, self.NAME_PATTERNS),
            tax_id=first_match(text, self.PAN_PATTERNS),
            address=first_match(text, self.ADDRESS_PATTERNS),
            email=email,
            mobile=mobile,
        )
        logger.debug(
            f"NSDL investor: name={'found' if investor.name else 'missing'}, "
            f"pan={'found' if investor.tax_id else 'missing'}"
        )
        return investor

    def extract_accounts(self, text: str) -> List[DematAccount]:
        """
        Extract demat accounts from their 16-character ids.

        Returns:
            Unique accounts in order of first appearance.
        """
        lines = split_lines(text)
        accounts: Dict[str, DematAccount] = {}

        for i, line in enumerate(lines):
            for match in self.ACCOUNT_PATTERN.finditer(line):
                account_id = match.group(1)
                if account_id in accounts:
                    continue
                accounts[account_id] = DematAccount(
                    depository=self.depository,
                    participant_id=account_id[:8],
                    client_id=account_id[8:],
                    dp_name=self._find_dp_name(lines, i),
                )

        logger.info(f"NSDL: found {len(accounts)} demat accounts")
        return list(accounts.values())

    def extract_holdings(self, text: str) -> List[Holding]:
        """
        Extract ISIN rows, each attached to the account id printed above it.

        Rows before the first account id belong to the first account.
        """
        lines = self._demat_lines(split_lines(text))
        account_ids = [m.group(1) for line in lines for m in self.ACCOUNT_PATTERN.finditer(line)]
        current_key = self._account_key(account_ids[0]) if account_ids else ""
        holdings: List[Holding] = []

        for line in lines:
            account_match = self.ACCOUNT_PATTERN.search(line)
            if account_match:
                current_key = self._account_key(account_match.group(1))
                continue

            isin_match = ISIN_PATTERN.search(line)
            if not isin_match:
                continue

            isin = isin_match.group(1)
            values = split_label_and_values(line[isin_match.end():])
            if not values.fields:
                logger.debug(f"NSDL: ISIN {isin} without values, skipped")
                continue

            quantity = parse_quantity(values.first) if len(values.fields) >= 2 else parse_quantity(None)
            holding = Holding(
                security_id=isin,
                name=values.label,
                quantity=quantity,
                current_value=parse_currency(values.last),
                category=categorize_security(isin, values.label),
            )
            holdings.append(replace(holding, account_key=current_key))

        logger.info(f"NSDL: parsed {len(holdings)} holdings")
        return holdings

    def extract_funds(self, text: str) -> List[MutualFundFolio]:
        """
        Extract non-demat mutual fund folios.

        Returns:
            Folios with at least one scheme row.
        """
        lines = split_lines(text)
        start = self._mf_statement_index(lines)
        if start is None:
            logger.info("NSDL: no mutual fund statement section")
            return []

        builders: List[FolioBuilder] = []
        current: Optional[FolioBuilder] = None
        amc: Optional[str] = None

        for line in lines[start + 1:]:
            folio_match = self.FOLIO_PATTERN.search(line)
            if folio_match:
                current = FolioBuilder(amc=amc, folio_number=folio_match.group(1))
                builders.append(current)
                continue

            isin_match = ISIN_PATTERN.search(line)
            if isin_match:
                values = split_label_and_values(line[isin_match.end():])
                if not values.fields:
                    continue
                if current is None:
                    current = FolioBuilder(amc=amc)
                    builders.append(current)
                current.schemes.append(scheme_from_values(values, isin=isin_match.group(1)))
                continue

            amc_match = self.AMC_LINE.match(line)
            if amc_match and not has_numeric_token(line):
                amc = amc_match.group(1).strip()
                current = None

        skipped = sum(1 for b in builders if not b.schemes)
        if skipped:
            logger.debug(f"NSDL: skipped {skipped} folios without schemes")

        folios = [b.build() for b in builders if b.schemes]
        logger.info(f"NSDL: parsed {len(folios)} mutual fund folios")
        return folios

    def extract_statement_period(self, text: str) -> StatementPeriod:
        return extract_statement_period(text)

    @staticmethod
    def _account_key(account_id: str) -> str:
        return f"{account_id[:8]}/{account_id[8:]}"

    def _find_dp_name(self, lines: List[str], index: int) -> Optional[str]:
        """Look for a DP name a few lines around an account id, nearest first."""
        window = range(
            max(0, index - self.DP_NAME_WINDOW),
            min(len(lines), index + self.DP_NAME_WINDOW + 1),
        )
        for i in sorted(window, key=lambda j: abs(j - index)):
            name = first_match(lines[i], self.DP_NAME_PATTERNS)
            if name:
                return name
        return None

    def _mf_statement_index(self, lines: List[str]) -> Optional[int]:
        for i, line in enumerate(lines):
            if self.MF_STATEMENT_MARKER.search(line):
                return i
        return None

    def _demat_lines(self, lines: List[str]) -> List[str]:
        end = self._mf_statement_index(lines)
        return lines if end is None else lines[:end]
