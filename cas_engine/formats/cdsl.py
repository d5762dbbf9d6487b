"""
Extractor for CDSL (Central Depository Services) consolidated statements.

A CDSL statement carries the investor block, one header per demat account
("DP ID : ... CLIENT ID : ..." or a 16-digit BO ID), the equity holdings
of each account, and a trailing mutual fund section with folios.
"""

import logging
import re
from dataclasses import dataclass, replace
from typing import Dict, List, Optional, Tuple

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

DEMAT_CONTEXT_CHARS = 100

_LABEL_END =r"(?=\s+(?:PAN|E-?mail|Mobile|Phone|Address)\s*:|\s*$)"


@dataclass(frozen=True)
class AccountMarker:
    """Line at which an account header appears."""
    line_index: int
    account: DematAccount


class CDSLExtractor:
    """
    Extracts investor, accounts, holdings and folios from CDSL text.

    Holdings are read from the part of the statement before the mutual
    fund section and attached to the account whose header precedes them.
    """

    format_type = FormatType.CDSL
    depository = "CDSL"

    NAME_PATTERNS = [
        re.compile(rf"^\s*Name\s*:\s*(.+?){_LABEL_END}", re.IGNORECASE | re.MULTILINE),
        re.compile(rf"^\s*Investor\s+Name\s*:\s*(.+?){_LABEL_END}", re.IGNORECASE | re.MULTILINE),
        re.compile(rf"^\s*Client\s+Name\s*:\s*(.+?){_LABEL_END}", re.IGNORECASE | re.MULTILINE),
    ]
    PAN_PATTERNS = [
        re.compile(r"\bPAN\s*:\s*([A-Z]{5}[0-9]{4}[A-Z])", re.IGNORECASE),
        re.compile(r"Permanent\s+Account\s+Number\s*:\s*([A-Z]{5}[0-9]{4}[A-Z])", re.IGNORECASE),
    ]
    ADDRESS_PATTERN = re.compile(r"^\s*Address\s*:\s*(.+)$", re.IGNORECASE | re.MULTILINE)

    DP_ID_PATTERN = re.compile(r"\bDP\s*ID\s*:?\s*([A-Z0-9]{8})\b", re.IGNORECASE)
    CLIENT_ID_PATTERN = re.compile(r"\b(?:CLIENT|BO)\s*ID\s*:?\s*(\d{16}|\d{8})\b", re.IGNORECASE)
    DP_NAME_PATTERN = re.compile(
        r"\bDP\s*Name\s*:?\s*(.+?)(?=\s+DP\s*ID\b|\s+(?:CLIENT|BO)\s*ID\b|$)",
        re.IGNORECASE,
    )
    BO_ID_PATTERN = re.compile(r"(?<!\d)(\d{16})(?!\d)")
    DEMAT_KEYWORDS = ("demat", "account", "cdsl", "depository", "dp id", "client id", "bo id")

    HOLDINGS_HEADER = re.compile(r"(?i)\b(?:equity\s+shares|holdings|securities)\b")
    # NAME QTY PRICE VALUE rows that carry no ISIN
    STOCK_LINE = re.compile(r"^[A-Z][A-Z&.\-]+(?:\s+[A-Z&.\-]+)*\s+\d[\d,]*\s+\S+\s+\S+$")

    MF_SECTION_HEADER = re.compile(r"(?i)^\s*(?:mutual\s+funds?|mf)\b")
    INSURANCE_HEADER = re.compile(r"(?i)^\s*insurance\b")
    AMC_LINE = re.compile(
        r"^(.+?(?:Mutual\s+Fund|Asset\s+Management(?:\s+Co(?:mpany)?)?(?:\s+(?:Ltd|Limited)\.?)?))$",
        re.IGNORECASE,
    )
    FOLIO_PATTERN = re.compile(
        r"\bFolio\s*(?:No\.?|Number)?\s*:?\s*(?=[A-Z0-9/]*\d)([A-Z0-9/]+(?:\s*/\s*[A-Z0-9]+)?)",
        re.IGNORECASE,
    )
    SCHEME_LINE = re.compile(r"(?i)\b(?:fund|scheme|plan|growth|etf|idcw|dividend)\b")

    def extract_investor_info(self, text: str) -> InvestorInfo:
        """
        Extract investor details from labelled fields.

        Args:
            text: Statement text.

        Returns:
            InvestorInfo; missing fields are None.
        """
        email, mobile = extract_contact_details(text)
        investor = InvestorInfo(
            name=first_match(text, self.NAME_PATTERNS),
            tax_id=first_match(text, self.PAN_PATTERNS),
            address=first_match(text, [self.ADDRESS_PATTERN]),
            email=email,
            mobile=mobile,
        )
        logger.debug(
            f"CDSL investor: name={'found' if investor.name else 'missing'}, "
            f"pan={'found' if investor.tax_id else 'missing'}"
        )
        return investor

    def extract_accounts(self, text: str) -> List[DematAccount]:
        """
        Extract demat accounts in order of first appearance.

        Args:
            text: Statement text.

        Returns:
            Unique accounts keyed by (DP ID, client ID).
        """
        accounts: Dict[str, DematAccount] = {}
        for marker in self._scan_accounts(split_lines(text)):
            accounts.setdefault(marker.account.key, marker.account)
        logger.info(f"CDSL: found {len(accounts)} demat accounts")
        return list(accounts.values())

    def extract_holdings(self, text: str) -> List[Holding]:
        """
        Extract equity and other demat holdings.

        Args:
            text: Statement text.

        Returns:
            Holdings tagged with the key of their account.
        """
        lines = split_lines(text)
        end = self._mutual_fund_start(lines)
        equity_lines = lines[:end] if end is not None else lines

        markers = {m.line_index: m.account.key for m in self._scan_accounts(equity_lines)}
        default_key = next(iter(markers.values()), "")
        current_key: Optional[str] = None
        in_holdings = False
        holdings: List[Holding] = []

        for i, line in enumerate(equity_lines):
            if i in markers:
                current_key = markers[i]
                continue

            isin_match = ISIN_PATTERN.search(line)
            if isin_match:
                holding = self._parse_isin_line(line, isin_match)
            elif in_holdings and self.STOCK_LINE.match(line):
                holding = self._parse_stock_line(line)
            else:
                if self.HOLDINGS_HEADER.search(line):
                    in_holdings = True
                continue

            holdings.append(replace(holding, account_key=current_key or default_key))
            logger.debug(f"CDSL holding: {holding.security_id or holding.name[:30]}")

        logger.info(f"CDSL: parsed {len(holdings)} holdings")
        return holdings

    def extract_funds(self, text: str) -> List[MutualFundFolio]:
        """
        Extract mutual fund folios from the section after the equity holdings.

        Args:
            text: Statement text.

        Returns:
            Folios that have at least one scheme.
        """
        lines = split_lines(text)
        start = self._mutual_fund_start(lines)
        if start is None:
            logger.info("CDSL: no mutual fund section")
            return []

        builders: List[FolioBuilder] = []
        current: Optional[FolioBuilder] = None
        amc: Optional[str] = None

        for line in lines[start:]:
            if self.INSURANCE_HEADER.match(line):
                break
            if self.MF_SECTION_HEADER.match(line) and not has_numeric_token(line):
                continue

            folio_match = self.FOLIO_PATTERN.search(line)
            if folio_match:
                current = FolioBuilder(amc=amc, folio_number=folio_match.group(1).replace(" ", ""))
                builders.append(current)
                continue

            amc_match = self.AMC_LINE.match(line)
            if amc_match and not has_numeric_token(line):
                amc = amc_match.group(1).strip()
                if current is not None and not current.schemes and current.amc is None:
                    current.amc = amc
                elif current is not None and current.schemes:
                    current = None
                continue

            if self.SCHEME_LINE.search(line) and has_numeric_token(line):
                isin_match = ISIN_PATTERN.search(line)
                isin = isin_match.group(1) if isin_match else None
                remainder = ISIN_PATTERN.sub(" ", line)
                scheme = scheme_from_values(split_label_and_values(remainder), isin=isin)
                if current is None:
                    current = FolioBuilder(amc=amc)
                    builders.append(current)
                current.schemes.append(scheme)

        folios = [b.build() for b in builders if b.schemes]
        logger.info(f"CDSL: parsed {len(folios)} mutual fund folios")
        return folios

    def extract_statement_period(self, text: str) -> StatementPeriod:
        return extract_statement_period(text)

    def _scan_accounts(self, lines: List[str]) -> List[AccountMarker]:
        """
        Find every account header line.

        A header is a DP ID with a CLIENT/BO ID on the same or one of the
        next two lines, or a bare 16-digit BO ID near a demat keyword.
        """
        markers: List[AccountMarker] = []
        dp_name: Optional[str] = None

        for i, line in enumerate(lines):
            name_match = self.DP_NAME_PATTERN.search(line)
            if name_match:
                dp_name = name_match.group(1).strip() or None

            ids = self._ids_from_dp_line(lines, i)
            if ids is None:
                ids = self._ids_from_bo_line(lines, i)
            if ids is None:
                continue

            dp_id, client_id = ids
            markers.append(
                AccountMarker(
                    line_index=i,
                    account=DematAccount(
                        depository=self.depository,
                        participant_id=dp_id,
                        client_id=client_id,
                        dp_name=dp_name,
                    ),
                )
            )
        return markers

    def _ids_from_dp_line(self, lines: List[str], index: int) -> Optional[Tuple[str, str]]:
        dp_match = self.DP_ID_PATTERN.search(lines[index])
        if not dp_match:
            return None
        dp_id = dp_match.group(1).upper()

        candidates = [lines[index][dp_match.end():]] + lines[index + 1:index + 3]
        for candidate in candidates:
            client_match = self.CLIENT_ID_PATTERN.search(candidate)
            if client_match:
                return dp_id, self._split_bo_id(client_match.group(1), dp_id)[1]
        logger.debug(f"DP ID {dp_id} without a client id")
        return None

    def _ids_from_bo_line(self, lines: List[str], index: int) -> Optional[Tuple[str, str]]:
        bo_match = self.BO_ID_PATTERN.search(lines[index])
        if not bo_match:
            return None
        context = self._surrounding_text(lines, index, bo_match.start()).lower()
        if not any(keyword in context for keyword in self.DEMAT_KEYWORDS):
            return None
        return self._split_bo_id(bo_match.group(1))

    @staticmethod
    def _surrounding_text(lines: List[str], index: int, position: int,
                          width: int = DEMAT_CONTEXT_CHARS) -> str:
        """Text from `width` characters before a position to `width` after it."""
        before = lines[index][:position]
        after = lines[index][position:]
        i = index - 1
        while len(before) < width and i >= 0:
            before = f"{lines[i]}\n{before}"
            i -= 1
        i = index + 1
        while len(after) < width and i < len(lines):
            after = f"{after}\n{lines[i]}"
            i += 1
        return before[-width:] + after[:width]

    @staticmethod
    def _split_bo_id(bo_id: str, dp_id: Optional[str] = None) -> Tuple[str, str]:
        """Split a 16-digit BO ID into (DP ID, client ID)."""
        if len(bo_id) == 16:
            return bo_id[:8], bo_id[8:]
        return dp_id or "", bo_id

    def _mutual_fund_start(self, lines: List[str]) -> Optional[int]:
        """
        Index of the first line of the mutual fund section.

        Only lines after the first account header or holdings heading are
        considered, so a statement title that mentions mutual funds does not
        open the section. Without a section heading or AMC line, the first
        scheme row without an ISIN opens it.
        """
        candidates = list(enumerate(lines))[self._section_anchor(lines) + 1:]
        for i, line in candidates:
            if ISIN_PATTERN.search(line) or has_numeric_token(line):
                continue
            if self.MF_SECTION_HEADER.match(line) or self.AMC_LINE.match(line):
                return i
        for i, line in candidates:
            if ISIN_PATTERN.search(line):
                continue
            if self.SCHEME_LINE.search(line) and has_numeric_token(line):
                return i
        return None

    def _section_anchor(self, lines: List[str]) -> int:
        starts = [marker.line_index for marker in self._scan_accounts(lines)[:1]]
        starts += [i for i, line in enumerate(lines) if self.HOLDINGS_HEADER.search(line)][:1]
        return min(starts, default=-1)

    def _parse_isin_line(self, line: str, isin_match: "re.Match") -> Holding:
        isin = isin_match.group(1)
        remainder = f"{line[:isin_match.start()]} {line[isin_match.end():]}"
        return self._holding_from_values(isin, remainder)

    def _parse_stock_line(self, line: str) -> Holding:
        return self._holding_from_values("", line)

    def _holding_from_values(self, isin: str, text: str) -> Holding:
        """
        Build a holding from "NAME QTY [PRICE] VALUE" columns.

        The value is always the last column; a malformed value gives 0.
        """
        values = split_label_and_values(text)
        fields = values.fields
        quantity = parse_quantity(fields[0]) if len(fields) >= 2 else parse_quantity(None)
        current_value = parse_currency(values.last)
        return Holding(
            security_id=isin,
            name=values.label,
            quantity=quantity,
            current_value=current_value,
            category=categorize_security(isin, values.label),
        )
