"""
Validation module for the CAS extraction engine.

Checks a normalized statement body for data that is suspicious but not
fatal: malformed PAN or ISIN values, zero-valued positions, duplicate
holdings and accounts without holdings. Findings become warnings in the
statement metadata; validation never fails a parse.
"""

import logging
import re
from collections import Counter
from typing import Optional

from cas_engine.models import (
    DematAccount,
    Holding,
    InvestorInfo,
    MutualFundFolio,
    StatementBody,
    ValidationResult,
)

logger = logging.getLogger(__name__)

ISIN_PATTERN = re.compile(r"^[A-Z]{2}[A-Z0-9]{9}[0-9]$")
PAN_PATTERN = re.compile(r"^[A-Z]{5}[0-9]{4}[A-Z]$")


class StatementValidator:
    """
    Validator for normalized statement data.

    Implements these rules:
    - Format validation (PAN, ISIN patterns)
    - Zero-valued holdings and schemes
    - Duplicate holdings within an account
    - Accounts that carry no holdings
    """

    def validate(self, body: StatementBody) -> ValidationResult:
        """
        Perform complete validation of a statement body.

        Args:
            body: Normalized statement entities.

        Returns:
            ValidationResult with warnings.
        """
        result = ValidationResult()

        logger.info("Starting statement validation")

        result.merge(self.validate_investor(body.investor))

        for holding in body.holdings:
            result.merge(self.validate_holding(holding))

        for folio in body.mutual_funds:
            result.merge(self.validate_folio(folio))

        result.merge(self._check_duplicate_holdings(body))

        for account in body.accounts:
            result.merge(self.validate_account(account))

        logger.info(f"Validation complete: {len(result.warnings)} warnings")

        return result

    def validate_investor(self, investor: InvestorInfo) -> ValidationResult:
        result = ValidationResult()

        if not investor.tax_id:
            result.add_warning("Investor PAN is missing")
        elif not PAN_PATTERN.match(investor.tax_id):
            result.add_warning("Investor PAN does not match the expected format")

        if not investor.name:
            result.add_warning("Investor name is missing")

        if investor.email and "@" not in investor.email:
            result.add_warning("Investor email looks malformed")

        return result

    def validate_holding(self, holding: Holding) -> ValidationResult:
        """
        Validate a single holding.

        Args:
            holding: Holding to validate.

        Returns:
            ValidationResult for the holding.
        """
        result = ValidationResult()
        label = holding.name[:50] or holding.security_id

        if not holding.security_id:
            result.add_warning(f"Missing ISIN for holding: {label}")
        elif not ISIN_PATTERN.match(holding.security_id):
            result.add_warning(f"Invalid ISIN format: {holding.security_id}")

        if holding.current_value == 0:
            result.add_warning(f"Zero value for holding: {label}")

        if holding.quantity < 0:
            result.add_warning(f"Negative quantity for holding: {label} ({holding.quantity})")

        return result

    def validate_folio(self, folio: MutualFundFolio) -> ValidationResult:
        result = ValidationResult()

        if not folio.folio_number:
            result.add_warning(f"Missing folio number for {folio.amc}")

        for scheme in folio.schemes:
            if scheme.isin and not ISIN_PATTERN.match(scheme.isin):
                result.add_warning(f"Invalid ISIN format: {scheme.isin}")
            if scheme.current_value == 0:
                result.add_warning(
                    f"Zero value for scheme: {scheme.scheme_name[:50]} "
                    f"(folio {folio.folio_number or 'unknown'})"
                )

        return result

    def validate_account(self, account: DematAccount) -> ValidationResult:
        result = ValidationResult()
        if not account.holding_ids:
            result.add_warning(
                f"{account.depository} account {account.key} has no holdings"
            )
        return result

    def _check_duplicate_holdings(self, body: StatementBody) -> ValidationResult:
        """Warn when one security appears more than once in the same account."""
        result = ValidationResult()

        counts = Counter(
            (h.account_key, h.security_id) for h in body.holdings if h.security_id
        )
        for (account_key, isin), count in counts.items():
            if count > 1:
                result.add_warning(
                    f"Duplicate holding {isin} appears {count} times in account {account_key}"
                )

        return result


def validate_statement(body: StatementBody) -> ValidationResult:
    """
    Convenience function to validate a statement body.

    Args:
        body: Normalized statement entities.

    Returns:
        ValidationResult with warnings.
    """
    return StatementValidator().validate(body)


def validate_isin(isin: Optional[str]) -> bool:
    """
    Validate an ISIN format.

    Args:
        isin: ISIN string to validate.

    Returns:
        True if valid, False otherwise.
    """
    return bool(isin and ISIN_PATTERN.match(isin))


def validate_pan(pan: Optional[str]) -> bool:
    """
    Validate a PAN format.

    Args:
        pan: PAN string to validate.

    Returns:
        True if valid, False otherwise.
    """
    return bool(pan and PAN_PATTERN.match(pan))
